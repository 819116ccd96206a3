"""
Premium actions gated by plan limits: super likes, boosts and rewinds.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.match import Swipe
from ..schemas.premium import PremiumStatus, SuperLikeRequest, BoostRequest, Boost, RewindRequest
from ..services import premium
from ..services.feature_flags import FeatureFlags
from .auth import require_auth, get_flags

router = APIRouter(prefix="/premium", tags=["premium"])


@router.get("/status", response_model=PremiumStatus)
def get_status(
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Current limits, usage this period and what can still be used."""
    return premium.get_premium_status(db, flags, user)


@router.post("/super-like", response_model=Swipe)
def super_like(
    data: SuperLikeRequest,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return premium.send_super_like(db, flags, user, data.receiver_id, data.product_id)


@router.post("/boost", response_model=Boost)
def boost(
    data: BoostRequest,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return premium.activate_boost(db, flags, user, data.duration_minutes)


@router.post("/rewind")
def rewind(
    data: RewindRequest,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    premium.use_rewind(db, flags, user, data.swipe_id)
    return {"success": True}
