"""
Missions, achievements and the TrueKoin wallet.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.gamification import (
    UserMission, UserMissions, MissionProgress, AchievementStatus, Wallet, Transaction, SpendRequest
)
from ..services import achievements, missions, trukoins
from ..services.feature_flags import FeatureFlags
from .auth import require_auth, get_flags

router = APIRouter(tags=["gamification"])


@router.get("/missions", response_model=UserMissions)
def get_missions(
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return missions.list_user_missions(db, flags, user)


@router.post("/missions/progress", response_model=list[UserMission])
def record_progress(
    data: MissionProgress,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return missions.update_mission_progress(db, flags, user, data.action_type, data.count)


@router.post("/missions/{user_mission_id}/claim", response_model=UserMission)
def claim_reward(
    user_mission_id: int,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Claim a completed mission's TrueKoins. A second claim gets 409."""
    return missions.claim_mission_reward(db, user, user_mission_id)


@router.get("/achievements", response_model=list[AchievementStatus])
def get_achievements(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return achievements.list_achievements(db, user.id)


@router.get("/trukoins", response_model=Wallet)
def get_wallet(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return trukoins.get_wallet_summary(db, user.id)


@router.post("/trukoins/spend", response_model=Transaction)
def spend(
    data: SpendRequest,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    transaction = trukoins.spend_trukoins(db, user.id, data.amount, data.description, data.reference_id)
    db.commit()
    db.refresh(transaction)
    return transaction
