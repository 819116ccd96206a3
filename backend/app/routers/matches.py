"""
Swipes, matches and chat messages.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.match import (
    Swipe, SwipeCreate, SwipeResult, Match, MatchStatusUpdate, Message, MessageCreate
)
from ..services import matching, premium
from ..services.feature_flags import FeatureFlags
from .auth import require_auth, get_flags

router = APIRouter(tags=["matches"])


@router.post("/swipes", response_model=SwipeResult)
def swipe(
    data: SwipeCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Like or dislike a listing. A reciprocated like creates a match."""
    swipe_row, match = matching.record_swipe(
        db, flags, user, data.product_id, data.action, data.offered_product_id
    )
    return SwipeResult(
        swipe=Swipe.model_validate(swipe_row),
        match=Match.model_validate(match) if match else None,
    )


@router.get("/swipes/likes-received", response_model=list[Swipe])
def likes_received(
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Who liked my listings. Needs a plan that can see likes."""
    status = premium.get_premium_status(db, flags, user)
    if not status["can_see_likes"]:
        raise HTTPException(status_code=403, detail="Premium subscription required")
    return matching.who_likes_me(db, user.id)


@router.get("/matches", response_model=list[Match])
def get_matches(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return matching.list_matches(db, user.id)


@router.get("/matches/{match_id}", response_model=Match)
def get_match(match_id: int, user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return matching.get_match_for_user(db, user, match_id)


@router.patch("/matches/{match_id}", response_model=Match)
def update_match(
    match_id: int,
    data: MatchStatusUpdate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Accept, reject, complete or cancel a match."""
    return matching.update_match_status(db, user, match_id, data.status, flags)


@router.get("/matches/{match_id}/messages", response_model=list[Message])
def get_messages(match_id: int, user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return matching.list_messages(db, user, match_id)


@router.post("/matches/{match_id}/messages", response_model=Message, status_code=201)
def post_message(
    match_id: int,
    data: MessageCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return matching.send_message(db, flags, user, match_id, data.content)
