"""
Circular trade endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.routers.auth import require_auth, get_flags
from app.schemas.circular_trade import CircularTrade, CircularTradeCreate, CircularTradeJoin
from app.services import circular_trades
from app.services.feature_flags import FeatureFlags

router = APIRouter(prefix="/circular-trades", tags=["circular-trades"])


@router.get("", response_model=list[CircularTrade])
def get_open_trades(db: Session = Depends(get_db)):
    return circular_trades.list_open_trades(db)


@router.get("/mine", response_model=list[CircularTrade])
def get_my_trades(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return circular_trades.list_my_trades(db, user)


@router.get("/{trade_id}", response_model=CircularTrade)
def get_trade(trade_id: int, db: Session = Depends(get_db)):
    return circular_trades.get_trade(db, trade_id)


@router.post("", response_model=CircularTrade, status_code=201)
def create_trade(
    data: CircularTradeCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return circular_trades.create_circular_trade(
        db, flags, user,
        data.product_id, data.min_participants, data.max_participants, data.expires_in_hours
    )


@router.post("/{trade_id}/join", response_model=CircularTrade)
def join_trade(
    trade_id: int,
    data: CircularTradeJoin,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return circular_trades.join_circular_trade(db, flags, user, trade_id, data.product_id)


@router.post("/{trade_id}/complete", response_model=CircularTrade)
def complete_trade(trade_id: int, user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return circular_trades.complete_circular_trade(db, user, trade_id)
