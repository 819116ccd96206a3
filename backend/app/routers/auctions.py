"""
Auction endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.routers.auth import require_auth, get_flags
from app.schemas.auction import Auction, AuctionCreate, Bid, BidCreate
from app.services import auctions
from app.services.feature_flags import FeatureFlags

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.get("", response_model=list[Auction])
def get_active_auctions(flags: FeatureFlags = Depends(get_flags), db: Session = Depends(get_db)):
    return auctions.list_active_auctions(db, flags)


@router.get("/mine", response_model=list[Auction])
def get_my_auctions(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return auctions.list_my_auctions(db, user)


@router.get("/{auction_id}", response_model=Auction)
def get_auction(auction_id: int, db: Session = Depends(get_db)):
    return auctions.get_auction(db, auction_id)


@router.post("", response_model=Auction, status_code=201)
def create_auction(
    data: AuctionCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return auctions.create_auction(
        db, flags, user,
        data.product_id, data.starting_price, data.min_increment, data.duration_hours
    )


@router.get("/{auction_id}/bids", response_model=list[Bid])
def get_bids(auction_id: int, db: Session = Depends(get_db)):
    return auctions.get_auction_bids(db, auction_id)


@router.post("/{auction_id}/bids", response_model=Bid, status_code=201)
def place_bid(
    auction_id: int,
    data: BidCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """
    Bid on an auction. The amount must be at least the current price plus
    the minimum increment.
    """
    return auctions.place_bid(db, flags, user, auction_id, data.amount)


@router.post("/{auction_id}/cancel", response_model=Auction)
def cancel_auction(auction_id: int, user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return auctions.cancel_auction(db, user, auction_id)
