"""
Auctions Service

Bids are accepted with a single conditional UPDATE on the auction row:

    UPDATE auctions SET current_price = :amount
    WHERE id = :id AND status = 'active' AND ends_at > :now
      AND current_price + min_increment <= :amount

Only when that hits a row are earlier bids un-marked and the new winning bid
inserted, all in the same transaction. Accepted amounts are therefore
strictly increasing and at most one bid per auction is winning.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import User, Product, Auction, AuctionBid
from app.services import feature_flags, realtime
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def get_auction(db: Session, auction_id: int) -> Auction:
    auction = db.query(Auction).filter(Auction.id == auction_id).first()
    if not auction:
        raise HTTPException(status_code=404, detail="Auction not found")
    return auction


def create_auction(
    db: Session,
    flags: FeatureFlags,
    user: User,
    product_id: int,
    starting_price: float,
    min_increment: float,
    duration_hours: int,
) -> Auction:
    flags.require(feature_flags.AUCTIONS)

    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.user_id != user.id:
        raise HTTPException(status_code=403, detail="Solo puedes subastar tus propios productos")
    if starting_price < 0 or min_increment <= 0 or duration_hours <= 0:
        raise HTTPException(status_code=400, detail="Parámetros de subasta no válidos")

    open_auction = db.query(Auction).filter(
        Auction.product_id == product_id,
        Auction.status == "active"
    ).first()
    if open_auction:
        raise HTTPException(status_code=400, detail="Este producto ya tiene una subasta activa")

    auction = Auction(
        product_id=product_id,
        seller_id=user.id,
        starting_price=_money(starting_price),
        current_price=_money(starting_price),
        min_increment=_money(min_increment),
        ends_at=utcnow() + timedelta(hours=duration_hours),
        status="active",
    )
    db.add(auction)
    db.commit()
    db.refresh(auction)
    logger.info(f"Auction {auction.id} created by user {user.id}, ends {auction.ends_at}")
    return auction


def place_bid(db: Session, flags: FeatureFlags, user: User, auction_id: int, amount: float) -> AuctionBid:
    """Validate and record a bid as the sole winning bid."""
    flags.require(feature_flags.AUCTIONS)

    amount = _money(amount)
    auction = get_auction(db, auction_id)
    now = utcnow()

    if auction.seller_id == user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No puedes ofertar en tu propia subasta"
        )

    if auction.status != "active" or auction.ends_at <= now:
        raise HTTPException(status_code=400, detail="Subasta terminada")

    min_bid = _money(auction.current_price) + _money(auction.min_increment)
    if amount < min_bid:
        raise HTTPException(
            status_code=400,
            detail=f"Oferta muy baja: la oferta mínima es ${min_bid:.2f}"
        )

    previous_leader = (
        db.query(AuctionBid)
        .filter(AuctionBid.auction_id == auction_id, AuctionBid.is_winning == True)
        .first()
    )
    previous_leader_id = previous_leader.bidder_id if previous_leader else None

    try:
        result = db.execute(
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == "active",
                Auction.ends_at > now,
                Auction.current_price + Auction.min_increment <= amount,
            )
            .values(current_price=amount, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="La subasta cambió, vuelve a intentarlo"
            )

        db.execute(
            update(AuctionBid)
            .where(AuctionBid.auction_id == auction_id, AuctionBid.is_winning == True)
            .values(is_winning=False)
            .execution_options(synchronize_session="fetch")
        )

        bid = AuctionBid(auction_id=auction_id, bidder_id=user.id, amount=amount, is_winning=True)
        db.add(bid)
        db.flush()

        realtime.notify(
            db, auction.seller_id, realtime.AUCTION_BID,
            "Nueva oferta en tu subasta",
            f"Nueva oferta de ${amount:.2f}",
            {"auction_id": auction_id, "amount": str(amount)},
        )
        if previous_leader_id and previous_leader_id != user.id:
            realtime.notify(
                db, previous_leader_id, realtime.AUCTION_OUTBID,
                "Te superaron en una subasta",
                f"La oferta actual es ${amount:.2f}",
                {"auction_id": auction_id, "amount": str(amount)},
            )
        db.commit()
    except HTTPException:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    logger.info(f"Bid {bid.id} of {amount} accepted on auction {auction_id}")
    return bid


def get_auction_bids(db: Session, auction_id: int) -> list[AuctionBid]:
    get_auction(db, auction_id)
    return (
        db.query(AuctionBid)
        .filter(AuctionBid.auction_id == auction_id)
        .order_by(AuctionBid.id.desc())
        .all()
    )


def cancel_auction(db: Session, user: User, auction_id: int) -> Auction:
    auction = get_auction(db, auction_id)
    if auction.seller_id != user.id:
        raise HTTPException(status_code=403, detail="Solo el vendedor puede cancelar la subasta")
    if auction.status != "active":
        raise HTTPException(status_code=400, detail="La subasta ya no está activa")

    auction.status = "cancelled"
    db.commit()
    db.refresh(auction)
    return auction


def list_active_auctions(db: Session, flags: FeatureFlags) -> list[Auction]:
    if not flags.is_enabled(feature_flags.AUCTIONS):
        return []
    return (
        db.query(Auction)
        .options(joinedload(Auction.product))
        .filter(Auction.status == "active", Auction.ends_at > utcnow())
        .order_by(Auction.ends_at)
        .all()
    )


def list_my_auctions(db: Session, user: User) -> list[Auction]:
    return (
        db.query(Auction)
        .options(joinedload(Auction.product))
        .filter(Auction.seller_id == user.id)
        .order_by(Auction.id.desc())
        .all()
    )


def close_expired_auctions(db: Session, now: Optional[datetime] = None) -> int:
    """Mark active auctions past their end as ended and record the winner."""
    now = now or utcnow()
    expired = db.query(Auction).filter(Auction.status == "active", Auction.ends_at <= now).all()

    for auction in expired:
        winning = (
            db.query(AuctionBid)
            .filter(AuctionBid.auction_id == auction.id, AuctionBid.is_winning == True)
            .first()
        )
        auction.status = "ended"
        auction.winner_id = winning.bidder_id if winning else None
        if winning:
            realtime.notify(
                db, winning.bidder_id, realtime.AUCTION_WON,
                "¡Ganaste la subasta!",
                f"Tu oferta de ${_money(winning.amount):.2f} fue la ganadora",
                {"auction_id": auction.id, "amount": str(_money(winning.amount))},
            )
            seller_message = f"Se vendió por ${_money(winning.amount):.2f}"
        else:
            seller_message = "Terminó sin ofertas"
        realtime.notify(
            db, auction.seller_id, realtime.AUCTION_ENDED,
            "Tu subasta terminó",
            seller_message,
            {"auction_id": auction.id, "winner_id": auction.winner_id},
        )

    db.commit()
    if expired:
        logger.info(f"Closed {len(expired)} expired auctions")
    return len(expired)
