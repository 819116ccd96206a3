"""
Circular Trades Service

A ring exchange opens in `pending`, moves to `in_progress` the first time
its participant count reaches `min_participants`, and never exceeds
`max_participants`. Joining reserves a slot with a conditional increment of
`participant_count`, so two simultaneous joiners cannot overshoot the cap.
"""
import logging
from datetime import timedelta

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import User, Product, CircularTrade, CircularTradeParticipant
from app.services import feature_flags
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)


def _check_own_product(db: Session, user: User, product_id: int) -> None:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.user_id != user.id:
        raise HTTPException(status_code=400, detail="Solo puedes ofrecer tus propios productos")


def get_trade(db: Session, trade_id: int) -> CircularTrade:
    trade = (
        db.query(CircularTrade)
        .options(selectinload(CircularTrade.participants))
        .filter(CircularTrade.id == trade_id)
        .first()
    )
    if not trade:
        raise HTTPException(status_code=404, detail="Circular trade not found")
    return trade


def create_circular_trade(
    db: Session,
    flags: FeatureFlags,
    user: User,
    product_id: int,
    min_participants: int = 3,
    max_participants: int = 10,
    expires_in_hours: int = 48,
) -> CircularTrade:
    """Open a ring with the initiator as participant 1."""
    flags.require(feature_flags.CIRCULAR_TRADES)

    if min_participants < 2 or max_participants < min_participants:
        raise HTTPException(status_code=400, detail="Número de participantes no válido")
    _check_own_product(db, user, product_id)

    now = utcnow()
    try:
        trade = CircularTrade(
            initiator_id=user.id,
            status="pending",
            min_participants=min_participants,
            max_participants=max_participants,
            participant_count=1,
            expires_at=now + timedelta(hours=expires_in_hours),
        )
        db.add(trade)
        db.flush()

        db.add(CircularTradeParticipant(
            trade_id=trade.id,
            user_id=user.id,
            product_id=product_id,
            position=1,
            status="confirmed",
            confirmed_at=now,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Circular trade {trade.id} created by user {user.id}")
    return get_trade(db, trade.id)


def join_circular_trade(
    db: Session,
    flags: FeatureFlags,
    user: User,
    trade_id: int,
    product_id: int,
) -> CircularTrade:
    """Take the next free slot in a pending ring."""
    flags.require(feature_flags.CIRCULAR_TRADES)

    trade = get_trade(db, trade_id)
    if trade.status != "pending":
        raise HTTPException(status_code=400, detail="Este trueke circular ya no está disponible")
    if trade.expires_at and trade.expires_at <= utcnow():
        raise HTTPException(status_code=400, detail="Este trueke circular ya no está disponible")
    if any(p.user_id == user.id for p in trade.participants):
        raise HTTPException(status_code=400, detail="Ya eres parte de este trueke circular")
    if trade.participant_count >= trade.max_participants:
        raise HTTPException(status_code=400, detail="Este trueke circular ya está completo")
    _check_own_product(db, user, product_id)

    try:
        reserved = db.execute(
            update(CircularTrade)
            .where(
                CircularTrade.id == trade_id,
                CircularTrade.status == "pending",
                CircularTrade.participant_count < CircularTrade.max_participants,
            )
            .values(participant_count=CircularTrade.participant_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        if reserved.rowcount != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Este trueke circular ya está completo"
            )

        db.refresh(trade, ["participant_count", "min_participants"])
        position = trade.participant_count

        with db.begin_nested():
            db.add(CircularTradeParticipant(
                trade_id=trade_id,
                user_id=user.id,
                product_id=product_id,
                position=position,
                status="confirmed",
                confirmed_at=utcnow(),
            ))

        if position >= trade.min_participants:
            db.execute(
                update(CircularTrade)
                .where(CircularTrade.id == trade_id, CircularTrade.status == "pending")
                .values(status="in_progress")
                .execution_options(synchronize_session="fetch")
            )
            logger.info(f"Circular trade {trade_id} reached {position} participants, now in progress")
        db.commit()
    except HTTPException:
        raise
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Ya eres parte de este trueke circular")
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    return get_trade(db, trade_id)


def complete_circular_trade(db: Session, user: User, trade_id: int) -> CircularTrade:
    trade = get_trade(db, trade_id)
    if trade.initiator_id != user.id:
        raise HTTPException(status_code=403, detail="Solo el iniciador puede completar el trueke")
    if trade.status != "in_progress":
        raise HTTPException(status_code=400, detail="El trueke circular no está en progreso")

    trade.status = "completed"
    trade.completed_at = utcnow()
    db.commit()
    db.refresh(trade)
    return trade


def list_open_trades(db: Session) -> list[CircularTrade]:
    return (
        db.query(CircularTrade)
        .options(selectinload(CircularTrade.participants))
        .filter(CircularTrade.status.in_(["pending", "in_progress"]))
        .order_by(CircularTrade.id.desc())
        .all()
    )


def list_my_trades(db: Session, user: User) -> list[CircularTrade]:
    """Trades the user initiated or takes part in."""
    participating = select(CircularTradeParticipant.trade_id).where(
        CircularTradeParticipant.user_id == user.id
    )
    return (
        db.query(CircularTrade)
        .options(selectinload(CircularTrade.participants))
        .filter(or_(
            CircularTrade.initiator_id == user.id,
            CircularTrade.id.in_(participating),
        ))
        .order_by(CircularTrade.id.desc())
        .all()
    )
