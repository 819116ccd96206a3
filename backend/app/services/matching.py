"""
Swipes, match detection, match status and chat messages.

A match is created when a like closes a reciprocal pair: the owner of the
liked product has already liked a product owned by the swiper. The check
and the insert run in the swipe's own transaction.
"""
import logging
from typing import Optional

from sqlalchemy import or_, and_
from sqlalchemy.orm import Session
from fastapi import HTTPException

from app.models import User, Product, Swipe, Match, Message
from app.services import realtime
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)

# Allowed status transitions for a match
MATCH_TRANSITIONS = {
    "pending": {"accepted", "rejected", "cancelled"},
    "accepted": {"completed", "cancelled"},
    "rejected": set(),
    "completed": set(),
    "cancelled": set(),
}

MATCH_STATUS_MESSAGES = {
    "accepted": ("¡Trueke aceptado! 🤝", "Tu propuesta de trueke ha sido aceptada"),
    "completed": ("¡Trueke completado! ✅", "El trueke se ha marcado como completado"),
    "rejected": ("Trueke rechazado", "La propuesta de trueke ha sido rechazada"),
    "cancelled": ("Trueke cancelado", "El trueke ha sido cancelado"),
}


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def existing_match(db: Session, user_a: int, user_b: int) -> Optional[Match]:
    """An open match between two users, in either direction."""
    return db.query(Match).filter(
        or_(
            and_(Match.user1_id == user_a, Match.user2_id == user_b),
            and_(Match.user1_id == user_b, Match.user2_id == user_a),
        ),
        Match.status.in_(["pending", "accepted"]),
    ).first()


def detect_match(db: Session, user: User, liked_product: Product) -> Optional[Match]:
    """
    Create a match if `user`'s like on `liked_product` is reciprocated.

    Runs inside the caller's transaction and does not commit.
    """
    owner_id = liked_product.user_id
    if owner_id == user.id:
        return None

    reciprocal = (
        db.query(Swipe)
        .join(Product, Product.id == Swipe.product_id)
        .filter(
            Swipe.user_id == owner_id,
            Swipe.action == "like",
            Product.user_id == user.id,
        )
        .order_by(Swipe.id.desc())
        .first()
    )
    if reciprocal is None:
        return None

    if existing_match(db, user.id, owner_id):
        return None

    match = Match(
        user1_id=user.id,
        user2_id=owner_id,
        product1_id=liked_product.id,
        product2_id=reciprocal.product_id,
        status="pending",
    )
    db.add(match)
    db.flush()

    realtime.notify(
        db, owner_id, realtime.NEW_MATCH,
        "¡Nuevo Match! 🎉",
        f"Alguien quiere truekear por {liked_product.title}",
        {"match_id": match.id, "product_title": liked_product.title},
    )
    realtime.notify(
        db, user.id, realtime.NEW_MATCH,
        "¡Nuevo Match! 🎉",
        f"Hiciste match por {liked_product.title}",
        {"match_id": match.id, "product_title": liked_product.title},
    )
    logger.info(f"Match {match.id} created between users {user.id} and {owner_id}")
    return match


def record_swipe(
    db: Session,
    flags: FeatureFlags,
    user: User,
    product_id: int,
    action: str,
    offered_product_id: Optional[int] = None,
) -> tuple[Swipe, Optional[Match]]:
    """Record a like/dislike. Returns the swipe and any match it created."""
    from app.services import achievements, missions

    if action not in ("like", "dislike"):
        raise HTTPException(status_code=400, detail="Invalid action. Must be 'like' or 'dislike'")

    product = _get_product(db, product_id)
    if product.user_id == user.id:
        raise HTTPException(status_code=400, detail="No puedes hacer swipe a tu propio producto")

    if offered_product_id is not None:
        offered = _get_product(db, offered_product_id)
        if offered.user_id != user.id:
            raise HTTPException(status_code=400, detail="Solo puedes ofrecer tus propios productos")

    try:
        swipe = Swipe(
            user_id=user.id,
            product_id=product_id,
            action=action,
            offered_product_id=offered_product_id,
        )
        db.add(swipe)
        db.flush()

        match = None
        if action == "like":
            match = detect_match(db, user, product)
            missions.advance(db, flags, user, "like")
            achievements.record_event(db, flags, product.user_id, achievements.LIKES_RECEIVED)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(swipe)
    return swipe, match


def undo_swipe(db: Session, user: User, swipe_id: int) -> None:
    """Remove one of the user's own dislikes. Does not commit."""
    swipe = db.query(Swipe).filter(Swipe.id == swipe_id, Swipe.user_id == user.id).first()
    if not swipe:
        raise HTTPException(status_code=404, detail="Swipe not found")
    if swipe.action != "dislike":
        raise HTTPException(status_code=400, detail="Solo se pueden deshacer los dislikes")
    db.delete(swipe)


def swiped_product_ids(db: Session, user_id: int) -> list[int]:
    return [row[0] for row in db.query(Swipe.product_id).filter(Swipe.user_id == user_id).all()]


def who_likes_me(db: Session, user_id: int) -> list[Swipe]:
    """Likes received on the user's products."""
    return (
        db.query(Swipe)
        .join(Product, Product.id == Swipe.product_id)
        .filter(Product.user_id == user_id, Swipe.action == "like")
        .order_by(Swipe.is_super_like.desc(), Swipe.id.desc())
        .all()
    )


def list_matches(db: Session, user_id: int) -> list[Match]:
    return (
        db.query(Match)
        .filter(or_(Match.user1_id == user_id, Match.user2_id == user_id))
        .order_by(Match.id.desc())
        .all()
    )


def get_match_for_user(db: Session, user: User, match_id: int) -> Match:
    match = db.query(Match).filter(Match.id == match_id).first()
    if not match or not match.involves(user.id):
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def update_match_status(
    db: Session,
    user: User,
    match_id: int,
    new_status: str,
    flags: Optional[FeatureFlags] = None,
) -> Match:
    """Move a match through its lifecycle and notify the other party."""
    from app.services import achievements

    match = get_match_for_user(db, user, match_id)

    allowed = MATCH_TRANSITIONS.get(match.status, set())
    if new_status not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status transition: {match.status} -> {new_status}"
        )

    match.status = new_status
    if new_status == "completed":
        for product_id in (match.product1_id, match.product2_id):
            db.query(Product).filter(Product.id == product_id).update(
                {Product.status: "traded"}, synchronize_session=False
            )
        if flags is not None:
            for user_id in (match.user1_id, match.user2_id):
                achievements.record_event(db, flags, user_id, achievements.TRADES_COMPLETED)

    title, description = MATCH_STATUS_MESSAGES[new_status]
    realtime.notify(
        db, match.other_user_id(user.id), realtime.MATCH_STATUS,
        title, description, {"match_id": match.id, "status": new_status},
    )
    db.commit()
    db.refresh(match)
    return match


def send_message(db: Session, flags: FeatureFlags, user: User, match_id: int, content: str) -> Message:
    """Post a chat message on a match the user takes part in."""
    from app.services import missions

    content = (content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    match = get_match_for_user(db, user, match_id)
    if match.status in ("rejected", "cancelled"):
        raise HTTPException(status_code=400, detail="Este trueke ya no está activo")

    try:
        message = Message(match_id=match.id, sender_id=user.id, content=content)
        db.add(message)
        db.flush()

        preview = content if len(content) <= 50 else content[:50] + "..."
        realtime.notify(
            db, match.other_user_id(user.id), realtime.NEW_MESSAGE,
            f"Mensaje de {user.display_name or 'Usuario'}",
            preview,
            {"match_id": match.id, "message_id": message.id},
        )
        missions.advance(db, flags, user, "send_message")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(message)
    return message


def list_messages(db: Session, user: User, match_id: int) -> list[Message]:
    match = get_match_for_user(db, user, match_id)
    return db.query(Message).filter(Message.match_id == match.id).order_by(Message.id).all()
