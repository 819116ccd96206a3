"""
Realtime Notification Service

Persists in-app notifications and publishes change events to Redis pub/sub,
one channel per user. Events are queued on the SQLAlchemy session and only
published once the surrounding transaction commits; a rollback drops them.
Publishing is disabled (with a warning) when Redis is unreachable.
"""
import json
import logging
from typing import Optional, Any

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import utcnow
from app.models import Notification

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "trueke:user:"
PENDING_KEY = "realtime_pending_events"

# Event types
NEW_MATCH = "new_match"
NEW_MESSAGE = "new_message"
MATCH_STATUS = "match_status"
SUBSCRIPTION_STATUS = "subscription_status"
DISCOUNT_REDEEMED = "discount_redeemed"
FEATURED_PRODUCT = "featured_product"
AUCTION_OUTBID = "auction_outbid"
AUCTION_BID = "auction_bid"
AUCTION_WON = "auction_won"
AUCTION_ENDED = "auction_ended"
MISSION_COMPLETED = "mission_completed"


class RealtimePublisher:
    """Redis publisher with fallback to no-op."""

    def __init__(self):
        self._client: Optional[redis.Redis] = None
        self._connected = False
        self._attempted = False

    def connect(self):
        """Initialize Redis connection."""
        if self._connected:
            return

        self._attempted = True
        try:
            settings = get_settings()
            self._client = redis.Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
            )
            self._client.ping()
            self._connected = True
            logger.info("Redis realtime publisher connected")
        except (RedisConnectionError, Exception) as e:
            logger.warning(f"Redis not available, realtime publishing disabled: {e}")
            self._client = None
            self._connected = False

    def disconnect(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._connected = False

    def publish(self, user_id: int, payload: dict[str, Any]) -> bool:
        """Publish an event on the user's channel."""
        if not self._client:
            return False

        try:
            self._client.publish(f"{CHANNEL_PREFIX}{user_id}", json.dumps(payload, default=str))
            return True
        except Exception as e:
            logger.error(f"Realtime publish error: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        return self._connected


# Singleton instance
publisher = RealtimePublisher()


def notify(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: Optional[str] = None,
    data: Optional[dict] = None,
) -> Notification:
    """
    Record a notification for a user inside the caller's transaction.

    The matching realtime event goes out after commit.
    """
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data or {},
    )
    db.add(notification)
    db.flush()

    db.info.setdefault(PENDING_KEY, []).append((user_id, {
        "id": notification.id,
        "type": type,
        "title": title,
        "message": message,
        "data": data or {},
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }))
    return notification


@event.listens_for(Session, "after_commit")
def _publish_pending(session: Session):
    pending = session.info.pop(PENDING_KEY, [])
    for user_id, payload in pending:
        publisher.publish(user_id, payload)


@event.listens_for(Session, "after_rollback")
def _drop_pending(session: Session):
    session.info.pop(PENDING_KEY, None)


# Query helpers used by the notifications router

def list_notifications(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.id.desc()).limit(limit).all()


def unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read_at.is_(None)
    ).count()


def mark_as_read(db: Session, user_id: int, notification_id: Optional[int] = None) -> int:
    """Mark one notification, or all of them, as read. Returns rows updated."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read_at.is_(None)
    )
    if notification_id is not None:
        query = query.filter(Notification.id == notification_id)

    updated = query.update({Notification.read_at: utcnow()}, synchronize_session=False)
    db.commit()
    return updated
