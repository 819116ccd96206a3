"""
In-app notifications. The same events are pushed to Redis for live clients.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.routers.auth import require_auth
from app.schemas.notification import Notification, UnreadCount
from app.services import realtime

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
def get_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    return realtime.list_notifications(db, user.id, unread_only, limit)


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return UnreadCount(unread=realtime.unread_count(db, user.id))


@router.post("/{notification_id}/read")
def mark_read(notification_id: int, user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return {"updated": realtime.mark_as_read(db, user.id, notification_id)}


@router.post("/read-all")
def mark_all_read(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return {"updated": realtime.mark_as_read(db, user.id)}
