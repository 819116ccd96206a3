from pydantic import BaseModel
from datetime import datetime


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str | None
    data: dict | None
    read_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    unread: int
