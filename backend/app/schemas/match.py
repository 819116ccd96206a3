from pydantic import BaseModel
from datetime import datetime


class SwipeCreate(BaseModel):
    product_id: int
    action: str  # 'like' or 'dislike'
    offered_product_id: int | None = None


class Swipe(BaseModel):
    id: int
    user_id: int
    product_id: int
    action: str
    is_super_like: bool
    offered_product_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class Match(BaseModel):
    id: int
    user1_id: int
    user2_id: int
    product1_id: int
    product2_id: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SwipeResult(BaseModel):
    swipe: Swipe
    match: Match | None = None


class MatchStatusUpdate(BaseModel):
    status: str


class MessageCreate(BaseModel):
    content: str


class Message(BaseModel):
    id: int
    match_id: int
    sender_id: int
    content: str
    read_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True
