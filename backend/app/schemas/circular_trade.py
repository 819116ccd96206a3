from pydantic import BaseModel
from datetime import datetime


class CircularTradeCreate(BaseModel):
    product_id: int
    min_participants: int = 3
    max_participants: int = 10
    expires_in_hours: int = 48


class CircularTradeJoin(BaseModel):
    product_id: int


class Participant(BaseModel):
    id: int
    user_id: int
    product_id: int | None
    position: int | None
    status: str
    confirmed_at: datetime | None

    class Config:
        from_attributes = True


class CircularTrade(BaseModel):
    id: int
    initiator_id: int
    status: str
    min_participants: int
    max_participants: int
    participant_count: int
    expires_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    participants: list[Participant] = []

    class Config:
        from_attributes = True
