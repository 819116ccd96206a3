from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal


class AuctionCreate(BaseModel):
    product_id: int
    starting_price: Decimal = Field(ge=0)
    min_increment: Decimal = Field(default=Decimal("1.00"), gt=0)
    duration_hours: int = Field(default=24, gt=0)


class Auction(BaseModel):
    id: int
    product_id: int
    seller_id: int
    starting_price: Decimal
    current_price: Decimal
    min_increment: Decimal
    ends_at: datetime
    status: str
    winner_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class BidCreate(BaseModel):
    amount: Decimal


class Bid(BaseModel):
    id: int
    auction_id: int
    bidder_id: int
    amount: Decimal
    is_winning: bool
    created_at: datetime

    class Config:
        from_attributes = True
