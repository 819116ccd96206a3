from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal


class PlanBase(BaseModel):
    name: str
    description: str | None = None
    price: Decimal
    stripe_price_id: str | None = None
    super_likes_per_day: int = 1
    boosts_per_month: int = 0
    rewinds_per_day: int = 1
    can_see_likes: bool = False
    priority_in_hot: bool = False
    is_active: bool = True


class PlanCreate(PlanBase):
    pass


class PlanUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    stripe_price_id: str | None = None
    super_likes_per_day: int | None = None
    boosts_per_month: int | None = None
    rewinds_per_day: int | None = None
    can_see_likes: bool | None = None
    priority_in_hot: bool | None = None
    is_active: bool | None = None


class Plan(PlanBase):
    id: int

    class Config:
        from_attributes = True


class Subscription(BaseModel):
    id: int
    user_id: int
    plan_id: int
    status: str
    started_at: datetime | None
    expires_at: datetime | None

    class Config:
        from_attributes = True


class SubscribeRequest(BaseModel):
    plan_id: int
    discount_code: str | None = None
    months: int = 1


class SubscribeResponse(BaseModel):
    subscription: Subscription
    price: Decimal
    discount_amount: Decimal
    final_price: Decimal


class CheckoutRequest(BaseModel):
    plan_id: int
    discount_code: str | None = None


class CheckoutResponse(BaseModel):
    checkout_url: str


class SuperLikeRequest(BaseModel):
    receiver_id: int | None = None
    product_id: int


class BoostRequest(BaseModel):
    duration_minutes: int = 30


class Boost(BaseModel):
    id: int
    boost_type: str
    multiplier: int
    starts_at: datetime
    ends_at: datetime

    class Config:
        from_attributes = True


class RewindRequest(BaseModel):
    swipe_id: int | None = None


class PremiumStatus(BaseModel):
    is_premium: bool
    plan_id: int | None
    limits: dict
    usage: dict[str, int]
    remaining: dict[str, int]
    can_use: dict[str, bool]
    can_see_likes: bool
    boost_ends_at: datetime | None


class FreeLimits(BaseModel):
    super_likes_per_day: int | None = None
    boosts_per_month: int | None = None
    rewinds_per_day: int | None = None
