from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal


class DiscountCodeBase(BaseModel):
    code: str
    description: str | None = None
    discount_type: str = "percentage"
    discount_value: Decimal
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_uses: int | None = None
    applicable_plans: list[int] = []
    min_plan_price: Decimal | None = None
    is_active: bool = True


class DiscountCodeCreate(DiscountCodeBase):
    pass


class DiscountCodeUpdate(BaseModel):
    code: str | None = None
    description: str | None = None
    discount_type: str | None = None
    discount_value: Decimal | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_uses: int | None = None
    applicable_plans: list[int] | None = None
    min_plan_price: Decimal | None = None
    is_active: bool | None = None


class DiscountCode(DiscountCodeBase):
    id: int
    current_uses: int
    created_at: datetime

    class Config:
        from_attributes = True


class ValidateRequest(BaseModel):
    code: str
    plan_id: int


class ValidateResponse(BaseModel):
    valid: bool
    error: str | None = None
    code_id: int | None = None
    discount_amount: Decimal = Decimal("0")
    final_price: Decimal | None = None
