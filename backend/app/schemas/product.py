from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal


class ProductBase(BaseModel):
    title: str
    description: str | None = None
    images: list[str] = []
    estimated_value: Decimal | None = None
    category: str | None = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    images: list[str] | None = None
    estimated_value: Decimal | None = None
    category: str | None = None


class Product(ProductBase):
    id: int
    user_id: int
    is_featured: bool
    status: str
    expires_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True
