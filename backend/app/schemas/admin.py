from pydantic import BaseModel, EmailStr, Field
from datetime import datetime


class FeatureFlag(BaseModel):
    id: int
    feature_key: str
    feature_name: str
    description: str | None
    is_enabled: bool
    requires_api_key: str | None
    category: str | None
    updated_at: datetime | None

    class Config:
        from_attributes = True


class FeatureFlagToggle(BaseModel):
    is_enabled: bool


class FeatureFlagUpsert(BaseModel):
    feature_key: str
    feature_name: str
    description: str | None = None
    is_enabled: bool = False
    category: str = "general"
    requires_api_key: str | None = None


class FeaturedUpdate(BaseModel):
    is_featured: bool


class EmailTestRequest(BaseModel):
    """Field names follow the admin panel's JSON payload."""
    to: EmailStr
    provider: str
    sender_email: EmailStr = Field(alias="senderEmail")
    sender_name: str = Field(default="Trueke", alias="senderName")
    credentials: dict = {}

    class Config:
        populate_by_name = True
