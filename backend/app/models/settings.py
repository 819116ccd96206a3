from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON
from app.database import Base, utcnow


class FeatureFlag(Base):
    """A global on/off switch, independent of subscription plan."""
    __tablename__ = "feature_flags"

    id = Column(Integer, primary_key=True, index=True)
    feature_key = Column(String(100), unique=True, nullable=False, index=True)
    feature_name = Column(String(255), nullable=False)
    description = Column(Text)
    is_enabled = Column(Boolean, default=False)
    requires_api_key = Column(String(100), nullable=True)
    category = Column(String(50), default="general")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class AdminSetting(Base):
    __tablename__ = "admin_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSON)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
