"""
Models for premium plans, subscriptions and usage counters.
"""
from sqlalchemy import (
    Column, Integer, String, ForeignKey, Boolean, DateTime, Date, Numeric, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class PremiumPlan(Base):
    """A plan defines usage ceilings and feature entitlements."""
    __tablename__ = "premium_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    price = Column(Numeric(10, 2), nullable=False, default=0)
    stripe_price_id = Column(String(100), nullable=True)

    # Ceilings
    super_likes_per_day = Column(Integer, default=1)
    boosts_per_month = Column(Integer, default=0)
    rewinds_per_day = Column(Integer, default=1)

    # Entitlements
    can_see_likes = Column(Boolean, default=False)
    priority_in_hot = Column(Boolean, default=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("premium_plans.id"), nullable=False)

    status = Column(String(20), default="active", index=True)  # active, cancelled, expired
    started_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, index=True)
    expiry_notified_at = Column(DateTime, nullable=True)
    stripe_subscription_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="subscriptions")
    plan = relationship("PremiumPlan")


class PremiumUsage(Base):
    """Per (user, usage_type, period) counter of premium actions."""
    __tablename__ = "premium_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "usage_type", "period_start", name="uq_premium_usage_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    usage_type = Column(String(20), nullable=False)  # 'super_like', 'boost', 'rewind'
    period_start = Column(Date, nullable=False)
    count = Column(Integer, nullable=False, default=0)


class SuperLike(Base):
    __tablename__ = "super_likes"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)


class UserBoost(Base):
    """Temporary visibility multiplier for a user's listings."""
    __tablename__ = "user_boosts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    boost_type = Column(String(20), default="standard")
    multiplier = Column(Integer, default=10)
    starts_at = Column(DateTime, default=utcnow)
    ends_at = Column(DateTime, nullable=False)
