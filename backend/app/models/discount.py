from sqlalchemy import (
    Column, Integer, String, ForeignKey, Boolean, DateTime, Numeric, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255))
    discount_type = Column(String(20), nullable=False, default="percentage")  # percentage, fixed
    discount_value = Column(Numeric(10, 2), nullable=False, default=0)

    valid_from = Column(DateTime, default=utcnow)
    valid_until = Column(DateTime, nullable=True)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    applicable_plans = Column(JSON, default=list)  # plan ids, empty means all plans
    min_plan_price = Column(Numeric(10, 2), default=0)

    is_active = Column(Boolean, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    uses = relationship("DiscountCodeUse", back_populates="code")


class DiscountCodeUse(Base):
    __tablename__ = "discount_code_uses"
    __table_args__ = (
        UniqueConstraint("code_id", "user_id", name="uq_discount_code_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code_id = Column(Integer, ForeignKey("discount_codes.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("user_subscriptions.id"), nullable=True)
    discount_applied = Column(Numeric(10, 2), nullable=False)
    used_at = Column(DateTime, default=utcnow)

    code = relationship("DiscountCode", back_populates="uses")
