from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Numeric, Text, JSON
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class Product(Base):
    """A listing offered for barter."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    images = Column(JSON, default=list)
    estimated_value = Column(Numeric(10, 2))
    category = Column(String(100), index=True)
    is_featured = Column(Boolean, default=False)

    # Lifecycle
    status = Column(String(20), default="active", index=True)  # active, expired, traded
    expires_at = Column(DateTime, index=True)
    expiry_notified_3days = Column(Boolean, default=False)
    expiry_notified_1day = Column(Boolean, default=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship("User", back_populates="products")
