from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100))
    hashed_password = Column(String(255))
    user_type = Column(String(20), default="person")  # person, company
    is_verified = Column(Boolean, default=False)
    is_admin = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Stripe customer for premium checkout
    stripe_customer_id = Column(String(100), unique=True, nullable=True)

    # Relationships
    products = relationship("Product", back_populates="owner")
    subscriptions = relationship("UserSubscription", back_populates="user")
    notifications = relationship("Notification", back_populates="user")
    wallet = relationship("TrukoinWallet", back_populates="user", uselist=False)
