"""
Models for swipes, matches and chat messages.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Text
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class Swipe(Base):
    """A like/dislike signal from a user on a product."""
    __tablename__ = "swipes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    action = Column(String(10), nullable=False)  # 'like', 'dislike'
    is_super_like = Column(Boolean, default=False)
    offered_product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    product = relationship("Product", foreign_keys=[product_id])


class Match(Base):
    """Mutual interest between two users' listings, unlocking chat."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    user1_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product1_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product2_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    # pending, accepted, rejected, completed, cancelled
    status = Column(String(20), default="pending", index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    product1 = relationship("Product", foreign_keys=[product1_id])
    product2 = relationship("Product", foreign_keys=[product2_id])
    messages = relationship("Message", back_populates="match")

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id: int) -> int:
        return self.user2_id if user_id == self.user1_id else self.user1_id


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    match = relationship("Match", back_populates="messages")
