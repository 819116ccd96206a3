"""
Models for multi-party ring exchanges.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class CircularTrade(Base):
    __tablename__ = "circular_trades"

    id = Column(Integer, primary_key=True, index=True)
    initiator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # pending, in_progress, completed, cancelled
    status = Column(String(20), default="pending", index=True)
    min_participants = Column(Integer, nullable=False, default=3)
    max_participants = Column(Integer, nullable=False, default=10)
    participant_count = Column(Integer, nullable=False, default=0)

    expires_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    participants = relationship(
        "CircularTradeParticipant",
        back_populates="trade",
        order_by="CircularTradeParticipant.position",
    )


class CircularTradeParticipant(Base):
    __tablename__ = "circular_trade_participants"
    __table_args__ = (
        UniqueConstraint("trade_id", "user_id", name="uq_circular_trade_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    trade_id = Column(Integer, ForeignKey("circular_trades.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    position = Column(Integer)
    status = Column(String(20), default="confirmed")
    confirmed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    trade = relationship("CircularTrade", back_populates="participants")
    product = relationship("Product")
