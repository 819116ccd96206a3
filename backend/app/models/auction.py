from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Numeric
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class Auction(Base):
    __tablename__ = "auctions"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    starting_price = Column(Numeric(10, 2), nullable=False)
    current_price = Column(Numeric(10, 2), nullable=False)
    min_increment = Column(Numeric(10, 2), nullable=False, default=1)

    ends_at = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), default="active", index=True)  # active, ended, cancelled
    winner_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    product = relationship("Product")
    bids = relationship("AuctionBid", back_populates="auction", order_by="AuctionBid.id.desc()")


class AuctionBid(Base):
    __tablename__ = "auction_bids"

    id = Column(Integer, primary_key=True, index=True)
    auction_id = Column(Integer, ForeignKey("auctions.id"), nullable=False, index=True)
    bidder_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    is_winning = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    auction = relationship("Auction", back_populates="bids")
