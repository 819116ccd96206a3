"""
Models for missions, achievements and the TrueKoin ledger.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base, utcnow


class Mission(Base):
    __tablename__ = "missions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    mission_type = Column(String(20), default="daily")  # daily, weekly
    action_type = Column(String(50), nullable=False, index=True)  # 'like', 'send_message', ...
    target_count = Column(Integer, nullable=False, default=1)
    reward_trukoins = Column(Integer, default=0)
    reward_xp = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class UserMission(Base):
    """Progress of one user on one mission: in progress -> completed -> claimed."""
    __tablename__ = "user_missions"
    __table_args__ = (
        UniqueConstraint("user_id", "mission_id", name="uq_user_mission"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mission_id = Column(Integer, ForeignKey("missions.id"), nullable=False)
    current_progress = Column(Integer, nullable=False, default=0)
    assigned_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    reward_claimed_at = Column(DateTime, nullable=True)

    mission = relationship("Mission")


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    icon = Column(String(20), default="🏆")
    requirement_type = Column(String(50), nullable=False, index=True)
    requirement_value = Column(Integer, nullable=False, default=1)
    reward_trukoins = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id"), nullable=False)
    progress = Column(Integer, default=0)
    unlocked_at = Column(DateTime, default=utcnow)

    achievement = relationship("Achievement")


class TrukoinWallet(Base):
    __tablename__ = "trukoin_wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    balance = Column(Integer, nullable=False, default=0)
    lifetime_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="wallet")


class TrukoinTransaction(Base):
    __tablename__ = "trukoin_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # negative for spends
    transaction_type = Column(String(50), nullable=False)  # mission_reward, achievement_unlock, spend
    description = Column(String(255))
    reference_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow)
