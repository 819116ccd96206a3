from pydantic import BaseModel
from datetime import datetime


class MissionBase(BaseModel):
    title: str
    description: str | None = None
    mission_type: str = "daily"
    action_type: str
    target_count: int = 1
    reward_trukoins: int = 0
    reward_xp: int = 0
    is_active: bool = True


class MissionCreate(MissionBase):
    pass


class MissionUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    mission_type: str | None = None
    action_type: str | None = None
    target_count: int | None = None
    reward_trukoins: int | None = None
    reward_xp: int | None = None
    is_active: bool | None = None


class Mission(MissionBase):
    id: int

    class Config:
        from_attributes = True


class UserMission(BaseModel):
    id: int
    mission_id: int
    current_progress: int
    assigned_at: datetime | None
    completed_at: datetime | None
    reward_claimed_at: datetime | None

    class Config:
        from_attributes = True


class MissionEntry(BaseModel):
    """A mission merged with the user's progress on it."""
    id: int | None
    mission_id: int
    title: str
    description: str | None
    mission_type: str
    action_type: str
    target_count: int
    reward_trukoins: int | None
    reward_xp: int | None
    current_progress: int
    completed_at: datetime | None
    reward_claimed_at: datetime | None


class UserMissions(BaseModel):
    daily: list[MissionEntry] = []
    weekly: list[MissionEntry] = []


class MissionProgress(BaseModel):
    action_type: str
    count: int = 1


class AchievementBase(BaseModel):
    name: str
    description: str | None = None
    icon: str = "🏆"
    requirement_type: str
    requirement_value: int = 1
    reward_trukoins: int = 0
    is_active: bool = True


class AchievementCreate(AchievementBase):
    pass


class AchievementUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    icon: str | None = None
    requirement_type: str | None = None
    requirement_value: int | None = None
    reward_trukoins: int | None = None
    is_active: bool | None = None


class Achievement(AchievementBase):
    id: int

    class Config:
        from_attributes = True


class AchievementStatus(BaseModel):
    id: int
    name: str
    description: str | None
    icon: str | None
    requirement_type: str
    requirement_value: int
    reward_trukoins: int | None
    unlocked: bool
    unlocked_at: datetime | None


class Transaction(BaseModel):
    id: int
    amount: int
    transaction_type: str
    description: str | None
    reference_id: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletBalance(BaseModel):
    balance: int
    lifetime_earned: int

    class Config:
        from_attributes = True


class Wallet(BaseModel):
    wallet: WalletBalance
    transactions: list[Transaction]


class SpendRequest(BaseModel):
    amount: int
    description: str
    reference_id: str | None = None
