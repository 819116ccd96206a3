"""
Feature Flags Service

Flags are read once per request into an immutable snapshot that is passed
into each business call, so a single operation never sees two different
values for the same flag.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.models import FeatureFlag

logger = logging.getLogger(__name__)

# Keys consulted by the services
SUPER_LIKES = "premium_super_likes"
BOOSTS = "premium_boosts"
REWINDS = "premium_rewinds"
WHO_LIKES_ME = "premium_who_likes_me"
HOT_SECTION = "premium_hot_section"
PRIORITY_RANKING = "premium_priority_ranking"
AUCTIONS = "trading_auctions"
CIRCULAR_TRADES = "trading_circular"
MISSIONS = "gamification_missions"
ACHIEVEMENTS = "gamification_achievements"


@dataclass(frozen=True)
class FeatureFlags:
    """Snapshot of feature flag values."""
    flags: dict = field(default_factory=dict)

    def is_enabled(self, feature_key: str) -> bool:
        return bool(self.flags.get(feature_key, False))

    def require(self, feature_key: str) -> None:
        """Raise 403 if the feature is switched off."""
        if not self.is_enabled(feature_key):
            logger.info(f"Refused call to disabled feature {feature_key}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Feature disabled"
            )

    @classmethod
    def all_enabled(cls, *keys: str) -> "FeatureFlags":
        return cls({key: True for key in keys})


def load_feature_flags(db: Session) -> FeatureFlags:
    """Read every flag into a snapshot."""
    rows = db.query(FeatureFlag.feature_key, FeatureFlag.is_enabled).all()
    return FeatureFlags({key: bool(enabled) for key, enabled in rows})


def list_flags(db: Session) -> list[FeatureFlag]:
    return db.query(FeatureFlag).order_by(FeatureFlag.category, FeatureFlag.feature_key).all()


def set_flag(db: Session, feature_key: str, is_enabled: bool) -> FeatureFlag:
    """Toggle an existing flag."""
    flag = db.query(FeatureFlag).filter(FeatureFlag.feature_key == feature_key).first()
    if not flag:
        raise HTTPException(status_code=404, detail="Feature flag not found")

    flag.is_enabled = is_enabled
    db.commit()
    db.refresh(flag)
    logger.info(f"Feature flag {feature_key} set to {is_enabled}")
    return flag


def upsert_flag(
    db: Session,
    feature_key: str,
    feature_name: str,
    is_enabled: bool = False,
    category: str = "general",
    description: Optional[str] = None,
    requires_api_key: Optional[str] = None,
) -> FeatureFlag:
    """Create a flag or update its metadata."""
    flag = db.query(FeatureFlag).filter(FeatureFlag.feature_key == feature_key).first()
    if flag is None:
        flag = FeatureFlag(feature_key=feature_key)
        db.add(flag)

    flag.feature_name = feature_name
    flag.is_enabled = is_enabled
    flag.category = category
    flag.description = description
    flag.requires_api_key = requires_api_key
    db.commit()
    db.refresh(flag)
    return flag
