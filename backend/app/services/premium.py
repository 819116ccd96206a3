"""
Premium Features Service

Usage-limited premium actions (super likes, boosts, rewinds) and the plan
ceilings that govern them.

Each action consumes quota with one conditional UPDATE
(`count = count + 1 WHERE count < ceiling`) inside the same transaction as
its side-effecting write. Two concurrent calls can therefore never both
take the last unit, and a failed write gives the unit back on rollback.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.config import get_settings
from app.database import utcnow
from app.models import (
    User,
    Product,
    Swipe,
    PremiumPlan,
    UserSubscription,
    PremiumUsage,
    SuperLike,
    UserBoost,
    AdminSetting,
)
from app.services import feature_flags
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)

SUPER_LIKE = "super_like"
BOOST = "boost"
REWIND = "rewind"

FREE_LIMITS_SETTING = "free_user_limits"

# usage type -> (feature flag, period)
USAGE_TYPES = {
    SUPER_LIKE: (feature_flags.SUPER_LIKES, "day"),
    BOOST: (feature_flags.BOOSTS, "month"),
    REWIND: (feature_flags.REWINDS, "day"),
}


@dataclass
class PremiumLimits:
    super_likes_per_day: int
    boosts_per_month: int
    rewinds_per_day: int
    can_see_likes: bool = False
    priority_in_hot: bool = False

    def ceiling(self, usage_type: str) -> int:
        return {
            SUPER_LIKE: self.super_likes_per_day,
            BOOST: self.boosts_per_month,
            REWIND: self.rewinds_per_day,
        }[usage_type]


def period_start(usage_type: str, today: Optional[date] = None) -> date:
    """First day of the quota period containing `today`."""
    today = today or utcnow().date()
    if USAGE_TYPES[usage_type][1] == "month":
        return today.replace(day=1)
    return today


def get_active_subscription(db: Session, user_id: int) -> Optional[UserSubscription]:
    now = utcnow()
    return (
        db.query(UserSubscription)
        .filter(
            UserSubscription.user_id == user_id,
            UserSubscription.status == "active",
        )
        .filter((UserSubscription.expires_at.is_(None)) | (UserSubscription.expires_at > now))
        .order_by(UserSubscription.id.desc())
        .first()
    )


def get_free_limits(db: Session) -> PremiumLimits:
    """Free tier ceilings: the admin override if present, else configured defaults."""
    settings = get_settings()
    limits = PremiumLimits(
        super_likes_per_day=settings.free_super_likes_per_day,
        boosts_per_month=settings.free_boosts_per_month,
        rewinds_per_day=settings.free_rewinds_per_day,
    )

    override = db.query(AdminSetting).filter(AdminSetting.key == FREE_LIMITS_SETTING).first()
    if override and isinstance(override.value, dict):
        for name in ("super_likes_per_day", "boosts_per_month", "rewinds_per_day"):
            if override.value.get(name) is not None:
                setattr(limits, name, int(override.value[name]))
    return limits


def get_limits(db: Session, user_id: int) -> PremiumLimits:
    """Ceilings from the user's active plan, falling back to the free tier."""
    subscription = get_active_subscription(db, user_id)
    if subscription is None or subscription.plan is None:
        return get_free_limits(db)

    plan: PremiumPlan = subscription.plan
    return PremiumLimits(
        super_likes_per_day=plan.super_likes_per_day or 0,
        boosts_per_month=plan.boosts_per_month or 0,
        rewinds_per_day=plan.rewinds_per_day or 0,
        can_see_likes=bool(plan.can_see_likes),
        priority_in_hot=bool(plan.priority_in_hot),
    )


def get_usage(db: Session, user_id: int, usage_type: str) -> int:
    row = db.query(PremiumUsage).filter(
        PremiumUsage.user_id == user_id,
        PremiumUsage.usage_type == usage_type,
        PremiumUsage.period_start == period_start(usage_type),
    ).first()
    return row.count if row else 0


def _consume(db: Session, user_id: int, usage_type: str, ceiling: int) -> bool:
    """Atomically take one unit of quota. Returns False once the ceiling is reached."""
    if ceiling <= 0:
        return False

    start = period_start(usage_type)
    stmt = (
        update(PremiumUsage)
        .where(
            PremiumUsage.user_id == user_id,
            PremiumUsage.usage_type == usage_type,
            PremiumUsage.period_start == start,
            PremiumUsage.count < ceiling,
        )
        .values(count=PremiumUsage.count + 1)
    )

    if db.execute(stmt).rowcount == 1:
        return True

    # No row below the ceiling: either the first use this period or exhausted
    try:
        with db.begin_nested():
            db.add(PremiumUsage(user_id=user_id, usage_type=usage_type, period_start=start, count=1))
        return True
    except IntegrityError:
        # The row exists, possibly inserted by another request since the update
        return db.execute(stmt).rowcount == 1


def _gate(db: Session, flags: FeatureFlags, user: User, usage_type: str) -> None:
    """Check the feature flag and consume one unit, or raise."""
    flag_key, _ = USAGE_TYPES[usage_type]
    flags.require(flag_key)

    limits = get_limits(db, user.id)
    if not _consume(db, user.id, usage_type, limits.ceiling(usage_type)):
        db.rollback()
        logger.info(f"User {user.id} reached {usage_type} limit")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Limit reached"
        )


def send_super_like(
    db: Session,
    flags: FeatureFlags,
    user: User,
    receiver_id: Optional[int],
    product_id: int,
) -> Swipe:
    """
    Send a super like on a product and record it as a like swipe.

    The receiver is always the product owner; a different `receiver_id` is refused.
    """
    from app.services import achievements, matching, missions

    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.user_id == user.id:
        raise HTTPException(status_code=400, detail="No puedes dar Super Like a tu propio producto")
    if receiver_id is not None and receiver_id != product.user_id:
        raise HTTPException(status_code=400, detail="El receptor no es el dueño del producto")

    _gate(db, flags, user, SUPER_LIKE)

    try:
        db.add(SuperLike(sender_id=user.id, receiver_id=product.user_id, product_id=product_id))
        swipe = Swipe(
            user_id=user.id,
            product_id=product_id,
            action="like",
            is_super_like=True,
        )
        db.add(swipe)
        db.flush()

        matching.detect_match(db, user, product)
        missions.advance(db, flags, user, "super_like")
        achievements.record_event(db, flags, product.user_id, achievements.LIKES_RECEIVED)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(swipe)
    logger.info(f"User {user.id} sent a super like on product {product_id}")
    return swipe


def activate_boost(
    db: Session,
    flags: FeatureFlags,
    user: User,
    duration_minutes: int = 30,
) -> UserBoost:
    """Boost the user's listings x10 for `duration_minutes`."""
    if duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="Duration must be positive")

    _gate(db, flags, user, BOOST)

    try:
        boost = UserBoost(
            user_id=user.id,
            boost_type="standard",
            multiplier=10,
            ends_at=utcnow() + timedelta(minutes=duration_minutes),
        )
        db.add(boost)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(boost)
    return boost


def use_rewind(db: Session, flags: FeatureFlags, user: User, swipe_id: Optional[int] = None) -> bool:
    """
    Consume one rewind. When `swipe_id` is given the user's dislike is undone
    in the same transaction.
    """
    from app.services import matching

    _gate(db, flags, user, REWIND)

    try:
        if swipe_id is not None:
            matching.undo_swipe(db, user, swipe_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


def get_active_boost(db: Session, user_id: int) -> Optional[UserBoost]:
    return (
        db.query(UserBoost)
        .filter(UserBoost.user_id == user_id, UserBoost.ends_at > utcnow())
        .order_by(UserBoost.ends_at.desc())
        .first()
    )


def get_premium_status(db: Session, flags: FeatureFlags, user: User) -> dict:
    """Limits, usage and what the user can do right now."""
    limits = get_limits(db, user.id)
    usage = {usage_type: get_usage(db, user.id, usage_type) for usage_type in USAGE_TYPES}

    remaining = {}
    for usage_type, (flag_key, _) in USAGE_TYPES.items():
        if flags.is_enabled(flag_key):
            remaining[usage_type] = max(0, limits.ceiling(usage_type) - usage[usage_type])
        else:
            remaining[usage_type] = 0

    subscription = get_active_subscription(db, user.id)
    boost = get_active_boost(db, user.id)

    return {
        "is_premium": subscription is not None,
        "plan_id": subscription.plan_id if subscription else None,
        "limits": asdict(limits),
        "usage": usage,
        "remaining": remaining,
        "can_use": {usage_type: remaining[usage_type] > 0 for usage_type in USAGE_TYPES},
        "can_see_likes": flags.is_enabled(feature_flags.WHO_LIKES_ME) and limits.can_see_likes,
        "boost_ends_at": boost.ends_at if boost else None,
    }


def set_free_limits(db: Session, values: dict) -> AdminSetting:
    """Admin override of the free tier ceilings."""
    setting = db.query(AdminSetting).filter(AdminSetting.key == FREE_LIMITS_SETTING).first()
    if setting is None:
        setting = AdminSetting(key=FREE_LIMITS_SETTING)
        db.add(setting)
    setting.value = {k: int(v) for k, v in values.items() if v is not None}
    db.commit()
    db.refresh(setting)
    return setting
