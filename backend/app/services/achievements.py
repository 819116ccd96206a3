"""
Achievements Service

Unlocks achievements whose requirement is met and credits their TrueKoin
reward. The (user, achievement) unique key guarantees a single unlock.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException

from app.models import User, Achievement, UserAchievement, Match, Product, Swipe
from app.services import feature_flags, trukoins
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)

# Requirement types with a stat this service can count
TRADES_COMPLETED = "trades_completed"
PRODUCTS_LISTED = "products_listed"
LIKES_RECEIVED = "likes_received"


def list_achievements(db: Session, user_id: int) -> list[dict]:
    achievements = (
        db.query(Achievement)
        .filter(Achievement.is_active == True)
        .order_by(Achievement.requirement_value)
        .all()
    )
    unlocked = {
        ua.achievement_id: ua
        for ua in db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
    }
    return [
        {
            "id": a.id,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "requirement_type": a.requirement_type,
            "requirement_value": a.requirement_value,
            "reward_trukoins": a.reward_trukoins,
            "unlocked": a.id in unlocked,
            "unlocked_at": unlocked[a.id].unlocked_at if a.id in unlocked else None,
        }
        for a in achievements
    ]


def check_and_unlock(
    db: Session,
    flags: FeatureFlags,
    user: User,
    requirement_type: str,
    current_value: int,
    commit: bool = True,
) -> list[UserAchievement]:
    """Unlock every eligible achievement of this type. Returns the new unlocks."""
    if not flags.is_enabled(feature_flags.ACHIEVEMENTS):
        return []

    already = {
        row[0] for row in db.query(UserAchievement.achievement_id)
        .filter(UserAchievement.user_id == user.id).all()
    }
    eligible = db.query(Achievement).filter(
        Achievement.is_active == True,
        Achievement.requirement_type == requirement_type,
        Achievement.requirement_value <= current_value,
    ).all()

    unlocked = []
    for achievement in eligible:
        if achievement.id in already:
            continue
        try:
            with db.begin_nested():
                user_achievement = UserAchievement(
                    user_id=user.id,
                    achievement_id=achievement.id,
                    progress=current_value,
                )
                db.add(user_achievement)
        except IntegrityError:
            continue

        if achievement.reward_trukoins and achievement.reward_trukoins > 0:
            trukoins.earn_trukoins(
                db,
                user.id,
                achievement.reward_trukoins,
                "achievement_unlock",
                f"Logro desbloqueado: {achievement.name}",
                str(achievement.id),
            )
        unlocked.append(user_achievement)
        logger.info(f"User {user.id} unlocked achievement {achievement.id}")

    if commit:
        db.commit()
    return unlocked


def count_stat(db: Session, user_id: int, requirement_type: str) -> int:
    if requirement_type == TRADES_COMPLETED:
        return db.query(Match).filter(
            or_(Match.user1_id == user_id, Match.user2_id == user_id),
            Match.status == "completed",
        ).count()
    if requirement_type == PRODUCTS_LISTED:
        return db.query(Product).filter(Product.user_id == user_id).count()
    if requirement_type == LIKES_RECEIVED:
        return (
            db.query(Swipe)
            .join(Product, Product.id == Swipe.product_id)
            .filter(Product.user_id == user_id, Swipe.action == "like")
            .count()
        )
    raise ValueError(f"Unknown requirement type: {requirement_type}")


def record_event(
    db: Session,
    flags: FeatureFlags,
    user_id: int,
    requirement_type: str,
) -> list[UserAchievement]:
    """
    Recount one stat for the user and unlock whatever it now reaches.

    Runs inside the caller's transaction and does not commit.
    """
    if not flags.is_enabled(feature_flags.ACHIEVEMENTS):
        return []

    db.flush()
    user = db.query(User).filter(User.id == user_id).one()
    value = count_stat(db, user_id, requirement_type)
    return check_and_unlock(db, flags, user, requirement_type, value, commit=False)


# Admin management

def create_achievement(db: Session, **fields) -> Achievement:
    achievement = Achievement(**fields)
    db.add(achievement)
    db.commit()
    db.refresh(achievement)
    return achievement


def update_achievement(db: Session, achievement_id: int, **fields) -> Achievement:
    achievement = db.query(Achievement).filter(Achievement.id == achievement_id).first()
    if not achievement:
        raise HTTPException(status_code=404, detail="Achievement not found")
    for key, value in fields.items():
        if value is not None:
            setattr(achievement, key, value)
    db.commit()
    db.refresh(achievement)
    return achievement
