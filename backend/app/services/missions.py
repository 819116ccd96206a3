"""
Missions Service

A user mission moves one way through three states:
in progress -> completed (completed_at stamped once) -> claimed
(reward_claimed_at stamped once). The claim is a conditional UPDATE on
`reward_claimed_at IS NULL`, so the reward is credited at most once.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import User, Mission, UserMission
from app.services import feature_flags, realtime, trukoins
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)


def _apply_progress(db: Session, user: User, mission: Mission, count: int) -> UserMission:
    user_mission = db.query(UserMission).filter(
        UserMission.user_id == user.id,
        UserMission.mission_id == mission.id,
    ).first()

    if user_mission is None:
        user_mission = UserMission(user_id=user.id, mission_id=mission.id, current_progress=0)
        try:
            with db.begin_nested():
                db.add(user_mission)
        except IntegrityError:
            user_mission = db.query(UserMission).filter(
                UserMission.user_id == user.id,
                UserMission.mission_id == mission.id,
            ).one()

    user_mission.current_progress = min(user_mission.current_progress + count, mission.target_count)

    if user_mission.current_progress >= mission.target_count and user_mission.completed_at is None:
        user_mission.completed_at = utcnow()
        realtime.notify(
            db, user.id, realtime.MISSION_COMPLETED,
            "¡Misión completada!",
            f"{mission.title} - Reclama tu recompensa",
            {"mission_id": mission.id, "user_mission_id": user_mission.id},
        )
        logger.info(f"User {user.id} completed mission {mission.id}")

    return user_mission


def advance(db: Session, flags: FeatureFlags, user: User, action_type: str, count: int = 1) -> list[UserMission]:
    """
    Add progress to every active mission with this action type.

    Runs inside the caller's transaction and does not commit. A no-op when
    missions are switched off.
    """
    if not flags.is_enabled(feature_flags.MISSIONS) or count <= 0:
        return []

    missions = db.query(Mission).filter(
        Mission.action_type == action_type,
        Mission.is_active == True
    ).all()

    updated = [_apply_progress(db, user, mission, count) for mission in missions]
    db.flush()
    return updated


def update_mission_progress(
    db: Session,
    flags: FeatureFlags,
    user: User,
    action_type: str,
    count: int = 1,
) -> list[UserMission]:
    """Record `count` actions of `action_type` for the user."""
    flags.require(feature_flags.MISSIONS)
    if count <= 0:
        raise HTTPException(status_code=400, detail="Count must be positive")

    try:
        updated = advance(db, flags, user, action_type, count)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for user_mission in updated:
        db.refresh(user_mission)
    return updated


def claim_mission_reward(db: Session, user: User, user_mission_id: int) -> UserMission:
    """Claim a completed mission's reward exactly once."""
    user_mission = db.query(UserMission).filter(
        UserMission.id == user_mission_id,
        UserMission.user_id == user.id,
    ).first()
    if not user_mission:
        raise HTTPException(status_code=404, detail="Mission not found")
    if user_mission.completed_at is None:
        raise HTTPException(status_code=400, detail="La misión aún no está completada")

    try:
        result = db.execute(
            update(UserMission)
            .where(
                UserMission.id == user_mission_id,
                UserMission.user_id == user.id,
                UserMission.completed_at.is_not(None),
                UserMission.reward_claimed_at.is_(None),
            )
            .values(reward_claimed_at=utcnow())
        )
        if result.rowcount != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Recompensa ya reclamada"
            )

        mission = user_mission.mission
        if mission.reward_trukoins and mission.reward_trukoins > 0:
            trukoins.earn_trukoins(
                db,
                user.id,
                mission.reward_trukoins,
                "mission_reward",
                f"Recompensa: {mission.title}",
                str(mission.id),
            )
        db.commit()
    except HTTPException:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(user_mission)
    logger.info(f"User {user.id} claimed reward for mission {user_mission.mission_id}")
    return user_mission


def list_user_missions(db: Session, flags: FeatureFlags, user: User) -> dict:
    """Active missions combined with the user's progress, split daily/weekly."""
    if not flags.is_enabled(feature_flags.MISSIONS):
        return {"daily": [], "weekly": []}

    missions = db.query(Mission).filter(Mission.is_active == True).order_by(Mission.id).all()
    progress = {
        um.mission_id: um
        for um in db.query(UserMission).filter(UserMission.user_id == user.id).all()
    }

    combined = {"daily": [], "weekly": []}
    for mission in missions:
        user_mission = progress.get(mission.id)
        entry = {
            "id": user_mission.id if user_mission else None,
            "mission_id": mission.id,
            "title": mission.title,
            "description": mission.description,
            "mission_type": mission.mission_type,
            "action_type": mission.action_type,
            "target_count": mission.target_count,
            "reward_trukoins": mission.reward_trukoins,
            "reward_xp": mission.reward_xp,
            "current_progress": user_mission.current_progress if user_mission else 0,
            "completed_at": user_mission.completed_at if user_mission else None,
            "reward_claimed_at": user_mission.reward_claimed_at if user_mission else None,
        }
        combined.setdefault(mission.mission_type, []).append(entry)
    return combined


# Admin management

def create_mission(db: Session, **fields) -> Mission:
    mission = Mission(**fields)
    db.add(mission)
    db.commit()
    db.refresh(mission)
    return mission


def update_mission(db: Session, mission_id: int, **fields) -> Mission:
    mission = db.query(Mission).filter(Mission.id == mission_id).first()
    if not mission:
        raise HTTPException(status_code=404, detail="Mission not found")
    for key, value in fields.items():
        if value is not None:
            setattr(mission, key, value)
    db.commit()
    db.refresh(mission)
    return mission
