"""Admin API endpoints for managing the application."""
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User, Mission, Achievement
from app.routers.auth import require_admin
from app.schemas.admin import (
    FeatureFlag, FeatureFlagToggle, FeatureFlagUpsert, FeaturedUpdate, EmailTestRequest
)
from app.schemas.discount import DiscountCode, DiscountCodeCreate, DiscountCodeUpdate
from app.schemas.gamification import (
    Mission as MissionSchema, MissionCreate, MissionUpdate,
    Achievement as AchievementSchema, AchievementCreate, AchievementUpdate,
)
from app.schemas.premium import Plan, PlanCreate, PlanUpdate, FreeLimits
from app.schemas.product import Product
from app.services import (
    achievements, admin_stats, discounts, email, feature_flags, missions, premium, products,
    subscriptions,
)
from app.tasks.scheduler import get_scheduler_status, trigger_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/stats")
def get_stats(db: Session = Depends(get_db)):
    """User, subscription and activity counts for the dashboard."""
    return admin_stats.get_admin_stats(db)


# ============== Feature flags ==============

@router.get("/feature-flags", response_model=list[FeatureFlag])
def get_feature_flags(db: Session = Depends(get_db)):
    return feature_flags.list_flags(db)


@router.patch("/feature-flags/{feature_key}", response_model=FeatureFlag)
def toggle_feature_flag(feature_key: str, data: FeatureFlagToggle, db: Session = Depends(get_db)):
    return feature_flags.set_flag(db, feature_key, data.is_enabled)


@router.put("/feature-flags", response_model=FeatureFlag)
def upsert_feature_flag(data: FeatureFlagUpsert, db: Session = Depends(get_db)):
    return feature_flags.upsert_flag(db, **data.model_dump())


# ============== Plans and free tier ==============

@router.get("/plans", response_model=list[Plan])
def get_plans(db: Session = Depends(get_db)):
    return subscriptions.list_plans(db, include_inactive=True)


@router.post("/plans", response_model=Plan, status_code=201)
def create_plan(data: PlanCreate, db: Session = Depends(get_db)):
    return subscriptions.create_plan(db, **data.model_dump())


@router.patch("/plans/{plan_id}", response_model=Plan)
def update_plan(plan_id: int, data: PlanUpdate, db: Session = Depends(get_db)):
    return subscriptions.update_plan(db, plan_id, **data.model_dump())


@router.get("/free-limits", response_model=FreeLimits)
def get_free_limits(db: Session = Depends(get_db)):
    limits = asdict(premium.get_free_limits(db))
    return FreeLimits(**{key: limits[key] for key in FreeLimits.model_fields})


@router.put("/free-limits", response_model=FreeLimits)
def set_free_limits(data: FreeLimits, db: Session = Depends(get_db)):
    premium.set_free_limits(db, data.model_dump())
    return get_free_limits(db)


# ============== Discount codes ==============

@router.get("/discount-codes", response_model=list[DiscountCode])
def get_discount_codes(db: Session = Depends(get_db)):
    return discounts.list_codes(db)


@router.post("/discount-codes", response_model=DiscountCode, status_code=201)
def create_discount_code(
    data: DiscountCodeCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return discounts.create_code(db, created_by=admin.id, **data.model_dump())


@router.patch("/discount-codes/{code_id}", response_model=DiscountCode)
def update_discount_code(code_id: int, data: DiscountCodeUpdate, db: Session = Depends(get_db)):
    return discounts.update_code(db, code_id, **data.model_dump())


@router.delete("/discount-codes/{code_id}", response_model=DiscountCode)
def deactivate_discount_code(code_id: int, db: Session = Depends(get_db)):
    return discounts.deactivate_code(db, code_id)


# ============== Missions and achievements ==============

@router.get("/missions", response_model=list[MissionSchema])
def get_missions(db: Session = Depends(get_db)):
    return db.query(Mission).order_by(Mission.id).all()


@router.post("/missions", response_model=MissionSchema, status_code=201)
def create_mission(data: MissionCreate, db: Session = Depends(get_db)):
    if data.mission_type not in ("daily", "weekly"):
        raise HTTPException(status_code=400, detail="Invalid mission type")
    return missions.create_mission(db, **data.model_dump())


@router.patch("/missions/{mission_id}", response_model=MissionSchema)
def update_mission(mission_id: int, data: MissionUpdate, db: Session = Depends(get_db)):
    return missions.update_mission(db, mission_id, **data.model_dump())


@router.get("/achievements", response_model=list[AchievementSchema])
def get_achievements(db: Session = Depends(get_db)):
    return db.query(Achievement).order_by(Achievement.id).all()


@router.post("/achievements", response_model=AchievementSchema, status_code=201)
def create_achievement(data: AchievementCreate, db: Session = Depends(get_db)):
    return achievements.create_achievement(db, **data.model_dump())


@router.patch("/achievements/{achievement_id}", response_model=AchievementSchema)
def update_achievement(achievement_id: int, data: AchievementUpdate, db: Session = Depends(get_db)):
    return achievements.update_achievement(db, achievement_id, **data.model_dump())


# ============== Products ==============

@router.patch("/products/{product_id}/featured", response_model=Product)
def set_product_featured(product_id: int, data: FeaturedUpdate, db: Session = Depends(get_db)):
    return products.set_featured(db, product_id, data.is_featured)


# ============== Email and scheduler ==============

@router.post("/email/test")
def send_test_email(data: EmailTestRequest):
    """Send a test email with the given provider settings."""
    if data.provider not in email.PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Proveedor no soportado: {data.provider}")

    try:
        email.send_test_email(
            data.to, data.provider, data.sender_email, data.sender_name, data.credentials
        )
    except email.EmailError as e:
        logger.error(f"Error sending test email: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True}


@router.get("/scheduler/status")
def scheduler_status():
    return get_scheduler_status()


@router.post("/scheduler/run/{job_id}")
def run_scheduled_job(job_id: str):
    """Run a scheduled sweep immediately."""
    result = trigger_job(job_id)
    if "error" in result and "timestamp" not in result:
        raise HTTPException(status_code=404, detail=result["error"])
    return result
