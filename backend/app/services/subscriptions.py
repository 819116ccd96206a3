"""
Premium plans and user subscriptions.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException

from app.database import utcnow
from app.models import User, PremiumPlan, UserSubscription
from app.services import discounts, realtime

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "active": ("Suscripción activada ⭐", "Tu plan {plan} está activo"),
    "cancelled": ("Suscripción cancelada", "Tu plan {plan} ha sido cancelado"),
    "expired": ("Suscripción vencida", "Tu plan {plan} ha vencido"),
}


def get_plan(db: Session, plan_id: int) -> PremiumPlan:
    plan = db.query(PremiumPlan).filter(PremiumPlan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


def list_plans(db: Session, include_inactive: bool = False) -> list[PremiumPlan]:
    query = db.query(PremiumPlan)
    if not include_inactive:
        query = query.filter(PremiumPlan.is_active == True)
    return query.order_by(PremiumPlan.price).all()


def create_plan(db: Session, **fields) -> PremiumPlan:
    plan = PremiumPlan(**{key: value for key, value in fields.items() if value is not None})
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def update_plan(db: Session, plan_id: int, **fields) -> PremiumPlan:
    plan = get_plan(db, plan_id)
    for key, value in fields.items():
        if value is not None:
            setattr(plan, key, value)
    db.commit()
    db.refresh(plan)
    return plan


def _notify_status(db: Session, subscription: UserSubscription) -> None:
    title, template = STATUS_MESSAGES[subscription.status]
    plan_name = subscription.plan.name if subscription.plan else "Premium"
    realtime.notify(
        db, subscription.user_id, realtime.SUBSCRIPTION_STATUS,
        title, template.format(plan=plan_name),
        {"subscription_id": subscription.id, "status": subscription.status},
    )


def subscribe(
    db: Session,
    user: User,
    plan_id: int,
    discount_code: Optional[str] = None,
    months: int = 1,
    stripe_subscription_id: Optional[str] = None,
    paid: bool = False,
) -> dict:
    """
    Activate a plan for the user, replacing any active subscription.

    An optional discount code is validated and redeemed in the same
    transaction as the activation. For a `paid` checkout the plan is always
    activated: a code that no longer applies is dropped instead of refused.
    """
    plan = get_plan(db, plan_id)
    if not plan.is_active and not paid:
        raise HTTPException(status_code=400, detail="Plan no disponible")
    if months <= 0:
        raise HTTPException(status_code=400, detail="Months must be positive")

    price = Decimal(str(plan.price)) * months
    discount_amount = Decimal("0.00")
    code_id = None

    if discount_code:
        validation = discounts.validate_code(db, discount_code, plan.id, price, user)
        if validation.valid:
            discount_amount = validation.discount_amount
            code_id = validation.code.id
        elif not paid:
            raise HTTPException(status_code=400, detail=validation.error)
        else:
            logger.warning(f"Discount code {discount_code} dropped for user {user.id}: {validation.error}")

    now = utcnow()
    try:
        for current in db.query(UserSubscription).filter(
            UserSubscription.user_id == user.id,
            UserSubscription.status == "active"
        ).all():
            current.status = "cancelled"

        subscription = UserSubscription(
            user_id=user.id,
            plan_id=plan.id,
            status="active",
            started_at=now,
            expires_at=now + timedelta(days=30 * months),
            stripe_subscription_id=stripe_subscription_id,
        )
        db.add(subscription)
        db.flush()

        if code_id is not None:
            try:
                discounts.redeem_code(db, user, code_id, discount_amount, subscription.id, commit=False)
            except HTTPException as e:
                if not paid:
                    raise
                logger.warning(f"Discount code {discount_code} dropped for user {user.id}: {e.detail}")
                discount_amount = Decimal("0.00")

        _notify_status(db, subscription)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(subscription)
    logger.info(f"User {user.id} subscribed to plan {plan.id} until {subscription.expires_at}")
    return {
        "subscription": subscription,
        "price": price,
        "discount_amount": discount_amount,
        "final_price": max(Decimal("0.00"), price - discount_amount),
    }


def cancel_subscription(db: Session, user: User) -> UserSubscription:
    subscription = (
        db.query(UserSubscription)
        .filter(UserSubscription.user_id == user.id, UserSubscription.status == "active")
        .order_by(UserSubscription.id.desc())
        .first()
    )
    if not subscription:
        raise HTTPException(status_code=404, detail="No active subscription")

    subscription.status = "cancelled"
    _notify_status(db, subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def expire_lapsed_subscriptions(db: Session) -> int:
    """Flip active subscriptions past their expiry to expired."""
    now = utcnow()
    lapsed = db.query(UserSubscription).filter(
        UserSubscription.status == "active",
        UserSubscription.expires_at.is_not(None),
        UserSubscription.expires_at < now,
    ).all()

    for subscription in lapsed:
        subscription.status = "expired"
        _notify_status(db, subscription)

    db.commit()
    return len(lapsed)


def subscription_history(db: Session, user_id: int) -> list[UserSubscription]:
    return (
        db.query(UserSubscription)
        .filter(UserSubscription.user_id == user_id)
        .order_by(UserSubscription.id.desc())
        .all()
    )
