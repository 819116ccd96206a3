"""
Billing router: premium plans, subscriptions, discount codes and Stripe.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Header
from sqlalchemy.orm import Session

from ..database import get_db
from ..config import get_settings
from ..models import User
from ..schemas.premium import (
    Plan, Subscription, SubscribeRequest, SubscribeResponse, CheckoutRequest, CheckoutResponse
)
from ..schemas.discount import ValidateRequest, ValidateResponse
from ..services import discounts, stripe_service, subscriptions
from .auth import require_auth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])
settings = get_settings()


@router.get("/plans", response_model=list[Plan])
def get_plans(db: Session = Depends(get_db)):
    return subscriptions.list_plans(db)


@router.get("/subscriptions", response_model=list[Subscription])
def get_my_subscriptions(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return subscriptions.subscription_history(db, user.id)


@router.post("/subscribe", response_model=SubscribeResponse)
def subscribe(
    data: SubscribeRequest,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Activate a plan, optionally applying a discount code."""
    return subscriptions.subscribe(db, user, data.plan_id, data.discount_code, data.months)


@router.post("/cancel", response_model=Subscription)
def cancel(user: User = Depends(require_auth), db: Session = Depends(get_db)):
    return subscriptions.cancel_subscription(db, user)


@router.post("/discounts/validate", response_model=ValidateResponse)
def validate_discount(
    data: ValidateRequest,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Check a code against a plan. Always 200; `valid` and `error` carry the outcome."""
    plan = subscriptions.get_plan(db, data.plan_id)
    result = discounts.validate_code(db, data.code, plan.id, plan.price, user)
    return ValidateResponse(
        valid=result.valid,
        error=result.error,
        code_id=result.code.id if result.code else None,
        discount_amount=result.discount_amount,
        final_price=result.final_price,
    )


@router.post("/create-checkout", response_model=CheckoutResponse)
def create_checkout(
    data: CheckoutRequest,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Create a Stripe Checkout session for a plan."""
    if not settings.stripe_secret_key:
        raise HTTPException(
            status_code=503,
            detail="Payment processing is not configured. Please try again later."
        )

    plan = subscriptions.get_plan(db, data.plan_id)
    discount_amount = None
    if data.discount_code:
        validation = discounts.validate_code(db, data.discount_code, plan.id, plan.price, user)
        if not validation.valid:
            raise HTTPException(status_code=400, detail=validation.error)
        discount_amount = validation.discount_amount

    try:
        checkout_url = stripe_service.create_checkout_session(
            db,
            user,
            plan,
            success_url=f"{settings.frontend_url}/premium?success=true",
            cancel_url=f"{settings.frontend_url}/premium?cancelled=true",
            discount_code=data.discount_code,
            discount_amount=discount_amount,
        )
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Checkout error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create checkout session")

    return CheckoutResponse(checkout_url=checkout_url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db)
):
    """Handle Stripe webhook events."""
    if not settings.stripe_webhook_secret:
        raise HTTPException(status_code=503, detail="Webhook not configured")

    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing Stripe signature")

    payload = await request.body()

    try:
        event = stripe_service.verify_webhook_signature(payload, stripe_signature)
    except Exception as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Invalid signature")

    event_type = event.get("type")
    data = event.get("data", {}).get("object", {})

    try:
        if event_type == "checkout.session.completed":
            stripe_service.handle_checkout_completed(data, db)
        elif event_type == "customer.subscription.updated":
            stripe_service.handle_subscription_updated(data, db)
        elif event_type == "customer.subscription.deleted":
            stripe_service.handle_subscription_deleted(data, db)
        else:
            logger.info(f"Ignoring Stripe event {event_type}")
    except Exception as e:
        # Non-2xx makes Stripe redeliver the event
        db.rollback()
        logger.error(f"Webhook processing error for {event_type}: {e}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    return {"status": "success"}
