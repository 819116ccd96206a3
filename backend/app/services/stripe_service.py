"""
Stripe service for premium plan checkout.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import stripe
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import User, PremiumPlan, UserSubscription
from app.services import subscriptions

logger = logging.getLogger(__name__)

settings = get_settings()

# Initialize Stripe
stripe.api_key = settings.stripe_secret_key


def create_customer(user: User) -> str:
    """Create a Stripe customer for a user."""
    if not stripe.api_key:
        raise ValueError("Stripe is not configured")

    customer = stripe.Customer.create(
        email=user.email,
        name=user.display_name,
        metadata={"user_id": str(user.id)}
    )
    return customer.id


def create_checkout_session(
    db: Session,
    user: User,
    plan: PremiumPlan,
    success_url: str,
    cancel_url: str,
    discount_code: Optional[str] = None,
    discount_amount: Optional[Decimal] = None,
) -> str:
    """
    Create a Stripe Checkout session for a premium plan.

    A validated discount is charged through a one-off Stripe coupon for
    `discount_amount`; the code itself is redeemed when the payment lands.
    """
    if not stripe.api_key:
        raise ValueError("Stripe is not configured")

    if not plan.stripe_price_id:
        raise ValueError(f"Plan {plan.name} has no Stripe price configured")

    customer_id = user.stripe_customer_id
    if not customer_id:
        customer_id = create_customer(user)
        user.stripe_customer_id = customer_id
        db.commit()

    metadata = {"user_id": str(user.id), "plan_id": str(plan.id)}
    if discount_code:
        metadata["discount_code"] = discount_code

    extra = {}
    if discount_code and discount_amount:
        coupon = stripe.Coupon.create(
            amount_off=int(discount_amount * 100),
            currency=settings.stripe_currency,
            duration="once",
            name=discount_code.upper(),
            max_redemptions=1,
        )
        extra["discounts"] = [{"coupon": coupon.id}]

    session = stripe.checkout.Session.create(
        customer=customer_id,
        payment_method_types=["card"],
        line_items=[{
            "price": plan.stripe_price_id,
            "quantity": 1,
        }],
        mode="subscription",
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        subscription_data={"metadata": metadata},
        **extra
    )

    return session.url


def handle_checkout_completed(session: dict, db: Session) -> Optional[UserSubscription]:
    """
    Activate the purchased plan once checkout completes.

    The customer has already paid, so activation never depends on the
    discount code still being redeemable. Redelivered events are no-ops.
    """
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")
    plan_id = metadata.get("plan_id")

    if not user_id or not plan_id:
        logger.warning(f"Checkout session {session.get('id')} missing metadata")
        return None

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user:
        raise LookupError(f"User {user_id} from checkout session {session.get('id')} not found")

    stripe_subscription_id = session.get("subscription")
    if stripe_subscription_id:
        existing = db.query(UserSubscription).filter(
            UserSubscription.stripe_subscription_id == stripe_subscription_id
        ).first()
        if existing:
            logger.info(f"Checkout for Stripe subscription {stripe_subscription_id} already handled")
            return existing

    if session.get("customer"):
        user.stripe_customer_id = session.get("customer")

    result = subscriptions.subscribe(
        db,
        user,
        int(plan_id),
        discount_code=metadata.get("discount_code"),
        stripe_subscription_id=stripe_subscription_id,
        paid=True,
    )
    subscription = result["subscription"]

    if stripe_subscription_id:
        stripe_subscription = stripe.Subscription.retrieve(stripe_subscription_id)
        current_period_end = stripe_subscription.get("current_period_end")
        if current_period_end:
            subscription.expires_at = datetime.fromtimestamp(
                current_period_end, tz=timezone.utc
            ).replace(tzinfo=None)
            db.commit()

    return subscription


def handle_subscription_updated(stripe_subscription: dict, db: Session) -> None:
    """Handle renewals: push the expiry forward for the matching subscription."""
    subscription = db.query(UserSubscription).filter(
        UserSubscription.stripe_subscription_id == stripe_subscription.get("id")
    ).first()
    if not subscription:
        return

    current_period_end = stripe_subscription.get("current_period_end")
    if current_period_end:
        subscription.expires_at = datetime.fromtimestamp(
            current_period_end, tz=timezone.utc
        ).replace(tzinfo=None)

    if stripe_subscription.get("status") in ("active", "trialing"):
        subscription.status = "active"

    db.commit()


def handle_subscription_deleted(stripe_subscription: dict, db: Session) -> None:
    """Handle subscription cancellation/deletion."""
    subscription = db.query(UserSubscription).filter(
        UserSubscription.stripe_subscription_id == stripe_subscription.get("id"),
        UserSubscription.status == "active",
    ).first()
    if not subscription:
        return

    subscriptions.cancel_subscription(db, subscription.user)


def verify_webhook_signature(payload: bytes, signature: str) -> dict:
    """Verify webhook signature and return event."""
    if not settings.stripe_webhook_secret:
        raise ValueError("Stripe webhook secret is not configured")

    event = stripe.Webhook.construct_event(
        payload,
        signature,
        settings.stripe_webhook_secret
    )
    return event
