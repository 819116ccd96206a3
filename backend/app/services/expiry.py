"""
Expiry sweeps for listings and subscriptions.

Both sweeps are safe to re-run: a warning is only recorded as sent
(notified flag or `expiry_notified_at`) after the email went out, so a
failed send is retried on the next run and a successful one never repeats.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from app.config import get_settings
from app.database import utcnow
from app.models import Product, UserSubscription
from app.services import email, subscriptions

logger = logging.getLogger(__name__)

settings = get_settings()

# (to, subject, html) -> delivered
EmailSender = Callable[[str, str, str], bool]


def _product_3day_email(title: str) -> tuple[str, str]:
    subject = f'⏰ Tu publicación "{title}" expira en 3 días'
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #FF6B35;">¡Hola!</h1>
  <p>Tu publicación <strong>"{title}"</strong> expirará en <strong>3 días</strong>.</p>
  <p>Si aún quieres intercambiar este producto, puedes renovar la publicación desde la app.</p>
  <a href="{settings.frontend_url}/my-products">Renovar Publicación</a>
  <p style="color: #666; font-size: 14px;">Si ya no deseas intercambiar este producto, puedes ignorar este mensaje.</p>
</div>
"""
    return subject, html


def _product_1day_email(title: str) -> tuple[str, str]:
    subject = f'🚨 ¡Última oportunidad! "{title}" expira MAÑANA'
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #E91E63;">⚠️ ¡Atención!</h1>
  <p>Tu publicación <strong>"{title}"</strong> expirará <strong>MAÑANA</strong>.</p>
  <p>Después de eso, dejará de aparecer en las búsquedas y no podrás recibir más ofertas.</p>
  <a href="{settings.frontend_url}/my-products">¡Renovar Ahora!</a>
  <p style="color: #666; font-size: 14px;">Renovar es gratis y toma solo unos segundos.</p>
</div>
"""
    return subject, html


def product_expiry_notify(
    db: Session,
    now: Optional[datetime] = None,
    sender: Optional[EmailSender] = None,
) -> dict:
    """
    Warn owners of listings expiring within 3 days and within 1 day, then
    flip active listings past their expiry to `expired`.
    """
    now = now or utcnow()
    sender = sender or email.try_send_email
    three_days = now + timedelta(days=3)
    one_day = now + timedelta(days=1)

    windows = [
        (
            Product.expiry_notified_3days,
            "expiry_notified_3days",
            [Product.expires_at <= three_days, Product.expires_at > one_day],
            _product_3day_email,
        ),
        (
            Product.expiry_notified_1day,
            "expiry_notified_1day",
            [Product.expires_at <= one_day, Product.expires_at > now],
            _product_1day_email,
        ),
    ]

    notifications_sent = 0
    for flag_column, flag_name, bounds, render in windows:
        products = (
            db.query(Product)
            .options(joinedload(Product.owner))
            .filter(Product.status == "active", flag_column == False, *bounds)
            .all()
        )
        for product in products:
            if not product.owner or not product.owner.email:
                continue
            try:
                subject, html = render(product.title)
                if sender(product.owner.email, subject, html):
                    setattr(product, flag_name, True)
                    db.commit()
                    notifications_sent += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Error notifying expiry of product {product.id}: {e}")

    result = db.execute(
        update(Product)
        .where(Product.status == "active", Product.expires_at < now)
        .values(status="expired")
        .execution_options(synchronize_session="fetch")
    )
    db.commit()

    summary = {
        "success": True,
        "notifications_sent": notifications_sent,
        "products_expired": result.rowcount or 0,
        "timestamp": now.isoformat(),
    }
    logger.info(f"Product expiry sweep: {summary}")
    return summary


def _subscription_email(user_name: str, plan_name: str, expires_at: datetime, days_left: int) -> tuple[str, str]:
    plural = "s" if days_left > 1 else ""
    subject = f"Tu plan {plan_name} vence en {days_left} día{plural}"
    html = f"""
<div style="font-family: 'Segoe UI', Tahoma, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #FF6B35;">🔔 Aviso de Vencimiento</h1>
  <p>Hola <strong>{user_name}</strong>,</p>
  <p>Queremos recordarte que tu suscripción al plan <strong>{plan_name}</strong>
     vencerá el <strong>{expires_at.strftime('%d/%m/%Y')}</strong>.</p>
  <p>⏰ Te quedan <strong>{days_left} día{plural}</strong> para renovar.</p>
  <a href="{settings.frontend_url}/profile">Renovar Ahora</a>
</div>
"""
    return subject, html


def subscription_expiry_notify(
    db: Session,
    now: Optional[datetime] = None,
    sender: Optional[EmailSender] = None,
) -> dict:
    """
    Warn once about active subscriptions expiring in 1 to 3 days, then
    mark subscriptions already past their expiry as expired.
    """
    now = now or utcnow()
    sender = sender or email.try_send_email

    expiring = (
        db.query(UserSubscription)
        .options(joinedload(UserSubscription.user), joinedload(UserSubscription.plan))
        .filter(
            UserSubscription.status == "active",
            UserSubscription.expiry_notified_at.is_(None),
            UserSubscription.expires_at <= now + timedelta(days=3),
            UserSubscription.expires_at >= now + timedelta(days=1),
        )
        .all()
    )
    logger.info(f"Found {len(expiring)} expiring subscriptions")

    results = []
    for subscription in expiring:
        user = subscription.user
        if not user or not user.email:
            logger.info(f"No email for user {subscription.user_id}")
            continue

        user_name = user.display_name or user.email.split("@")[0]
        plan_name = subscription.plan.name if subscription.plan else "Premium"
        days_left = math.ceil((subscription.expires_at - now).total_seconds() / 86400)
        subject, html = _subscription_email(user_name, plan_name, subscription.expires_at, days_left)

        try:
            if sender(user.email, subject, html):
                subscription.expiry_notified_at = utcnow()
                db.commit()
                results.append({"email": user.email, "status": "sent"})
            else:
                results.append({"email": user.email, "status": "error"})
        except Exception as e:
            db.rollback()
            logger.error(f"Error sending subscription expiry email to {user.email}: {e}")
            results.append({"email": user.email, "status": "error", "error": str(e)})

    expired = subscriptions.expire_lapsed_subscriptions(db)

    return {
        "success": True,
        "processed": len(results),
        "results": results,
        "subscriptions_expired": expired,
    }
