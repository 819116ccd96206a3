"""
Aggregate counts for the admin dashboard.
"""
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import utcnow
from app.models import User, Product, Match, Message, Swipe, UserSubscription, PremiumPlan


def get_admin_stats(db: Session) -> dict:
    now = utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    def users_since(since):
        return db.query(func.count(User.id)).filter(User.created_at >= since).scalar() or 0

    def subscriptions_with(status):
        return db.query(func.count(UserSubscription.id)).filter(
            UserSubscription.status == status
        ).scalar() or 0

    def matches_with(status):
        return db.query(func.count(Match.id)).filter(Match.status == status).scalar() or 0

    monthly_revenue = (
        db.query(func.coalesce(func.sum(PremiumPlan.price), 0))
        .join(UserSubscription, UserSubscription.plan_id == PremiumPlan.id)
        .filter(UserSubscription.status == "active")
        .scalar()
    )

    return {
        "users": {
            "total": db.query(func.count(User.id)).scalar() or 0,
            "new_today": users_since(today),
            "new_this_week": users_since(week_ago),
            "new_this_month": users_since(month_ago),
        },
        "subscriptions": {
            "total": db.query(func.count(UserSubscription.id)).scalar() or 0,
            "active": subscriptions_with("active"),
            "cancelled": subscriptions_with("cancelled"),
            "monthly_revenue": Decimal(str(monthly_revenue or 0)).quantize(Decimal("0.01")),
        },
        "activity": {
            "products": db.query(func.count(Product.id)).scalar() or 0,
            "matches_total": db.query(func.count(Match.id)).scalar() or 0,
            "matches_completed": matches_with("completed"),
            "matches_pending": matches_with("pending"),
            "messages": db.query(func.count(Message.id)).scalar() or 0,
            "swipes": db.query(func.count(Swipe.id)).scalar() or 0,
        },
    }
