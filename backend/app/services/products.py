"""
Listings: publish, edit, renew, feature and the swipe feed.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException

from app.database import utcnow
from app.models import User, Product, UserBoost, UserSubscription, PremiumPlan
from app.services import feature_flags, realtime
from app.services.feature_flags import FeatureFlags

logger = logging.getLogger(__name__)

LISTING_DAYS = 30
EDITABLE_FIELDS = ("title", "description", "images", "estimated_value", "category")


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _get_own_product(db: Session, user: User, product_id: int) -> Product:
    product = get_product(db, product_id)
    if product.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not your product")
    return product


def create_product(db: Session, user: User, flags: Optional[FeatureFlags] = None, **fields) -> Product:
    from app.services import achievements

    if not (fields.get("title") or "").strip():
        raise HTTPException(status_code=400, detail="Title is required")

    product = Product(
        user_id=user.id,
        status="active",
        expires_at=utcnow() + timedelta(days=LISTING_DAYS),
        **{key: fields[key] for key in EDITABLE_FIELDS if fields.get(key) is not None},
    )
    db.add(product)
    if flags is not None:
        achievements.record_event(db, flags, user.id, achievements.PRODUCTS_LISTED)
    db.commit()
    db.refresh(product)
    logger.info(f"User {user.id} published product {product.id}")
    return product


def update_product(db: Session, user: User, product_id: int, **fields) -> Product:
    product = _get_own_product(db, user, product_id)
    for key in EDITABLE_FIELDS:
        if fields.get(key) is not None:
            setattr(product, key, fields[key])
    db.commit()
    db.refresh(product)
    return product


def renew_product(db: Session, user: User, product_id: int) -> Product:
    """Restart the listing period and re-arm the expiry warnings."""
    product = _get_own_product(db, user, product_id)
    if product.status == "traded":
        raise HTTPException(status_code=400, detail="Este producto ya fue intercambiado")

    product.status = "active"
    product.expires_at = utcnow() + timedelta(days=LISTING_DAYS)
    product.expiry_notified_3days = False
    product.expiry_notified_1day = False
    db.commit()
    db.refresh(product)
    return product


def set_featured(db: Session, product_id: int, is_featured: bool) -> Product:
    """Admin action. Owners are told when their listing gets featured."""
    product = get_product(db, product_id)
    product.is_featured = is_featured
    if is_featured:
        realtime.notify(
            db, product.user_id, realtime.FEATURED_PRODUCT,
            "¡Tu producto es destacado! ⭐",
            f'"{product.title}" aparece ahora en destacados',
            {"product_id": product.id},
        )
    db.commit()
    db.refresh(product)
    return product


def list_user_products(db: Session, user_id: int, status: Optional[str] = None) -> list[Product]:
    query = db.query(Product).filter(Product.user_id == user_id)
    if status:
        query = query.filter(Product.status == status)
    return query.order_by(Product.id.desc()).all()


def get_feed(
    db: Session,
    flags: FeatureFlags,
    user: User,
    category: Optional[str] = None,
    limit: int = 20,
) -> list[Product]:
    """
    Active listings the user has not swiped yet, excluding their own.

    Listings of boosted owners come first, and with priority ranking on,
    owners on plans with `priority_in_hot` come next.
    """
    from app.services.matching import swiped_product_ids

    now = utcnow()
    query = db.query(Product).filter(
        Product.status == "active",
        Product.user_id != user.id,
        Product.expires_at > now,
    )
    swiped = swiped_product_ids(db, user.id)
    if swiped:
        query = query.filter(Product.id.not_in(swiped))
    if category:
        query = query.filter(Product.category == category)

    products = query.order_by(Product.is_featured.desc(), Product.id.desc()).limit(limit * 3).all()

    owner_ids = {p.user_id for p in products}
    if not owner_ids:
        return []

    boosted = {
        row[0] for row in db.query(UserBoost.user_id)
        .filter(UserBoost.user_id.in_(owner_ids), UserBoost.ends_at > now).all()
    }
    priority = set()
    if flags.is_enabled(feature_flags.PRIORITY_RANKING):
        priority = {
            row[0] for row in db.query(UserSubscription.user_id)
            .join(PremiumPlan, PremiumPlan.id == UserSubscription.plan_id)
            .filter(
                UserSubscription.user_id.in_(owner_ids),
                UserSubscription.status == "active",
                PremiumPlan.priority_in_hot == True,
            ).all()
        }

    # sort is stable, so featured/newest order holds within each tier
    products.sort(key=lambda p: (p.user_id not in boosted, p.user_id not in priority))
    return products[:limit]


def list_hot(db: Session, flags: FeatureFlags, limit: int = 20) -> list[Product]:
    """Featured listings for the Hot section."""
    flags.require(feature_flags.HOT_SECTION)
    return (
        db.query(Product)
        .filter(Product.status == "active", Product.is_featured == True, Product.expires_at > utcnow())
        .order_by(Product.id.desc())
        .limit(limit)
        .all()
    )
