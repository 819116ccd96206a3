"""
Product listing endpoints: publish, edit, renew and the swipe feed.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.models import User
from app.routers.auth import require_auth, get_flags
from app.schemas.product import Product, ProductCreate, ProductUpdate
from app.services import products as product_service
from app.services.feature_flags import FeatureFlags

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/feed", response_model=list[Product])
def get_feed(
    category: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Listings to swipe on, boosted owners first."""
    return product_service.get_feed(db, flags, user, category=category, limit=limit)


@router.get("/hot", response_model=list[Product])
def get_hot(
    limit: int = Query(20, ge=1, le=100),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    return product_service.list_hot(db, flags, limit=limit)


@router.get("/mine", response_model=list[Product])
def get_my_products(
    status: Optional[str] = None,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    return product_service.list_user_products(db, user.id, status)


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_service.get_product(db, product_id)


@router.post("", response_model=Product, status_code=201)
def create_product(
    data: ProductCreate,
    user: User = Depends(require_auth),
    flags: FeatureFlags = Depends(get_flags),
    db: Session = Depends(get_db)
):
    """Publish a listing. It stays active for 30 days unless renewed."""
    return product_service.create_product(db, user, flags, **data.model_dump())


@router.put("/{product_id}", response_model=Product)
def update_product(
    product_id: int,
    data: ProductUpdate,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    return product_service.update_product(db, user, product_id, **data.model_dump())


@router.post("/{product_id}/renew", response_model=Product)
def renew_product(
    product_id: int,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db)
):
    return product_service.renew_product(db, user, product_id)
