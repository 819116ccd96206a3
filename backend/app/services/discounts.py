"""
Discount Codes Service

Validation is a short-circuiting pipeline that returns a result with a
user-facing reason instead of raising. Redemption bumps `current_uses`
with a conditional UPDATE bounded by `max_uses` and inserts the per-user
use row, whose (code, user) unique key forbids a second use.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.database import utcnow
from app.models import User, DiscountCode, DiscountCodeUse
from app.services import realtime

logger = logging.getLogger(__name__)


@dataclass
class DiscountValidation:
    valid: bool
    error: Optional[str] = None
    code: Optional[DiscountCode] = None
    discount_amount: Decimal = Decimal("0")
    final_price: Optional[Decimal] = None


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def compute_discount(code: DiscountCode, plan_price) -> tuple[Decimal, Decimal]:
    """Return (discount_amount, final_price); the final price is never negative."""
    price = _money(plan_price)
    value = _money(code.discount_value)

    if code.discount_type == "percentage":
        discount = min(_money(price * value / Decimal(100)), price)
    else:
        discount = min(value, price)

    final_price = max(Decimal("0.00"), price - discount)
    return discount, final_price


def get_code(db: Session, code: str) -> Optional[DiscountCode]:
    return db.query(DiscountCode).filter(
        DiscountCode.code == code.strip().upper(),
        DiscountCode.is_active == True
    ).first()


def validate_code(
    db: Session,
    code: str,
    plan_id: int,
    plan_price,
    user: Optional[User] = None,
) -> DiscountValidation:
    """Run every check in order, stopping at the first failure."""
    code_row = get_code(db, code or "")
    if not code_row:
        return DiscountValidation(False, "Código no válido o expirado")

    now = utcnow()
    if code_row.valid_until and code_row.valid_until < now:
        return DiscountValidation(False, "El código ha expirado")

    if code_row.valid_from and code_row.valid_from > now:
        return DiscountValidation(False, "Código no válido o expirado")

    if code_row.max_uses and code_row.current_uses >= code_row.max_uses:
        return DiscountValidation(False, "El código ha alcanzado el límite de usos")

    if code_row.min_plan_price and _money(plan_price) < _money(code_row.min_plan_price):
        return DiscountValidation(
            False,
            f"Este código requiere un plan de al menos ${_money(code_row.min_plan_price)}"
        )

    if code_row.applicable_plans and str(plan_id) not in {str(p) for p in code_row.applicable_plans}:
        return DiscountValidation(False, "Este código no aplica para el plan seleccionado")

    if user is not None:
        used = db.query(DiscountCodeUse.id).filter(
            DiscountCodeUse.code_id == code_row.id,
            DiscountCodeUse.user_id == user.id,
        ).first()
        if used:
            return DiscountValidation(False, "Ya has usado este código")

    discount, final_price = compute_discount(code_row, plan_price)
    return DiscountValidation(True, None, code_row, discount, final_price)


def redeem_code(
    db: Session,
    user: User,
    code_id: int,
    discount_amount,
    subscription_id: Optional[int] = None,
    commit: bool = True,
) -> DiscountCodeUse:
    """
    Record a use of a code, respecting max_uses and one use per user.

    The counter increment and the use row share a savepoint, so a refused
    redemption leaves the caller's transaction untouched.
    """
    try:
        with db.begin_nested():
            result = db.execute(
                update(DiscountCode)
                .where(
                    DiscountCode.id == code_id,
                    DiscountCode.is_active == True,
                    or_(DiscountCode.max_uses.is_(None), DiscountCode.current_uses < DiscountCode.max_uses),
                )
                .values(current_uses=DiscountCode.current_uses + 1)
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != 1:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="El código ha alcanzado el límite de usos"
                )

            use = DiscountCodeUse(
                code_id=code_id,
                user_id=user.id,
                subscription_id=subscription_id,
                discount_applied=_money(discount_amount),
            )
            db.add(use)
            db.flush()
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ya has usado este código")

    code = db.query(DiscountCode).filter(DiscountCode.id == code_id).one()
    for admin in db.query(User).filter(User.is_admin == True).all():
        realtime.notify(
            db, admin.id, realtime.DISCOUNT_REDEEMED,
            "Código de descuento usado",
            f"{code.code} usado por {user.display_name or user.email}",
            {"code_id": code_id, "user_id": user.id, "discount_applied": str(use.discount_applied)},
        )

    if commit:
        db.commit()
        db.refresh(use)
    logger.info(f"User {user.id} redeemed discount code {code_id}")
    return use


# Admin management

def list_codes(db: Session) -> list[DiscountCode]:
    return db.query(DiscountCode).order_by(DiscountCode.id.desc()).all()


def create_code(db: Session, created_by: Optional[int] = None, **fields) -> DiscountCode:
    code_value = (fields.pop("code", None) or "").strip().upper()
    if not code_value:
        raise HTTPException(status_code=400, detail="Code is required")
    if fields.get("discount_type", "percentage") not in ("percentage", "fixed"):
        raise HTTPException(status_code=400, detail="Invalid discount type")

    if db.query(DiscountCode.id).filter(DiscountCode.code == code_value).first():
        raise HTTPException(status_code=400, detail="Code already exists")

    code = DiscountCode(
        code=code_value,
        created_by=created_by,
        **{key: value for key, value in fields.items() if value is not None},
    )
    db.add(code)
    db.commit()
    db.refresh(code)
    return code


def update_code(db: Session, code_id: int, **fields) -> DiscountCode:
    code = db.query(DiscountCode).filter(DiscountCode.id == code_id).first()
    if not code:
        raise HTTPException(status_code=404, detail="Discount code not found")

    for key, value in fields.items():
        if value is None:
            continue
        if key == "code":
            value = value.strip().upper()
        setattr(code, key, value)

    db.commit()
    db.refresh(code)
    return code


def deactivate_code(db: Session, code_id: int) -> DiscountCode:
    """Soft delete: codes stay for the redemption history."""
    return update_code(db, code_id, is_active=False)
