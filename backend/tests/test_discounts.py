from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.database import utcnow
from app.models import DiscountCode, DiscountCodeUse, PremiumPlan
from app.services import discounts, subscriptions


@pytest.fixture
def plan(db):
    return db.query(PremiumPlan).filter(PremiumPlan.name == "Pro").one()


def test_fixed_discount_never_goes_negative(db, plan):
    discounts.create_code(db, code="regalo", discount_type="fixed", discount_value=Decimal("50"))

    result = discounts.validate_code(db, "REGALO", plan.id, plan.price)

    assert result.valid
    assert result.final_price == Decimal("0.00")
    assert result.discount_amount == Decimal("9.99")


def test_percentage_discount(db, plan):
    discounts.create_code(db, code="MITAD", discount_value=Decimal("50"))

    result = discounts.validate_code(db, "mitad", plan.id, Decimal("10.00"))

    assert result.discount_amount == Decimal("5.00")
    assert result.final_price == Decimal("5.00")


def test_percentage_over_hundred_is_capped_at_price(db, plan):
    discounts.create_code(db, code="TODO150", discount_value=Decimal("150"))

    result = discounts.validate_code(db, "TODO150", plan.id, plan.price)

    assert result.discount_amount == Decimal("9.99")
    assert result.final_price == Decimal("0.00")


def test_validation_reasons(db, plan):
    assert discounts.validate_code(db, "NOPE", plan.id, plan.price).error == "Código no válido o expirado"

    discounts.create_code(
        db, code="VIEJO", discount_value=Decimal("10"), valid_until=utcnow() - timedelta(days=1)
    )
    assert discounts.validate_code(db, "VIEJO", plan.id, plan.price).error == "El código ha expirado"

    discounts.create_code(db, code="SOLOPLUS", discount_value=Decimal("10"), applicable_plans=[plan.id + 100])
    assert discounts.validate_code(db, "SOLOPLUS", plan.id, plan.price).error == \
        "Este código no aplica para el plan seleccionado"

    discounts.create_code(db, code="CARO", discount_value=Decimal("10"), min_plan_price=Decimal("20"))
    assert discounts.validate_code(db, "CARO", plan.id, plan.price).error.startswith(
        "Este código requiere un plan de al menos"
    )


def test_code_cannot_be_used_twice_by_same_user(db, make_user, plan):
    user = make_user()
    discounts.create_code(db, code="UNAVEZ", discount_value=Decimal("20"))

    result = subscriptions.subscribe(db, user, plan.id, discount_code="UNAVEZ")
    assert result["discount_amount"] == Decimal("2.00")

    again = discounts.validate_code(db, "UNAVEZ", plan.id, plan.price, user)
    assert again.error == "Ya has usado este código"

    with pytest.raises(HTTPException) as exc:
        subscriptions.subscribe(db, user, plan.id, discount_code="UNAVEZ")
    assert exc.value.status_code == 400

    code = db.query(DiscountCode).filter(DiscountCode.code == "UNAVEZ").one()
    assert code.current_uses == 1
    assert db.query(DiscountCodeUse).count() == 1


def test_max_uses_is_enforced(db, make_user, plan):
    code = discounts.create_code(db, code="UNO", discount_value=Decimal("10"), max_uses=1)
    first, second = make_user(), make_user()

    discounts.redeem_code(db, first, code.id, Decimal("1.00"))

    assert discounts.validate_code(db, "UNO", plan.id, plan.price, second).error == \
        "El código ha alcanzado el límite de usos"
    with pytest.raises(HTTPException) as exc:
        discounts.redeem_code(db, second, code.id, Decimal("1.00"))
    assert exc.value.status_code == 409


def test_redeem_notifies_admins(db, make_user):
    from app.models import Notification

    admin = make_user(is_admin=True)
    user = make_user()
    code = discounts.create_code(db, code="AVISO", discount_value=Decimal("10"))

    discounts.redeem_code(db, user, code.id, Decimal("1.00"))

    assert db.query(Notification).filter(
        Notification.user_id == admin.id, Notification.type == "discount_redeemed"
    ).count() == 1
