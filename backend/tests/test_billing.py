from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from app.models import DiscountCode, DiscountCodeUse, PremiumPlan, UserSubscription
from app.routers import billing
from app.services import discounts, stripe_service, subscriptions


@pytest.fixture
def plan(db):
    return db.query(PremiumPlan).filter(PremiumPlan.name == "Pro").one()


def _completed_session(user, plan, **fields):
    session = {
        "id": "cs_test_1",
        "metadata": {"user_id": str(user.id), "plan_id": str(plan.id)},
    }
    session.update(fields)
    return session


def test_paid_checkout_activates_when_code_was_exhausted(db, make_user, plan):
    code = discounts.create_code(db, code="UNO", discount_value=Decimal("10"), max_uses=1)
    first, buyer = make_user(), make_user()
    discounts.redeem_code(db, first, code.id, Decimal("1.00"))

    session = _completed_session(buyer, plan)
    session["metadata"]["discount_code"] = "UNO"
    subscription = stripe_service.handle_checkout_completed(session, db)

    assert subscription.status == "active"
    assert subscription.user_id == buyer.id
    assert db.query(DiscountCodeUse).filter(DiscountCodeUse.user_id == buyer.id).count() == 0
    assert db.query(DiscountCode).filter(DiscountCode.id == code.id).one().current_uses == 1


def test_paid_checkout_activates_when_code_is_reused(db, make_user, plan):
    buyer = make_user()
    discounts.create_code(db, code="UNAVEZ", discount_value=Decimal("20"))
    subscriptions.subscribe(db, buyer, plan.id, discount_code="UNAVEZ")

    session = _completed_session(buyer, plan)
    session["metadata"]["discount_code"] = "UNAVEZ"
    subscription = stripe_service.handle_checkout_completed(session, db)

    assert subscription.status == "active"
    assert db.query(UserSubscription).filter(
        UserSubscription.user_id == buyer.id, UserSubscription.status == "active"
    ).one().id == subscription.id
    assert db.query(DiscountCodeUse).filter(DiscountCodeUse.user_id == buyer.id).count() == 1


def test_redelivered_checkout_is_handled_once(db, make_user, plan, monkeypatch):
    buyer = make_user()
    monkeypatch.setattr(stripe.Subscription, "retrieve", lambda _id: {"current_period_end": 1893456000})
    session = _completed_session(buyer, plan, subscription="sub_123")

    first = stripe_service.handle_checkout_completed(session, db)
    second = stripe_service.handle_checkout_completed(session, db)

    assert first.id == second.id
    assert db.query(UserSubscription).filter(UserSubscription.user_id == buyer.id).count() == 1
    assert first.expires_at.year == 2030


def test_checkout_carries_discount_as_coupon(db, make_user, plan, monkeypatch):
    user = make_user()
    user.stripe_customer_id = "cus_test"
    plan.stripe_price_id = "price_test"
    db.commit()

    calls = {}

    def create_coupon(**kwargs):
        calls["coupon"] = kwargs
        return SimpleNamespace(id="coupon_test")

    def create_session(**kwargs):
        calls["session"] = kwargs
        return SimpleNamespace(url="https://checkout.stripe.test/s")

    monkeypatch.setattr(stripe, "api_key", "sk_test")
    monkeypatch.setattr(stripe.Coupon, "create", create_coupon)
    monkeypatch.setattr(stripe.checkout.Session, "create", create_session)

    url = stripe_service.create_checkout_session(
        db, user, plan, "https://ok", "https://cancel",
        discount_code="mitad", discount_amount=Decimal("4.99"),
    )

    assert url == "https://checkout.stripe.test/s"
    assert calls["coupon"]["amount_off"] == 499
    assert calls["coupon"]["max_redemptions"] == 1
    assert calls["session"]["discounts"] == [{"coupon": "coupon_test"}]
    assert calls["session"]["metadata"]["discount_code"] == "mitad"


def test_checkout_without_discount_creates_no_coupon(db, make_user, plan, monkeypatch):
    user = make_user()
    user.stripe_customer_id = "cus_test"
    plan.stripe_price_id = "price_test"
    db.commit()

    def no_coupon(**kwargs):
        raise AssertionError("coupon created")

    sessions = []
    monkeypatch.setattr(stripe, "api_key", "sk_test")
    monkeypatch.setattr(stripe.Coupon, "create", no_coupon)
    monkeypatch.setattr(
        stripe.checkout.Session, "create",
        lambda **kwargs: sessions.append(kwargs) or SimpleNamespace(url="https://checkout.stripe.test/s"),
    )

    stripe_service.create_checkout_session(db, user, plan, "https://ok", "https://cancel")

    assert "discounts" not in sessions[0]


def test_webhook_failure_returns_error_so_stripe_retries(client, db, make_user, plan, monkeypatch):
    buyer = make_user()
    event = {
        "type": "checkout.session.completed",
        "data": {"object": _completed_session(buyer, plan)},
    }

    def failing_handler(session, db):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")
    monkeypatch.setattr(stripe_service, "verify_webhook_signature", lambda payload, signature: event)
    monkeypatch.setattr(stripe_service, "handle_checkout_completed", failing_handler)

    response = client.post("/api/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})

    assert response.status_code == 500
    assert db.query(UserSubscription).filter(UserSubscription.user_id == buyer.id).count() == 0


def test_webhook_activates_paid_plan(client, db, make_user, plan, monkeypatch):
    buyer = make_user()
    event = {
        "type": "checkout.session.completed",
        "data": {"object": _completed_session(buyer, plan)},
    }

    monkeypatch.setattr(billing.settings, "stripe_webhook_secret", "whsec_test")
    monkeypatch.setattr(stripe_service, "verify_webhook_signature", lambda payload, signature: event)

    response = client.post("/api/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})

    assert response.status_code == 200
    assert db.query(UserSubscription).filter(
        UserSubscription.user_id == buyer.id, UserSubscription.status == "active"
    ).count() == 1
