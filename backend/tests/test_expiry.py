from datetime import timedelta

import pytest

from app.database import utcnow
from app.models import PremiumPlan, Product
from app.services import expiry, subscriptions


class FakeSender:
    def __init__(self, delivers=True):
        self.delivers = delivers
        self.sent = []

    def __call__(self, to, subject, html):
        self.sent.append((to, subject))
        return self.delivers


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@example.com")


def _expiring(db, make_product, owner, title, delta):
    product = make_product(owner, title)
    product.expires_at = utcnow() + delta
    db.commit()
    return product


def test_warnings_are_sent_once_per_window(db, make_product, owner):
    three = _expiring(db, make_product, owner, "Sofá", timedelta(days=2, hours=12))
    one = _expiring(db, make_product, owner, "Mesa", timedelta(hours=12))
    sender = FakeSender()

    summary = expiry.product_expiry_notify(db, sender=sender)

    assert summary["notifications_sent"] == 2
    subjects = [subject for _, subject in sender.sent]
    assert any("3 días" in s and "Sofá" in s for s in subjects)
    assert any("MAÑANA" in s and "Mesa" in s for s in subjects)
    db.refresh(three)
    db.refresh(one)
    assert three.expiry_notified_3days and one.expiry_notified_1day

    again = FakeSender()
    assert expiry.product_expiry_notify(db, sender=again)["notifications_sent"] == 0
    assert again.sent == []


def test_failed_send_is_retried_next_run(db, make_product, owner):
    product = _expiring(db, make_product, owner, "Silla", timedelta(hours=6))

    expiry.product_expiry_notify(db, sender=FakeSender(delivers=False))
    db.refresh(product)
    assert product.expiry_notified_1day is False

    retry = FakeSender()
    expiry.product_expiry_notify(db, sender=retry)
    assert len(retry.sent) == 1


def test_expired_products_are_swept_and_not_warned(db, make_product, owner):
    product = _expiring(db, make_product, owner, "Radio", timedelta(hours=-1))
    sender = FakeSender()

    summary = expiry.product_expiry_notify(db, sender=sender)

    assert summary["products_expired"] == 1
    assert sender.sent == []
    assert db.query(Product).filter(Product.id == product.id).one().status == "expired"

    later = FakeSender()
    summary = expiry.product_expiry_notify(db, now=utcnow() + timedelta(days=1), sender=later)
    assert summary["products_expired"] == 0
    assert later.sent == []


def test_subscription_expiry_warns_once_and_expires_lapsed(db, owner):
    plan = db.query(PremiumPlan).filter(PremiumPlan.name == "Plus").one()
    subscription = subscriptions.subscribe(db, owner, plan.id)["subscription"]
    subscription.expires_at = utcnow() + timedelta(days=2)
    db.commit()
    sender = FakeSender()

    result = expiry.subscription_expiry_notify(db, sender=sender)

    assert result["processed"] == 1
    assert sender.sent[0][0] == "owner@example.com"
    assert "Plus" in sender.sent[0][1]
    db.refresh(subscription)
    assert subscription.expiry_notified_at is not None

    assert expiry.subscription_expiry_notify(db, sender=sender)["processed"] == 0

    subscription.expires_at = utcnow() - timedelta(hours=1)
    db.commit()
    result = expiry.subscription_expiry_notify(db, sender=sender)
    assert result["subscriptions_expired"] == 1
    db.refresh(subscription)
    assert subscription.status == "expired"
