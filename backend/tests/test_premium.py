import pytest
from fastapi import HTTPException
from sqlalchemy import Update, insert

from app.models import PremiumPlan, PremiumUsage, SuperLike
from app.services import feature_flags, premium, subscriptions
from app.services.feature_flags import FeatureFlags


def _plus_plan(db):
    return db.query(PremiumPlan).filter(PremiumPlan.name == "Plus").one()


def test_free_user_super_like_ceiling(db, flags, make_user, make_product):
    sender = make_user()
    owner = make_user()
    first = make_product(owner, "Guitarra")
    second = make_product(owner, "Patineta")

    premium.send_super_like(db, flags, sender, owner.id, first.id)

    with pytest.raises(HTTPException) as exc:
        premium.send_super_like(db, flags, sender, owner.id, second.id)

    assert exc.value.status_code == 429
    assert exc.value.detail == "Limit reached"
    assert premium.get_usage(db, sender.id, premium.SUPER_LIKE) == 1


def test_plan_ceiling_is_exhausted_exactly(db, flags, make_user):
    user = make_user()
    subscriptions.subscribe(db, user, _plus_plan(db).id)

    # Plus allows one boost per month
    premium.activate_boost(db, flags, user)
    with pytest.raises(HTTPException) as exc:
        premium.activate_boost(db, flags, user)

    assert exc.value.status_code == 429
    row = db.query(PremiumUsage).filter(PremiumUsage.user_id == user.id).one()
    assert row.count == 1


def test_zero_ceiling_refuses_without_recording(db, flags, make_user):
    user = make_user()

    # Free tier has no boosts
    with pytest.raises(HTTPException) as exc:
        premium.activate_boost(db, flags, user)

    assert exc.value.status_code == 429
    assert db.query(PremiumUsage).count() == 0


def test_disabled_feature_is_refused_before_quota(db, make_user):
    user = make_user()
    flags = FeatureFlags.all_enabled(feature_flags.SUPER_LIKES)

    with pytest.raises(HTTPException) as exc:
        premium.use_rewind(db, flags, user)

    assert exc.value.status_code == 403
    assert exc.value.detail == "Feature disabled"
    assert premium.get_usage(db, user.id, premium.REWIND) == 0


def test_rewind_undoes_a_dislike(db, flags, make_user, make_product):
    from app.services import matching

    user = make_user()
    owner = make_user()
    product = make_product(owner)
    swipe, _ = matching.record_swipe(db, flags, user, product.id, "dislike")

    premium.use_rewind(db, flags, user, swipe.id)

    assert product.id not in matching.swiped_product_ids(db, user.id)
    assert premium.get_usage(db, user.id, premium.REWIND) == 1


def test_admin_free_limits_override(db, flags, make_user):
    user = make_user()
    premium.set_free_limits(db, {"boosts_per_month": 2})

    premium.activate_boost(db, flags, user)
    premium.activate_boost(db, flags, user)
    with pytest.raises(HTTPException):
        premium.activate_boost(db, flags, user)


def test_premium_status_reports_remaining(db, flags, make_user):
    user = make_user()
    subscriptions.subscribe(db, user, _plus_plan(db).id)
    premium.use_rewind(db, flags, user)

    status = premium.get_premium_status(db, flags, user)

    assert status["is_premium"] is True
    assert status["remaining"]["rewind"] == 4
    assert status["can_use"]["boost"] is True
    assert status["can_see_likes"] is True


def test_super_like_receiver_must_own_the_product(db, flags, make_user, make_product):
    sender = make_user()
    owner = make_user()
    stranger = make_user()
    product = make_product(owner, "Guitarra")

    with pytest.raises(HTTPException) as exc:
        premium.send_super_like(db, flags, sender, stranger.id, product.id)
    assert exc.value.status_code == 400
    assert premium.get_usage(db, sender.id, premium.SUPER_LIKE) == 0

    premium.send_super_like(db, flags, sender, None, product.id)
    super_like = db.query(SuperLike).filter(SuperLike.sender_id == sender.id).one()
    assert super_like.receiver_id == owner.id


def test_first_use_racing_another_insert_still_counts(db, flags, make_user, make_product, monkeypatch):
    sender = make_user()
    owner = make_user()
    product = make_product(owner, "Guitarra")
    subscriptions.subscribe(db, sender, _plus_plan(db).id)
    sender_id = sender.id

    execute = db.execute
    raced = []

    def execute_with_concurrent_insert(statement, *args, **kwargs):
        result = execute(statement, *args, **kwargs)
        if not raced and isinstance(statement, Update) and statement.table.name == "premium_usage":
            # Another request creates today's row right after our update missed
            raced.append(True)
            execute(insert(PremiumUsage).values(
                user_id=sender_id,
                usage_type=premium.SUPER_LIKE,
                period_start=premium.period_start(premium.SUPER_LIKE),
                count=1,
            ))
        return result

    monkeypatch.setattr(db, "execute", execute_with_concurrent_insert)
    premium.send_super_like(db, flags, sender, owner.id, product.id)
    monkeypatch.undo()

    assert raced
    assert premium.get_usage(db, sender.id, premium.SUPER_LIKE) == 2
    assert db.query(PremiumUsage).filter(PremiumUsage.user_id == sender.id).count() == 1
