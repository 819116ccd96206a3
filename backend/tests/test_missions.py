import pytest
from fastapi import HTTPException

from app.models import TrukoinTransaction, Achievement
from app.services import achievements, missions, trukoins


@pytest.fixture
def like_mission(db):
    return missions.create_mission(
        db,
        title="Da 2 likes",
        mission_type="daily",
        action_type="like",
        target_count=2,
        reward_trukoins=50,
    )


def test_progress_clamps_and_completes_once(db, flags, make_user, like_mission):
    user = make_user()

    [um] = missions.update_mission_progress(db, flags, user, "like", 5)

    assert um.current_progress == 2
    completed_at = um.completed_at
    assert completed_at is not None

    [um] = missions.update_mission_progress(db, flags, user, "like")
    assert um.current_progress == 2
    assert um.completed_at == completed_at


def test_reward_is_claimed_exactly_once(db, flags, make_user, like_mission):
    user = make_user()
    [um] = missions.update_mission_progress(db, flags, user, "like", 2)

    claimed = missions.claim_mission_reward(db, user, um.id)
    assert claimed.reward_claimed_at is not None

    with pytest.raises(HTTPException) as exc:
        missions.claim_mission_reward(db, user, um.id)
    assert exc.value.status_code == 409

    wallet = trukoins.get_or_create_wallet(db, user.id)
    db.refresh(wallet)
    assert wallet.balance == 50
    assert db.query(TrukoinTransaction).filter(
        TrukoinTransaction.user_id == user.id,
        TrukoinTransaction.transaction_type == "mission_reward",
    ).count() == 1


def test_incomplete_mission_cannot_be_claimed(db, flags, make_user, like_mission):
    user = make_user()
    [um] = missions.update_mission_progress(db, flags, user, "like")

    with pytest.raises(HTTPException) as exc:
        missions.claim_mission_reward(db, user, um.id)
    assert exc.value.status_code == 400


def test_likes_advance_missions(db, flags, make_user, make_product, like_mission):
    from app.services import matching

    user = make_user()
    owner = make_user()
    matching.record_swipe(db, flags, user, make_product(owner).id, "like")

    listed = missions.list_user_missions(db, flags, user)
    assert listed["daily"][0]["current_progress"] == 1


def test_spend_requires_balance(db, make_user):
    user = make_user()
    trukoins.earn_trukoins(db, user.id, 30, "bonus", "Bienvenida")
    db.commit()

    with pytest.raises(HTTPException) as exc:
        trukoins.spend_trukoins(db, user.id, 31, "Compra")
    assert exc.value.detail.startswith("Saldo insuficiente")

    trukoins.spend_trukoins(db, user.id, 30, "Compra")
    db.commit()
    summary = trukoins.get_wallet_summary(db, user.id)
    assert summary["wallet"].balance == 0
    assert summary["wallet"].lifetime_earned == 30


def test_achievement_unlocks_once(db, flags, make_user):
    user = make_user()
    db.add(Achievement(name="Primer trueke", requirement_type="trades", requirement_value=1, reward_trukoins=20))
    db.commit()

    first = achievements.check_and_unlock(db, flags, user, "trades", 1)
    second = achievements.check_and_unlock(db, flags, user, "trades", 3)

    assert len(first) == 1
    assert second == []
    wallet = trukoins.get_or_create_wallet(db, user.id)
    db.refresh(wallet)
    assert wallet.balance == 20
