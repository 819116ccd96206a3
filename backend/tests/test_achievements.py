from app.models import UserAchievement
from app.services import achievements, matching, trukoins
from app.services.feature_flags import FeatureFlags


def _unlocked(db, user_id):
    return {
        ua.achievement.requirement_type
        for ua in db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
    }


def test_listing_a_product_unlocks_achievement(client, db, make_user, auth_headers):
    achievements.create_achievement(
        db,
        name="Primer producto", requirement_type=achievements.PRODUCTS_LISTED,
        requirement_value=1, reward_trukoins=10,
    )
    user = make_user()

    response = client.post("/api/products", headers=auth_headers(user), json={
        "title": "Bicicleta",
        "category": "deportes",
    })

    assert response.status_code == 201
    assert _unlocked(db, user.id) == {achievements.PRODUCTS_LISTED}
    assert trukoins.get_or_create_wallet(db, user.id).balance == 10


def test_completed_trade_unlocks_for_both_users(db, flags, make_user, make_product):
    achievements.create_achievement(
        db,
        name="Primer trueke", requirement_type=achievements.TRADES_COMPLETED, requirement_value=1,
    )
    ana, ben = make_user(), make_user()
    ana_bike = make_product(ana, "Bicicleta")
    ben_guitar = make_product(ben, "Guitarra")
    matching.record_swipe(db, flags, ana, ben_guitar.id, "like")
    _, match = matching.record_swipe(db, flags, ben, ana_bike.id, "like")

    matching.update_match_status(db, ana, match.id, "accepted", flags)
    assert _unlocked(db, ana.id) == set()

    matching.update_match_status(db, ben, match.id, "completed", flags)

    assert achievements.TRADES_COMPLETED in _unlocked(db, ana.id)
    assert achievements.TRADES_COMPLETED in _unlocked(db, ben.id)


def test_received_likes_unlock_once(db, flags, make_user, make_product):
    achievements.create_achievement(
        db,
        name="Popular", requirement_type=achievements.LIKES_RECEIVED, requirement_value=2,
    )
    owner = make_user()
    product = make_product(owner, "Guitarra")

    matching.record_swipe(db, flags, make_user(), product.id, "like")
    assert _unlocked(db, owner.id) == set()

    matching.record_swipe(db, flags, make_user(), product.id, "like")
    matching.record_swipe(db, flags, make_user(), product.id, "like")

    assert db.query(UserAchievement).filter(UserAchievement.user_id == owner.id).count() == 1


def test_events_ignored_when_achievements_disabled(db, make_user, make_product):
    achievements.create_achievement(
        db,
        name="Primer producto", requirement_type=achievements.PRODUCTS_LISTED, requirement_value=1,
    )
    user = make_user()
    make_product(user)

    assert achievements.record_event(db, FeatureFlags(), user.id, achievements.PRODUCTS_LISTED) == []
    assert _unlocked(db, user.id) == set()
