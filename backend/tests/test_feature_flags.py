import pytest
from fastapi import HTTPException

from app.services import feature_flags, missions
from app.services.feature_flags import FeatureFlags, load_feature_flags


def test_seeded_defaults(db):
    flags = load_feature_flags(db)

    assert flags.is_enabled(feature_flags.AUCTIONS)
    assert not flags.is_enabled(feature_flags.PRIORITY_RANKING)
    assert not flags.is_enabled("unknown_feature")


def test_snapshot_does_not_change_after_toggle(db):
    snapshot = load_feature_flags(db)
    feature_flags.set_flag(db, feature_flags.AUCTIONS, False)

    assert snapshot.is_enabled(feature_flags.AUCTIONS)
    assert not load_feature_flags(db).is_enabled(feature_flags.AUCTIONS)


def test_require_raises_forbidden():
    with pytest.raises(HTTPException) as exc:
        FeatureFlags().require(feature_flags.MISSIONS)
    assert exc.value.status_code == 403


def test_disabled_missions_do_not_advance(db, make_user):
    user = make_user()
    missions.create_mission(db, title="Like", action_type="like", target_count=1, reward_trukoins=5)

    assert missions.advance(db, FeatureFlags(), user, "like") == []
    assert missions.list_user_missions(db, FeatureFlags(), user) == {"daily": [], "weekly": []}


def test_upsert_creates_and_updates(db):
    flag = feature_flags.upsert_flag(db, "trading_tournaments", "Torneos", is_enabled=True, category="trading")
    assert flag.is_enabled

    flag = feature_flags.upsert_flag(db, "trading_tournaments", "Torneos", is_enabled=False)
    assert not flag.is_enabled
    assert len([f for f in feature_flags.list_flags(db) if f.feature_key == "trading_tournaments"]) == 1
