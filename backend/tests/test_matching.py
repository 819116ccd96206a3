import pytest
from fastapi import HTTPException

from app.models import Match, Notification
from app.services import matching


def test_reciprocal_like_creates_match(db, flags, make_user, make_product):
    ana = make_user()
    ben = make_user()
    ana_bike = make_product(ana, "Bicicleta")
    ben_guitar = make_product(ben, "Guitarra")

    _, match = matching.record_swipe(db, flags, ana, ben_guitar.id, "like")
    assert match is None

    _, match = matching.record_swipe(db, flags, ben, ana_bike.id, "like")

    assert match is not None
    assert match.user1_id == ben.id
    assert match.product1_id == ana_bike.id
    assert match.user2_id == ana.id
    assert match.product2_id == ben_guitar.id
    assert match.status == "pending"
    for user in (ana, ben):
        assert db.query(Notification).filter(
            Notification.user_id == user.id, Notification.type == "new_match"
        ).count() == 1


def test_second_reciprocal_like_does_not_duplicate(db, flags, make_user, make_product):
    ana = make_user()
    ben = make_user()
    ben_guitar = make_product(ben, "Guitarra")
    ana_bike = make_product(ana, "Bicicleta")
    ana_lamp = make_product(ana, "Lámpara")

    matching.record_swipe(db, flags, ben, ana_bike.id, "like")
    matching.record_swipe(db, flags, ana, ben_guitar.id, "like")
    matching.record_swipe(db, flags, ben, ana_lamp.id, "like")

    assert db.query(Match).count() == 1


def test_cannot_swipe_own_product(db, flags, make_user, make_product):
    ana = make_user()
    bike = make_product(ana)

    with pytest.raises(HTTPException) as exc:
        matching.record_swipe(db, flags, ana, bike.id, "like")
    assert exc.value.status_code == 400


def test_status_transitions_and_messages(db, flags, make_user, make_product):
    ana = make_user()
    ben = make_user(display_name="Ben")
    outsider = make_user()
    ana_bike = make_product(ana)
    ben_guitar = make_product(ben)
    matching.record_swipe(db, flags, ana, ben_guitar.id, "like")
    _, match = matching.record_swipe(db, flags, ben, ana_bike.id, "like")

    message = matching.send_message(db, flags, ben, match.id, "¿Cambiamos?")
    assert message.sender_id == ben.id
    assert db.query(Notification).filter(
        Notification.user_id == ana.id, Notification.type == "new_message"
    ).count() == 1

    with pytest.raises(HTTPException) as exc:
        matching.send_message(db, flags, outsider, match.id, "hola")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException):
        matching.update_match_status(db, ana, match.id, "completed")

    matching.update_match_status(db, ana, match.id, "accepted")
    match = matching.update_match_status(db, ben, match.id, "completed")

    assert match.status == "completed"
    db.refresh(ana_bike)
    db.refresh(ben_guitar)
    assert ana_bike.status == ben_guitar.status == "traded"
