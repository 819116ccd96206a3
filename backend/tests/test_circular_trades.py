import pytest
from fastapi import HTTPException
from sqlalchemy import update

from app.models import CircularTrade, CircularTradeParticipant, User
from app.services import circular_trades


@pytest.fixture
def ring(db, flags, make_user, make_product):
    initiator = make_user()
    product = make_product(initiator, "Libros")
    return circular_trades.create_circular_trade(
        db, flags, initiator, product.id, min_participants=3, max_participants=3
    )


def _join(db, flags, make_user, make_product, trade_id):
    user = make_user()
    product = make_product(user, "Lámpara")
    return user, circular_trades.join_circular_trade(db, flags, user, trade_id, product.id)


def test_trade_moves_to_in_progress_at_minimum(db, flags, make_user, make_product, ring):
    assert ring.participant_count == 1
    assert ring.status == "pending"

    _, trade = _join(db, flags, make_user, make_product, ring.id)
    assert trade.status == "pending"
    assert trade.participant_count == 2

    _, trade = _join(db, flags, make_user, make_product, ring.id)
    assert trade.status == "in_progress"
    assert trade.participant_count == 3
    assert [p.position for p in trade.participants] == [1, 2, 3]


def test_full_trade_refuses_more_participants(db, flags, make_user, make_product, ring):
    _join(db, flags, make_user, make_product, ring.id)
    _join(db, flags, make_user, make_product, ring.id)

    with pytest.raises(HTTPException) as exc:
        _join(db, flags, make_user, make_product, ring.id)

    assert exc.value.status_code == 400
    trade = circular_trades.get_trade(db, ring.id)
    assert trade.participant_count == len(trade.participants) == 3


def test_user_joins_at_most_once(db, flags, make_user, make_product, ring):
    user, _ = _join(db, flags, make_user, make_product, ring.id)
    other_product = make_product(user, "Radio")

    with pytest.raises(HTTPException) as exc:
        circular_trades.join_circular_trade(db, flags, user, ring.id, other_product.id)

    assert exc.value.detail == "Ya eres parte de este trueke circular"
    assert circular_trades.get_trade(db, ring.id).participant_count == 2


def test_only_initiator_completes(db, flags, make_user, make_product, ring):
    joiner, _ = _join(db, flags, make_user, make_product, ring.id)
    _join(db, flags, make_user, make_product, ring.id)

    with pytest.raises(HTTPException) as exc:
        circular_trades.complete_circular_trade(db, joiner, ring.id)
    assert exc.value.status_code == 403

    initiator = db.query(User).filter(User.id == ring.initiator_id).one()
    trade = circular_trades.complete_circular_trade(db, initiator, ring.id)
    assert trade.status == "completed"
    assert trade.completed_at is not None


def test_join_that_loses_the_last_slot_is_not_recorded(db, flags, make_user, make_product, ring):
    late = make_user()
    product = make_product(late, "Lámpara")
    db.refresh(ring)

    # The last slots are taken after this session loaded the ring
    db.expire_on_commit = False
    db.execute(
        update(CircularTrade)
        .where(CircularTrade.id == ring.id)
        .values(participant_count=3)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    assert ring.participant_count == 1

    try:
        with pytest.raises(HTTPException) as exc:
            circular_trades.join_circular_trade(db, flags, late, ring.id, product.id)
    finally:
        db.expire_on_commit = True

    assert exc.value.status_code == 409
    assert db.query(CircularTradeParticipant).filter(
        CircularTradeParticipant.user_id == late.id
    ).count() == 0
    assert circular_trades.get_trade(db, ring.id).participant_count == 3
