from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy import update

from app.database import utcnow
from app.models import Auction, AuctionBid, Notification, User
from app.services import auctions
from app.services.feature_flags import FeatureFlags


@pytest.fixture
def auction(db, flags, make_user, make_product):
    seller = make_user()
    product = make_product(seller, "Cámara")
    return auctions.create_auction(db, flags, seller, product.id, 100, 10, 24)


def test_underbid_is_rejected_and_minimum_accepted(db, flags, make_user, auction):
    bidder = make_user()

    with pytest.raises(HTTPException) as exc:
        auctions.place_bid(db, flags, bidder, auction.id, 105)
    assert exc.value.status_code == 400
    assert exc.value.detail.startswith("Oferta muy baja")
    assert "110.00" in exc.value.detail

    bid = auctions.place_bid(db, flags, bidder, auction.id, 110)
    assert bid.is_winning is True
    db.refresh(auction)
    assert float(auction.current_price) == 110


def test_accepted_bids_increase_and_one_wins(db, flags, make_user, auction):
    alice = make_user()
    bob = make_user()

    auctions.place_bid(db, flags, alice, auction.id, 110)
    auctions.place_bid(db, flags, bob, auction.id, 120)
    with pytest.raises(HTTPException):
        auctions.place_bid(db, flags, alice, auction.id, 125)
    auctions.place_bid(db, flags, alice, auction.id, 135)

    bids = db.query(AuctionBid).filter(AuctionBid.auction_id == auction.id).order_by(AuctionBid.id).all()
    amounts = [float(b.amount) for b in bids]
    assert amounts == sorted(amounts) == [110, 120, 135]
    assert [b.is_winning for b in bids] == [False, False, True]

    outbid = db.query(Notification).filter(
        Notification.user_id == bob.id, Notification.type == "auction_outbid"
    ).count()
    assert outbid == 1


def test_seller_cannot_bid(db, flags, auction):
    seller = db.query(User).filter(User.id == auction.seller_id).one()

    with pytest.raises(HTTPException) as exc:
        auctions.place_bid(db, flags, seller, auction.id, 500)
    assert exc.value.status_code == 403
    assert exc.value.detail == "No puedes ofertar en tu propia subasta"


def test_bid_after_end_is_rejected(db, flags, make_user, auction):
    bidder = make_user()
    auction.ends_at = utcnow() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(HTTPException) as exc:
        auctions.place_bid(db, flags, bidder, auction.id, 500)
    assert exc.value.detail == "Subasta terminada"


def test_close_expired_auctions_records_winner(db, flags, make_user, auction):
    bidder = make_user()
    auctions.place_bid(db, flags, bidder, auction.id, 110)

    closed = auctions.close_expired_auctions(db, now=utcnow() + timedelta(days=2))

    assert closed == 1
    db.refresh(auction)
    assert auction.status == "ended"
    assert auction.winner_id == bidder.id


def test_auctions_flag_off(db, make_user, make_product):
    seller = make_user()
    product = make_product(seller)

    with pytest.raises(HTTPException) as exc:
        auctions.create_auction(db, FeatureFlags(), seller, product.id, 100, 10, 24)
    assert exc.value.status_code == 403
    assert auctions.list_active_auctions(db, FeatureFlags()) == []


def test_bid_that_loses_the_race_is_not_recorded(db, flags, make_user, auction):
    rival, late = make_user(), make_user()
    auctions.place_bid(db, flags, rival, auction.id, 110)
    db.refresh(auction)

    # A concurrent bid lands after this session loaded the auction
    db.expire_on_commit = False
    db.execute(
        update(Auction)
        .where(Auction.id == auction.id)
        .values(current_price=150)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    assert auction.current_price == Decimal("110.00")

    try:
        with pytest.raises(HTTPException) as exc:
            auctions.place_bid(db, flags, late, auction.id, 120)
    finally:
        db.expire_on_commit = True

    assert exc.value.status_code == 409
    bids = db.query(AuctionBid).filter(AuctionBid.auction_id == auction.id).all()
    assert [(b.bidder_id, b.is_winning) for b in bids] == [(rival.id, True)]
    db.refresh(auction)
    assert auction.current_price == Decimal("150.00")


def test_close_notifies_winner_and_seller(db, flags, make_user, auction):
    bidder = make_user()
    auctions.place_bid(db, flags, bidder, auction.id, 110)

    auctions.close_expired_auctions(db, now=utcnow() + timedelta(days=2))

    won = db.query(Notification).filter(Notification.user_id == bidder.id).all()
    assert "auction_won" in {n.type for n in won}
    assert "auction_bid" not in {n.type for n in won}
    ended = db.query(Notification).filter(
        Notification.user_id == auction.seller_id, Notification.type == "auction_ended"
    ).one()
    assert "110.00" in ended.message


def test_close_without_bids_still_notifies_seller(db, auction):
    auctions.close_expired_auctions(db, now=utcnow() + timedelta(days=2))

    ended = db.query(Notification).filter(
        Notification.user_id == auction.seller_id, Notification.type == "auction_ended"
    ).one()
    assert ended.message == "Terminó sin ofertas"
