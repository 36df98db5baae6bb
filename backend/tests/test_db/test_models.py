"""ORM 모델 CRUD + 제약조건 테스트

SQLite in-memory로 실행. PostgreSQL 불필요.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import BigInteger
from sqlalchemy.exc import IntegrityError

from app.models.auction import AuctionStatus, BidStatus
from app.models.db.auction import Auction
from app.models.db.bid import Bid
from app.models.db.messaging import Conversation, Message

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_auction(product, **overrides) -> Auction:
    defaults = {
        "product_id": product.id,
        "seller_id": product.seller_id,
        "start_price": 100_000,
        "current_highest_bid": 100_000,
        "start_time": START,
        "end_time": START + timedelta(hours=24),
    }
    defaults.update(overrides)
    return Auction(**defaults)


class TestAuctionModel:

    def test_defaults(self, db_session, product):
        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()

        assert auction.status == AuctionStatus.ACTIVE.value
        assert auction.status_enum is AuctionStatus.ACTIVE
        assert auction.status_enum.is_terminal is False
        assert AuctionStatus.ENDED.is_terminal and AuctionStatus.CANCELLED.is_terminal
        assert auction.total_bids == 0
        assert auction.highest_bidder_id is None
        assert auction.created_at is not None

    def test_datetimes_read_back_as_utc(self, db_session, product):
        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()
        db_session.expire_all()

        loaded = db_session.get(Auction, auction.id)
        assert loaded.start_time.tzinfo is not None
        assert loaded.start_time == START
        assert loaded.end_time - loaded.start_time == timedelta(hours=24)

    def test_relationships(self, db_session, product, seller):
        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()

        assert auction.product.name == product.name
        assert auction.seller.id == seller.id
        assert auction.bids == []

    @pytest.mark.parametrize("overrides", [
        {"start_price": 0, "current_highest_bid": 0},
        {"current_highest_bid": 99_999},
        {"end_time": START},
        {"total_bids": -1},
    ])
    def test_check_constraints(self, db_session, product, overrides):
        db_session.add(_make_auction(product, **overrides))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_product_fk(self, db_session, product):
        db_session.add(_make_auction(product, product_id=9999))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestBidModel:

    def test_bid_defaults_and_order(self, db_session, product, bidders):
        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()

        for amount in (150_000, 120_000):
            db_session.add(Bid(auction_id=auction.id, bidder_id=bidders[0].id, bid_amount=amount))
        db_session.commit()
        db_session.refresh(auction)

        assert [b.bid_amount for b in auction.bids] == [150_000, 120_000]
        assert all(b.status == BidStatus.ACTIVE.value for b in auction.bids)
        assert auction.bids[0].bidder.id == bidders[0].id

    def test_amount_positive(self, db_session, product, bidders):
        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()

        db_session.add(Bid(auction_id=auction.id, bidder_id=bidders[0].id, bid_amount=0))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_amount_beyond_int32(self, db_session, product, bidders):
        """IQD 금액은 32비트 범위를 넘을 수 있다"""
        for column in (Bid.__table__.c.bid_amount, Auction.__table__.c.start_price,
                       Auction.__table__.c.current_highest_bid):
            assert isinstance(column.type, BigInteger)

        auction = _make_auction(product)
        db_session.add(auction)
        db_session.commit()
        db_session.add(Bid(auction_id=auction.id, bidder_id=bidders[0].id, bid_amount=5_000_000_000))
        db_session.commit()
        db_session.refresh(auction)

        assert auction.bids[0].bid_amount == 5_000_000_000

    def test_auction_fk(self, db_session, bidders):
        db_session.add(Bid(auction_id=777, bidder_id=bidders[0].id, bid_amount=1000))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestUserModel:

    def test_display_name_fallbacks(self, make_user):
        assert make_user(seller_name="متجر", name="علي").display_name == "متجر"
        assert make_user(name="علي").display_name == "علي"
        anonymous = make_user(name=None, username=None)
        assert anonymous.display_name == f"user-{anonymous.id}"

    def test_unique_username(self, db_session, make_user):
        make_user(username="ali")
        with pytest.raises(IntegrityError):
            make_user(username="ali")


class TestConversationModel:

    def test_participants(self, db_session, seller, bidders, product):
        conv = Conversation(buyer_id=bidders[0].id, seller_id=seller.id, product_id=product.id)
        db_session.add(conv)
        db_session.commit()

        assert conv.has_participant(seller.id)
        assert not conv.has_participant(bidders[1].id)
        assert conv.other_participant(bidders[0].id) == seller.id
        assert conv.other_participant(seller.id) == bidders[0].id

    def test_unique_participants(self, db_session, seller, bidders, product):
        for _ in range(2):
            db_session.add(Conversation(buyer_id=bidders[0].id, seller_id=seller.id, product_id=product.id))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_unique_participants_without_product(self, db_session, seller, bidders):
        for _ in range(2):
            db_session.add(Conversation(buyer_id=bidders[0].id, seller_id=seller.id))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_general_and_product_conversations_coexist(self, db_session, seller, bidders, product):
        db_session.add(Conversation(buyer_id=bidders[0].id, seller_id=seller.id))
        db_session.add(Conversation(buyer_id=bidders[0].id, seller_id=seller.id, product_id=product.id))
        db_session.add(Conversation(buyer_id=bidders[1].id, seller_id=seller.id))
        db_session.commit()

    def test_messages_relationship(self, db_session, seller, bidders):
        conv = Conversation(buyer_id=bidders[0].id, seller_id=seller.id)
        db_session.add(conv)
        db_session.commit()
        db_session.add(Message(
            conversation_id=conv.id, sender_id=bidders[0].id, receiver_id=seller.id, content="مرحبا"
        ))
        db_session.commit()
        db_session.refresh(conv)

        assert [m.content for m in conv.messages] == ["مرحبا"]
        assert conv.messages[0].is_read is False
