"""비정규화 컬럼 정합성 점검 테스트"""

from __future__ import annotations

import pytest
from sqlalchemy import update

from app.models.auction import BidStatus
from app.models.db.auction import Auction
from app.models.db.bid import Bid
from app.services.errors import NotFoundError


def _place(bidding, clock, auction_id, rows):
    for bidder_id, amount in rows:
        clock.advance(minutes=1)
        bidding.place_bid(auction_id, bidder_id, amount)


def _fields(issues) -> list[str]:
    return [i.field for i in issues]


class TestReconcileAuction:

    def test_fresh_auction_consistent(self, query, auction):
        assert query.audit(auction.id) == []

    def test_after_bids_consistent(self, query, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000), (bidders[1].id, 350_000)])
        assert query.audit(auction.id) == []

    def test_after_closure_consistent(self, query, lifecycle, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000), (bidders[1].id, 350_000)])
        clock.advance(hours=30)
        lifecycle.sweep_expired()
        assert query.audit(auction.id) == []

    def test_after_cancel_consistent(self, query, lifecycle, auction, seller):
        lifecycle.cancel_auction(auction.id, seller.id)
        assert query.audit(auction.id) == []

    def test_tampered_highest_bid(self, db_session, query, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000)])
        db_session.execute(update(Auction).where(Auction.id == auction.id).values(current_highest_bid=999_999))
        db_session.commit()

        issues = query.audit(auction.id)
        assert _fields(issues) == ["current_highest_bid"]
        assert issues[0].stored == 999_999
        assert issues[0].expected == 150_000

    def test_tampered_bidder_and_count(self, db_session, query, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000), (bidders[1].id, 160_000)])
        db_session.execute(
            update(Auction)
            .where(Auction.id == auction.id)
            .values(highest_bidder_id=bidders[0].id, total_bids=7)
        )
        db_session.commit()

        fields = _fields(query.audit(auction.id))
        assert "highest_bidder_id" in fields
        assert "total_bids" in fields

    def test_two_active_bids(self, db_session, query, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000), (bidders[1].id, 160_000)])
        db_session.execute(
            update(Bid).where(Bid.auction_id == auction.id).values(status=BidStatus.ACTIVE.value)
        )
        db_session.commit()

        issues = query.audit(auction.id)
        assert _fields(issues) == [f"bids[{BidStatus.ACTIVE.value}]"]
        assert issues[0].stored == 2
        assert issues[0].expected == 1

    def test_leader_not_won_after_close(self, db_session, query, lifecycle, bidding, auction, bidders, clock):
        _place(bidding, clock, auction.id, [(bidders[0].id, 150_000)])
        clock.advance(hours=30)
        lifecycle.sweep_expired()
        db_session.execute(
            update(Bid).where(Bid.auction_id == auction.id).values(status=BidStatus.OUTBID.value)
        )
        db_session.commit()

        fields = _fields(query.audit(auction.id))
        assert f"bids[{BidStatus.WON.value}]" in fields
        assert "leader_status" in fields

    def test_not_found(self, query):
        with pytest.raises(NotFoundError):
            query.audit(31337)
