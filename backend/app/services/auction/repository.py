"""경매/입찰 영속 게이트웨이

비즈니스 검증 없음. 검증은 lifecycle/bidding 서비스 책임.
commit도 하지 않는다. 트랜잭션 경계는 호출한 서비스가 소유한다.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.auction import AuctionStatus, BidStatus
from app.models.db.auction import Auction
from app.models.db.bid import Bid
from app.models.db.marketplace import Product, User


class AuctionRepository:
    """auctions / bids 테이블 접근"""

    def __init__(self, db: Session) -> None:
        self._db = db

    @property
    def session(self) -> Session:
        return self._db

    # ── 경매 ──────────────────────────────────────────────────

    def create_auction(
        self,
        *,
        product_id: int,
        seller_id: int,
        start_price: int,
        start_time: datetime,
        end_time: datetime,
    ) -> Auction:
        auction = Auction(
            product_id=product_id,
            seller_id=seller_id,
            start_price=start_price,
            current_highest_bid=start_price,
            highest_bidder_id=None,
            start_time=start_time,
            end_time=end_time,
            status=AuctionStatus.ACTIVE.value,
            total_bids=0,
        )
        self._db.add(auction)
        self._db.flush()
        return auction

    def get_auction_by_id(self, auction_id: int) -> Auction | None:
        """없으면 None. identity map 캐시가 아닌 DB 최신 행을 읽는다."""
        stmt = (
            select(Auction)
            .where(Auction.id == auction_id)
            .execution_options(populate_existing=True)
        )
        return self._db.execute(stmt).scalar_one_or_none()

    def get_active_auctions(self, now: datetime | None = None) -> list[Auction]:
        """status=active. now가 주어지면 end_time > now 만."""
        stmt = select(Auction).where(Auction.status == AuctionStatus.ACTIVE.value)
        if now is not None:
            stmt = stmt.where(Auction.end_time > now)
        stmt = stmt.order_by(Auction.end_time.asc(), Auction.id.asc())
        return list(self._db.execute(stmt).scalars().all())

    def get_expired_active_auctions(self, now: datetime, limit: int | None = None) -> list[Auction]:
        stmt = (
            select(Auction)
            .where(Auction.status == AuctionStatus.ACTIVE.value, Auction.end_time <= now)
            .order_by(Auction.end_time.asc(), Auction.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self._db.execute(stmt).scalars().all())

    def has_active_auction_for_product(self, product_id: int) -> bool:
        stmt = select(Auction.id).where(
            Auction.product_id == product_id,
            Auction.status == AuctionStatus.ACTIVE.value,
        )
        return self._db.execute(stmt.limit(1)).first() is not None

    def try_update_highest_bid(
        self,
        auction_id: int,
        *,
        bidder_id: int,
        amount: int,
        observed_highest: int,
        now: datetime,
    ) -> bool:
        """조건부 UPDATE (compare-and-swap). 갱신된 행이 없으면 False."""
        stmt = (
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.current_highest_bid == observed_highest,
                Auction.status == AuctionStatus.ACTIVE.value,
                Auction.end_time > now,
            )
            .values(
                current_highest_bid=amount,
                highest_bidder_id=bidder_id,
                total_bids=Auction.total_bids + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    def end_auction(self, auction_id: int, status: AuctionStatus, now: datetime) -> bool:
        """active 인 경우에만 종료 상태로 전환. 이미 종료됐으면 False."""
        stmt = (
            update(Auction)
            .where(Auction.id == auction_id, Auction.status == AuctionStatus.ACTIVE.value)
            .values(status=status.value, ended_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    def try_cancel_auction(self, auction_id: int, now: datetime) -> bool:
        """입찰이 0건인 active 경매만 cancelled로 전환. 그 사이 입찰이 들어왔으면 False."""
        stmt = (
            update(Auction)
            .where(
                Auction.id == auction_id,
                Auction.status == AuctionStatus.ACTIVE.value,
                Auction.total_bids == 0,
            )
            .values(status=AuctionStatus.CANCELLED.value, ended_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    # ── 입찰 ──────────────────────────────────────────────────

    def place_bid(
        self,
        *,
        auction_id: int,
        bidder_id: int,
        bid_amount: int,
        created_at: datetime,
        status: BidStatus = BidStatus.ACTIVE,
    ) -> Bid:
        """검증 없는 INSERT"""
        bid = Bid(
            auction_id=auction_id,
            bidder_id=bidder_id,
            bid_amount=bid_amount,
            status=status.value,
            created_at=created_at,
            updated_at=created_at,
        )
        self._db.add(bid)
        self._db.flush()
        return bid

    def get_bids_by_auction_id(self, auction_id: int) -> list[Bid]:
        """created_at 오름차순 (동시각이면 id 순)"""
        stmt = (
            select(Bid)
            .where(Bid.auction_id == auction_id)
            .order_by(Bid.created_at.asc(), Bid.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(self._db.execute(stmt).scalars().all())

    def get_user_bids(self, bidder_id: int) -> list[Bid]:
        """최신순"""
        stmt = (
            select(Bid)
            .where(Bid.bidder_id == bidder_id)
            .order_by(Bid.created_at.desc(), Bid.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(self._db.execute(stmt).scalars().all())

    def mark_bids_outbid(self, auction_id: int, now: datetime, exclude_bid_id: int | None = None) -> int:
        """해당 경매의 active 입찰을 outbid로 전환. 전환 건수 반환."""
        stmt = update(Bid).where(
            Bid.auction_id == auction_id,
            Bid.status == BidStatus.ACTIVE.value,
        )
        if exclude_bid_id is not None:
            stmt = stmt.where(Bid.id != exclude_bid_id)
        stmt = stmt.values(status=BidStatus.OUTBID.value, updated_at=now).execution_options(
            synchronize_session=False
        )
        return self._db.execute(stmt).rowcount

    def find_leading_bid(self, auction_id: int, bidder_id: int, amount: int) -> Bid | None:
        """highest_bidder_id + current_highest_bid 에 해당하는 active 입찰"""
        stmt = (
            select(Bid)
            .where(
                Bid.auction_id == auction_id,
                Bid.bidder_id == bidder_id,
                Bid.bid_amount == amount,
                Bid.status == BidStatus.ACTIVE.value,
            )
            .order_by(Bid.id.desc())
            .limit(1)
        )
        return self._db.execute(stmt).scalar_one_or_none()

    def mark_bid_won(self, bid_id: int, now: datetime) -> None:
        stmt = (
            update(Bid)
            .where(Bid.id == bid_id)
            .values(status=BidStatus.WON.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self._db.execute(stmt)

    # ── 외부 엔티티 (읽기 전용) ───────────────────────────────

    def get_product_by_id(self, product_id: int) -> Product | None:
        return self._db.get(Product, product_id)

    def get_user_by_id(self, user_id: int) -> User | None:
        return self._db.get(User, user_id)
