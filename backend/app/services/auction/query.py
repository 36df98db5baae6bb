"""경매 조회 계층

상세/목록/내 입찰 뷰 모델 조립. 조회 시점에 end_time이 지난 active 경매는
AuctionLifecycleManager.close_if_eligible()로 지연 종료한 뒤 반환한다.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models.auction import AuditIssue, TopBidder
from app.models.db.auction import Auction
from app.models.db.marketplace import Product, User
from app.models.views import (
    ActiveAuctionItem,
    AuctionDetail,
    AuctionSummary,
    BidHistoryItem,
    ProductSummary,
    UserBidItem,
    UserSummary,
)
from app.services.auction.audit import reconcile_auction
from app.services.auction.lifecycle import AuctionLifecycleManager
from app.services.auction.ranking import rank_top_bidders
from app.services.auction.repository import AuctionRepository
from app.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def _user_summary(user: User | None) -> UserSummary | None:
    if user is None:
        return None
    return UserSummary.from_user(user)


def _product_summary(product: Product | None) -> ProductSummary | None:
    if product is None:
        return None
    return ProductSummary.model_validate(product)


class AuctionQueryService:
    """조회 전용 투영"""

    def __init__(
        self,
        db: Session,
        lifecycle: AuctionLifecycleManager,
        *,
        repository: AuctionRepository | None = None,
    ) -> None:
        self._db = db
        self._lifecycle = lifecycle
        self._repo = repository or lifecycle.repository

    def _load(self, auction_id: int) -> Auction | None:
        auction = self._repo.get_auction_by_id(auction_id)
        if auction is not None and self._lifecycle.close_if_eligible(auction):
            auction = self._repo.get_auction_by_id(auction_id)
        return auction

    def get_auction_detail(self, auction_id: int, top_n: int | None = None) -> AuctionDetail | None:
        """경매 상세. 없으면 None (예외 아님. 화면이 빈 상태를 따로 렌더링)."""
        auction = self._load(auction_id)
        if auction is None:
            return None

        bids = self._repo.get_bids_by_auction_id(auction.id)
        product = self._repo.get_product_by_id(auction.product_id)
        seller = self._repo.get_user_by_id(auction.seller_id)
        limit = settings.TOP_BIDDERS_LIMIT if top_n is None else top_n

        return AuctionDetail(
            **AuctionSummary.model_validate(auction).model_dump(),
            product=_product_summary(product),
            seller=_user_summary(seller),
            bids=len(bids),
            bid_history=[
                BidHistoryItem(
                    bid_id=b.id,
                    bidder_id=b.bidder_id,
                    amount=b.bid_amount,
                    time=b.created_at,
                    status=b.status,
                )
                for b in bids
            ],
            top_bidders=rank_top_bidders(bids, limit),
        )

    def get_top_bidders(self, auction_id: int, limit: int) -> list[TopBidder]:
        auction = self._load(auction_id)
        if auction is None:
            raise NotFoundError("المزاد غير موجود")
        return rank_top_bidders(self._repo.get_bids_by_auction_id(auction_id), limit)

    def get_active_auctions(self) -> list[ActiveAuctionItem]:
        """진행 중 경매 (기본: end_time 지난 건 제외), 마감 임박순"""
        now = self._lifecycle.now() if settings.AUCTION_HIDE_EXPIRED else None
        auctions = self._repo.get_active_auctions(now)
        return [
            ActiveAuctionItem(
                **AuctionSummary.model_validate(a).model_dump(),
                product=_product_summary(a.product),
            )
            for a in auctions
        ]

    def get_user_bids(self, bidder_id: int) -> list[UserBidItem]:
        bids = self._repo.get_user_bids(bidder_id)
        closed = False
        for auction_id in dict.fromkeys(b.auction_id for b in bids):
            closed |= self._lifecycle.close_if_eligible(self._repo.get_auction_by_id(auction_id))
        if closed:
            # 종료 처리로 입찰 status(won/outbid)가 바뀌었으니 다시 읽는다
            bids = self._repo.get_user_bids(bidder_id)

        items: list[UserBidItem] = []
        for bid in bids:
            auction = bid.auction
            items.append(
                UserBidItem(
                    id=bid.id,
                    auction_id=bid.auction_id,
                    bid_amount=bid.bid_amount,
                    status=bid.status,
                    created_at=bid.created_at,
                    auction_status=auction.status,
                    current_highest_bid=auction.current_highest_bid,
                    end_time=auction.end_time,
                    is_highest=(
                        auction.highest_bidder_id == bidder_id
                        and auction.current_highest_bid == bid.bid_amount
                    ),
                )
            )
        return items

    def audit(self, auction_id: int) -> list[AuditIssue]:
        """비정규화 컬럼 재계산 비교"""
        auction = self._repo.get_auction_by_id(auction_id)
        if auction is None:
            raise NotFoundError("المزاد غير موجود")
        issues = reconcile_auction(auction, self._repo.get_bids_by_auction_id(auction_id))
        if issues:
            logger.warning("경매 %s 정합성 불일치 %d건: %s", auction_id, len(issues), issues)
        return issues
