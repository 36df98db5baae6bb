"""입찰 엔진

=== 동시성 ===

입찰 수락은 try_accept_bid() 한 곳에서만 일어난다.
  1. auctions 행을 조건부 UPDATE (current_highest_bid = 관측값 AND status = active
     AND end_time > now). 다른 입찰이 먼저 커밋했으면 0행 → 경합 패배.
  2. 성공 시 같은 트랜잭션에서 기존 active 입찰 → outbid, 새 입찰 INSERT.

경합에서 진 요청은 롤백 후 최신 상태로 다시 검증한다. 이제 금액이 낮으면
InvalidArgumentError, 그 사이 종료됐으면 AuctionEndedError. 재시도는
BID_MAX_RETRIES 회로 제한.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.config import settings
from app.models.auction import AuctionStatus
from app.models.db.auction import Auction
from app.models.db.base import as_utc
from app.models.db.bid import Bid
from app.services.auction.lifecycle import AuctionLifecycleManager, validate_price
from app.services.auction.repository import AuctionRepository
from app.services.errors import (
    AuctionEndedError,
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class BiddingEngine:
    """입찰 검증 + 원자적 적용"""

    def __init__(
        self,
        db: Session,
        lifecycle: AuctionLifecycleManager,
        *,
        repository: AuctionRepository | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._db = db
        self._lifecycle = lifecycle
        self._repo = repository or lifecycle.repository
        self._max_retries = max(1, max_retries if max_retries is not None else settings.BID_MAX_RETRIES)

    def place_bid(self, auction_id: int, bidder_id: int, bid_amount: int) -> Bid:
        """입찰

        Raises:
            InvalidArgumentError: 양의 정수가 아님, 현재 최고가 이하
            NotFoundError: 경매 없음
            ForbiddenError: 판매자 본인 입찰
            AuctionEndedError: 종료/취소/기한 경과
            ConflictError: 재시도 한도까지 경합 패배
        """
        validate_price(bid_amount, "يرجى إدخال مبلغ صحيح")

        for attempt in range(1, self._max_retries + 1):
            auction = self._repo.get_auction_by_id(auction_id)
            now = self._lifecycle.now()
            self._validate(auction, bidder_id, bid_amount, now)

            bid = self.try_accept_bid(
                auction,
                bidder_id=bidder_id,
                bid_amount=bid_amount,
                observed_highest=auction.current_highest_bid,
                now=now,
            )
            if bid is not None:
                self._db.commit()
                self._db.refresh(bid)
                logger.info(
                    "입찰 수락: auction=%s bidder=%s amount=%d (attempt %d)",
                    auction_id, bidder_id, bid_amount, attempt,
                )
                return bid

            self._db.rollback()
            logger.info(
                "입찰 경합 패배, 재검증: auction=%s bidder=%s amount=%d (attempt %d/%d)",
                auction_id, bidder_id, bid_amount, attempt, self._max_retries,
            )

        raise ConflictError("المزاد مزدحم حالياً، يرجى المحاولة مرة أخرى")

    def _validate(self, auction: Auction | None, bidder_id: int, bid_amount: int, now: datetime) -> None:
        if auction is None:
            raise NotFoundError("المزاد غير موجود")
        if auction.seller_id == bidder_id:
            raise ForbiddenError("لا يمكنك المزايدة على مزادك الخاص")
        if auction.status != AuctionStatus.ACTIVE.value:
            raise AuctionEndedError("المزاد غير نشط")
        if as_utc(auction.end_time) <= now:
            # 만료됐지만 아직 active → 여기서 지연 종료
            self._lifecycle.close_if_eligible(auction, now)
            raise AuctionEndedError("انتهى وقت المزاد")
        if bid_amount <= auction.current_highest_bid:
            raise InvalidArgumentError(
                f"العرض يجب أن يكون أعلى من العرض الحالي ({auction.current_highest_bid:,} د.ع)"
            )

    def try_accept_bid(
        self,
        auction: Auction,
        *,
        bidder_id: int,
        bid_amount: int,
        observed_highest: int,
        now: datetime,
    ) -> Bid | None:
        """CAS 입찰 수락 프리미티브. commit은 호출자 책임.

        Returns:
            새 Bid. 관측값 이후 상태가 바뀌었으면 None (아무것도 쓰지 않음).
        """
        accepted = self._repo.try_update_highest_bid(
            auction.id,
            bidder_id=bidder_id,
            amount=bid_amount,
            observed_highest=observed_highest,
            now=now,
        )
        if not accepted:
            return None
        self._repo.mark_bids_outbid(auction.id, now)
        return self._repo.place_bid(
            auction_id=auction.id,
            bidder_id=bidder_id,
            bid_amount=bid_amount,
            created_at=now,
        )
