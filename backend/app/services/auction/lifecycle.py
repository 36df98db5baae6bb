"""경매 생명주기 관리: 생성 / 종료 / 취소 / 만료 정리

=== 상태 전이 ===

  active ──(end_time 경과 or 판매자 종료)──▶ ended
  active ──(판매자 취소, 입찰 없음)──────────▶ cancelled

ended, cancelled 는 종료 상태. 이후 전이 없음.

=== 종료 경로 ===

세 경로 모두 close_if_eligible() 하나를 사용한다.
  1. 조회 시 지연 종료 (AuctionQueryService, BiddingEngine)
  2. 판매자 명시 종료 (end_auction, force=True)
  3. 주기 배치 (sweep_expired, scripts/close_expired_auctions.py)

상태 전환은 `WHERE status='active'` 조건부 UPDATE라서 동시에 여러 경로가
종료를 시도해도 한 번만 성공하고 나머지는 no-op이 된다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import settings
from app.models.auction import AuctionStatus, SweepResult
from app.models.db.auction import Auction
from app.models.db.base import as_utc, utcnow
from app.models.db.bid import Bid
from app.services.auction.repository import AuctionRepository
from app.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from app.services.settlement import SettlementHook

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def parse_duration_hours(value: str | int, allowed: Sequence[int] | None = None) -> int:
    """"24" 또는 24 → 24. 허용 목록 밖이면 InvalidArgumentError."""
    allowed = tuple(settings.AUCTION_DURATION_HOURS if allowed is None else allowed)
    if isinstance(value, bool):
        raise InvalidArgumentError("مدة المزاد غير صالحة")
    if isinstance(value, str):
        value = value.strip()
        # isdigit()은 "²", "٢٤" 같은 유니코드 숫자도 True
        if not value.isascii() or not value.isdigit():
            raise InvalidArgumentError("مدة المزاد غير صالحة")
        value = int(value)
    if not isinstance(value, int) or value not in allowed:
        raise InvalidArgumentError(
            "مدة المزاد يجب أن تكون إحدى القيم: " + "، ".join(str(h) for h in allowed)
        )
    return value


def compute_end_time(start_time: datetime, duration_hours: int) -> datetime:
    return start_time + timedelta(hours=duration_hours)


def validate_price(value: int, message: str) -> int:
    """양의 정수만 허용 (bool 제외)"""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(message)
    return value


class AuctionLifecycleManager:
    """경매 상태 전이 소유자"""

    def __init__(
        self,
        db: Session,
        *,
        repository: AuctionRepository | None = None,
        settlement_hooks: Sequence[SettlementHook] = (),
        clock: Clock = utcnow,
    ) -> None:
        self._db = db
        self._repo = repository or AuctionRepository(db)
        self._hooks = list(settlement_hooks)
        self._clock = clock

    @property
    def repository(self) -> AuctionRepository:
        return self._repo

    def now(self) -> datetime:
        return as_utc(self._clock())

    # ── 생성 ──────────────────────────────────────────────────

    def create_auction(
        self,
        product_id: int,
        seller_id: int,
        start_price: int,
        duration_hours: str | int,
    ) -> Auction:
        """판매자 본인 상품으로 경매 생성

        Raises:
            InvalidArgumentError: start_price <= 0, 허용되지 않은 진행 시간
            NotFoundError: 상품 없음
            ForbiddenError: 호출자가 상품 판매자가 아님
            ConflictError: 같은 상품에 진행 중인 경매가 이미 있음
        """
        validate_price(start_price, "سعر البداية يجب أن يكون رقماً صحيحاً أكبر من صفر")
        hours = parse_duration_hours(duration_hours)

        product = self._repo.get_product_by_id(product_id)
        if product is None:
            raise NotFoundError("المنتج غير موجود")
        if product.seller_id != seller_id:
            raise ForbiddenError("أنت لست بائع هذا المنتج")
        if self._repo.has_active_auction_for_product(product_id):
            raise ConflictError("يوجد مزاد نشط لهذا المنتج بالفعل")

        start_time = self.now()
        auction = self._repo.create_auction(
            product_id=product_id,
            seller_id=seller_id,
            start_price=start_price,
            start_time=start_time,
            end_time=compute_end_time(start_time, hours),
        )
        self._db.commit()
        logger.info(
            "경매 생성: auction=%s product=%s seller=%s start_price=%d duration=%dh",
            auction.id, product_id, seller_id, start_price, hours,
        )
        return auction

    # ── 종료 ──────────────────────────────────────────────────

    def close_if_eligible(
        self,
        auction: Auction,
        now: datetime | None = None,
        *,
        force: bool = False,
    ) -> bool:
        """종료 조건을 만족하면 ended로 전환하고 입찰을 정산한다.

        Args:
            auction: 대상 경매 (호출자가 읽은 스냅샷이어도 됨)
            now: 판정 기준 시각 (기본: clock)
            force: True면 end_time과 무관하게 종료 (판매자 명시 종료)

        Returns:
            이번 호출에서 종료했으면 True. 이미 종료됐거나 아직 기한 전이면 False.
        """
        if auction.status_enum.is_terminal:
            return False
        now = as_utc(now) if now is not None else self.now()
        if not force and auction.end_time > now:
            return False

        if not self._repo.end_auction(auction.id, AuctionStatus.ENDED, now):
            # 다른 요청/배치가 먼저 종료
            self._db.rollback()
            self._db.refresh(auction)
            logger.debug("경매 %s 이미 종료됨 (경합)", auction.id)
            return False

        # 종료 UPDATE 이후 읽으므로 마지막으로 커밋된 입찰까지 반영된 상태
        fresh = self._repo.get_auction_by_id(auction.id)
        winning_bid = self._settle_bids(fresh, now)
        self._db.commit()
        self._db.refresh(fresh)

        logger.info(
            "경매 종료: auction=%s winner=%s price=%d bids=%d forced=%s",
            fresh.id, fresh.highest_bidder_id, fresh.current_highest_bid, fresh.total_bids, force,
        )
        self._run_settlement_hooks(fresh, winning_bid)
        return True

    def _settle_bids(self, auction: Auction, now: datetime) -> Bid | None:
        """최고 입찰 → won, 나머지 active → outbid"""
        winning_bid: Bid | None = None
        if auction.highest_bidder_id is not None and auction.total_bids > 0:
            winning_bid = self._repo.find_leading_bid(
                auction.id, auction.highest_bidder_id, auction.current_highest_bid
            )
            if winning_bid is None:
                logger.error(
                    "경매 %s: 최고 입찰 행을 찾을 수 없음 (bidder=%s amount=%d)",
                    auction.id, auction.highest_bidder_id, auction.current_highest_bid,
                )
        self._repo.mark_bids_outbid(
            auction.id, now, exclude_bid_id=winning_bid.id if winning_bid else None
        )
        if winning_bid is not None:
            self._repo.mark_bid_won(winning_bid.id, now)
            self._db.refresh(winning_bid)
        return winning_bid

    def _run_settlement_hooks(self, auction: Auction, winning_bid: Bid | None) -> None:
        # 종료는 이미 커밋됨. 훅 실패가 종료를 되돌리지 않는다.
        for hook in self._hooks:
            try:
                hook.on_auction_closed(auction, winning_bid)
            except Exception:
                logger.exception(
                    "정산 훅 실패: auction=%s hook=%s", auction.id, type(hook).__name__
                )

    def end_auction(self, auction_id: int, caller_id: int) -> Auction:
        """판매자 명시 종료. 이미 종료된 경매면 그대로 반환 (멱등)."""
        auction = self._repo.get_auction_by_id(auction_id)
        if auction is None:
            raise NotFoundError("المزاد غير موجود")
        if auction.seller_id != caller_id:
            raise ForbiddenError("أنت لست بائع هذا المزاد")
        if auction.status_enum.is_terminal:
            logger.info("경매 %s 이미 %s 상태, 종료 요청 무시", auction.id, auction.status)
            return auction
        self.close_if_eligible(auction, force=True)
        self._db.refresh(auction)
        return auction

    @staticmethod
    def _check_cancellable(auction: Auction) -> None:
        """ended 이거나 입찰이 있으면 ConflictError. cancelled 는 통과 (멱등)."""
        if auction.status_enum is AuctionStatus.ENDED:
            raise ConflictError("لا يمكن إلغاء مزاد منتهي")
        if auction.total_bids > 0:
            raise ConflictError("لا يمكن إلغاء مزاد يحتوي على عروض")

    def cancel_auction(self, auction_id: int, caller_id: int) -> Auction:
        """입찰이 없는 경매만 판매자가 취소할 수 있다."""
        auction = self._repo.get_auction_by_id(auction_id)
        if auction is None:
            raise NotFoundError("المزاد غير موجود")
        if auction.seller_id != caller_id:
            raise ForbiddenError("أنت لست بائع هذا المزاد")
        self._check_cancellable(auction)
        if auction.status_enum is AuctionStatus.CANCELLED:
            return auction

        # 읽은 뒤 들어온 입찰이 있으면 UPDATE가 0건 (total_bids == 0 조건)
        if not self._repo.try_cancel_auction(auction.id, self.now()):
            self._db.rollback()
            self._db.refresh(auction)
            logger.info(
                "경매 %s 취소 경합: status=%s total_bids=%d",
                auction.id, auction.status, auction.total_bids,
            )
            self._check_cancellable(auction)
            if auction.status_enum is AuctionStatus.CANCELLED:
                return auction
            raise ConflictError("تغيرت حالة المزاد، يرجى المحاولة مرة أخرى")
        self._db.commit()
        self._db.refresh(auction)
        logger.info("경매 취소: auction=%s seller=%s", auction.id, caller_id)
        return auction

    # ── 만료 정리 배치 ─────────────────────────────────────────

    def sweep_expired(self, now: datetime | None = None, limit: int | None = None) -> SweepResult:
        """end_time 지난 active 경매 일괄 종료 (경매별 commit, fail-open)"""
        now = as_utc(now) if now is not None else self.now()
        result = SweepResult(started_at=utcnow())

        expired = self._repo.get_expired_active_auctions(now, limit=limit)
        result.total_queried = len(expired)
        logger.info("만료 경매 정리 시작: %d건 (기준 %s)", result.total_queried, now.isoformat())

        for auction in expired:
            auction_id = auction.id
            try:
                if self.close_if_eligible(auction, now):
                    result.closed += 1
                else:
                    result.skipped += 1
            except Exception as e:
                logger.error("만료 경매 종료 실패 [%s]: %s", auction_id, e)
                result.errors += 1
                self._db.rollback()

        result.finished_at = utcnow()
        logger.info(
            "만료 경매 정리 완료: closed=%d skipped=%d errors=%d",
            result.closed, result.skipped, result.errors,
        )
        return result
