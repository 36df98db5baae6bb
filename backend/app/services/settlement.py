"""경매 종료 후 정산 훅

경매 코어는 정산(에스크로, 주문 생성, 상품 상태 변경)을 직접 하지 않는다.
종료가 커밋된 뒤 AuctionLifecycleManager가 등록된 SettlementHook을 호출하고,
주문/결제 모듈이 이 프로토콜을 구현해 연결한다.

수수료는 주문 로직과 동일하게 2.5%, 디나르 미만 버림.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Protocol

from pydantic import BaseModel

from app.config import settings
from app.models.db.auction import Auction
from app.models.db.bid import Bid
from app.services import notifier


class SettlementHook(Protocol):
    """경매 종료 콜백. winning_bid는 입찰 없이 종료되면 None."""

    def on_auction_closed(self, auction: Auction, winning_bid: Bid | None) -> None: ...


class SettlementSummary(BaseModel):
    """낙찰 정산 요약"""

    auction_id: int
    seller_id: int
    winner_id: int | None = None
    hammer_price: int | None = None  # 낙찰가
    commission: int = 0
    seller_proceeds: int = 0  # 낙찰가 - 수수료

    @property
    def has_winner(self) -> bool:
        return self.winner_id is not None


def calculate_commission(amount: int, rate: float | None = None) -> int:
    """floor(amount * rate). float 오차를 피하려고 Decimal 사용."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    rate = settings.COMMISSION_RATE if rate is None else rate
    value = Decimal(amount) * Decimal(str(rate))
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def build_settlement_summary(
    auction: Auction,
    winning_bid: Bid | None,
    rate: float | None = None,
) -> SettlementSummary:
    if winning_bid is None:
        return SettlementSummary(auction_id=auction.id, seller_id=auction.seller_id)
    commission = calculate_commission(winning_bid.bid_amount, rate)
    return SettlementSummary(
        auction_id=auction.id,
        seller_id=auction.seller_id,
        winner_id=winning_bid.bidder_id,
        hammer_price=winning_bid.bid_amount,
        commission=commission,
        seller_proceeds=winning_bid.bid_amount - commission,
    )


class TelegramSettlementNotifier:
    """종료 요약을 텔레그램 운영 채널로 전송 (best-effort)"""

    def __init__(self, rate: float | None = None) -> None:
        self._rate = rate

    def on_auction_closed(self, auction: Auction, winning_bid: Bid | None) -> None:
        summary = build_settlement_summary(auction, winning_bid, self._rate)
        product_name = auction.product.name if auction.product is not None else f"#{auction.product_id}"
        message = notifier.format_auction_closed(
            auction_id=auction.id,
            product_name=product_name,
            winner_id=summary.winner_id,
            hammer_price=summary.hammer_price,
            commission=summary.commission,
            total_bids=auction.total_bids,
        )
        notifier.send_telegram(message)
