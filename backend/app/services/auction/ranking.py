"""상위 입찰자 순위

입찰자별 최고 입찰가 기준 내림차순. 동액이면 그 금액에 먼저 도달한 입찰자가 위.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from app.models.auction import TopBidder
from app.models.db.base import as_utc


class BidLike(Protocol):
    id: int
    bidder_id: int
    bid_amount: int
    created_at: datetime


def rank_top_bidders(bids: Iterable[BidLike], limit: int = 3) -> list[TopBidder]:
    """입찰 이력 → 상위 limit 명

    각 행은 독립 입찰로 취급한다 (같은 입찰자가 여러 번 올리면 최고액만 남음).
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")

    best: dict[int, BidLike] = {}
    for bid in bids:
        current = best.get(bid.bidder_id)
        if current is None or _reaches_first(bid, current):
            best[bid.bidder_id] = bid

    ordered = sorted(
        best.values(),
        key=lambda b: (-b.bid_amount, as_utc(b.created_at), b.id),
    )
    return [
        TopBidder(
            rank=i,
            bidder_id=b.bidder_id,
            amount=b.bid_amount,
            reached_at=as_utc(b.created_at),
            bid_id=b.id,
        )
        for i, b in enumerate(ordered[:limit], start=1)
    ]


def _reaches_first(candidate: BidLike, current: BidLike) -> bool:
    """candidate가 입찰자의 대표 입찰(최고액, 동액이면 가장 이른 것)이어야 하는지"""
    if candidate.bid_amount != current.bid_amount:
        return candidate.bid_amount > current.bid_amount
    return (as_utc(candidate.created_at), candidate.id) < (as_utc(current.created_at), current.id)
