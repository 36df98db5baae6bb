"""비정규화 컬럼 정합성 점검

auctions.current_highest_bid / highest_bidder_id / total_bids 는 bids에서 유도 가능하다.
입찰 이력으로 다시 계산해 저장값과 비교하고, 불일치를 AuditIssue 목록으로 반환한다.
빈 목록이면 정합.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from app.models.auction import AuctionStatus, AuditIssue, BidStatus
from app.models.db.auction import Auction
from app.models.db.bid import Bid


def reconcile_auction(auction: Auction, bids: Sequence[Bid]) -> list[AuditIssue]:
    issues: list[AuditIssue] = []

    leader = max(bids, key=lambda b: (b.bid_amount, -b.id), default=None)
    expected_highest = leader.bid_amount if leader else auction.start_price
    expected_bidder = leader.bidder_id if leader else None

    if auction.current_highest_bid != expected_highest:
        issues.append(AuditIssue(
            field="current_highest_bid",
            stored=auction.current_highest_bid,
            expected=expected_highest,
        ))
    if auction.highest_bidder_id != expected_bidder:
        issues.append(AuditIssue(
            field="highest_bidder_id",
            stored=auction.highest_bidder_id,
            expected=expected_bidder,
        ))
    if auction.total_bids != len(bids):
        issues.append(AuditIssue(
            field="total_bids",
            stored=auction.total_bids,
            expected=len(bids),
        ))
    if auction.current_highest_bid < auction.start_price:
        issues.append(AuditIssue(
            field="current_highest_bid",
            stored=auction.current_highest_bid,
            expected=auction.start_price,
            message="current_highest_bid below start_price",
        ))

    # 입찰가는 id(수락 순서) 기준 strictly increasing
    for prev, cur in zip(bids, list(bids)[1:]):
        if cur.bid_amount <= prev.bid_amount:
            issues.append(AuditIssue(
                field="bid_amount",
                stored=cur.bid_amount,
                expected=None,
                message=f"bid {cur.id} not above previous bid {prev.id}",
            ))

    issues.extend(_check_statuses(auction, bids, leader))
    return issues


def _check_statuses(auction: Auction, bids: Sequence[Bid], leader: Bid | None) -> list[AuditIssue]:
    counts = Counter(b.status for b in bids)
    issues: list[AuditIssue] = []

    if auction.status == AuctionStatus.ACTIVE.value:
        expected = {BidStatus.ACTIVE.value: 1 if leader else 0, BidStatus.WON.value: 0}
    elif auction.status == AuctionStatus.ENDED.value:
        expected = {BidStatus.ACTIVE.value: 0, BidStatus.WON.value: 1 if leader else 0}
    else:
        expected = {BidStatus.ACTIVE.value: 0, BidStatus.WON.value: 0}

    for status, count in expected.items():
        if counts.get(status, 0) != count:
            issues.append(AuditIssue(
                field=f"bids[{status}]",
                stored=counts.get(status, 0),
                expected=count,
            ))

    if leader is not None and auction.status != AuctionStatus.CANCELLED.value:
        leader_status = BidStatus.ACTIVE.value if auction.status == AuctionStatus.ACTIVE.value else BidStatus.WON.value
        if leader.status != leader_status:
            issues.append(AuditIssue(
                field="leader_status",
                stored=leader.status,
                expected=leader_status,
                message=f"bid {leader.id} holds the maximum amount",
            ))
    return issues
