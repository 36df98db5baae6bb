"""경매 도메인 값 객체

DB 모델(SQLAlchemy)은 app.models.db에 별도로 정의한다. 여기는 상태 Enum과 DTO만.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class AuctionStatus(str, Enum):
    """경매 상태. active → ended | cancelled, 종료 상태는 변경 불가"""

    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not AuctionStatus.ACTIVE


class BidStatus(str, Enum):
    """입찰 상태"""

    ACTIVE = "active"  # 현재 최고가
    OUTBID = "outbid"  # 더 높은 입찰에 밀림
    WON = "won"  # 경매 종료 시 낙찰


class ProductStatus(str, Enum):
    """상품 상태 (상품 카탈로그 소유, 여기서는 읽기만)"""

    ACTIVE = "active"
    SOLD = "sold"
    REMOVED = "removed"


class TopBidder(BaseModel):
    """상위 입찰자 순위 1건"""

    rank: int
    bidder_id: int
    amount: int  # 입찰자별 최고 입찰가
    reached_at: datetime  # 해당 금액에 처음 도달한 시각
    bid_id: int


class AuditIssue(BaseModel):
    """비정규화 컬럼과 입찰 이력 불일치 1건"""

    field: str
    stored: int | str | None
    expected: int | str | None
    message: str = ""


class SweepResult(BaseModel):
    """만료 경매 정리 통계"""

    total_queried: int = 0  # 만료 대상 건수
    closed: int = 0  # 종료 처리 성공
    skipped: int = 0  # 다른 프로세스가 먼저 종료 (경합)
    errors: int = 0  # 오류 건수
    started_at: datetime
    finished_at: datetime | None = None
