"""조회용 뷰 모델

ORM 객체를 화면(API 응답)에 맞게 투영한 Pydantic 모델.
auctions + products + users + bids 조인 결과를 직렬화한다.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.auction import TopBidder


class UserSummary(BaseModel):
    """사용자 요약 (판매자/대화 상대)"""

    id: int
    name: str | None
    seller_name: str | None
    display_name: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user) -> UserSummary:
        return cls(
            id=user.id,
            name=user.name,
            seller_name=user.seller_name,
            display_name=user.display_name,
        )


class ProductSummary(BaseModel):
    """상품 요약"""

    id: int
    seller_id: int
    name: str
    description: str | None
    price: int  # IQD
    condition: str
    status: str

    model_config = {"from_attributes": True}


class AuctionSummary(BaseModel):
    """경매 기본 필드 (auctions 테이블 1행)"""

    id: int
    product_id: int
    seller_id: int
    start_price: int
    current_highest_bid: int
    highest_bidder_id: int | None
    start_time: datetime
    end_time: datetime
    status: str
    total_bids: int
    ended_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActiveAuctionItem(AuctionSummary):
    """활성 경매 목록 1건"""

    product: ProductSummary | None = None


class BidHistoryItem(BaseModel):
    """입찰 이력 1건"""

    bid_id: int
    bidder_id: int
    amount: int
    time: datetime
    status: str


class AuctionDetail(AuctionSummary):
    """경매 상세: 상품, 판매자, 입찰 이력, 상위 입찰자 포함"""

    product: ProductSummary | None
    seller: UserSummary | None
    bids: int  # 입찰 건수
    bid_history: list[BidHistoryItem] = Field(default_factory=list)
    top_bidders: list[TopBidder] = Field(default_factory=list)


class UserBidItem(BaseModel):
    """내 입찰 1건"""

    id: int
    auction_id: int
    bid_amount: int
    status: str
    created_at: datetime

    # 경매 현재 상태
    auction_status: str
    current_highest_bid: int
    end_time: datetime
    is_highest: bool
