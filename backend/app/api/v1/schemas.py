"""v1 요청/응답 스키마

범위 검증(양수, 허용 진행 시간)은 서비스 계층이 InvalidArgumentError로 처리한다.
여기서는 타입만 강제한다.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreateAuctionRequest(BaseModel):
    """경매 생성"""

    product_id: int
    start_price: int  # IQD
    duration_hours: str | int = Field(description='"12" | "24" | "36" | "48" | "72"')


class CreateAuctionResponse(BaseModel):
    auction_id: int


class PlaceBidRequest(BaseModel):
    """입찰"""

    bid_amount: int  # IQD


class PlaceBidResponse(BaseModel):
    success: bool = True
    bid_id: int
    current_highest_bid: int


class SuccessResponse(BaseModel):
    success: bool = True


class ConversationRequest(BaseModel):
    """대화 시작 (호출자 = 구매자)"""

    seller_id: int
    product_id: int | None = None


class SendMessageRequest(BaseModel):
    content: str
    receiver_id: int | None = None


class MarkAsReadResponse(BaseModel):
    success: bool = True
    updated: int
