"""경매 API v1

생성 / 조회 / 입찰 / 종료. 도메인 예외는 app.api.errors 핸들러가 HTTP 상태로 변환한다.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import (
    get_bidding_engine,
    get_current_user_id,
    get_lifecycle,
    get_query_service,
)
from app.api.v1.schemas import (
    CreateAuctionRequest,
    CreateAuctionResponse,
    PlaceBidRequest,
    PlaceBidResponse,
    SuccessResponse,
)
from app.models.auction import TopBidder
from app.models.views import ActiveAuctionItem, AuctionDetail, UserBidItem
from app.services.auction.bidding import BiddingEngine
from app.services.auction.lifecycle import AuctionLifecycleManager
from app.services.auction.query import AuctionQueryService

router = APIRouter(tags=["v1-auctions"])


@router.post("/auctions", response_model=CreateAuctionResponse)
def create_auction(
    body: CreateAuctionRequest,
    user_id: int = Depends(get_current_user_id),
    lifecycle: AuctionLifecycleManager = Depends(get_lifecycle),
) -> CreateAuctionResponse:
    """경매 생성 (호출자 = 상품 판매자)"""
    auction = lifecycle.create_auction(
        product_id=body.product_id,
        seller_id=user_id,
        start_price=body.start_price,
        duration_hours=body.duration_hours,
    )
    return CreateAuctionResponse(auction_id=auction.id)


@router.get("/auctions/active", response_model=list[ActiveAuctionItem])
def get_active_auctions(
    query: AuctionQueryService = Depends(get_query_service),
) -> list[ActiveAuctionItem]:
    """진행 중 경매 목록

    /auctions/{auction_id} 보다 먼저 등록해야 한다.
    """
    return query.get_active_auctions()


@router.get("/auctions/my-bids", response_model=list[UserBidItem])
def get_user_bids(
    user_id: int = Depends(get_current_user_id),
    query: AuctionQueryService = Depends(get_query_service),
) -> list[UserBidItem]:
    """내 입찰 목록 (최신순)"""
    return query.get_user_bids(user_id)


@router.get("/auctions/{auction_id}", response_model=AuctionDetail | None)
def get_auction(
    auction_id: int,
    query: AuctionQueryService = Depends(get_query_service),
) -> AuctionDetail | None:
    """경매 상세. 없으면 404가 아니라 null."""
    return query.get_auction_detail(auction_id)


@router.get("/auctions/{auction_id}/top-bidders", response_model=list[TopBidder])
def get_top_bidders(
    auction_id: int,
    limit: int = Query(3, ge=0, le=100),
    query: AuctionQueryService = Depends(get_query_service),
) -> list[TopBidder]:
    """입찰자별 최고가 기준 상위 N명"""
    return query.get_top_bidders(auction_id, limit)


@router.post("/auctions/{auction_id}/bids", response_model=PlaceBidResponse)
def place_bid(
    auction_id: int,
    body: PlaceBidRequest,
    user_id: int = Depends(get_current_user_id),
    engine: BiddingEngine = Depends(get_bidding_engine),
) -> PlaceBidResponse:
    """입찰 (판매자 본인 불가)"""
    bid = engine.place_bid(auction_id, user_id, body.bid_amount)
    return PlaceBidResponse(bid_id=bid.id, current_highest_bid=bid.bid_amount)


@router.post("/auctions/{auction_id}/end", response_model=SuccessResponse)
def end_auction(
    auction_id: int,
    user_id: int = Depends(get_current_user_id),
    lifecycle: AuctionLifecycleManager = Depends(get_lifecycle),
) -> SuccessResponse:
    """판매자 조기 종료 (이미 종료된 경매는 no-op)"""
    lifecycle.end_auction(auction_id, user_id)
    return SuccessResponse()


@router.post("/auctions/{auction_id}/cancel", response_model=SuccessResponse)
def cancel_auction(
    auction_id: int,
    user_id: int = Depends(get_current_user_id),
    lifecycle: AuctionLifecycleManager = Depends(get_lifecycle),
) -> SuccessResponse:
    """판매자 취소 (입찰 없는 경매만)"""
    lifecycle.cancel_auction(auction_id, user_id)
    return SuccessResponse()
