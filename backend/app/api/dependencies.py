"""FastAPI 의존성 주입

DB 세션은 lifespan에서 연 Database(app.state.db)에서 요청마다 발급한다.
서비스는 요청 세션에 묶이므로 요청 단위로 조립한다.
.env 없어도 기본값으로 동작 (테스트 환경).
"""

from collections.abc import Generator
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import Database
from app.database import get_db as _get_db
from app.services.auction.bidding import BiddingEngine
from app.services.auction.lifecycle import AuctionLifecycleManager
from app.services.auction.query import AuctionQueryService
from app.services.messaging import MessagingService
from app.services.settlement import SettlementHook, TelegramSettlementNotifier


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """FastAPI Depends용 DB 세션"""
    yield from _get_db(database)


def get_current_user_id(x_user_id: int | None = Header(None)) -> int:
    """호출자 식별. 인증 자체는 외부 게이트웨이 책임이고 여기서는 헤더만 읽는다."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="يرجى تسجيل الدخول أولاً")
    return x_user_id


@lru_cache()
def get_settlement_hooks() -> tuple[SettlementHook, ...]:
    """싱글톤 정산 훅 목록"""
    return (TelegramSettlementNotifier(),)


def get_lifecycle(
    db: Session = Depends(get_db),
    hooks: tuple[SettlementHook, ...] = Depends(get_settlement_hooks),
) -> AuctionLifecycleManager:
    return AuctionLifecycleManager(db, settlement_hooks=hooks)


def get_bidding_engine(
    db: Session = Depends(get_db),
    lifecycle: AuctionLifecycleManager = Depends(get_lifecycle),
) -> BiddingEngine:
    return BiddingEngine(db, lifecycle)


def get_query_service(
    db: Session = Depends(get_db),
    lifecycle: AuctionLifecycleManager = Depends(get_lifecycle),
) -> AuctionQueryService:
    return AuctionQueryService(db, lifecycle)


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    return MessagingService(db)
