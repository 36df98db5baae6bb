"""공용 DB 테스트 픽스처

SQLite in-memory로 ORM/서비스 테스트. PostgreSQL 불필요.
StaticPool: TestClient가 sync 엔드포인트를 워커 스레드에서 실행해도 같은 DB를 보도록.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.db.base import Base
from app.models.db.marketplace import Product, User
from app.services.auction.bidding import BiddingEngine
from app.services.auction.lifecycle import AuctionLifecycleManager
from app.services.auction.query import AuctionQueryService

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """테스트용 시계. advance()로 시간 경과를 흉내낸다."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite에서 FK 제약 활성화
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(sqlite_engine) -> Session:
    """SQLite in-memory DB 세션 (테스트당 새 DB)"""
    session = sessionmaker(bind=sqlite_engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── 시드 데이터 ───────────────────────────────────────────────


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(**overrides) -> User:
        counter["n"] += 1
        defaults = {
            "name": f"مستخدم {counter['n']}",
            "username": f"user{counter['n']}",
            "user_type": "buyer",
        }
        defaults.update(overrides)
        user = User(**defaults)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_product(db_session):
    def _make(seller: User, **overrides) -> Product:
        defaults = {
            "seller_id": seller.id,
            "name": "آيفون 15 برو",
            "description": "مستعمل بحالة ممتازة",
            "price": 1_200_000,
            "condition": "used",
        }
        defaults.update(overrides)
        product = Product(**defaults)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def seller(make_user) -> User:
    return make_user(seller_name="متجر بغداد", user_type="seller")


@pytest.fixture
def bidders(make_user) -> list[User]:
    return [make_user() for _ in range(5)]


@pytest.fixture
def product(make_product, seller) -> Product:
    return make_product(seller)


# ── 서비스 ────────────────────────────────────────────────────


@pytest.fixture
def lifecycle(db_session, clock) -> AuctionLifecycleManager:
    return AuctionLifecycleManager(db_session, clock=clock)


@pytest.fixture
def bidding(db_session, lifecycle) -> BiddingEngine:
    return BiddingEngine(db_session, lifecycle)


@pytest.fixture
def query(db_session, lifecycle) -> AuctionQueryService:
    return AuctionQueryService(db_session, lifecycle)


@pytest.fixture
def auction(lifecycle, seller, product):
    """시작가 100,000 / 24시간 경매"""
    return lifecycle.create_auction(product.id, seller.id, 100_000, "24")
