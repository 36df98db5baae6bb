"""데이터베이스 세션 관리

Sync 전용 (psycopg2). 엔진은 모듈 import 시점에 만들지 않는다.
프로세스 엔트리포인트(FastAPI lifespan, 배치 스크립트)가 Database를 생성하고
open()/close() 수명을 관리한 뒤 서비스에 세션을 주입한다.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)


class DatabaseNotOpenError(RuntimeError):
    """open() 이전에 세션을 요청했을 때 발생"""


class Database:
    """엔진 + 세션 팩토리 소유자"""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> None:
        self._url = url
        self._echo = echo
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @classmethod
    def from_settings(cls) -> Database:
        return cls(
            settings.DATABASE_URL,
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseNotOpenError("Database.open()이 호출되지 않았습니다")
        return self._engine

    def open(self) -> None:
        """엔진 생성. 이미 열려 있으면 무시."""
        if self._engine is not None:
            return
        kwargs: dict = {"echo": self._echo, "pool_pre_ping": True}
        # SQLite 기본 풀은 pool_size/max_overflow를 받지 않는다
        if not self._url.startswith("sqlite"):
            kwargs["pool_size"] = self._pool_size
            kwargs["max_overflow"] = self._max_overflow
        self._engine = create_engine(self._url, **kwargs)
        self._session_factory = sessionmaker(bind=self._engine, autocommit=False, autoflush=False)
        logger.info("DB 연결 풀 생성: %s", self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """커넥션 풀 정리"""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("DB 연결 풀 종료")

    def create_all(self) -> None:
        """로컬/테스트용 스키마 생성. 운영은 Alembic 사용."""
        from app.models.db import Base

        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        if self._session_factory is None:
            raise DatabaseNotOpenError("Database.open()이 호출되지 않았습니다")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """스크립트용 세션 컨텍스트. 예외 시 롤백."""
        db = self.session()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def get_db(database: Database) -> Generator[Session, None, None]:
    """요청 단위 DB 세션"""
    db = database.session()
    try:
        yield db
    finally:
        db.close()
