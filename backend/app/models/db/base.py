"""ORM 공통 베이스

DeclarativeBase + 공용 Mixin 정의.
SQLite 테스트 호환을 위해 timezone-aware UTC datetime 타입 포함.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive datetime은 UTC로 간주하고, aware datetime은 UTC로 변환"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """PostgreSQL은 timestamptz, SQLite는 tz 정보 없이 저장되므로 읽을 때 UTC 부착"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)


class Base(DeclarativeBase):
    """모든 ORM 모델의 베이스 클래스"""

    type_annotation_map = {
        datetime: UTCDateTime,
    }


class TimestampMixin:
    """created_at / updated_at 자동 관리 Mixin"""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class PrimaryKeyMixin:
    """정수 surrogate PK Mixin"""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
