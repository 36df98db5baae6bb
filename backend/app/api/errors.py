"""도메인 예외 → HTTP 응답 변환"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    MarketplaceError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[MarketplaceError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidArgumentError: 400,
    ConflictError: 409,
}


def status_for(exc: MarketplaceError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("처리되지 않은 도메인 오류 [%s %s]: %s", request.method, request.url.path, exc)
    else:
        logger.info("요청 거절 [%s %s] %d %s", request.method, request.url.path, status_code, exc.code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
