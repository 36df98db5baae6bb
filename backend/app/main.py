"""FastAPI 애플리케이션 엔트리포인트

실행: uvicorn app.main:app --reload
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_error_handlers
from app.api.v1.auctions import router as auction_router
from app.api.v1.messages import router as message_router
from app.config import settings
from app.database import Database


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """DB 연결 풀 수명 = 프로세스 수명"""
    database = Database.from_settings()
    database.open()
    app.state.db = database
    try:
        yield
    finally:
        database.close()


app = FastAPI(
    title="Souq 경매·메시지 API",
    version="1.0.0",
    description="아랍어 마켓플레이스 경매 엔진 + 구매자/판매자 메시지 API",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auction_router, prefix="/api/v1")
app.include_router(message_router, prefix="/api/v1")


@app.get("/health")
def health_check():
    """헬스 체크"""
    return {"status": "ok"}
