"""운영 채널 텔레그램 알림

경매 종료 시 낙찰 요약(낙찰가, 수수료)을 운영 채팅으로 보낸다.
Bot API를 httpx로 직접 호출. 실패해도 호출자에게 예외를 올리지 않는다.

환경변수:
  TELEGRAM_BOT_TOKEN: BotFather 토큰
  TELEGRAM_CHAT_ID: 기본 수신 채팅 ID (운영 그룹)
"""

from __future__ import annotations

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
TELEGRAM_TIMEOUT = 10.0
DIVIDER = "━━━━━━━━━━━━━━━━━━"


def _bot_url(token: str, method: str) -> str:
    return f"{TELEGRAM_API}/bot{token}/{method}"


def send_telegram(message: str, *, chat_id: str | None = None) -> bool:
    """HTML 메시지 전송 (best-effort)

    Returns:
        전송 성공 여부. 토큰/채팅ID가 없으면 시도하지 않고 False.
    """
    token = settings.TELEGRAM_BOT_TOKEN
    target = chat_id or settings.TELEGRAM_CHAT_ID
    if not (token and target):
        logger.debug("텔레그램 미설정, 알림 생략")
        return False

    try:
        resp = httpx.post(
            _bot_url(token, "sendMessage"),
            json={
                "chat_id": target,
                "text": message,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
            timeout=TELEGRAM_TIMEOUT,
        )
    except httpx.HTTPError as e:
        logger.warning("텔레그램 전송 오류 (chat=%s): %s", target, e)
        return False

    if resp.status_code != 200:
        logger.warning("텔레그램 응답 %d: %s", resp.status_code, resp.text[:200])
        return False
    logger.info("텔레그램 알림 전송 (chat=%s)", target)
    return True


def format_iqd(amount: int) -> str:
    """150000 → '150,000 د.ع'"""
    return f"{amount:,} د.ع"


def format_auction_closed(
    *,
    auction_id: int,
    product_name: str,
    winner_id: int | None,
    hammer_price: int | None,
    commission: int,
    total_bids: int,
) -> str:
    """경매 종료 요약 (운영자용, 아랍어)"""
    lines = [
        f"🔨 <b>انتهى المزاد #{auction_id}</b>",
        f"📦 {product_name}",
        DIVIDER,
        f"📌 عدد العروض: {total_bids}",
    ]
    if winner_id is None or hammer_price is None:
        lines.append("⚠️ انتهى المزاد بدون عروض")
    else:
        lines += [
            f"🏆 الفائز: #{winner_id}",
            f"💰 السعر النهائي: {format_iqd(hammer_price)}",
            f"🧾 العمولة: {format_iqd(commission)}",
            f"💵 صافي البائع: {format_iqd(hammer_price - commission)}",
        ]
    lines.append(DIVIDER)
    return "\n".join(lines)
