"""만료 경매 정리 CLI

end_time이 지난 active 경매를 ended로 전환하고 입찰을 정산한다.
조회/입찰 시 지연 종료와 같은 close_if_eligible()을 쓰므로 동시에 돌아도 안전하다.

사용법:
    PYTHONPATH=backend python scripts/close_expired_auctions.py
    PYTHONPATH=backend python scripts/close_expired_auctions.py --loop 60
    PYTHONPATH=backend python scripts/close_expired_auctions.py --limit 100 --audit

cron 대신 상주 실행:
    PYTHONPATH=backend .venv/bin/python scripts/close_expired_auctions.py --loop 60
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

# PYTHONPATH 자동 설정
backend_dir = str(Path(__file__).resolve().parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from app.config import settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.models.auction import SweepResult  # noqa: E402
from app.services.auction.lifecycle import AuctionLifecycleManager  # noqa: E402
from app.services.auction.query import AuctionQueryService  # noqa: E402
from app.services.settlement import TelegramSettlementNotifier  # noqa: E402

logger = logging.getLogger("close_expired_auctions")


def setup_logging(verbose: bool = False) -> None:
    """로깅 설정"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx 로그 억제
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_result(result: SweepResult) -> None:
    """결과 요약 출력"""
    elapsed = ""
    if result.finished_at and result.started_at:
        dt = (result.finished_at - result.started_at).total_seconds()
        elapsed = f" ({dt:.1f}초)"

    print(f"\n{'='*50}")
    print(f"만료 경매 정리 완료{elapsed}")
    print(f"{'='*50}")
    print(f"  대상       : {result.total_queried}")
    print(f"  종료       : {result.closed}")
    print(f"  스킵(경합) : {result.skipped}")
    print(f"  에러       : {result.errors}")
    print()


def run_once(database: Database, limit: int, audit: bool) -> SweepResult:
    """1회 정리. audit이면 종료된 경매의 비정규화 컬럼을 재검증한다."""
    with database.session_scope() as db:
        lifecycle = AuctionLifecycleManager(db, settlement_hooks=(TelegramSettlementNotifier(),))
        now = lifecycle.now()
        expired = lifecycle.repository.get_expired_active_auctions(now, limit=limit or None)
        expired_ids = [a.id for a in expired]
        result = lifecycle.sweep_expired(now, limit=limit or None)

        if audit and expired_ids:
            query = AuctionQueryService(db, lifecycle)
            for auction_id in expired_ids:
                issues = query.audit(auction_id)
                if issues:
                    print(f"  [불일치] 경매 {auction_id}: {len(issues)}건")
                    for issue in issues:
                        print(f"    - {issue.field}: stored={issue.stored} expected={issue.expected} {issue.message}")
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Souq 만료 경매 정리")
    parser.add_argument(
        "--loop",
        type=float,
        nargs="?",
        const=settings.SWEEP_INTERVAL_SECONDS,
        default=None,
        metavar="SECONDS",
        help="주기 실행 간격(초). 값 생략 시 SWEEP_INTERVAL_SECONDS",
    )
    parser.add_argument("--limit", type=int, default=0, help="1회 최대 처리 건수 (0=전체)")
    parser.add_argument("--audit", action="store_true", help="종료 후 정합성 점검")
    parser.add_argument("-v", "--verbose", action="store_true", help="상세 로깅")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose)

    database = Database.from_settings()
    database.open()
    try:
        if args.loop is None:
            print_result(run_once(database, args.limit, args.audit))
            return

        print(f"주기 실행: {args.loop:.0f}초 간격 (Ctrl+C 종료)\n")
        while True:
            try:
                result = run_once(database, args.limit, args.audit)
                if result.total_queried:
                    print_result(result)
            except Exception as e:
                # 일시적 DB 오류로 상주 프로세스가 죽지 않도록 다음 주기에 재시도
                logger.error("정리 주기 실패: %s", e)
            time.sleep(args.loop)
    except KeyboardInterrupt:
        print("\n중단됨")
    finally:
        database.close()


if __name__ == "__main__":
    main()
