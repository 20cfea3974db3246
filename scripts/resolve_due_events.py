"""
마감된 이벤트 일괄 해결 스크립트

정답은 외부에서 결정되어 JSON 파일로 전달된다.

    python scripts/resolve_due_events.py answers.json

answers.json 형식:
    {"12": {"correct_answer": "UP", "final_price": "101.25"}, "13": {"correct_answer": "Team A"}}

파일에 없는 이벤트는 아직 결과가 없는 것으로 보고 건너뛴다.
"""

import asyncio
import json
import os
import sys
from decimal import Decimal

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from predictapi.config import settings
from predictapi.database.session import get_db_context
from predictapi.logging_config import setup_logging
from predictapi.services.broadcast_service import BroadcastService
from predictapi.services.resolution_service import ResolutionService
from predictapi.services.settlement_service import SettlementService


def load_answers(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return {int(event_id): value for event_id, value in raw.items()}


def make_resolver(answers: dict):
    def _resolve(event):
        answer = answers.get(event.id)
        if not answer:
            return None
        final_price = answer.get("final_price")
        return (
            answer["correct_answer"],
            Decimal(str(final_price)) if final_price is not None else None,
        )

    return _resolve


async def run(answers: dict):
    broadcaster = BroadcastService(settings)
    try:
        with get_db_context() as db:
            settlement_service = SettlementService(
                db, settings=settings, broadcaster=broadcaster
            )
            service = ResolutionService(db, settlement_service, settings=settings)
            return await service.run_due_resolutions(make_resolver(answers))
    finally:
        await broadcaster.close()


def main():
    """Main execution function."""
    if len(sys.argv) != 2:
        print("usage: python scripts/resolve_due_events.py <answers.json>")
        sys.exit(2)

    setup_logging(settings.LOG_LEVEL)
    answers = load_answers(sys.argv[1])

    print("=" * 70)
    print(f"Resolving due events ({len(answers)} answer(s) provided)")
    print("=" * 70)

    result = asyncio.run(run(answers))

    print(f"  attempted: {result.events_attempted}")
    print(f"  resolved:  {result.events_resolved}")
    print(f"  skipped:   {result.events_skipped}")
    print(f"  failed:    {result.events_failed}")
    if result.last_error:
        print(f"  last error: {result.last_error}")
    print("=" * 70)

    if result.events_failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
