"""
Resolution Service - 마감된 이벤트를 찾아 정산을 실행하는 스케줄러 경계

정답 결정(가격 구간 비교, 경기 결과 판정 등)은 외부에서 주입되는
outcome_resolver 가 담당하고, 이 서비스는 정산 호출/재시도/실행 기록만 다룬다.
실행 기록은 resolution_runs 테이블에 남기므로 여러 인스턴스에서 동일하게 조회된다.
"""

import asyncio
import inspect
import logging
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from predictapi.config import Settings, settings as default_settings
from predictapi.core.exceptions import AlreadyResolvedError, NoBetsError
from predictapi.repositories.event_repository import EventRepository
from predictapi.repositories.resolution_repository import ResolutionRunRepository
from predictapi.schemas.event import EventResponse
from predictapi.schemas.settlement import (
    EventResolutionOutcome,
    ResolutionRunResponse,
    SettlementResult,
)
from predictapi.services.settlement_service import SettlementService
from predictapi.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

ResolvedOutcome = Optional[Tuple[str, Optional[Decimal]]]
OutcomeResolver = Callable[
    [EventResponse], Union[ResolvedOutcome, Awaitable[ResolvedOutcome]]
]


class ResolutionService:
    """이벤트 자동/수동 해결 서비스"""

    TRIGGER_SCHEDULER = "scheduler"
    TRIGGER_ADMIN = "admin"

    def __init__(
        self,
        db: Session,
        settlement_service: SettlementService,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settlement_service = settlement_service
        self.settings = settings or default_settings
        self.event_repo = EventRepository(db)
        self.run_repo = ResolutionRunRepository(db)

    def get_due_events(self, now: Optional[datetime] = None) -> List[EventResponse]:
        """마감 시각이 지난 미해결(중단되지 않은) 이벤트 목록"""
        now = ensure_utc(now) if now else utc_now()
        events = []
        for event_id in self.event_repo.get_due_event_ids(now):
            event = self.event_repo.get_by_id(event_id)
            if event is not None:
                events.append(event)
        return events

    async def _settle_with_retry(
        self,
        event_id: int,
        winning_outcome: str,
        final_price: Optional[Decimal],
        resolved_by: str,
    ) -> Tuple[str, SettlementResult]:
        """
        정산 실행. 일시적 DB 오류(OperationalError)는 지수 백오프로 재시도하고
        참가자가 없으면 지급 없이 종료 처리한다.
        """
        attempts = max(1, self.settings.SETTLEMENT_RETRY_COUNT)
        backoff = self.settings.SETTLEMENT_RETRY_BACKOFF_SECONDS

        for attempt in range(1, attempts + 1):
            try:
                try:
                    result = self.settlement_service.settle_event(
                        event_id,
                        winning_outcome,
                        final_price=final_price,
                        resolved_by=resolved_by,
                    )
                    status = "resolved"
                except NoBetsError:
                    logger.info(f"Event {event_id} has no participants, closing it")
                    result = self.settlement_service.close_without_bets(
                        event_id,
                        winning_outcome,
                        final_price=final_price,
                        resolved_by=resolved_by,
                    )
                    status = "closed_no_bets"
                break
            except OperationalError as e:
                if attempt >= attempts:
                    logger.error(
                        f"Settlement of event {event_id} failed after {attempt} attempts: {e}"
                    )
                    raise
                delay = backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"Transient error settling event {event_id} "
                    f"(attempt {attempt}/{attempts}), retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)

        await self.settlement_service.broadcast_resolution(result)
        return status, result

    async def resolve(
        self,
        event_id: int,
        winning_outcome: str,
        final_price: Optional[Decimal] = None,
        resolved_by: str = TRIGGER_SCHEDULER,
    ) -> EventResolutionOutcome:
        """
        이벤트 1건 해결

        AlreadyResolved 는 중복 트리거로 보고 skipped 로 반환한다.
        그 외 오류는 호출자에게 전파된다.
        """
        try:
            status, result = await self._settle_with_retry(
                event_id, winning_outcome, final_price, resolved_by
            )
        except AlreadyResolvedError:
            logger.info(f"Event {event_id} already resolved, skipping")
            return EventResolutionOutcome(event_id=event_id, status="skipped")

        return EventResolutionOutcome(event_id=event_id, status=status, result=result)

    async def resolve_manually(
        self,
        event_id: int,
        winning_outcome: str,
        final_price: Optional[Decimal] = None,
        admin_id: Optional[int] = None,
    ) -> SettlementResult:
        """관리자 수동 해결. 오류(AlreadyResolved 포함)를 그대로 전파한다"""
        run = self.run_repo.start_run(self.TRIGGER_ADMIN, utc_now())
        run.events_attempted = 1
        self.db.commit()

        resolved_by = f"admin:{admin_id}" if admin_id is not None else self.TRIGGER_ADMIN
        try:
            _, result = await self._settle_with_retry(
                event_id, winning_outcome, final_price, resolved_by
            )
        except AlreadyResolvedError:
            run.events_skipped = 1
            raise
        except Exception as e:
            run.events_failed = 1
            run.last_error = f"event {event_id}: {e}"
            raise
        else:
            run.events_resolved = 1
        finally:
            run.finished_at = utc_now()
            self.db.commit()

        return result

    async def run_due_resolutions(
        self,
        outcome_resolver: OutcomeResolver,
        now: Optional[datetime] = None,
    ) -> ResolutionRunResponse:
        """
        마감된 이벤트 일괄 해결

        Args:
            outcome_resolver: 이벤트를 받아 (정답, 최종가격) 또는 None 을 반환.
                None 이면 아직 결과를 알 수 없는 것으로 보고 건너뛴다.
            now: 기준 시각 (기본값: 현재 UTC)

        Returns:
            ResolutionRunResponse: 저장된 실행 기록
        """
        now = ensure_utc(now) if now else utc_now()
        due_events = self.get_due_events(now)

        run = self.run_repo.start_run(self.TRIGGER_SCHEDULER, now)
        run.events_attempted = len(due_events)
        self.db.commit()

        resolved = skipped = failed = 0
        last_error = None

        for event in due_events:
            try:
                decided = outcome_resolver(event)
                if inspect.isawaitable(decided):
                    decided = await decided
                if decided is None:
                    skipped += 1
                    logger.info(f"No outcome available yet for event {event.id}")
                    continue

                winning_outcome, final_price = decided
                outcome = await self.resolve(
                    event.id,
                    winning_outcome,
                    final_price=final_price,
                    resolved_by=self.TRIGGER_SCHEDULER,
                )
                if outcome.status == "skipped":
                    skipped += 1
                else:
                    resolved += 1
            except Exception as e:
                failed += 1
                last_error = f"event {event.id}: {e}"
                logger.error(f"Failed to resolve event {event.id}: {e}", exc_info=True)

        run.events_resolved = resolved
        run.events_skipped = skipped
        run.events_failed = failed
        run.last_error = last_error
        run.finished_at = utc_now()
        self.db.commit()

        logger.info(
            f"Resolution run {run.id} finished: attempted={len(due_events)} "
            f"resolved={resolved} skipped={skipped} failed={failed}"
        )
        return ResolutionRunResponse.model_validate(run)

    def get_last_run(self, trigger: Optional[str] = None) -> Optional[ResolutionRunResponse]:
        return self.run_repo.get_latest(trigger)
