"""
Settlement Service - 이벤트 정산 (parimutuel, 플랫폼 수수료 차감)

핵심 특징:
- 이벤트 1건의 정산은 단일 트랜잭션이다. 승자 한 명의 지급이라도 실패하면
  이벤트 상태 변경까지 포함해 전체가 rollback 된다
- 이벤트 행 -> 참가 행 -> 사용자 행 순서로 잠근다 (참가 처리와 동일한 순서)
- 이미 해결된 이벤트는 AlreadyResolved 로 거부되어 중복 지급이 발생하지 않는다
- 브로드캐스트는 commit 이후 best-effort 로 수행되며 실패해도 정산은 유지된다
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from predictapi.config import Settings, settings as default_settings
from predictapi.core.exceptions import (
    AlreadyResolvedError,
    BusinessLogicError,
    ConflictError,
    EventNotFoundError,
    NoBetsError,
)
from predictapi.models.event import (
    Event as EventModel,
    EventStatusEnum,
    OutcomeResultEnum,
    ResolutionStatusEnum,
)
from predictapi.models.points import PointsReason
from predictapi.repositories.event_repository import EventRepository
from predictapi.repositories.participant_repository import ParticipantRepository
from predictapi.repositories.points_repository import PointsRepository
from predictapi.repositories.settlement_repository import SettlementRepository
from predictapi.schemas.settlement import SettlementResult
from predictapi.services.broadcast_service import BroadcastService
from predictapi.services.payout_calculator import calculate_pool
from predictapi.utils.options import normalize_options
from predictapi.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class SettlementService:
    """이벤트 정산 및 결과 브로드캐스트 서비스"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        broadcaster: Optional[BroadcastService] = None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.broadcaster = broadcaster
        self.event_repo = EventRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.points_repo = PointsRepository(db)
        self.settlement_repo = SettlementRepository(db)

    def _lock_pending_event(self, event_id: int) -> EventModel:
        event = self.event_repo.get_model_for_update(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if event.resolution_status == ResolutionStatusEnum.RESOLVED:
            raise AlreadyResolvedError(event_id)
        return event

    @staticmethod
    def _validate_outcome(event: EventModel, winning_outcome: str) -> None:
        options = normalize_options(event.options)
        if winning_outcome not in options:
            raise BusinessLogicError(
                error_code="SETTLE_003",
                message=f"'{winning_outcome}' is not an option of event {event.id}",
                details={"correct_answer": winning_outcome, "options": options},
            )

    @staticmethod
    def _mark_resolved(
        event: EventModel, winning_outcome: Optional[str], final_price: Optional[Decimal]
    ) -> None:
        event.resolution_status = ResolutionStatusEnum.RESOLVED
        event.status = EventStatusEnum.RESOLVED
        event.correct_answer = winning_outcome
        event.final_price = final_price

    def settle_event(
        self,
        event_id: int,
        winning_outcome: str,
        final_price: Optional[Decimal] = None,
        resolved_by: str = "system",
    ) -> SettlementResult:
        """
        이벤트 정산 (동기, 단일 트랜잭션)

        Args:
            event_id: 이벤트 ID
            winning_outcome: 정답 선택지 (이벤트 options 중 하나)
            final_price: 감사/표시용 최종 가격 (지급 계산에는 사용하지 않음)
            resolved_by: 정산 주체 (admin 사용자 ID 또는 "scheduler")

        Raises:
            EventNotFoundError, AlreadyResolvedError, NoBetsError,
            BusinessLogicError(SETTLE_003) - 정답이 선택지가 아닌 경우

        핵심 로직:
        1. 이벤트 잠금 후 해결 여부 확인
        2. 참가 행 잠금, 없으면 NoBets
        3. 풀/수수료/지급액 계산 (payout_calculator)
        4. 승자 지급 + win 결과 + 명목 수수료 기록, 패자 loss 결과 기록
        5. 이벤트 수수료 누적 및 해결 상태 전환, 감사 로그 기록
        6. commit (실패 시 전체 rollback)
        """
        resolved_at = utc_now()

        try:
            event = self._lock_pending_event(event_id)
            self._validate_outcome(event, winning_outcome)

            participants = self.participant_repo.lock_for_event(event_id)
            if not participants:
                raise NoBetsError(event_id)

            fee_rate = self.settings.PLATFORM_FEE_RATE
            breakdown = calculate_pool(participants, winning_outcome, fee_rate)
            payout_by_participant = {
                line.participant_id: line for line in breakdown.payouts
            }

            for participant in participants:
                line = payout_by_participant.get(participant.id)
                if line is None:
                    self.settlement_repo.add_outcome(
                        participant.id, OutcomeResultEnum.LOSS, 0
                    )
                    continue

                if line.payout > 0:
                    self.points_repo.apply_points_change(
                        line.user_id,
                        line.payout,
                        PointsReason.EVENT_WIN,
                        event_id=event_id,
                    )
                self.settlement_repo.add_outcome(
                    participant.id, OutcomeResultEnum.WIN, line.payout
                )
                self.settlement_repo.add_platform_fee(
                    event_id, participant.id, line.nominal_fee
                )

            event.platform_fee = int(event.platform_fee or 0) + breakdown.platform_fee
            self._mark_resolved(event, winning_outcome, final_price)

            winners = len(breakdown.payouts)
            self.settlement_repo.add_audit_log(
                event_id=event_id,
                action="event_resolution",
                details={
                    "correct_answer": winning_outcome,
                    "final_price": str(final_price) if final_price is not None else None,
                    "total_participants": len(participants),
                    "total_winners": winners,
                    "total_pool": breakdown.total_pool,
                    "winning_pool": breakdown.winning_pool,
                    "platform_fee": breakdown.platform_fee,
                    "distributed": breakdown.distributed,
                    "residue": breakdown.residue,
                    "resolved_by": resolved_by,
                    "resolved_at": resolved_at.isoformat(),
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Event {event_id} settled: answer='{winning_outcome}' "
            f"participants={len(participants)} winners={winners} "
            f"pool={breakdown.total_pool} fee={breakdown.platform_fee} "
            f"distributed={breakdown.distributed} residue={breakdown.residue}"
        )
        if winners == 0:
            logger.warning(
                f"Event {event_id} resolved with no winners; "
                f"{breakdown.net_pool} points left undistributed"
            )

        return SettlementResult(
            event_id=event_id,
            correct_answer=winning_outcome,
            final_price=final_price,
            total_participants=len(participants),
            total_winners=winners,
            total_losers=len(participants) - winners,
            total_pool=breakdown.total_pool,
            winning_pool=breakdown.winning_pool,
            platform_fee=breakdown.platform_fee,
            distributed=breakdown.distributed,
            residue=breakdown.residue,
            resolved_by=resolved_by,
            resolved_at=resolved_at,
            payouts=breakdown.payouts,
        )

    def close_without_bets(
        self,
        event_id: int,
        winning_outcome: Optional[str] = None,
        final_price: Optional[Decimal] = None,
        resolved_by: str = "system",
    ) -> SettlementResult:
        """참가자가 없는 이벤트를 지급 없이 해결 상태로 닫는다"""
        resolved_at = utc_now()

        try:
            event = self._lock_pending_event(event_id)
            if winning_outcome is not None:
                self._validate_outcome(event, winning_outcome)

            if self.participant_repo.lock_for_event(event_id):
                raise ConflictError(
                    message=f"Event {event_id} has participants and must be settled",
                    details={"event_id": event_id},
                    error_code="SETTLE_004",
                )

            self._mark_resolved(event, winning_outcome, final_price)
            self.settlement_repo.add_audit_log(
                event_id=event_id,
                action="event_resolution_no_bets",
                details={
                    "correct_answer": winning_outcome,
                    "final_price": str(final_price) if final_price is not None else None,
                    "resolved_by": resolved_by,
                    "resolved_at": resolved_at.isoformat(),
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Event {event_id} closed without participants")
        return SettlementResult(
            event_id=event_id,
            correct_answer=winning_outcome,
            final_price=final_price,
            total_participants=0,
            total_winners=0,
            total_losers=0,
            total_pool=0,
            winning_pool=0,
            platform_fee=0,
            distributed=0,
            residue=0,
            resolved_by=resolved_by,
            resolved_at=resolved_at,
            payouts=[],
        )

    async def broadcast_resolution(self, result: SettlementResult) -> bool:
        """정산 결과 브로드캐스트 (실패해도 예외를 던지지 않음)"""
        if self.broadcaster is None:
            return False
        try:
            return await self.broadcaster.publish_resolution(
                event_id=result.event_id,
                correct_answer=result.correct_answer,
                final_price=result.final_price,
                status=EventStatusEnum.RESOLVED.value,
            )
        except Exception as e:
            logger.warning(f"Resolution broadcast failed for event {result.event_id}: {e}")
            return False

    async def resolve_event(
        self,
        event_id: int,
        winning_outcome: str,
        final_price: Optional[Decimal] = None,
        resolved_by: str = "system",
    ) -> SettlementResult:
        """정산 후 결과를 브로드캐스트"""
        result = self.settle_event(
            event_id, winning_outcome, final_price=final_price, resolved_by=resolved_by
        )
        await self.broadcast_resolution(result)
        return result

