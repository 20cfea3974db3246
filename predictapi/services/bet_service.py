import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from predictapi.config import Settings, settings as default_settings
from predictapi.core.exceptions import (
    BettingClosedError,
    DuplicateEntryError,
    EventNotFoundError,
    InsufficientBalanceError,
    InvalidEntryFeeError,
    InvalidPredictionError,
)
from predictapi.models.event import (
    Event as EventModel,
    EventStatusEnum,
    ResolutionStatusEnum,
)
from predictapi.models.points import PointsReason
from predictapi.repositories.event_repository import EventRepository
from predictapi.repositories.participant_repository import ParticipantRepository
from predictapi.repositories.points_repository import PointsRepository
from predictapi.schemas.event import BetResponse, ParticipantResponse
from predictapi.utils.options import normalize_options
from predictapi.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class BetService:
    """
    이벤트 참가(베팅) 서비스

    하나의 트랜잭션 안에서 이벤트 행 -> 사용자 행 순서로 잠근 뒤 전제 조건을
    순서대로 검사한다. 어느 단계에서든 실패하면 전체를 rollback 하므로
    부분 차감이나 고아 참가 행이 남지 않는다.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.event_repo = EventRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.points_repo = PointsRepository(db)

    def _ensure_open(self, event: EventModel, now: datetime) -> None:
        if (
            event.status != EventStatusEnum.ACTIVE
            or event.is_suspended
            or event.resolution_status != ResolutionStatusEnum.PENDING
        ):
            raise BettingClosedError(
                details={"event_id": event.id, "status": event.status.value}
            )
        if now >= ensure_utc(event.end_time):
            raise BettingClosedError(
                message="Prediction deadline has passed",
                details={
                    "event_id": event.id,
                    "end_time": ensure_utc(event.end_time).isoformat(),
                },
            )

    def _resolve_entry_fee(self, event: EventModel, entry_fee: Optional[int]) -> int:
        fee = event.entry_fee if entry_fee is None else entry_fee
        allowed = self.settings.ALLOWED_ENTRY_FEES
        if fee not in allowed:
            raise InvalidEntryFeeError(fee, allowed)
        return fee

    def place_bet(
        self,
        event_id: int,
        user_id: int,
        prediction: str,
        entry_fee: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> BetResponse:
        """
        이벤트 참가

        Args:
            event_id: 이벤트 ID
            user_id: 사용자 ID
            prediction: 선택한 결과 식별자 (이벤트 options 중 하나)
            entry_fee: 참가비. None 이면 이벤트 기본 참가비

        Returns:
            BetResponse: 생성된 참가 기록과 차감 후 잔액

        검사 순서:
        1. 이벤트 존재 (EventNotFound)
        2. 참가 가능 상태 및 마감 전 (BettingClosed)
        3. 허용된 참가비 (InvalidEntryFee)
        4. 유효한 선택지 (InvalidPrediction)
        5. 중복 참가 아님 (DuplicateEntry)
        6. 잔액 충분 (InsufficientBalance)
        """
        now = ensure_utc(now) if now else utc_now()

        try:
            event = self.event_repo.get_model_for_update(event_id)
            if event is None:
                raise EventNotFoundError(event_id)

            self._ensure_open(event, now)
            fee = self._resolve_entry_fee(event, entry_fee)

            options = normalize_options(event.options)
            if prediction not in options:
                raise InvalidPredictionError(prediction, options)

            if self.participant_repo.exists(event_id, user_id):
                raise DuplicateEntryError(event_id, user_id)

            user = self.points_repo.lock_user(user_id)
            if user.points < fee:
                raise InsufficientBalanceError(
                    f"Insufficient points. Required: {fee}, Available: {user.points}",
                    details={"required": fee, "available": user.points},
                )

            participant = self.participant_repo.create_participant(
                event_id=event_id, user_id=user_id, prediction=prediction, amount=fee
            )
            new_balance = self.points_repo.apply_points_change(
                user_id, -fee, PointsReason.EVENT_ENTRY, event_id=event_id
            )
            self.event_repo.recompute_stats(event)
            self.db.commit()
        except IntegrityError:
            # 잠금 없이 동시에 들어온 요청은 유니크 제약에서 걸러진다
            self.db.rollback()
            logger.info(
                f"Duplicate entry rejected by constraint: event={event_id} user={user_id}"
            )
            raise DuplicateEntryError(event_id, user_id)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"User {user_id} joined event {event_id} with '{prediction}' for {fee} points "
            f"(balance {new_balance})"
        )
        return BetResponse(
            participant=ParticipantResponse.model_validate(participant),
            new_balance=new_balance,
        )
