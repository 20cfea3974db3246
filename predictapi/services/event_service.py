import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from predictapi.config import Settings, settings as default_settings
from predictapi.core.exceptions import (
    AlreadyResolvedError,
    ConflictError,
    EventNotFoundError,
    InvalidEntryFeeError,
    ValidationError,
)
from predictapi.models.event import (
    Event as EventModel,
    EventStatusEnum,
    ResolutionStatusEnum,
)
from predictapi.repositories.event_repository import EventRepository
from predictapi.repositories.participant_repository import ParticipantRepository
from predictapi.schemas.event import (
    EventCreate,
    EventResponse,
    EventStats,
    ParticipantResponse,
    ParticipationHistoryItem,
)
from predictapi.utils.options import normalize_options
from predictapi.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class EventService:
    """이벤트 생성/조회/중단 관리 서비스"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.event_repo = EventRepository(db)
        self.participant_repo = ParticipantRepository(db)

    def _get_model_or_404(self, event_id: int) -> EventModel:
        event = self.event_repo.get_model(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def create_event(self, payload: EventCreate) -> EventResponse:
        """이벤트 생성 (참가자 0, 상금 풀 0, active/pending 상태로 시작)"""
        options = normalize_options(payload.options)
        if len(options) < 2:
            raise ValidationError(
                "An event needs at least two options", details={"options": options}
            )
        if ensure_utc(payload.end_time) <= ensure_utc(payload.start_time):
            raise ValidationError("End time must be after start time")
        if payload.entry_fee not in self.settings.ALLOWED_ENTRY_FEES:
            raise InvalidEntryFeeError(payload.entry_fee, self.settings.ALLOWED_ENTRY_FEES)
        if self.event_repo.title_exists(payload.title):
            raise ConflictError(
                "Event title already exists",
                details={"title": payload.title},
                error_code="EVENT_002",
            )

        try:
            event = self.event_repo.add(
                title=payload.title,
                description=payload.description,
                options=options,
                entry_fee=payload.entry_fee,
                start_time=ensure_utc(payload.start_time),
                end_time=ensure_utc(payload.end_time),
                status=EventStatusEnum.ACTIVE,
                resolution_status=ResolutionStatusEnum.PENDING,
                initial_price=payload.initial_price,
                platform_fee=0,
                is_suspended=False,
                current_participants=0,
                prize_pool=0,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "Event title already exists",
                details={"title": payload.title},
                error_code="EVENT_002",
            )
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Event {event.id} created: '{event.title}' options={options}")
        return self.event_repo.get_schema(event)

    def get_event(self, event_id: int) -> EventResponse:
        return self.event_repo.get_schema(self._get_model_or_404(event_id))

    def list_active_events(self, now: Optional[datetime] = None) -> List[EventResponse]:
        return self.event_repo.get_active_events(ensure_utc(now) if now else utc_now())

    def get_event_stats(self, event_id: int) -> EventStats:
        """참가자 수, 상금 풀, 선택지별 분포"""
        event = self._get_model_or_404(event_id)
        options = normalize_options(event.options)
        return EventStats(
            event_id=event.id,
            current_participants=event.current_participants,
            prize_pool=event.prize_pool,
            option_volumes=self.event_repo.get_option_volumes(event, options),
        )

    def set_suspended(self, event_id: int, is_suspended: bool) -> EventResponse:
        """이벤트 중단/재개 (active <-> suspended). 해결된 이벤트는 변경 불가"""
        try:
            event = self.event_repo.get_model_for_update(event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            if event.resolution_status == ResolutionStatusEnum.RESOLVED:
                raise AlreadyResolvedError(event_id)

            event.is_suspended = is_suspended
            event.status = (
                EventStatusEnum.SUSPENDED if is_suspended else EventStatusEnum.ACTIVE
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Event {event_id} {'suspended' if is_suspended else 'reactivated'}"
        )
        return self.event_repo.get_schema(event)

    def recompute_stats(self, event_id: int) -> EventResponse:
        """캐시 통계를 participants 테이블 기준으로 재계산"""
        try:
            event = self.event_repo.get_model_for_update(event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            self.event_repo.recompute_stats(event)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.event_repo.get_schema(event)

    def get_user_prediction(
        self, event_id: int, user_id: int
    ) -> Optional[ParticipantResponse]:
        self._get_model_or_404(event_id)
        return self.participant_repo.get_user_prediction(event_id, user_id)

    def get_participation_history(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> List[ParticipationHistoryItem]:
        limit = max(1, min(limit, 100))
        return self.participant_repo.get_participation_history(
            user_id, limit=limit, offset=max(0, offset)
        )
