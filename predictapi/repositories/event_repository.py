from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, asc, func
from sqlalchemy.orm import Session

from predictapi.models.event import (
    Event as EventModel,
    EventStatusEnum,
    Participant as ParticipantModel,
    ResolutionStatusEnum,
)
from predictapi.schemas.event import EventResponse, OptionVolume
from predictapi.repositories.base import BaseRepository


class EventRepository(BaseRepository[EventModel, EventResponse]):
    """이벤트 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(EventModel, EventResponse, db)

    def title_exists(self, title: str) -> bool:
        return (
            self.db.query(self.model_class.id)
            .filter(self.model_class.title == title)
            .first()
            is not None
        )

    def get_active_events(self, now: datetime) -> List[EventResponse]:
        """참가 가능한 이벤트 목록 (마감 임박순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(
                and_(
                    self.model_class.status == EventStatusEnum.ACTIVE,
                    self.model_class.is_suspended.is_(False),
                    self.model_class.end_time > now,
                )
            )
            .order_by(asc(self.model_class.end_time))
            .all()
        )
        return [self._to_schema(instance) for instance in model_instances]

    def get_due_event_ids(self, now: datetime) -> List[int]:
        """마감이 지났지만 아직 해결되지 않은 이벤트 ID 목록"""
        rows = (
            self.db.query(self.model_class.id)
            .filter(
                and_(
                    self.model_class.resolution_status == ResolutionStatusEnum.PENDING,
                    self.model_class.is_suspended.is_(False),
                    self.model_class.end_time <= now,
                )
            )
            .order_by(asc(self.model_class.end_time))
            .all()
        )
        return [row.id for row in rows]

    def recompute_stats(self, event: EventModel) -> EventModel:
        """participants 테이블에서 캐시 통계(참가자 수, 상금 풀) 재계산"""
        participant_count, total_pool = (
            self.db.query(
                func.count(func.distinct(ParticipantModel.user_id)),
                func.coalesce(func.sum(ParticipantModel.amount), 0),
            )
            .filter(ParticipantModel.event_id == event.id)
            .one()
        )
        event.current_participants = int(participant_count or 0)
        event.prize_pool = int(total_pool or 0)
        self.db.flush()
        return event

    def get_option_volumes(self, event: EventModel, options: List[str]) -> List[OptionVolume]:
        """선택지별 참가자 수 / 베팅 금액 (선택지 순서 유지, 0건 포함)"""
        rows = (
            self.db.query(
                ParticipantModel.prediction,
                func.count(ParticipantModel.id),
                func.coalesce(func.sum(ParticipantModel.amount), 0),
            )
            .filter(ParticipantModel.event_id == event.id)
            .group_by(ParticipantModel.prediction)
            .all()
        )
        by_option = {prediction: (count, amount) for prediction, count, amount in rows}
        return [
            OptionVolume(
                option=option,
                participants=int(by_option.get(option, (0, 0))[0]),
                amount=int(by_option.get(option, (0, 0))[1]),
            )
            for option in options
        ]

    def get_schema(self, event: Optional[EventModel]) -> Optional[EventResponse]:
        return self._to_schema(event)
