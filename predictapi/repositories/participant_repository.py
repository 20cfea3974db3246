from typing import List, Optional

from sqlalchemy import and_, asc, desc
from sqlalchemy.orm import Session

from predictapi.models.event import (
    Event as EventModel,
    EventOutcome as EventOutcomeModel,
    Participant as ParticipantModel,
)
from predictapi.schemas.event import ParticipantResponse, ParticipationHistoryItem
from predictapi.repositories.base import BaseRepository


class ParticipantRepository(BaseRepository[ParticipantModel, ParticipantResponse]):
    """참가(베팅) 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(ParticipantModel, ParticipantResponse, db)

    def exists(self, event_id: int, user_id: int) -> bool:
        return (
            self.db.query(self.model_class.id)
            .filter(
                and_(
                    self.model_class.event_id == event_id,
                    self.model_class.user_id == user_id,
                )
            )
            .first()
            is not None
        )

    def create_participant(
        self, event_id: int, user_id: int, prediction: str, amount: int
    ) -> ParticipantModel:
        return self.add(
            event_id=event_id, user_id=user_id, prediction=prediction, amount=amount
        )

    def lock_for_event(self, event_id: int) -> List[ParticipantModel]:
        """정산용 - 이벤트의 모든 참가 행을 id 순으로 잠금 조회"""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.event_id == event_id)
            .order_by(asc(self.model_class.id))
            .with_for_update()
            .all()
        )

    def get_user_prediction(
        self, event_id: int, user_id: int
    ) -> Optional[ParticipantResponse]:
        model_instance = (
            self.db.query(self.model_class)
            .filter(
                and_(
                    self.model_class.event_id == event_id,
                    self.model_class.user_id == user_id,
                )
            )
            .first()
        )
        return self._to_schema(model_instance)

    def get_participation_history(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> List[ParticipationHistoryItem]:
        """사용자 참가 이력 (정산 결과 포함, 최신순)"""
        rows = (
            self.db.query(self.model_class, EventModel, EventOutcomeModel)
            .join(EventModel, EventModel.id == self.model_class.event_id)
            .outerjoin(
                EventOutcomeModel,
                EventOutcomeModel.participant_id == self.model_class.id,
            )
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [
            ParticipationHistoryItem(
                participant_id=participant.id,
                event_id=event.id,
                event_title=event.title,
                prediction=participant.prediction,
                amount=participant.amount,
                event_status=event.status,
                correct_answer=event.correct_answer,
                result=outcome.result if outcome else None,
                points_awarded=outcome.points_awarded if outcome else None,
                created_at=participant.created_at,
            )
            for participant, event, outcome in rows
        ]
