from datetime import datetime
from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from predictapi.models.resolution import ResolutionRun as ResolutionRunModel
from predictapi.schemas.settlement import ResolutionRunResponse
from predictapi.repositories.base import BaseRepository


class ResolutionRunRepository(BaseRepository[ResolutionRunModel, ResolutionRunResponse]):
    """해결 실행 기록 리포지토리 (프로세스 전역 상태 대체)"""

    def __init__(self, db: Session):
        super().__init__(ResolutionRunModel, ResolutionRunResponse, db)

    def start_run(self, trigger: str, started_at: datetime) -> ResolutionRunModel:
        return self.add(trigger=trigger, started_at=started_at)

    def get_latest(self, trigger: Optional[str] = None) -> Optional[ResolutionRunResponse]:
        query = self.db.query(self.model_class)
        if trigger:
            query = query.filter(self.model_class.trigger == trigger)
        return self._to_schema(query.order_by(desc(self.model_class.id)).first())
