from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from predictapi.models.base import Base, BigIntPK


class ResolutionRun(Base):
    """
    이벤트 자동/수동 해결 실행 기록

    인스턴스 메모리가 아닌 DB에 남기므로 재시작 후에도, 여러 서버 간에도
    동일한 상태를 조회할 수 있다.
    """

    __tablename__ = "resolution_runs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    trigger: Mapped[str] = mapped_column(String(20), nullable=False)  # scheduler | admin
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    events_attempted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    events_resolved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    events_skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    events_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
