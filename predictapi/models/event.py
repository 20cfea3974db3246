import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from predictapi.models.base import AppendOnlyModel, BaseModel, BigIntPK, JSONType


def _values(enum_cls):
    return [m.value for m in enum_cls]


class EventStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    RESOLVED = "resolved"


class ResolutionStatusEnum(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class OutcomeResultEnum(str, enum.Enum):
    WIN = "win"
    LOSS = "loss"


class Event(BaseModel):
    """
    예측 이벤트

    options 는 정규화된 결과 식별자 리스트(JSON)로만 저장한다.
    current_participants / prize_pool 은 participants 테이블에서 언제든 재계산
    가능한 캐시 값이다.
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_status_end_time", "status", "end_time"),
        Index("idx_events_resolution_status", "resolution_status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    options: Mapped[List[Any]] = mapped_column(JSONType, nullable=False)
    entry_fee: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[EventStatusEnum] = mapped_column(
        Enum(EventStatusEnum, name="event_status", values_callable=_values),
        default=EventStatusEnum.ACTIVE,
        nullable=False,
    )
    resolution_status: Mapped[ResolutionStatusEnum] = mapped_column(
        Enum(ResolutionStatusEnum, name="resolution_status", values_callable=_values),
        default=ResolutionStatusEnum.PENDING,
        nullable=False,
    )
    initial_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 6), nullable=True
    )
    final_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 6), nullable=True
    )
    correct_answer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    platform_fee: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_participants: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    prize_pool: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self):
        return (
            f"<Event(id={self.id}, title={self.title}, status={self.status}, "
            f"resolution_status={self.resolution_status})>"
        )


class Participant(AppendOnlyModel):
    """이벤트 참가(베팅) 기록 - (event_id, user_id) 당 최대 1건"""

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_participants_event_user"),
        Index("idx_participants_event_prediction", "event_id", "prediction"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("events.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    prediction: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)


class EventOutcome(AppendOnlyModel):
    """정산 시 참가자별로 정확히 한 번 기록되는 결과"""

    __tablename__ = "event_outcomes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("participants.id"), unique=True, nullable=False
    )
    result: Mapped[OutcomeResultEnum] = mapped_column(
        Enum(OutcomeResultEnum, name="outcome_result", values_callable=_values),
        nullable=False,
    )
    points_awarded: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class PlatformFee(AppendOnlyModel):
    """
    참가 건별 명목 수수료 (floor(amount * rate))

    이벤트 단위 수수료(events.platform_fee)가 기준값이며, 이 테이블의 합계는
    반올림 차이로 일치하지 않을 수 있다.
    """

    __tablename__ = "platform_fees"
    __table_args__ = (Index("idx_platform_fees_event_id", "event_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("events.id"), nullable=False
    )
    participant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("participants.id"), nullable=False
    )
    fee_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PlatformFeeAccount(BaseModel):
    """
    누적 수수료 중 사용자에게 이전된 총액 (단일 행)

    이전 가능액 = SUM(events.platform_fee) - transferred_total.
    이전 시 이 행을 FOR UPDATE 로 잠가 같은 수수료가 두 번 지급되지 않게 한다.
    """

    __tablename__ = "platform_fee_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    transferred_total: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class AuditLog(AppendOnlyModel):
    """정산 재구성을 위한 감사 로그 (write-once)"""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("idx_audit_logs_event_id", "event_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    event_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("events.id"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
