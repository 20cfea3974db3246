"""
포인트 시스템 데이터 모델

사용자 포인트의 모든 변동 내역을 저장하는 원장(Ledger) 테이블을 정의합니다.
포인트의 추가/차감은 모두 이 테이블에 기록되어 완전한 감사 추적(Audit Trail)을 제공합니다.
"""

import enum
from typing import Optional

from sqlalchemy import BigInteger, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from predictapi.models.base import AppendOnlyModel, BigIntPK


class PointsReason(str, enum.Enum):
    EVENT_ENTRY = "event_entry"
    EVENT_WIN = "event_win"
    REGISTRATION = "registration"
    DAILY_CLAIM = "daily_claim"
    PLATFORM_FEE_TRANSFER = "platform_fee_transfer"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class PointsHistory(AppendOnlyModel):
    """
    포인트 원장 테이블 - 모든 잔액 변동 내역을 저장

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 완전성(Complete): users.points 의 모든 변경이 정확히 한 행으로 기록됨
    3. 정합성(Integrity): 사용자별로 id 순서대로 change_amount 를 누적하면
       각 행의 new_balance 가 재현됨
    """

    __tablename__ = "points_history"
    __table_args__ = (
        Index("idx_points_history_user_id", "user_id", "id"),
        Index("idx_points_history_event_id", "event_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )

    # 잔액 변동량 - 양수면 증가, 음수면 감소
    change_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # 변동 후 잔액 스냅샷
    new_balance: Mapped[int] = mapped_column(BigInteger, nullable=False)

    reason: Mapped[PointsReason] = mapped_column(
        Enum(
            PointsReason,
            name="points_reason",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    event_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("events.id"), nullable=True
    )
