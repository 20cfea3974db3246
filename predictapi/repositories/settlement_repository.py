from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from predictapi.models.event import (
    AuditLog as AuditLogModel,
    Event as EventModel,
    EventOutcome as EventOutcomeModel,
    OutcomeResultEnum,
    Participant as ParticipantModel,
    PlatformFee as PlatformFeeModel,
    PlatformFeeAccount as PlatformFeeAccountModel,
)

FEE_ACCOUNT_ID = 1


class SettlementRepository:
    """정산 결과 기록 (event_outcomes / platform_fees / audit_logs)

    세 테이블 모두 write-once 이며 정산 트랜잭션 안에서만 추가된다.
    """

    def __init__(self, db: Session):
        self.db = db

    def add_outcome(
        self, participant_id: int, result: OutcomeResultEnum, points_awarded: int
    ) -> EventOutcomeModel:
        outcome = EventOutcomeModel(
            participant_id=participant_id,
            result=result,
            points_awarded=points_awarded,
        )
        self.db.add(outcome)
        return outcome

    def add_platform_fee(
        self, event_id: int, participant_id: int, fee_amount: int
    ) -> PlatformFeeModel:
        fee = PlatformFeeModel(
            event_id=event_id, participant_id=participant_id, fee_amount=fee_amount
        )
        self.db.add(fee)
        return fee

    def add_audit_log(
        self, event_id: Optional[int], action: str, details: Dict[str, Any]
    ) -> AuditLogModel:
        log = AuditLogModel(event_id=event_id, action=action, details=details)
        self.db.add(log)
        return log

    def total_platform_fees(self) -> int:
        """해결된 이벤트에서 누적된 수수료 합계 (events.platform_fee 기준)"""
        return int(
            self.db.query(func.coalesce(func.sum(EventModel.platform_fee), 0)).scalar()
            or 0
        )

    def lock_fee_account(self) -> PlatformFeeAccountModel:
        """수수료 이전 계정 행을 잠가 반환. 없으면 만든다"""
        account = (
            self.db.query(PlatformFeeAccountModel)
            .filter(PlatformFeeAccountModel.id == FEE_ACCOUNT_ID)
            .populate_existing()
            .with_for_update()
            .one_or_none()
        )
        if account is None:
            account = PlatformFeeAccountModel(id=FEE_ACCOUNT_ID, transferred_total=0)
            self.db.add(account)
            self.db.flush()
        return account

    def get_transferred_fees(self) -> int:
        account = self.db.get(PlatformFeeAccountModel, FEE_ACCOUNT_ID)
        return int(account.transferred_total) if account else 0
