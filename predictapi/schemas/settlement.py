from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResolveEventRequest(BaseModel):
    correct_answer: str = Field(..., min_length=1)
    final_price: Optional[Decimal] = None


class PayoutLine(BaseModel):
    participant_id: int
    user_id: int
    amount: int
    payout: int
    nominal_fee: int


class PoolBreakdown(BaseModel):
    """정산 계산 결과 (DB 반영 전 순수 계산값)"""

    total_pool: int
    winning_pool: int
    platform_fee: int
    net_pool: int
    payouts: List[PayoutLine]

    @property
    def distributed(self) -> int:
        return sum(line.payout for line in self.payouts)

    @property
    def residue(self) -> int:
        # 승자가 없으면 net_pool 전체가 미배분으로 남는다
        return self.net_pool - self.distributed


class SettlementResult(BaseModel):
    event_id: int
    correct_answer: Optional[str] = None
    final_price: Optional[Decimal] = None
    total_participants: int
    total_winners: int
    total_losers: int
    total_pool: int
    winning_pool: int
    platform_fee: int
    distributed: int
    residue: int
    resolved_by: str
    resolved_at: datetime
    payouts: List[PayoutLine]


class ResolutionRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trigger: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    events_attempted: int
    events_resolved: int
    events_skipped: int
    events_failed: int
    last_error: Optional[str] = None


class EventResolutionOutcome(BaseModel):
    """스케줄러 관점의 이벤트 1건 처리 결과"""

    event_id: int
    status: str  # resolved | closed_no_bets | skipped | failed
    result: Optional[SettlementResult] = None
    error: Optional[str] = None
