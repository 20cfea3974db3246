from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from predictapi.models.points import PointsReason


class PointsBalanceResponse(BaseModel):
    user_id: int
    balance: int


class PointsLedgerEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    change_amount: int
    new_balance: int
    reason: PointsReason
    event_id: Optional[int] = None
    created_at: Optional[datetime] = None


class PointsLedgerResponse(BaseModel):
    balance: int
    entries: List[PointsLedgerEntry]
    total_count: int
    has_next: bool


class PointsChangeResult(BaseModel):
    user_id: int
    change_amount: int
    new_balance: int
    reason: PointsReason
    event_id: Optional[int] = None


class DailyClaimResponse(BaseModel):
    message: str
    points: int
    new_total: int
    claimed_at: datetime


class AdminPointsAdjustmentRequest(BaseModel):
    user_id: int
    amount: int = Field(..., description="양수=지급, 음수=차감")
    note: str = Field(..., min_length=1, max_length=500)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Amount must not be zero")
        return v


class PointsIntegrityCheckResponse(BaseModel):
    status: str  # OK | MISMATCH
    user_id: Optional[int] = None
    recorded_balance: Optional[int] = None
    replayed_balance: Optional[int] = None
    entry_count: int = 0
    broken_entry_id: Optional[int] = None
    users_checked: Optional[int] = None
    mismatched_user_ids: List[int] = Field(default_factory=list)
    verified_at: datetime


class PlatformFeeTransferRequest(BaseModel):
    user_id: int
    amount: int = Field(..., gt=0, description="이전할 수수료 (양수)")
    reason: str = Field("Admin transfer", min_length=1, max_length=500)


class PlatformFeeSummary(BaseModel):
    total_collected: int
    total_transferred: int
    available: int


class PlatformFeeTransferResult(BaseModel):
    user_id: int
    amount_transferred: int
    user_points_before: int
    user_points_after: int
    available_after: int
