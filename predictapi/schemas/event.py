from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from predictapi.models.event import (
    EventStatusEnum,
    OutcomeResultEnum,
    ResolutionStatusEnum,
)
from predictapi.utils.options import OptionShapeError, normalize_options
from predictapi.utils.timezone_utils import ensure_utc


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    options: List[Any] = Field(..., description="문자열 또는 {label, value} 객체 리스트")
    entry_fee: int = 100
    start_time: datetime
    end_time: datetime
    initial_price: Optional[Decimal] = None

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[Any]) -> List[str]:
        try:
            normalized = normalize_options(v)
        except OptionShapeError as e:
            raise ValueError(str(e))
        if len(normalized) < 2:
            raise ValueError("An event needs at least two options")
        return normalized

    @model_validator(mode="after")
    def validate_window(self) -> "EventCreate":
        if ensure_utc(self.end_time) <= ensure_utc(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    options: List[str]
    entry_fee: int
    start_time: datetime
    end_time: datetime
    status: EventStatusEnum
    resolution_status: ResolutionStatusEnum
    initial_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    correct_answer: Optional[str] = None
    platform_fee: int = 0
    is_suspended: bool = False
    current_participants: int = 0
    prize_pool: int = 0

    @field_validator("options", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> List[str]:
        return normalize_options(v)


class OptionVolume(BaseModel):
    option: str
    participants: int
    amount: int


class EventStats(BaseModel):
    event_id: int
    current_participants: int
    prize_pool: int
    option_volumes: List[OptionVolume]


class SuspendEventRequest(BaseModel):
    is_suspended: bool


class BetRequest(BaseModel):
    prediction: str = Field(..., min_length=1)
    entry_fee: Optional[int] = Field(
        None, description="미지정 시 이벤트 기본 참가비 사용"
    )


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: int
    prediction: str
    amount: int
    created_at: Optional[datetime] = None


class BetResponse(BaseModel):
    participant: ParticipantResponse
    new_balance: int


class ParticipationHistoryItem(BaseModel):
    participant_id: int
    event_id: int
    event_title: str
    prediction: str
    amount: int
    event_status: EventStatusEnum
    correct_answer: Optional[str] = None
    result: Optional[OutcomeResultEnum] = None
    points_awarded: Optional[int] = None
    created_at: Optional[datetime] = None
