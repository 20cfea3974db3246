# 메타데이터 등록을 위해 모든 모델을 import 한다 (create_all 대상)

from .base import Base
from .user import User
from .points import PointsHistory, PointsReason
from .event import (
    AuditLog,
    Event,
    EventOutcome,
    EventStatusEnum,
    OutcomeResultEnum,
    Participant,
    PlatformFee,
    PlatformFeeAccount,
    ResolutionStatusEnum,
)
from .resolution import ResolutionRun

__all__ = [
    "Base",
    "User",
    "PointsHistory",
    "PointsReason",
    "Event",
    "EventStatusEnum",
    "ResolutionStatusEnum",
    "Participant",
    "EventOutcome",
    "OutcomeResultEnum",
    "PlatformFee",
    "PlatformFeeAccount",
    "AuditLog",
    "ResolutionRun",
]
