# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .points_repository import PointsRepository
from .event_repository import EventRepository
from .participant_repository import ParticipantRepository
from .settlement_repository import SettlementRepository
from .resolution_repository import ResolutionRunRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PointsRepository",
    "EventRepository",
    "ParticipantRepository",
    "SettlementRepository",
    "ResolutionRunRepository",
]
