from fastapi import Depends
from sqlalchemy.orm import Session
from dependency_injector.wiring import inject, Provide

from predictapi.database.session import get_db
from predictapi.config import settings
from predictapi.containers import Container

# Services
from predictapi.services.bet_service import BetService
from predictapi.services.broadcast_service import BroadcastService
from predictapi.services.event_service import EventService
from predictapi.services.point_service import PointService
from predictapi.services.resolution_service import ResolutionService
from predictapi.services.settlement_service import SettlementService


@inject
def get_broadcast_service(
    broadcaster: BroadcastService = Depends(Provide[Container.services.broadcast_service]),
) -> BroadcastService:
    return broadcaster


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db=db, settings=settings)


def get_bet_service(db: Session = Depends(get_db)) -> BetService:
    return BetService(db=db, settings=settings)


def get_point_service(db: Session = Depends(get_db)) -> PointService:
    return PointService(db=db, settings=settings)


def get_settlement_service(
    db: Session = Depends(get_db),
    broadcaster: BroadcastService = Depends(get_broadcast_service),
) -> SettlementService:
    return SettlementService(db=db, settings=settings, broadcaster=broadcaster)


def get_resolution_service(
    db: Session = Depends(get_db),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> ResolutionService:
    return ResolutionService(
        db=db, settlement_service=settlement_service, settings=settings
    )
