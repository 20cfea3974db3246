"""
이벤트 API 라우터

사용자용 엔드포인트:
- GET /events: 참가 가능한 이벤트 목록
- GET /events/{event_id}: 이벤트 상세
- GET /events/{event_id}/stats: 참가자 수 / 상금 풀 / 선택지별 분포
- POST /events/{event_id}/bet: 이벤트 참가
- GET /events/{event_id}/my-prediction: 내 참가 내역
- GET /events/history/me: 내 참가 이력 (정산 결과 포함)

관리자용 엔드포인트:
- POST /admin/events: 이벤트 생성
- PATCH /admin/events/{event_id}/suspend: 이벤트 중단/재개
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from predictapi.core.auth_middleware import get_current_active_user, require_admin
from predictapi.deps import get_bet_service, get_event_service
from predictapi.schemas.event import (
    BetRequest,
    BetResponse,
    EventCreate,
    EventResponse,
    EventStats,
    ParticipantResponse,
    ParticipationHistoryItem,
    SuspendEventRequest,
)
from predictapi.schemas.user import User as UserSchema
from predictapi.services.bet_service import BetService
from predictapi.services.event_service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])
admin_router = APIRouter(prefix="/admin/events", tags=["admin-events"])


@router.get("", response_model=List[EventResponse])
async def list_active_events(
    event_service: EventService = Depends(get_event_service),
) -> List[EventResponse]:
    """마감 전이고 중단되지 않은 이벤트 목록 (마감 임박순)"""
    return event_service.list_active_events()


@router.get("/history/me", response_model=List[ParticipationHistoryItem])
async def get_my_history(
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_active_user),
    event_service: EventService = Depends(get_event_service),
) -> List[ParticipationHistoryItem]:
    return event_service.get_participation_history(
        current_user.id, limit=limit, offset=offset
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int = Path(..., ge=1),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    return event_service.get_event(event_id)


@router.get("/{event_id}/stats", response_model=EventStats)
async def get_event_stats(
    event_id: int = Path(..., ge=1),
    event_service: EventService = Depends(get_event_service),
) -> EventStats:
    return event_service.get_event_stats(event_id)


@router.post(
    "/{event_id}/bet",
    response_model=BetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def place_bet(
    payload: BetRequest,
    event_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    bet_service: BetService = Depends(get_bet_service),
) -> BetResponse:
    """
    이벤트 참가 - 참가비를 차감하고 참가 기록을 생성

    인증 필요: Bearer 토큰

    HTTP Status:
        201: 참가 성공
        400: 허용되지 않은 참가비(BET_002) / 잘못된 선택지(BET_003)
        402: 잔액 부족 (BALANCE_001)
        404: 이벤트 없음 (EVENT_001)
        409: 이미 참가함 (BET_004)
        410: 마감/중단/해결된 이벤트 (BET_001)
    """
    return bet_service.place_bet(
        event_id=event_id,
        user_id=current_user.id,
        prediction=payload.prediction,
        entry_fee=payload.entry_fee,
    )


@router.get("/{event_id}/my-prediction", response_model=Optional[ParticipantResponse])
async def get_my_prediction(
    event_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    event_service: EventService = Depends(get_event_service),
) -> Optional[ParticipantResponse]:
    """참가하지 않았으면 null"""
    return event_service.get_user_prediction(event_id, current_user.id)


@admin_router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    current_user: UserSchema = Depends(require_admin),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    event = event_service.create_event(payload)
    logger.info(f"Admin {current_user.id} created event {event.id}")
    return event


@admin_router.patch("/{event_id}/suspend", response_model=EventResponse)
async def suspend_event(
    payload: SuspendEventRequest,
    event_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(require_admin),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    event = event_service.set_suspended(event_id, payload.is_suspended)
    logger.info(
        f"Admin {current_user.id} set is_suspended={payload.is_suspended} on event {event_id}"
    )
    return event
