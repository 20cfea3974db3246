from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query

from predictapi.core.auth_middleware import require_admin
from predictapi.schemas.user import User as UserSchema
from predictapi.schemas.auth import BaseResponse
from predictapi.schemas.settlement import ResolveEventRequest
from predictapi.services.resolution_service import ResolutionService
from predictapi.deps import get_resolution_service


router = APIRouter(prefix="/admin/settlement", tags=["settlement"])


@router.post("/{event_id}/resolve", response_model=BaseResponse)
async def resolve_event(
    payload: ResolveEventRequest,
    event_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(require_admin),  # Admin authentication required
    resolution_service: ResolutionService = Depends(get_resolution_service),
) -> Any:
    """이벤트를 정답으로 해결하고 상금을 분배합니다. (관리자 전용)

    이미 해결된 이벤트는 409(SETTLE_001). 참가자가 없는 이벤트는 지급 없이 종료된다.
    """
    result = await resolution_service.resolve_manually(
        event_id,
        payload.correct_answer,
        final_price=payload.final_price,
        admin_id=current_user.id,
    )
    return BaseResponse(
        success=True, data={"settlement_result": result.model_dump(mode="json")}
    )


@router.get("/runs/latest", response_model=BaseResponse)
async def get_latest_run(
    trigger: Optional[str] = Query(None, description="scheduler | admin"),
    _current_user: UserSchema = Depends(require_admin),  # Admin authentication required
    resolution_service: ResolutionService = Depends(get_resolution_service),
) -> Any:
    """가장 최근 해결 실행 기록을 조회합니다. (관리자 전용)"""
    run = resolution_service.get_last_run(trigger)
    return BaseResponse(
        success=True,
        data={"run": run.model_dump(mode="json") if run else None},
    )
