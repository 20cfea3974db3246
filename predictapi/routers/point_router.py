"""
포인트 시스템 API 라우터

사용자용 엔드포인트:
- GET /points/balance: 내 포인트 잔액 조회
- GET /points/ledger: 내 포인트 거래 내역
- POST /points/claim-daily: 일일 무료 포인트 받기

관리자용 엔드포인트:
- POST /admin/points/adjust: 포인트 조정 (지급/차감)
- GET /admin/points/integrity: 전체 정합성 검증
- GET /admin/points/integrity/{user_id}: 사용자별 정합성 검증
- GET /admin/points/fees: 플랫폼 수수료 현황
- POST /admin/points/fees/transfer: 누적 수수료를 사용자에게 이전

인증 및 권한:
- 모든 엔드포인트는 Bearer 토큰 인증 필요
- 관리자 엔드포인트는 is_admin=True 권한 필요
"""

from fastapi import APIRouter, Depends, Query, Path

from predictapi.core.auth_middleware import require_admin, get_current_active_user
from predictapi.schemas.user import User as UserSchema
from predictapi.services.point_service import PointService
from predictapi.deps import get_point_service
from predictapi.schemas.points import (
    AdminPointsAdjustmentRequest,
    DailyClaimResponse,
    PointsBalanceResponse,
    PointsChangeResult,
    PointsIntegrityCheckResponse,
    PointsLedgerResponse,
    PlatformFeeSummary,
    PlatformFeeTransferRequest,
    PlatformFeeTransferResult,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/points", tags=["points"])
admin_router = APIRouter(prefix="/admin/points", tags=["admin-points"])


@router.get("/balance", response_model=PointsBalanceResponse)
async def get_my_balance(
    current_user: UserSchema = Depends(get_current_active_user),
    point_service: PointService = Depends(get_point_service),
) -> PointsBalanceResponse:
    """
    내 포인트 잔액 조회 - 인증된 사용자의 현재 포인트 잔액

    인증 필요: Bearer 토큰
    권한: 일반 사용자
    """
    return point_service.get_user_balance(current_user.id)


@router.get("/ledger", response_model=PointsLedgerResponse)
async def get_my_ledger(
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_active_user),
    point_service: PointService = Depends(get_point_service),
) -> PointsLedgerResponse:
    """
    내 포인트 거래 내역 조회 - 페이징을 통한 거래 내역 조회

    Query Parameters:
        limit: 한 페이지에 조회할 항목 수 (1-100, 기본: 50)
        offset: 건너뛸 항목 수 (기본: 0)

    Returns:
        PointsLedgerResponse: 거래 내역 및 페이징 정보
        - balance: 현재 잔액
        - entries: 거래 내역 리스트 (최신순)
        - total_count: 전체 거래 건수
        - has_next: 다음 페이지 존재 여부
    """
    return point_service.get_user_ledger(current_user.id, limit=limit, offset=offset)


@router.post("/claim-daily", response_model=DailyClaimResponse)
async def claim_daily_points(
    current_user: UserSchema = Depends(get_current_active_user),
    point_service: PointService = Depends(get_point_service),
) -> DailyClaimResponse:
    """일일 무료 포인트 (24시간에 1회, 재요청 시 400 CLAIM_001)"""
    return point_service.claim_daily_points(current_user.id)


@admin_router.post("/adjust", response_model=PointsChangeResult)
async def admin_adjust_points(
    request: AdminPointsAdjustmentRequest,
    current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsChangeResult:
    """
    관리자 포인트 조정 - 양수는 지급, 음수는 차감

    HTTP Status:
        200: 조정 성공
        402: 차감 후 잔액이 음수가 되는 경우
        404: 사용자 없음
    """
    return point_service.admin_adjust_points(current_user.id, request)


@admin_router.get("/integrity", response_model=PointsIntegrityCheckResponse)
async def verify_global_integrity(
    _current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """전체 포인트 정합성 검증 (사용자별 원장 합계 == 잔액)"""
    return point_service.verify_global_integrity()


@admin_router.get("/integrity/{user_id}", response_model=PointsIntegrityCheckResponse)
async def verify_user_integrity(
    user_id: int = Path(..., ge=1),
    _current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    """특정 사용자 포인트 정합성 검증 (원장 재생)"""
    return point_service.verify_user_integrity(user_id)


@admin_router.get("/fees", response_model=PlatformFeeSummary)
async def get_platform_fee_summary(
    _current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PlatformFeeSummary:
    """누적 플랫폼 수수료 / 이전된 총액 / 이전 가능액"""
    return point_service.get_platform_fee_summary()


@admin_router.post("/fees/transfer", response_model=PlatformFeeTransferResult)
async def transfer_platform_fees(
    request: PlatformFeeTransferRequest,
    current_user: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PlatformFeeTransferResult:
    """
    누적 수수료를 사용자에게 이전 (원장 사유: platform_fee_transfer)

    HTTP Status:
        200: 이전 성공
        400: 이전 가능액 초과 (FEE_001)
        404: 사용자 없음
    """
    return point_service.transfer_platform_fees(current_user.id, request)
