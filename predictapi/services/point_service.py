import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from predictapi.config import Settings, settings as default_settings
from predictapi.core.exceptions import (
    BusinessLogicError,
    InsufficientBalanceError,
)
from predictapi.models.points import PointsReason
from predictapi.repositories.points_repository import PointsRepository
from predictapi.repositories.settlement_repository import SettlementRepository
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
from predictapi.utils.timezone_utils import hours_between, utc_now

logger = logging.getLogger(__name__)


class PointService:
    """포인트 관련 비즈니스 로직을 담당하는 서비스

    이벤트와 무관한 포인트 변동(일일 지급, 가입 보너스, 관리자 조정)과
    잔액/원장 조회, 정합성 검증을 담당한다. 모든 쓰기 작업은 하나의
    트랜잭션으로 commit 되거나 전부 rollback 된다.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or default_settings
        self.points_repo = PointsRepository(db)
        self.audit_repo = SettlementRepository(db)

    def get_user_balance(self, user_id: int) -> PointsBalanceResponse:
        """사용자 포인트 잔액 조회"""
        balance = self.points_repo.get_user_balance(user_id)
        return PointsBalanceResponse(user_id=user_id, balance=balance)

    def get_user_ledger(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> PointsLedgerResponse:
        """사용자 포인트 거래 내역 조회

        Args:
            user_id: 사용자 ID
            limit: 페이지 크기 (최대 100)
            offset: 오프셋
        """
        limit = max(1, min(limit, 100))
        offset = max(0, offset)
        return self.points_repo.get_user_ledger(
            user_id=user_id, limit=limit, offset=offset
        )

    def _commit_change(
        self, user_id: int, amount: int, reason: PointsReason
    ) -> PointsChangeResult:
        try:
            new_balance = self.points_repo.apply_points_change(user_id, amount, reason)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return PointsChangeResult(
            user_id=user_id,
            change_amount=amount,
            new_balance=new_balance,
            reason=reason,
        )

    def claim_daily_points(self, user_id: int) -> DailyClaimResponse:
        """일일 무료 포인트 지급 (쿨다운 내 재요청 거부)

        사용자 행을 잠근 상태에서 쿨다운을 확인하므로 동시 요청 중 하나만 성공한다.
        """
        cooldown = self.settings.DAILY_CLAIM_COOLDOWN_HOURS
        award = self.settings.DAILY_CLAIM_POINTS
        now = utc_now()

        try:
            user = self.points_repo.lock_user(user_id)
            if user.last_claimed is not None:
                elapsed = hours_between(user.last_claimed, now)
                if elapsed < cooldown:
                    raise BusinessLogicError(
                        error_code="CLAIM_001",
                        message="You already claimed free points today",
                        details={
                            "hours_remaining": math.ceil(cooldown - elapsed),
                            "last_claimed": user.last_claimed.isoformat(),
                        },
                    )

            new_balance = self.points_repo.apply_points_change(
                user_id, award, PointsReason.DAILY_CLAIM
            )
            user.last_claimed = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Daily claim: awarded {award} points to user {user_id}")
        return DailyClaimResponse(
            message="Successfully claimed free points!",
            points=award,
            new_total=new_balance,
            claimed_at=now,
        )

    def grant_registration_bonus(self, user_id: int) -> PointsChangeResult:
        """가입 보너스 지급 (사용자당 1회)"""
        try:
            self.points_repo.lock_user(user_id)
            if self.points_repo.has_entry(user_id, PointsReason.REGISTRATION):
                raise BusinessLogicError(
                    error_code="REGISTRATION_001",
                    message="Registration bonus already granted",
                    details={"user_id": user_id},
                )
        except Exception:
            self.db.rollback()
            raise

        result = self._commit_change(
            user_id, self.settings.REGISTRATION_BONUS_POINTS, PointsReason.REGISTRATION
        )
        logger.info(
            f"Registration bonus of {result.change_amount} points granted to user {user_id}"
        )
        return result

    def admin_adjust_points(
        self, admin_id: int, request: AdminPointsAdjustmentRequest
    ) -> PointsChangeResult:
        """관리자 포인트 조정

        차감으로 잔액이 음수가 되는 조정은 거부한다.
        """
        try:
            user = self.points_repo.lock_user(request.user_id)
            if request.amount < 0 and user.points + request.amount < 0:
                raise InsufficientBalanceError(
                    f"Insufficient balance for adjustment. Required: {abs(request.amount)}, Available: {user.points}",
                    details={"user_id": request.user_id, "balance": user.points},
                )
        except Exception:
            self.db.rollback()
            raise

        try:
            new_balance = self.points_repo.apply_points_change(
                request.user_id, request.amount, PointsReason.ADMIN_ADJUSTMENT
            )
            self.audit_repo.add_audit_log(
                event_id=None,
                action="admin_points_adjustment",
                details={
                    "admin_id": admin_id,
                    "user_id": request.user_id,
                    "amount": request.amount,
                    "note": request.note,
                    "new_balance": new_balance,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        result = PointsChangeResult(
            user_id=request.user_id,
            change_amount=request.amount,
            new_balance=new_balance,
            reason=PointsReason.ADMIN_ADJUSTMENT,
        )
        action = "Added" if request.amount > 0 else "Deducted"
        logger.info(
            f"{action} {abs(request.amount)} points for user {request.user_id} by admin {admin_id}: {request.note}"
        )
        return result

    def get_platform_fee_summary(self) -> PlatformFeeSummary:
        """누적 수수료, 이전된 총액, 이전 가능액"""
        collected = self.audit_repo.total_platform_fees()
        transferred = self.audit_repo.get_transferred_fees()
        return PlatformFeeSummary(
            total_collected=collected,
            total_transferred=transferred,
            available=collected - transferred,
        )

    def transfer_platform_fees(
        self, admin_id: int, request: PlatformFeeTransferRequest
    ) -> PlatformFeeTransferResult:
        """누적 수수료를 사용자에게 이전

        수수료 계정 행 -> 사용자 행 순서로 잠근다. 이전 가능액
        (누적 수수료 - 이미 이전한 총액)을 넘는 요청은 거부한다.
        """
        try:
            account = self.audit_repo.lock_fee_account()
            available = self.audit_repo.total_platform_fees() - account.transferred_total
            if request.amount > available:
                raise BusinessLogicError(
                    error_code="FEE_001",
                    message=f"Insufficient platform fees. Available: {available}",
                    details={"requested": request.amount, "available": available},
                )

            user = self.points_repo.lock_user(request.user_id)
            points_before = int(user.points)
            new_balance = self.points_repo.apply_points_change(
                request.user_id, request.amount, PointsReason.PLATFORM_FEE_TRANSFER
            )
            account.transferred_total += request.amount
            self.audit_repo.add_audit_log(
                event_id=None,
                action="platform_fee_transfer",
                details={
                    "admin_id": admin_id,
                    "user_id": request.user_id,
                    "amount": request.amount,
                    "reason": request.reason,
                    "user_points_before": points_before,
                    "user_points_after": new_balance,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Transferred {request.amount} platform fee points to user {request.user_id} "
            f"by admin {admin_id}: {request.reason}"
        )
        return PlatformFeeTransferResult(
            user_id=request.user_id,
            amount_transferred=request.amount,
            user_points_before=points_before,
            user_points_after=new_balance,
            available_after=available - request.amount,
        )

    def verify_user_integrity(self, user_id: int) -> PointsIntegrityCheckResponse:
        """사용자별 포인트 정합성 검증 (원장 재생 == 현재 잔액)"""
        result = self.points_repo.verify_integrity_for_user(user_id)
        if result.status == "MISMATCH":
            logger.warning(
                f"Points integrity mismatch for user {user_id}: "
                f"recorded={result.recorded_balance} replayed={result.replayed_balance} "
                f"broken_entry={result.broken_entry_id}"
            )
        return result

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """전체 포인트 정합성 검증"""
        result = self.points_repo.verify_global_integrity()
        if result.status == "MISMATCH":
            logger.warning(
                f"Global points integrity mismatch: users={result.mismatched_user_ids}"
            )
        else:
            logger.info(f"Global points integrity verified ({result.users_checked} users)")
        return result
