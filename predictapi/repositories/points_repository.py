"""
포인트 리포지토리 - 잔액과 원장(points_history)에 대한 데이터베이스 접근

핵심 특징:
- users.points 의 변경은 반드시 apply_points_change 한 곳에서만 일어난다
- 잔액 변경과 원장 기록은 호출자의 트랜잭션 안에서 함께 flush 된다
- 사용자 행을 FOR UPDATE 로 잠가 동일 사용자에 대한 동시 변경을 직렬화한다
- 원장을 순서대로 재생하면 현재 잔액이 재현되어야 한다 (정합성 검증)
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session

from predictapi.core.exceptions import UserNotFoundError
from predictapi.models.points import PointsHistory as PointsHistoryModel, PointsReason
from predictapi.models.user import User as UserModel
from predictapi.schemas.points import (
    PointsIntegrityCheckResponse,
    PointsLedgerEntry,
    PointsLedgerResponse,
)
from predictapi.repositories.base import BaseRepository


class PointsRepository(BaseRepository[PointsHistoryModel, PointsLedgerEntry]):
    """
    포인트 리포지토리 - 포인트 관련 모든 데이터베이스 작업 처리

    주요 기능:
    1. 원자성 - 잔액 갱신과 원장 기록이 같은 트랜잭션에 포함됨
    2. 직렬화 - 사용자 행 잠금으로 동시 변경 순서 보장
    3. 완전한 감사 추적 - 모든 포인트 변동이 정확히 한 행으로 기록됨
    """

    def __init__(self, db: Session):
        super().__init__(PointsHistoryModel, PointsLedgerEntry, db)

    def lock_user(self, user_id: int) -> UserModel:
        """사용자 행 잠금 후 반환. 없으면 UserNotFoundError"""
        user = (
            self.db.query(UserModel)
            .filter(UserModel.id == user_id)
            .populate_existing()
            .with_for_update()
            .one_or_none()
        )
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def apply_points_change(
        self,
        user_id: int,
        amount: int,
        reason: PointsReason,
        event_id: Optional[int] = None,
    ) -> int:
        """
        잔액 변경의 유일한 진입점

        Args:
            user_id: 대상 사용자 ID
            amount: 변동량 (양수=지급, 음수=차감). 0 이상 보장은 호출자 책임
            reason: 원장 사유
            event_id: 관련 이벤트 ID (선택)

        Returns:
            int: 변경 후 잔액

        핵심 로직:
        1. 사용자 행 잠금 후 현재 잔액 조회
        2. new_balance = current + amount 를 users.points 에 기록
        3. 동일한 new_balance 로 원장 한 행 추가
        4. flush 만 수행 - commit/rollback 은 호출자의 트랜잭션이 결정
        """
        user = self.lock_user(user_id)
        new_balance = int(user.points) + int(amount)
        user.points = new_balance

        self.db.add(
            self.model_class(
                user_id=user_id,
                change_amount=int(amount),
                new_balance=new_balance,
                reason=reason,
                event_id=event_id,
            )
        )
        self.db.flush()
        return new_balance

    def get_user_balance(self, user_id: int) -> int:
        """사용자의 현재 포인트 잔액 조회 (users.points)"""
        points = (
            self.db.query(UserModel.points).filter(UserModel.id == user_id).scalar()
        )
        if points is None:
            raise UserNotFoundError(user_id)
        return int(points)

    def get_user_ledger(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> PointsLedgerResponse:
        """사용자 포인트 원장 조회 (페이징, 최신순)"""
        total_count = (
            self.db.query(func.count(self.model_class.id))
            .filter(self.model_class.user_id == user_id)
            .scalar()
        ) or 0

        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )

        return PointsLedgerResponse(
            balance=self.get_user_balance(user_id),
            entries=[self._to_schema(instance) for instance in model_instances],
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def has_entry(self, user_id: int, reason: PointsReason) -> bool:
        return (
            self.db.query(self.model_class.id)
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.reason == reason,
            )
            .first()
            is not None
        )

    @staticmethod
    def _replay(entries: List[PointsHistoryModel]) -> Tuple[int, Optional[int]]:
        """원장을 0부터 재생. (재생 잔액, 처음으로 불일치한 entry id) 반환"""
        balance = 0
        broken_entry_id = None
        for entry in entries:
            balance += int(entry.change_amount)
            if broken_entry_id is None and balance != int(entry.new_balance):
                broken_entry_id = entry.id
        return balance, broken_entry_id

    def verify_integrity_for_user(self, user_id: int) -> PointsIntegrityCheckResponse:
        """
        특정 사용자의 포인트 정합성 검증

        검증 방식:
        1. id 순서로 change_amount 를 누적하며 각 행의 new_balance 와 비교
        2. 최종 누적값을 users.points 와 비교
        """
        recorded_balance = self.get_user_balance(user_id)
        entries = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(asc(self.model_class.id))
            .all()
        )
        replayed_balance, broken_entry_id = self._replay(entries)

        ok = broken_entry_id is None and replayed_balance == recorded_balance
        return PointsIntegrityCheckResponse(
            status="OK" if ok else "MISMATCH",
            user_id=user_id,
            recorded_balance=recorded_balance,
            replayed_balance=replayed_balance,
            entry_count=len(entries),
            broken_entry_id=broken_entry_id,
            mismatched_user_ids=[] if ok else [user_id],
            verified_at=datetime.now(timezone.utc),
        )

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """
        전체 사용자 포인트 정합성 검증

        사용자별 델타 합계를 users.points 와 비교한다. 원장이 없는 사용자는
        잔액이 0 이어야 한다. 대량 데이터에서는 배치 작업으로 실행 권장.
        """
        delta_sums: Dict[int, int] = dict(
            self.db.query(
                self.model_class.user_id, func.sum(self.model_class.change_amount)
            )
            .group_by(self.model_class.user_id)
            .all()
        )
        users = self.db.query(UserModel.id, UserModel.points).all()

        mismatched = [
            user_id
            for user_id, points in users
            if int(delta_sums.get(user_id) or 0) != int(points)
        ]
        total_entries = self.db.query(func.count(self.model_class.id)).scalar() or 0

        return PointsIntegrityCheckResponse(
            status="OK" if not mismatched else "MISMATCH",
            entry_count=total_entries,
            users_checked=len(users),
            mismatched_user_ids=mismatched,
            verified_at=datetime.now(timezone.utc),
        )
