from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from predictapi.models.base import BaseModel, BigIntPK


class User(BaseModel):
    """
    사용자 잔액 테이블

    points 는 현재 잔액의 캐시이며 반드시 PointsRepository.apply_points_change
    를 통해서만 변경된다. 음수 방지는 스토리지가 아니라 참가 검증에서 보장한다.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_points", "points"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_claimed: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, points={self.points})>"
