from typing import Optional
from sqlalchemy.orm import Session

from predictapi.models.user import User as UserModel
from predictapi.schemas.user import User as UserSchema
from predictapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_by_username(self, username: str) -> Optional[UserSchema]:
        return self.get_by_field("username", username)

    def create_user(
        self,
        username: str,
        email: Optional[str] = None,
        is_admin: bool = False,
    ) -> UserModel:
        """잔액 0 으로 사용자 생성 (초기 지급은 원장을 통해서만)"""
        return self.add(username=username, email=email, points=0, is_admin=is_admin)
