from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

from predictapi.config import settings
from predictapi.core.exceptions import AuthenticationError
from predictapi.schemas.auth import TokenData


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """액세스 토큰 발급 (운영에서는 인증 서비스가 발급, 로컬/테스트용)"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


class TokenPayload(BaseModel):
    user_id: int
    is_admin: bool = False


def decode_access_token(token: str) -> TokenData:
    """JWT 토큰을 검증하고 TokenData 를 반환합니다."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        token_data = TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid or expired token")
    return TokenData(user_id=token_data.user_id, is_admin=token_data.is_admin)
