from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="predictapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Predict Pool API"
    PROJECT_NAME: str = "Predict Pool API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "public"

    # 명시적으로 지정하면 POSTGRES_* 조합보다 우선 (로컬/테스트용 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security (토큰 발급은 인증 서비스 담당, 여기서는 검증만)
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Redis (resolution broadcast)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    BROADCAST_ENABLED: bool = True
    BROADCAST_CHANNEL: str = "events:resolution"

    # Business Rules
    PLATFORM_FEE_RATE: float = 0.05  # 전체 풀 대비 플랫폼 수수료 (이벤트별 설정 불가)
    ALLOWED_ENTRY_FEES: List[int] = [100, 200, 500, 1000]
    DAILY_CLAIM_POINTS: int = 250
    DAILY_CLAIM_COOLDOWN_HOURS: int = 24
    REGISTRATION_BONUS_POINTS: int = 1000

    # Settlement
    SETTLEMENT_RETRY_COUNT: int = 3
    SETTLEMENT_RETRY_BACKOFF_SECONDS: float = 0.5


settings = Settings()
