"""
Resolution broadcast over Redis pub/sub.
- Never raises exceptions (returns False on failure)
- Lazy connection with health checks
- JSON payload: {event_id, correct_answer, final_price, status}
"""

from decimal import Decimal
from typing import Optional, Any, Dict
import redis.asyncio as redis
import json
import logging
from predictapi.config import Settings

logger = logging.getLogger(__name__)


class BroadcastService:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None
        self._logger = logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return bool(self._settings.BROADCAST_ENABLED)

    async def _get_client(self) -> Optional[redis.Redis]:
        """Lazy connection with health check"""
        if self._client is None:
            try:
                redis_kwargs = {
                    "host": self._settings.REDIS_HOST,
                    "port": self._settings.REDIS_PORT,
                    "db": self._settings.REDIS_DB,
                    "decode_responses": True,
                    "socket_connect_timeout": 5,
                    "socket_keepalive": True,
                    "health_check_interval": 30,
                }

                if self._settings.REDIS_PASSWORD:
                    redis_kwargs["password"] = self._settings.REDIS_PASSWORD

                self._client = redis.Redis(**redis_kwargs)
                await self._client.ping()
            except Exception as e:
                self._logger.warning(f"Redis connection failed: {e}")
                await self._discard_client()
        return self._client

    async def _discard_client(self) -> None:
        """실패한 연결의 커넥션 풀을 정리하고 버린다"""
        client, self._client = self._client, None
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                self._logger.debug(f"Redis client close failed: {e}")

    @staticmethod
    def build_message(
        event_id: int,
        correct_answer: Optional[str],
        final_price: Optional[Decimal],
        status: str,
    ) -> Dict[str, Any]:
        return {
            "event_id": event_id,
            "correct_answer": correct_answer,
            "final_price": str(final_price) if final_price is not None else None,
            "status": status,
        }

    async def publish_resolution(
        self,
        event_id: int,
        correct_answer: Optional[str],
        final_price: Optional[Decimal],
        status: str,
    ) -> bool:
        """이벤트 해결 결과 발행, 성공 여부만 반환"""
        if not self.enabled:
            return False
        channel = self._settings.BROADCAST_CHANNEL
        try:
            client = await self._get_client()
            if client is None:
                return False
            payload = json.dumps(
                self.build_message(event_id, correct_answer, final_price, status)
            )
            await client.publish(channel, payload)
            return True
        except Exception as e:
            self._logger.warning(
                f"Redis PUBLISH failed for {channel} (event {event_id}): {e}"
            )
            return False

    async def close(self):
        """Close connection pool on app shutdown"""
        if self._client:
            await self._client.aclose()
            self._client = None
