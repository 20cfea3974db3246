"""
타임존 유틸리티

DB 에는 timezone-aware UTC 로 저장하지만 sqlite 처럼 tz 정보를 잃는 드라이버가
있으므로 비교 전에 항상 aware datetime 으로 맞춘다.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """naive datetime 은 UTC 로 간주하고, aware datetime 은 UTC 로 변환합니다."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def hours_between(earlier: datetime, later: datetime) -> float:
    """두 시각 사이의 시간(hour) 차이"""
    delta = ensure_utc(later) - ensure_utc(earlier)
    return delta.total_seconds() / 3600
