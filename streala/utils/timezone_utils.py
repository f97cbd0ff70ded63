"""
타임존 유틸리티

DB 타임스탬프는 모두 UTC로 기록합니다.
"""

from datetime import datetime, timezone


def get_utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)
