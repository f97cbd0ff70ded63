from datetime import timedelta
from typing import Optional

from jose import jwt

from streala.config import settings
from streala.utils.timezone_utils import get_utc_now

DEFAULT_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(auth_user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    세션 토큰 발급 (로컬 개발/테스트용)

    운영에서는 외부 인증 서비스가 같은 SECRET_KEY로 토큰을 발급합니다.
    """
    expire = get_utc_now() + (expires_delta or timedelta(minutes=DEFAULT_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": auth_user_id, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
