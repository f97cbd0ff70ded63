import logging
from typing import Optional

from jose import JWTError, jwt

from streala.config import Settings

logger = logging.getLogger(__name__)


class AuthService:
    """세션 토큰 검증 (토큰 발급은 외부 인증 서비스 담당)"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def verify_token(self, token: str) -> Optional[str]:
        """
        JWT 토큰 검증

        Returns:
            Optional[str]: 토큰 subject(인증 사용자 ID), 유효하지 않으면 None
        """
        if not self.settings.SECRET_KEY:
            logger.error("[auth] SECRET_KEY not configured")
            return None
        try:
            payload = jwt.decode(
                token, self.settings.SECRET_KEY, algorithms=[self.settings.JWT_ALGORITHM]
            )
        except JWTError:
            return None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return subject
