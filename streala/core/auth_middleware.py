import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from streala.config import settings
from streala.services.auth_service import AuthService

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def _extract_bearer_from_internal_header(request: Request) -> Optional[str]:
    """Extract a token sent via `settings.INTERNAL_AUTH_HEADER` as `Bearer <token>`.

    Used when a proxy in front of the API occupies the Authorization header.
    """
    raw = request.headers.get(settings.INTERNAL_AUTH_HEADER.lower())
    if not raw:
        return None
    parts = raw.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
        return parts[1].strip()
    return None


def get_current_auth_user_id_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """선택적 사용자 인증 - 토큰이 없거나 유효하지 않으면 None 반환

    같은 엔드포인트에서 공개 키 경로(위젯)와 세션 경로(대시보드)를 함께 받기 때문에
    인증 필수 여부는 라우터에서 action별로 판단합니다.
    """
    # 1) Prefer internal header (proxy occupies Authorization)
    token: Optional[str] = _extract_bearer_from_internal_header(request)
    if not token and credentials:
        token = credentials.credentials
    if not token:
        return None
    return AuthService(settings=settings).verify_token(token)


def require_internal_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """크론 등 내부 호출 전용 엔드포인트 보호 (AUTH_TOKEN 비교)"""
    expected = settings.AUTH_TOKEN
    if not expected or not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Internal token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not hmac.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid internal token",
        )
