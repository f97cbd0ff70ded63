import logging

from fastapi import APIRouter, Depends

from streala.core.auth_middleware import require_internal_token
from streala.deps import get_notification_service
from streala.schemas.notification import NotificationCleanupResult
from streala.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post(
    "/cleanup",
    response_model=NotificationCleanupResult,
    dependencies=[Depends(require_internal_token)],
)
def cleanup_notifications(
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationCleanupResult:
    """보관 기간이 지난 알림 삭제 (크론 전용, AUTH_TOKEN 필요)"""
    result = notification_service.cleanup_expired()
    logger.info(
        f"[notifications] Cleanup finished: deleted={result.deleted} "
        f"streamers={result.processed_streamers}"
    )
    return result
