import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from streala.repositories.notification_repository import NotificationRepository
from streala.repositories.streamer_repository import StreamerSettingsRepository
from streala.schemas.notification import NotificationCleanupResult, NotificationSchema
from streala.utils.fees import format_brl
from streala.utils.timezone_utils import get_utc_now

logger = logging.getLogger(__name__)

SALE_NOTIFICATION_TYPE = "sale"
SALE_NOTIFICATION_TITLE = "Nova venda!"
SALE_NOTIFICATION_LINK = "/transactions"


class NotificationService:
    """대시보드 알림 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.notification_repo = NotificationRepository(db)
        self.settings_repo = StreamerSettingsRepository(db)

    def emit_sale(
        self, streamer_id: str, alert_title: Optional[str], amount_cents: int
    ) -> Optional[NotificationSchema]:
        """
        판매 완료 알림 기록

        Args:
            streamer_id: 스트리머 ID
            alert_title: 판매된 알림 제목 (없으면 "Alerta")
            amount_cents: 총 결제 금액 (센트)
        """
        title = alert_title or "Alerta"
        return self.notification_repo.create_notification(
            streamer_id=streamer_id,
            type=SALE_NOTIFICATION_TYPE,
            title=SALE_NOTIFICATION_TITLE,
            message=f'Você vendeu o alerta "{title}" por {format_brl(amount_cents)}',
            link=SALE_NOTIFICATION_LINK,
        )

    def cleanup_expired(self) -> NotificationCleanupResult:
        """
        보관 기간이 지난 알림 삭제

        notification_retention_days가 설정된 스트리머만 대상으로 하며,
        한 스트리머의 실패가 다른 스트리머 처리를 막지 않습니다.
        """
        now = get_utc_now()
        deleted_total = 0
        processed = 0

        for streamer_settings in self.settings_repo.list_with_retention():
            days = streamer_settings.notification_retention_days
            if days is None or days <= 0:
                continue
            cutoff = now - timedelta(days=days)
            try:
                deleted = self.notification_repo.delete_older_than(
                    streamer_settings.streamer_id, cutoff
                )
            except Exception as e:
                logger.error(
                    f"[notifications] Cleanup failed for streamer "
                    f"{streamer_settings.streamer_id}: {e}"
                )
                continue

            processed += 1
            deleted_total += deleted
            if deleted:
                logger.info(
                    f"[notifications] Deleted {deleted} notifications for streamer "
                    f"{streamer_settings.streamer_id} (older than {days} days)"
                )

        return NotificationCleanupResult(
            deleted=deleted_total, processed_streamers=processed
        )
