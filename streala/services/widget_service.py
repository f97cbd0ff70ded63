import logging

from sqlalchemy.orm import Session

from streala.config import Settings
from streala.core.exceptions import InvalidPublicKeyError, NotFoundError
from streala.repositories.alert_queue_repository import AlertQueueRepository
from streala.repositories.alert_repository import AlertRepository
from streala.repositories.streamer_repository import (
    StreamerRepository,
    StreamerSettingsRepository,
)
from streala.schemas.alert import AlertContent
from streala.schemas.streamer import StreamerSchema
from streala.schemas.widget import WidgetQueueResponse, WidgetSettings

logger = logging.getLogger(__name__)


class WidgetService:
    """
    오버레이 위젯 읽기 전용 서비스

    공개 키로만 접근하며 스트리머의 큐/설정/알림 내용 외의 데이터(금액 분배 등)는
    노출하지 않습니다. 경로형/쿼리형 위젯 라우트가 모두 이 서비스를 사용합니다.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.streamer_repo = StreamerRepository(db)
        self.settings_repo = StreamerSettingsRepository(db)
        self.queue_repo = AlertQueueRepository(db)
        self.alert_repo = AlertRepository(db)

    def resolve_streamer(self, public_key: str) -> StreamerSchema:
        streamer = self.streamer_repo.get_by_public_key(public_key)
        if not streamer:
            raise InvalidPublicKeyError()
        return streamer

    def get_settings(self, public_key: str) -> WidgetSettings:
        """위젯 설정 조회 (NULL 값은 기본값으로 채움)"""
        streamer = self.resolve_streamer(public_key)
        stored = self.settings_repo.get_for_streamer(streamer.id)

        def _pick(value, default):
            return default if value is None else value

        return WidgetSettings(
            streamer_id=streamer.id,
            overlay_image_duration_seconds=_pick(
                stored.overlay_image_duration_seconds if stored else None,
                self.settings.OVERLAY_DEFAULT_IMAGE_DURATION_SECONDS,
            ),
            widget_position=_pick(
                stored.widget_position if stored else None,
                self.settings.OVERLAY_DEFAULT_POSITION,
            ),
            alert_start_delay_seconds=_pick(
                stored.alert_start_delay_seconds if stored else None,
                self.settings.OVERLAY_DEFAULT_START_DELAY_SECONDS,
            ),
            alert_between_delay_seconds=_pick(
                stored.alert_between_delay_seconds if stored else None,
                self.settings.OVERLAY_DEFAULT_BETWEEN_DELAY_SECONDS,
            ),
        )

    def list_queued(self, public_key: str, limit: int = 100) -> WidgetQueueResponse:
        """재생 대기 항목 조회 (복구 로드용, 도착 순서)"""
        streamer = self.resolve_streamer(public_key)
        items = self.queue_repo.list_queued(streamer.id, limit=limit)
        return WidgetQueueResponse(items=items, total_count=len(items))

    def get_alert_content(self, public_key: str, alert_id: str, queue_id: int) -> AlertContent:
        """
        재생할 알림 내용 조회 후 큐 항목 payload(구매자 메시지) 병합

        Raises:
            InvalidPublicKeyError: 공개 키 오류
            NotFoundError: 이 스트리머의 큐 항목/알림이 아님
        """
        streamer = self.resolve_streamer(public_key)

        item = self.queue_repo.get_by_id(queue_id)
        if not item or item.streamer_id != streamer.id or item.alert_id != alert_id:
            raise NotFoundError("Queue item not found", details={"queue_id": queue_id})

        alert = self.alert_repo.get_by_id(alert_id)
        if not alert or alert.streamer_id != streamer.id:
            raise NotFoundError("Alert not found", details={"alert_id": alert_id})

        payload = item.payload or {}
        return AlertContent(
            queue_id=item.id,
            alert_id=alert.id,
            title=alert.title,
            media_type=alert.media_type,
            media_path=alert.media_path,
            thumb_path=alert.thumb_path,
            price_cents=alert.price_cents,
            duration_seconds=alert.duration_seconds,
            buyer_name=payload.get("buyer_name"),
            buyer_note=payload.get("buyer_note"),
        )
