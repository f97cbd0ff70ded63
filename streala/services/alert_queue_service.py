import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from streala.config import Settings
from streala.core.exceptions import (
    AuthorizationError,
    InvalidPublicKeyError,
    InvalidStatusTransitionError,
    NotFoundError,
    RateLimitError,
)
from streala.models.alert_queue import QueueStatus
from streala.repositories.alert_queue_repository import AlertQueueRepository
from streala.repositories.alert_repository import AlertRepository
from streala.repositories.streamer_repository import StreamerRepository
from streala.schemas.alert_queue import QueueItemSchema
from streala.schemas.transaction import TransactionSchema
from streala.services.realtime_service import RealtimeService
from streala.utils.timezone_utils import get_utc_now

logger = logging.getLogger(__name__)


class AlertQueueService:
    """알림 큐 비즈니스 로직 (결제 승인 삽입, 테스트 알림, 위젯 상태 갱신)"""

    def __init__(self, db: Session, settings: Settings, realtime_service: RealtimeService):
        self.db = db
        self.settings = settings
        self.realtime_service = realtime_service
        self.queue_repo = AlertQueueRepository(db)
        self.alert_repo = AlertRepository(db)
        self.streamer_repo = StreamerRepository(db)

    async def enqueue_paid_alert(self, transaction: TransactionSchema) -> Optional[QueueItemSchema]:
        """
        결제 승인된 거래의 알림을 큐에 추가하고 실시간 채널로 알림

        호출 전에 거래의 paid 전환이 커밋되어 있어야 합니다.
        """
        item = self.queue_repo.enqueue(
            streamer_id=transaction.streamer_id,
            alert_id=transaction.alert_id,
            transaction_id=transaction.id,
            is_test=False,
            payload={"buyer_note": transaction.buyer_note},
        )
        if item is not None:
            logger.info(
                f"[alert_queue] Queued item {item.id} for transaction {transaction.id}"
            )
            await self.realtime_service.publish_insert(item)
        return item

    async def create_test_alert(self, auth_user_id: str, alert_id: str) -> QueueItemSchema:
        """
        테스트 알림 삽입

        순서: 스트리머 조회(404) -> 알림 조회(404) -> 소유권(403) -> 레이트 리밋(429)
        -> is_test 항목 삽입 -> 실시간 발행

        Raises:
            NotFoundError: 스트리머 또는 알림이 없음
            AuthorizationError: 다른 스트리머의 알림
            RateLimitError: 윈도우 내 테스트 알림 한도 초과
        """
        streamer = self.streamer_repo.get_by_auth_user_id(auth_user_id)
        if not streamer:
            raise NotFoundError("Streamer not found")

        alert = self.alert_repo.get_by_id(alert_id)
        if not alert:
            raise NotFoundError("Alert not found", details={"alert_id": alert_id})

        if alert.streamer_id != streamer.id:
            logger.warning(
                f"[alert_queue] Test alert ownership mismatch: streamer {streamer.id} "
                f"tried alert {alert_id}"
            )
            raise AuthorizationError("Not authorized to test this alert")

        window_start = get_utc_now() - timedelta(
            minutes=self.settings.TEST_ALERT_WINDOW_MINUTES
        )
        recent_count = self.queue_repo.count_test_items_since(streamer.id, window_start)
        if recent_count >= self.settings.TEST_ALERT_RATE_LIMIT:
            raise RateLimitError(
                f"Rate limit exceeded. Max {self.settings.TEST_ALERT_RATE_LIMIT} "
                f"test alerts per {self.settings.TEST_ALERT_WINDOW_MINUTES} minutes.",
                details={
                    "limit": self.settings.TEST_ALERT_RATE_LIMIT,
                    "window_minutes": self.settings.TEST_ALERT_WINDOW_MINUTES,
                },
            )

        item = self.queue_repo.enqueue(
            streamer_id=streamer.id,
            alert_id=alert.id,
            transaction_id=None,
            is_test=True,
            payload={"buyer_note": self.settings.TEST_ALERT_NOTE},
        )
        logger.info(f"[alert_queue] Test alert queued: {item.id} for streamer {streamer.id}")
        await self.realtime_service.publish_insert(item)
        return item

    def update_status(
        self, public_key: str, queue_id: int, status: QueueStatus
    ) -> QueueItemSchema:
        """
        위젯 공개 키로 큐 항목 상태 갱신

        같은 상태를 다시 요청하면 타임스탬프를 바꾸지 않고 현재 항목을 반환합니다.

        Raises:
            InvalidPublicKeyError: 공개 키에 해당하는 스트리머 없음
            NotFoundError: 큐 항목 없음
            AuthorizationError: 다른 스트리머의 큐 항목
            InvalidStatusTransitionError: 상태 머신이 허용하지 않는 전이
        """
        target = QueueStatus(status)
        if target not in QueueStatus.widget_writable():
            raise InvalidStatusTransitionError("-", target.value)

        streamer = self.streamer_repo.get_by_public_key(public_key)
        if not streamer:
            raise InvalidPublicKeyError()

        item = self.queue_repo.get_by_id(queue_id)
        if not item:
            raise NotFoundError("Queue item not found", details={"queue_id": queue_id})

        if item.streamer_id != streamer.id:
            logger.warning(
                f"[alert_queue] Queue item {queue_id} does not belong to streamer {streamer.id}"
            )
            raise AuthorizationError("Not authorized")

        current = QueueStatus(item.status)
        if current == target:
            return item

        if not QueueStatus.can_transition(current, target):
            raise InvalidStatusTransitionError(current.value, target.value)

        if not self.queue_repo.transition_status(queue_id, current, target):
            # 조회와 갱신 사이에 다른 위젯이 먼저 전이시킨 경우
            latest = self.queue_repo.get_by_id(queue_id)
            if latest is not None and QueueStatus(latest.status) == target:
                return latest
            raise InvalidStatusTransitionError(
                latest.status.value if latest else current.value, target.value
            )

        logger.info(f"[alert_queue] Queue item {queue_id}: {current.value} -> {target.value}")
        return self.queue_repo.get_by_id(queue_id)

    def list_queued(self, streamer_id: str, limit: int = 100) -> List[QueueItemSchema]:
        return self.queue_repo.list_queued(streamer_id, limit=limit)
