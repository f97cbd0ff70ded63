from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from streala.models.alert_queue import AlertQueueItem, QueueStatus
from streala.repositories.base import BaseRepository
from streala.schemas.alert_queue import QueueItemSchema
from streala.utils.timezone_utils import get_utc_now


class AlertQueueRepository(BaseRepository[AlertQueueItem, QueueItemSchema]):
    """알림 큐 데이터 접근 계층"""

    def __init__(self, db: Session):
        super().__init__(AlertQueueItem, QueueItemSchema, db)

    def enqueue(
        self,
        streamer_id: str,
        alert_id: str,
        transaction_id: Optional[str] = None,
        is_test: bool = False,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[QueueItemSchema]:
        """queued 상태의 새 큐 항목 생성"""
        return self.create(
            streamer_id=streamer_id,
            alert_id=alert_id,
            transaction_id=transaction_id,
            is_test=is_test,
            payload=payload or {},
            status=QueueStatus.QUEUED,
            enqueued_at=get_utc_now(),
        )

    def list_queued(self, streamer_id: str, limit: int = 100) -> List[QueueItemSchema]:
        """
        스트리머의 queued 항목을 도착 순서대로 조회

        Args:
            streamer_id: 스트리머 ID
            limit: 조회 제한 수

        Returns:
            List[QueueItemSchema]: enqueued_at, id 오름차순
        """
        self._ensure_clean_session()
        model_instances = (
            self.db.query(self.model_class)
            .filter(
                and_(
                    self.model_class.streamer_id == streamer_id,
                    self.model_class.status == QueueStatus.QUEUED,
                )
            )
            .order_by(self.model_class.enqueued_at.asc(), self.model_class.id.asc())
            .limit(limit)
            .all()
        )
        return self._to_schemas(model_instances)

    def count_test_items_since(self, streamer_id: str, since: datetime) -> int:
        """since 이후 생성된 테스트 항목 수 (레이트 리밋용)"""
        self._ensure_clean_session()
        return (
            self.db.query(self.model_class)
            .filter(
                and_(
                    self.model_class.streamer_id == streamer_id,
                    self.model_class.is_test.is_(True),
                    self.model_class.enqueued_at >= since,
                )
            )
            .count()
        )

    def transition_status(
        self, item_id: int, from_status: QueueStatus, to_status: QueueStatus
    ) -> bool:
        """
        큐 항목 상태 전환 (조건부 쓰기)

        현재 상태가 from_status일 때만 갱신하고, 전환 시각을 함께 기록합니다.

        Returns:
            bool: 이번 호출로 상태가 바뀌었는지 여부
        """
        values: Dict[Any, Any] = {self.model_class.status: to_status}
        if to_status == QueueStatus.PLAYING:
            values[self.model_class.started_at] = get_utc_now()
        elif to_status == QueueStatus.FINISHED:
            values[self.model_class.finished_at] = get_utc_now()

        try:
            updated_count = (
                self.db.query(self.model_class)
                .filter(
                    and_(
                        self.model_class.id == item_id,
                        self.model_class.status == from_status,
                    )
                )
                .update(values, synchronize_session="fetch")
            )
            self.db.commit()
            return updated_count > 0
        except Exception:
            self.db.rollback()
            raise
