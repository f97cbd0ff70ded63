"""
알림 재생 큐 모델

스트리머별 FIFO 큐. id(자동 증가)가 도착 순서를 정의하며, 재생이 끝난
항목도 이력 보관을 위해 삭제하지 않습니다.
"""

import enum
from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from streala.models.base import Base
from streala.utils.timezone_utils import get_utc_now


class QueueStatus(str, enum.Enum):
    """큐 항목 상태: queued -> playing -> finished"""

    QUEUED = "queued"
    PLAYING = "playing"
    FINISHED = "finished"

    @classmethod
    def allowed_transitions(cls) -> dict:
        return {
            cls.QUEUED: {cls.PLAYING},
            cls.PLAYING: {cls.FINISHED},
            cls.FINISHED: set(),
        }

    @classmethod
    def can_transition(
        cls, current: Union[str, "QueueStatus"], target: Union[str, "QueueStatus"]
    ) -> bool:
        """current -> target 전이가 허용되는지 확인 (같은 상태 재요청은 멱등 처리)"""
        current, target = cls(current), cls(target)
        if current == target:
            return target != cls.QUEUED
        return target in cls.allowed_transitions()[current]

    @classmethod
    def widget_writable(cls) -> set:
        """위젯 공개 키 경로로 쓸 수 있는 상태"""
        return {cls.PLAYING, cls.FINISHED}


class AlertQueueItem(Base):
    __tablename__ = "alert_queue"
    __table_args__ = (
        Index("idx_alert_queue_streamer_status", "streamer_id", "status"),
        Index("idx_alert_queue_streamer_test", "streamer_id", "is_test", "enqueued_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    streamer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("streamers.id"), nullable=False
    )
    alert_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("alerts.id"), nullable=False
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("transactions.id"), nullable=True
    )
    is_test: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    status: Mapped[QueueStatus] = mapped_column(
        Enum(
            QueueStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=QueueStatus.QUEUED,
    )
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=get_utc_now
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
