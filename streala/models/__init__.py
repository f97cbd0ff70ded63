# 모든 모델을 import 해서 Base.metadata에 테이블을 등록

from .base import Base
from .streamer import Streamer, StreamerSettings, StreamerPaymentConfig
from .alert import Alert, MediaType
from .transaction import Transaction, TransactionStatus
from .alert_queue import AlertQueueItem, QueueStatus
from .notification import Notification

__all__ = [
    "Base",
    "Streamer",
    "StreamerSettings",
    "StreamerPaymentConfig",
    "Alert",
    "MediaType",
    "Transaction",
    "TransactionStatus",
    "AlertQueueItem",
    "QueueStatus",
    "Notification",
]
