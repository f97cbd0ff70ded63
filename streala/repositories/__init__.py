# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .transaction_repository import TransactionRepository
from .alert_queue_repository import AlertQueueRepository
from .alert_repository import AlertRepository
from .notification_repository import NotificationRepository
from .streamer_repository import (
    StreamerRepository,
    StreamerSettingsRepository,
    StreamerPaymentConfigRepository,
)

__all__ = [
    "BaseRepository",
    "TransactionRepository",
    "AlertQueueRepository",
    "AlertRepository",
    "NotificationRepository",
    "StreamerRepository",
    "StreamerSettingsRepository",
    "StreamerPaymentConfigRepository",
]
