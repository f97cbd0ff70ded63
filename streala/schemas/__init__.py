from .alert import AlertContent, AlertSchema
from .alert_queue import ManageQueueRequest, QueueInsertEvent, QueueItemSchema
from .transaction import FeeBreakdown, TransactionSchema
from .webhook import MercadoPagoNotification, MercadoPagoPayment, WebhookAck
from .widget import WidgetQueueResponse, WidgetSettings
