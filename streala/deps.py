from fastapi import Depends, Request
from sqlalchemy.orm import Session

from streala.database.session import get_db

# Services
from streala.services.alert_queue_service import AlertQueueService
from streala.services.notification_service import NotificationService
from streala.services.payment_service import PaymentService
from streala.services.webhook_service import WebhookService
from streala.services.widget_service import WidgetService


def _services(request: Request):
    return request.app.container.services  # type: ignore[attr-defined]


def get_webhook_service(request: Request, db: Session = Depends(get_db)) -> WebhookService:
    return _services(request).webhook_service(db=db)


def get_payment_service(request: Request, db: Session = Depends(get_db)) -> PaymentService:
    return _services(request).payment_service(db=db)


def get_alert_queue_service(
    request: Request, db: Session = Depends(get_db)
) -> AlertQueueService:
    return _services(request).alert_queue_service(db=db)


def get_widget_service(request: Request, db: Session = Depends(get_db)) -> WidgetService:
    return _services(request).widget_service(db=db)


def get_notification_service(
    request: Request, db: Session = Depends(get_db)
) -> NotificationService:
    return _services(request).notification_service(db=db)
