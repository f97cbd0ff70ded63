from dependency_injector import containers, providers

from streala.config import Settings
from streala.providers.mercadopago import MercadoPagoGateway
from streala.services.alert_queue_service import AlertQueueService
from streala.services.notification_service import NotificationService
from streala.services.payment_service import PaymentService
from streala.services.realtime_service import RealtimeService
from streala.services.webhook_service import WebhookService
from streala.services.widget_service import WidgetService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class GatewayModule(containers.DeclarativeContainer):
    """Outbound clients (payment provider, realtime fan-out)."""

    config = providers.DependenciesContainer()

    mercadopago_gateway = providers.Factory(MercadoPagoGateway, settings=config.config)
    realtime_service = providers.Singleton(RealtimeService, settings=config.config)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies.

    The database session is request-scoped and passed at call time:
    ``container.services.webhook_service(db=db)``.
    """

    config = providers.DependenciesContainer()
    gateways = providers.DependenciesContainer()

    notification_service = providers.Factory(NotificationService)
    widget_service = providers.Factory(WidgetService, settings=config.config)
    alert_queue_service = providers.Factory(
        AlertQueueService,
        settings=config.config,
        realtime_service=gateways.realtime_service,
    )
    payment_service = providers.Factory(
        PaymentService,
        settings=config.config,
        gateway=gateways.mercadopago_gateway,
    )
    webhook_service = providers.Factory(
        WebhookService,
        settings=config.config,
        gateway=gateways.mercadopago_gateway,
        realtime_service=gateways.realtime_service,
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "streala.routers.health_router",
            "streala.routers.widget_router",
        ],
    )

    config = providers.Container(ConfigModule)
    gateways = providers.Container(GatewayModule, config=config)
    services = providers.Container(
        ServiceModule, config=config, gateways=gateways
    )
