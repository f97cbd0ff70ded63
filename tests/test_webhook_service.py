from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest

from streala.core.exceptions import PaymentGatewayError, TransactionNotFoundError
from streala.models import AlertQueueItem, Notification, QueueStatus, TransactionStatus
from streala.providers.mercadopago import MercadoPagoGateway
from streala.repositories.transaction_repository import TransactionRepository
from streala.schemas.webhook import (
    FeeDetail,
    MercadoPagoNotification,
    MercadoPagoPayment,
    WebhookResult,
)
from streala.services.webhook_service import WebhookService

from conftest import (
    make_alert,
    make_payment_config,
    make_streamer,
    make_transaction,
)


def _notification(payment_id="pay-1", type="payment", action="payment.updated"):
    return MercadoPagoNotification.model_validate(
        {"type": type, "action": action, "data": {"id": payment_id}}
    )


def _payment(status="approved", amount="25.00", external_reference="tx-1", **extra):
    return MercadoPagoPayment(
        id="pay-1",
        status=status,
        transaction_amount=Decimal(amount),
        external_reference=external_reference,
        **extra,
    )


@pytest.fixture
def gateway():
    gateway = Mock(spec=MercadoPagoGateway)
    gateway.get_payment = AsyncMock(return_value=_payment())
    return gateway


@pytest.fixture
def service(db_session, settings, gateway, realtime_service):
    return WebhookService(db_session, settings, gateway, realtime_service)


@pytest.fixture
def paid_setup(db_session):
    streamer = make_streamer(db_session)
    alert = make_alert(db_session, streamer, title="Buzina", price_cents=2500)
    make_transaction(db_session, alert, "tx-1", buyer_note="Salve!")
    return streamer, alert


class TestApprovedPayment:
    @pytest.mark.asyncio
    async def test_end_to_end_twenty_five_reais(
        self, service, db_session, paid_setup, realtime_service
    ):
        streamer, alert = paid_setup

        ack = await service.process_notification(_notification())

        assert ack.received is True
        assert ack.result == WebhookResult.PAID
        assert ack.transaction_id == "tx-1"

        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.PAID
        assert transaction.amount_cents == 2500
        assert transaction.provider_fee_cents == 100
        assert transaction.platform_fee_cents == 125
        assert transaction.streamer_amount_cents == 2275
        assert transaction.provider_payment_id == "pay-1"

        items = db_session.query(AlertQueueItem).all()
        assert len(items) == 1
        assert items[0].status == QueueStatus.QUEUED
        assert items[0].transaction_id == "tx-1"
        assert items[0].alert_id == alert.id
        assert items[0].is_test is False
        assert items[0].payload == {"buyer_note": "Salve!"}

        notifications = db_session.query(Notification).all()
        assert len(notifications) == 1
        assert notifications[0].streamer_id == streamer.id
        assert notifications[0].type == "sale"
        assert notifications[0].title == "Nova venda!"
        assert notifications[0].message == 'Você vendeu o alerta "Buzina" por R$ 25,00'
        assert notifications[0].link == "/transactions"

        realtime_service.publish_insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_noop(self, service, db_session, paid_setup):
        first = await service.process_notification(_notification())
        second = await service.process_notification(_notification())

        assert first.result == WebhookResult.PAID
        assert second.result == WebhookResult.DUPLICATE
        assert db_session.query(AlertQueueItem).count() == 1
        assert db_session.query(Notification).count() == 1

    @pytest.mark.asyncio
    async def test_lost_race_has_no_side_effects(self, service, db_session, paid_setup):
        # Another delivery passed the read-time check and won the conditional update
        service.transaction_repo.mark_paid = Mock(return_value=False)

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.DUPLICATE
        assert db_session.query(AlertQueueItem).count() == 0
        assert db_session.query(Notification).count() == 0

    @pytest.mark.asyncio
    async def test_queue_failure_keeps_payment(self, service, db_session, paid_setup):
        service.alert_queue_service.enqueue_paid_alert = AsyncMock(
            side_effect=RuntimeError("queue down")
        )

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.PAID
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.PAID
        assert db_session.query(Notification).count() == 1

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_payment(self, service, db_session, paid_setup):
        service.notification_service.emit_sale = Mock(side_effect=RuntimeError("insert failed"))

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.PAID
        assert db_session.query(AlertQueueItem).count() == 1

    @pytest.mark.asyncio
    async def test_streamer_commission_rate(self, service, db_session, paid_setup):
        streamer, _ = paid_setup
        make_payment_config(db_session, streamer, commission_rate="0.10")

        await service.process_notification(_notification())

        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.platform_fee_cents == 250
        assert transaction.streamer_amount_cents == 2150

    @pytest.mark.asyncio
    async def test_application_fee_divergence_is_logged(
        self, service, gateway, db_session, paid_setup
    ):
        gateway.get_payment.return_value = _payment(
            fee_details=[FeeDetail(type="application_fee", amount=Decimal("2.00"))]
        )

        with patch("streala.services.webhook_service.logger") as mock_logger:
            ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.PAID
        assert any(
            "divergence" in call.args[0] for call in mock_logger.warning.call_args_list
        )
        # ledger keeps the recomputed fee
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.platform_fee_cents == 125

    @pytest.mark.asyncio
    async def test_streamer_hint_selects_access_token(
        self, service, gateway, db_session, paid_setup
    ):
        streamer, _ = paid_setup
        make_payment_config(db_session, streamer)

        await service.process_notification(_notification(), streamer_hint=streamer.id)

        gateway.get_payment.assert_awaited_once_with(
            "pay-1", access_token="APP_USR-streamer-token"
        )


class TestTieredPlatformFee:
    """스트리머 커미션이 없을 때 총액 구간별 기본 수수료율"""

    @pytest.fixture
    def priced_setup(self, db_session):
        def _setup(price_cents):
            streamer = make_streamer(db_session)
            alert = make_alert(db_session, streamer, price_cents=price_cents)
            make_transaction(db_session, alert, "tx-1")
            return streamer

        return _setup

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount, gross_cents, platform_fee_cents",
        [
            ("500.00", 50000, 2500),
            ("500.01", 50001, 2000),
            ("1000.01", 100001, 3000),
            ("5000.01", 500001, 12500),
        ],
    )
    async def test_default_rate_by_amount(
        self, service, gateway, db_session, priced_setup, amount, gross_cents, platform_fee_cents
    ):
        priced_setup(gross_cents)
        gateway.get_payment.return_value = _payment(amount=amount)

        await service.process_notification(_notification())

        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.amount_cents == gross_cents
        assert transaction.platform_fee_cents == platform_fee_cents

    @pytest.mark.asyncio
    async def test_streamer_commission_overrides_tiers(
        self, service, gateway, db_session, priced_setup
    ):
        streamer = priced_setup(100001)
        make_payment_config(db_session, streamer, commission_rate="0.10")
        gateway.get_payment.return_value = _payment(amount="1000.01")

        await service.process_notification(_notification())

        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.platform_fee_cents == 10000


class TestFailedPayment:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["rejected", "cancelled"])
    async def test_terminal_failure_marks_failed(
        self, service, gateway, db_session, paid_setup, realtime_service, status
    ):
        gateway.get_payment.return_value = _payment(status=status)

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.FAILED
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.FAILED
        assert db_session.query(AlertQueueItem).count() == 0
        assert db_session.query(Notification).count() == 0
        realtime_service.publish_insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paid_transaction_never_fails(self, service, gateway, db_session):
        alert = make_alert(db_session, make_streamer(db_session))
        make_transaction(db_session, alert, "tx-1", status=TransactionStatus.PAID)
        gateway.get_payment.return_value = _payment(status="rejected")

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.DUPLICATE
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.PAID

    @pytest.mark.asyncio
    async def test_pending_status_is_noop(self, service, gateway, db_session, paid_setup):
        gateway.get_payment.return_value = _payment(status="in_process")

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.NO_OP
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.PENDING


class TestIgnoredAndErrors:
    @pytest.mark.asyncio
    async def test_non_payment_event_ignored(self, service, gateway):
        ack = await service.process_notification(
            _notification(type="merchant_order", action="merchant_order.updated")
        )

        assert ack.result == WebhookResult.IGNORED
        gateway.get_payment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_action_alone_marks_payment_event(self, service, gateway, paid_setup):
        ack = await service.process_notification(
            _notification(type=None, action="payment.created")
        )

        assert ack.result == WebhookResult.PAID
        gateway.get_payment.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_payment_id_ignored(self, service, gateway):
        ack = await service.process_notification(
            MercadoPagoNotification.model_validate({"type": "payment", "data": {}})
        )

        assert ack.result == WebhookResult.IGNORED
        gateway.get_payment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_external_reference_ignored(self, service, gateway):
        gateway.get_payment.return_value = _payment(external_reference="")

        ack = await service.process_notification(_notification())

        assert ack.result == WebhookResult.IGNORED

    @pytest.mark.asyncio
    async def test_unknown_transaction_is_surfaced(self, service, gateway):
        gateway.get_payment.return_value = _payment(external_reference="does-not-exist")

        with pytest.raises(TransactionNotFoundError) as exc_info:
            await service.process_notification(_notification())

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_gateway_failure_propagates(self, service, gateway, db_session, paid_setup):
        gateway.get_payment.side_effect = PaymentGatewayError("Failed to fetch payment: 503")

        with pytest.raises(PaymentGatewayError) as exc_info:
            await service.process_notification(_notification())

        assert exc_info.value.status_code == 502
        transaction = TransactionRepository(db_session).get_by_id("tx-1")
        assert transaction.status == TransactionStatus.PENDING
