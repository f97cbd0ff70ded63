from unittest.mock import AsyncMock, Mock

import pytest

from streala.core.exceptions import NotFoundError, PaymentGatewayError, ValidationError
from streala.models import Streamer, Transaction, TransactionStatus
from streala.providers.mercadopago import MercadoPagoGateway
from streala.schemas.payment import PixPaymentRequest
from streala.schemas.webhook import MercadoPagoPayment
from streala.services.payment_service import PaymentService

from conftest import make_alert, make_payment_config, make_streamer, make_transaction


def created_payment(with_qr: bool = True) -> MercadoPagoPayment:
    transaction_data = {"qr_code": "000201...", "qr_code_base64": "iVBORw0KGgo="}
    return MercadoPagoPayment(
        id="555",
        status="pending",
        transaction_amount="25.00",
        point_of_interaction={"transaction_data": transaction_data if with_qr else {}},
    )


@pytest.fixture
def gateway():
    gateway = Mock(spec=MercadoPagoGateway)
    gateway.create_pix_payment = AsyncMock(return_value=created_payment())
    return gateway


@pytest.fixture
def service(db_session, settings, gateway):
    return PaymentService(db_session, settings, gateway)


@pytest.fixture
def alert(db_session):
    streamer = make_streamer(db_session, "demo")
    return make_alert(db_session, streamer)


@pytest.mark.asyncio
async def test_creates_pending_transaction_and_qr(service, gateway, alert, db_session):
    response = await service.create_pix_payment(
        PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1", buyer_note="  Salve!  ")
    )

    assert response.transaction_id == "tx-1"
    assert response.payment_id == "555"
    assert response.qr_code == "000201..."

    transaction = db_session.get(Transaction, "tx-1")
    assert transaction.status == TransactionStatus.PENDING
    assert transaction.amount_cents == 2500
    assert transaction.buyer_note == "Salve!"
    assert transaction.provider_payment_id == "555"

    kwargs = gateway.create_pix_payment.await_args.kwargs
    assert kwargs["transaction_id"] == "tx-1"
    assert kwargs["amount_cents"] == 2500
    assert kwargs["access_token"] is None
    assert kwargs["application_fee_cents"] is None
    assert kwargs["notification_url"] == "https://api.streala.test/api/v1/webhooks/mercadopago"


@pytest.mark.asyncio
async def test_generates_transaction_id(service, alert):
    response = await service.create_pix_payment(PixPaymentRequest(alert_id=alert.id))

    assert len(response.transaction_id) == 36


@pytest.mark.asyncio
async def test_streamer_account_gets_token_and_commission(service, gateway, alert, db_session):
    streamer = db_session.get(Streamer, alert.streamer_id)
    make_payment_config(db_session, streamer)

    await service.create_pix_payment(PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1"))

    kwargs = gateway.create_pix_payment.await_args.kwargs
    assert kwargs["access_token"] == "APP_USR-streamer-token"
    assert kwargs["application_fee_cents"] == 250
    assert kwargs["notification_url"].endswith(f"/webhooks/mercadopago?streamer={streamer.id}")


@pytest.mark.asyncio
async def test_connected_account_without_commission_uses_tiered_rate(
    service, gateway, db_session
):
    streamer = make_streamer(db_session, "tier")
    alert = make_alert(db_session, streamer, price_cents=50001)
    make_payment_config(db_session, streamer, commission_rate=None)

    await service.create_pix_payment(PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1"))

    kwargs = gateway.create_pix_payment.await_args.kwargs
    assert kwargs["amount_cents"] == 50001
    assert kwargs["application_fee_cents"] == 2000


@pytest.mark.asyncio
async def test_retry_reuses_pending_transaction(service, gateway, alert, db_session):
    make_transaction(db_session, alert, "tx-1")

    await service.create_pix_payment(PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1"))

    assert db_session.query(Transaction).count() == 1
    assert gateway.create_pix_payment.await_count == 1


@pytest.mark.asyncio
async def test_paid_transaction_id_rejected(service, gateway, alert, db_session):
    make_transaction(db_session, alert, "tx-1", status=TransactionStatus.PAID)

    with pytest.raises(ValidationError):
        await service.create_pix_payment(
            PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1")
        )

    gateway.create_pix_payment.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_alert(service):
    with pytest.raises(NotFoundError):
        await service.create_pix_payment(PixPaymentRequest(alert_id="missing"))


@pytest.mark.asyncio
async def test_inactive_alert(service, alert, db_session):
    alert.status = "archived"
    db_session.commit()

    with pytest.raises(NotFoundError):
        await service.create_pix_payment(PixPaymentRequest(alert_id=alert.id))


@pytest.mark.asyncio
async def test_missing_qr_code(service, gateway, alert):
    gateway.create_pix_payment = AsyncMock(return_value=created_payment(with_qr=False))

    with pytest.raises(PaymentGatewayError):
        await service.create_pix_payment(
            PixPaymentRequest(alert_id=alert.id, transaction_id="tx-1")
        )


def test_get_status(service, alert, db_session):
    make_transaction(db_session, alert, "tx-1", status=TransactionStatus.PAID)

    response = service.get_status("tx-1")

    assert response.status == TransactionStatus.PAID
    assert response.is_paid is True


def test_get_status_unknown(service):
    with pytest.raises(NotFoundError):
        service.get_status("missing")
