import httpx
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from streala.config import Settings
from streala.core.exceptions import PaymentGatewayError
from streala.schemas.webhook import MercadoPagoPayment

logger = logging.getLogger(__name__)


class MercadoPagoGateway:
    """Mercado Pago payments API client (PIX)."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = settings.MERCADOPAGO_API_URL.rstrip("/")
        self.default_access_token = settings.MERCADOPAGO_ACCESS_TOKEN
        self.timeout = settings.MERCADOPAGO_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    def _headers(self, access_token: Optional[str]) -> Dict[str, str]:
        token = access_token or self.default_access_token
        if not token:
            raise PaymentGatewayError("MERCADOPAGO_ACCESS_TOKEN not configured")
        return {"Authorization": f"Bearer {token}"}

    async def get_payment(
        self, payment_id: str, access_token: Optional[str] = None
    ) -> MercadoPagoPayment:
        """Fetch the authoritative payment object by id."""
        headers = self._headers(access_token)
        try:
            async with self._client() as client:
                response = await client.get(f"/v1/payments/{payment_id}", headers=headers)
        except httpx.TimeoutException:
            logger.error(f"[mercadopago] Payment fetch timeout: {payment_id}")
            raise PaymentGatewayError(
                "Payment provider timeout", details={"payment_id": payment_id}
            )
        except httpx.HTTPError as e:
            logger.error(f"[mercadopago] Payment fetch failed: {payment_id}: {e}")
            raise PaymentGatewayError(
                "Payment provider unreachable", details={"payment_id": payment_id}
            )

        if not response.is_success:
            logger.error(
                f"[mercadopago] Error fetching payment {payment_id}: "
                f"{response.status_code} {response.text}"
            )
            raise PaymentGatewayError(
                f"Failed to fetch payment: {response.status_code}",
                details={"payment_id": payment_id, "status_code": response.status_code},
            )

        payment = MercadoPagoPayment.model_validate(response.json())
        logger.info(
            f"[mercadopago] Payment {payment.id}: status={payment.status} "
            f"external_reference={payment.external_reference} "
            f"amount={payment.transaction_amount}"
        )
        return payment

    async def create_pix_payment(
        self,
        transaction_id: str,
        amount_cents: int,
        description: str,
        payer_email: str,
        notification_url: str,
        application_fee_cents: Optional[int] = None,
        access_token: Optional[str] = None,
    ) -> MercadoPagoPayment:
        """
        Create a PIX payment whose external_reference is our transaction id.

        The transaction id doubles as the idempotency key so a retried
        creation never produces a second charge.
        """
        headers = self._headers(access_token)
        headers["X-Idempotency-Key"] = transaction_id

        payload: Dict[str, Any] = {
            "transaction_amount": float(Decimal(amount_cents) / 100),
            "description": description,
            "payment_method_id": "pix",
            "payer": {"email": payer_email},
            "external_reference": transaction_id,
            "notification_url": notification_url,
        }
        if application_fee_cents is not None:
            payload["application_fee"] = float(Decimal(application_fee_cents) / 100)

        try:
            async with self._client() as client:
                response = await client.post("/v1/payments", json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"[mercadopago] PIX creation timeout: {transaction_id}")
            raise PaymentGatewayError("Payment provider timeout")
        except httpx.HTTPError as e:
            logger.error(f"[mercadopago] PIX creation failed: {transaction_id}: {e}")
            raise PaymentGatewayError("Payment provider unreachable")

        if not response.is_success:
            logger.error(
                f"[mercadopago] PIX creation error {response.status_code}: {response.text}"
            )
            raise PaymentGatewayError(
                f"Mercado Pago API error: {response.status_code}",
                details={"status_code": response.status_code},
            )

        return MercadoPagoPayment.model_validate(response.json())
