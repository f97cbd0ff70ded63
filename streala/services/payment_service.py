import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from streala.config import Settings
from streala.core.exceptions import NotFoundError, PaymentGatewayError, ValidationError
from streala.models.transaction import TransactionStatus
from streala.providers.mercadopago import MercadoPagoGateway
from streala.repositories.alert_repository import AlertRepository
from streala.repositories.streamer_repository import (
    StreamerPaymentConfigRepository,
    StreamerRepository,
)
from streala.repositories.transaction_repository import TransactionRepository
from streala.schemas.payment import PixPaymentRequest, PixPaymentResponse
from streala.schemas.transaction import TransactionStatusResponse
from streala.utils.fees import default_platform_rate, round_cents

logger = logging.getLogger(__name__)


class PaymentService:
    """PIX 결제 생성 및 구매자 측 결제 상태 조회"""

    def __init__(self, db: Session, settings: Settings, gateway: MercadoPagoGateway):
        self.db = db
        self.settings = settings
        self.gateway = gateway
        self.transaction_repo = TransactionRepository(db)
        self.alert_repo = AlertRepository(db)
        self.streamer_repo = StreamerRepository(db)
        self.payment_config_repo = StreamerPaymentConfigRepository(db)

    def _notification_url(self, streamer_id: Optional[str]) -> str:
        url = f"{self.settings.PUBLIC_BASE_URL.rstrip('/')}{self.settings.API_V1_STR}/webhooks/mercadopago"
        if streamer_id:
            url = f"{url}?streamer={streamer_id}"
        return url

    async def create_pix_payment(self, request: PixPaymentRequest) -> PixPaymentResponse:
        """
        PIX 결제 생성

        pending 거래를 먼저 기록한 뒤 거래 ID를 external_reference로 넘겨 결제를
        생성합니다. 스트리머가 자체 Mercado Pago 계정을 연결했다면 해당 토큰으로
        결제를 만들고 플랫폼 수수료를 application_fee로 요청합니다.

        Raises:
            NotFoundError: 알림 또는 스트리머 없음
            ValidationError: 이미 결제 완료된 거래 ID 재사용
            PaymentGatewayError: 결제사 오류 또는 QR 코드 누락
        """
        alert = self.alert_repo.get_by_id(request.alert_id)
        if not alert or alert.status != "active":
            raise NotFoundError("Alert not found", details={"alert_id": request.alert_id})

        streamer = self.streamer_repo.get_by_id(alert.streamer_id)
        if not streamer:
            raise NotFoundError("Streamer not found")

        transaction_id = request.transaction_id or str(uuid.uuid4())
        existing = self.transaction_repo.get_by_id(transaction_id)
        if existing:
            if existing.status == TransactionStatus.PAID or existing.alert_id != alert.id:
                raise ValidationError(
                    "Transaction id already used", details={"transaction_id": transaction_id}
                )
            logger.info(f"[payments] Reusing pending transaction {transaction_id}")
        else:
            self.transaction_repo.create_pending(
                transaction_id=transaction_id,
                streamer_id=streamer.id,
                alert_id=alert.id,
                amount_cents=alert.price_cents,
                currency=self.settings.CURRENCY,
                buyer_note=request.buyer_note,
            )

        access_token = None
        application_fee_cents = None
        payment_config = self.payment_config_repo.get_for_streamer(streamer.id)
        if payment_config:
            access_token = payment_config.mp_access_token
            rate = payment_config.commission_rate
            if rate is None:
                rate = default_platform_rate(alert.price_cents)
            application_fee_cents = round_cents(alert.price_cents * rate)

        payment = await self.gateway.create_pix_payment(
            transaction_id=transaction_id,
            amount_cents=alert.price_cents,
            description=f"Alerta: {alert.title} - @{streamer.handle}",
            payer_email=request.payer_email or self.settings.PIX_DEFAULT_PAYER_EMAIL,
            notification_url=self._notification_url(streamer.id if payment_config else None),
            application_fee_cents=application_fee_cents,
            access_token=access_token,
        )
        self.transaction_repo.set_provider_payment_id(transaction_id, payment.id)

        transaction_data = (
            payment.point_of_interaction.transaction_data
            if payment.point_of_interaction
            else None
        )
        if (
            not transaction_data
            or not transaction_data.qr_code_base64
            or not transaction_data.qr_code
        ):
            logger.error(f"[payments] Missing QR code data for payment {payment.id}")
            raise PaymentGatewayError(
                "PIX QR code not generated", details={"payment_id": payment.id}
            )

        logger.info(
            f"[payments] PIX payment {payment.id} created for transaction {transaction_id}, "
            f"expires_at={payment.date_of_expiration}"
        )
        return PixPaymentResponse(
            transaction_id=transaction_id,
            payment_id=payment.id,
            qr_code_base64=transaction_data.qr_code_base64,
            qr_code=transaction_data.qr_code,
            expires_at=payment.date_of_expiration,
            ticket_url=transaction_data.ticket_url,
        )

    def get_status(self, transaction_id: str) -> TransactionStatusResponse:
        """구매자 폴링용 결제 상태 조회 (금액 정보는 노출하지 않음)"""
        transaction = self.transaction_repo.get_by_id(transaction_id)
        if not transaction:
            raise NotFoundError(
                "Transaction not found", details={"transaction_id": transaction_id}
            )
        return TransactionStatusResponse(
            transaction_id=transaction.id,
            status=transaction.status,
            is_paid=transaction.status == TransactionStatus.PAID,
        )
