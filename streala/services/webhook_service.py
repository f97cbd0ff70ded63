"""
Mercado Pago 웹훅 정산 서비스

게이트웨이 알림을 받아 결제 상태를 원장(Transaction)에 반영합니다.
재시도 유도가 필요한 경우(게이트웨이 조회 실패, 거래 누락)에만 예외를 던지고,
나머지는 모두 200으로 응답해 게이트웨이가 재전송하지 않도록 합니다.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from streala.config import Settings
from streala.core.exceptions import TransactionNotFoundError
from streala.models.transaction import TransactionStatus
from streala.providers.mercadopago import MercadoPagoGateway
from streala.repositories.alert_repository import AlertRepository
from streala.repositories.streamer_repository import StreamerPaymentConfigRepository
from streala.repositories.transaction_repository import TransactionRepository
from streala.schemas.transaction import FeeBreakdown, TransactionSchema
from streala.schemas.webhook import (
    MercadoPagoNotification,
    MercadoPagoPayment,
    PaymentStatus,
    WebhookAck,
    WebhookResult,
)
from streala.services.alert_queue_service import AlertQueueService
from streala.services.notification_service import NotificationService
from streala.services.realtime_service import RealtimeService
from streala.utils.fees import calculate_fees, default_platform_rate, reais_to_cents

logger = logging.getLogger(__name__)


class WebhookService:
    """결제 알림 -> 원장 상태 전이 + 큐/알림 부수 효과"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        gateway: MercadoPagoGateway,
        realtime_service: RealtimeService,
    ):
        self.db = db
        self.settings = settings
        self.gateway = gateway
        self.alert_queue_service = AlertQueueService(db, settings, realtime_service)
        self.notification_service = NotificationService(db)
        self.transaction_repo = TransactionRepository(db)
        self.alert_repo = AlertRepository(db)
        self.payment_config_repo = StreamerPaymentConfigRepository(db)

    async def process_notification(
        self,
        notification: MercadoPagoNotification,
        streamer_hint: Optional[str] = None,
    ) -> WebhookAck:
        """
        웹훅 알림 처리

        Args:
            notification: 게이트웨이 알림 본문
            streamer_hint: notification_url에 실린 스트리머 ID (결제 조회 토큰 선택용)

        Returns:
            WebhookAck: 처리 결과 (무시/중복/승인/실패/대기)

        Raises:
            PaymentGatewayError: 결제 조회 실패 (게이트웨이 재전송 유도)
            TransactionNotFoundError: external_reference에 해당하는 거래 없음
        """
        # 1. 결제 이벤트만 처리
        if not notification.is_payment_event:
            logger.info(
                f"[webhook] Ignoring non-payment notification: "
                f"type={notification.type} action={notification.action}"
            )
            return WebhookAck(result=WebhookResult.IGNORED)

        payment_id = notification.payment_id
        if not payment_id:
            logger.info("[webhook] No payment ID in notification")
            return WebhookAck(result=WebhookResult.IGNORED)

        # 2. 알림 본문은 신뢰하지 않고 결제 정보를 다시 조회
        payment = await self.gateway.get_payment(
            payment_id, access_token=self._access_token_for(streamer_hint)
        )

        # 3. external_reference로 거래 연결
        transaction_id = payment.external_reference
        if not transaction_id:
            logger.info(f"[webhook] Payment {payment.id} has no external_reference")
            return WebhookAck(result=WebhookResult.IGNORED)

        # 4. 거래 조회 (없으면 연동 버그)
        transaction = self.transaction_repo.get_by_id(transaction_id)
        if not transaction:
            logger.error(
                f"[webhook] Transaction not found for payment {payment.id}: {transaction_id}"
            )
            raise TransactionNotFoundError(transaction_id)

        # 5. 멱등성 가드
        if transaction.status == TransactionStatus.PAID:
            logger.info(f"[webhook] Transaction already paid, skipping: {transaction_id}")
            return WebhookAck(result=WebhookResult.DUPLICATE, transaction_id=transaction_id)

        # 6~8. 결제 상태별 분기
        if payment.status == PaymentStatus.APPROVED.value:
            return await self._handle_approved(transaction, payment)

        if payment.status in {s.value for s in PaymentStatus.terminal_failures()}:
            changed = self.transaction_repo.mark_failed(transaction_id)
            logger.info(
                f"[webhook] Payment {payment.id} {payment.status}: "
                f"transaction {transaction_id} failed={changed}"
            )
            return WebhookAck(result=WebhookResult.FAILED, transaction_id=transaction_id)

        logger.info(
            f"[webhook] Payment {payment.id} status={payment.status}, waiting for next notification"
        )
        return WebhookAck(result=WebhookResult.NO_OP, transaction_id=transaction_id)

    async def _handle_approved(
        self, transaction: TransactionSchema, payment: MercadoPagoPayment
    ) -> WebhookAck:
        fees = self._compute_fees(transaction, payment)

        # 조건부 쓰기: 동시에 도착한 중복 알림 중 하나만 True
        if not self.transaction_repo.mark_paid(transaction.id, payment.id, fees):
            logger.info(
                f"[webhook] Concurrent delivery already marked {transaction.id} paid"
            )
            return WebhookAck(result=WebhookResult.DUPLICATE, transaction_id=transaction.id)

        logger.info(
            f"[webhook] Transaction {transaction.id} paid: gross={fees.gross_cents} "
            f"provider_fee={fees.provider_fee_cents} platform_fee={fees.platform_fee_cents} "
            f"net={fees.net_cents}"
        )

        # 이하 부수 효과는 실패해도 결제 상태를 되돌리지 않음
        try:
            await self.alert_queue_service.enqueue_paid_alert(transaction)
        except Exception as e:
            logger.error(f"[webhook] Error adding transaction {transaction.id} to queue: {e}")

        try:
            alert = self.alert_repo.get_by_id(transaction.alert_id)
            self.notification_service.emit_sale(
                streamer_id=transaction.streamer_id,
                alert_title=alert.title if alert else None,
                amount_cents=fees.gross_cents,
            )
        except Exception as e:
            logger.error(
                f"[webhook] Error creating sale notification for {transaction.id}: {e}"
            )

        return WebhookAck(result=WebhookResult.PAID, transaction_id=transaction.id)

    def _compute_fees(
        self, transaction: TransactionSchema, payment: MercadoPagoPayment
    ) -> FeeBreakdown:
        """원장 기준 수수료 계산 (결제사에 요청한 application_fee와 다르면 경고)"""
        gross_cents = reais_to_cents(payment.transaction_amount)
        platform_rate: Decimal = default_platform_rate(gross_cents)
        payment_config = self.payment_config_repo.get_for_streamer(transaction.streamer_id)
        if payment_config and payment_config.commission_rate is not None:
            platform_rate = payment_config.commission_rate

        fees = calculate_fees(
            gross_cents,
            self.settings.PROVIDER_FEE_RATE,
            platform_rate,
        )

        application_fee = payment.application_fee
        if application_fee is not None:
            application_fee_cents = reais_to_cents(application_fee)
            if application_fee_cents != fees.platform_fee_cents:
                logger.warning(
                    f"[webhook] Platform fee divergence on transaction {transaction.id}: "
                    f"ledger={fees.platform_fee_cents} application_fee={application_fee_cents}"
                )
        return fees

    def _access_token_for(self, streamer_id: Optional[str]) -> Optional[str]:
        if not streamer_id:
            return None
        payment_config = self.payment_config_repo.get_for_streamer(streamer_id)
        return payment_config.mp_access_token if payment_config else None
