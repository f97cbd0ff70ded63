from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

PAYMENT_ACTIONS = {"payment.created", "payment.updated"}


class NotificationData(BaseModel):
    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Optional[Union[int, str]]) -> Optional[str]:
        # Mercado Pago sends the payment id as a number or a string
        if v is None or v == "":
            return None
        return str(v)


class MercadoPagoNotification(BaseModel):
    """Inbound webhook body (only the fields we rely on)."""

    type: Optional[str] = None
    action: Optional[str] = None
    data: NotificationData = Field(default_factory=NotificationData)
    live_mode: Optional[bool] = None

    model_config = {"extra": "allow"}

    @property
    def is_payment_event(self) -> bool:
        return self.type == "payment" or self.action in PAYMENT_ACTIONS

    @property
    def payment_id(self) -> Optional[str]:
        return self.data.id


class PaymentStatus(str, Enum):
    """Mercado Pago payment statuses"""

    PENDING = "pending"
    APPROVED = "approved"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"

    @classmethod
    def terminal_failures(cls) -> set:
        return {cls.REJECTED, cls.CANCELLED}


class FeeDetail(BaseModel):
    type: str
    amount: Decimal
    fee_payer: Optional[str] = None


class PixTransactionData(BaseModel):
    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    ticket_url: Optional[str] = None


class PointOfInteraction(BaseModel):
    type: Optional[str] = None
    transaction_data: Optional[PixTransactionData] = None


class MercadoPagoPayment(BaseModel):
    """Authoritative payment object fetched from GET /v1/payments/{id}."""

    id: str
    status: str
    status_detail: Optional[str] = None
    transaction_amount: Decimal
    currency_id: Optional[str] = None
    external_reference: Optional[str] = None
    date_of_expiration: Optional[datetime] = None
    fee_details: List[FeeDetail] = Field(default_factory=list)
    point_of_interaction: Optional[PointOfInteraction] = None

    model_config = {"extra": "allow"}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Union[int, str]) -> str:
        return str(v)

    @field_validator("external_reference", mode="before")
    @classmethod
    def blank_reference_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or str(v).strip() == "":
            return None
        return str(v)

    @property
    def application_fee(self) -> Optional[Decimal]:
        """Marketplace fee charged on behalf of the platform, if any."""
        for fee in self.fee_details:
            if fee.type == "application_fee":
                return fee.amount
        return None


class WebhookResult(str, Enum):
    """How a notification was handled (all of these are acknowledged with 200)"""

    IGNORED = "ignored"  # non-payment event / no payment id / no external_reference
    DUPLICATE = "duplicate"  # transaction already paid
    PAID = "paid"
    FAILED = "failed"
    NO_OP = "no_op"  # pending / in_process, wait for next notification


class WebhookAck(BaseModel):
    received: bool = True
    result: WebhookResult
    transaction_id: Optional[str] = None
