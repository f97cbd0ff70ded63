from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from streala.models.transaction import TransactionStatus


class TransactionSchema(BaseModel):
    id: str
    streamer_id: str
    alert_id: str
    amount_cents: int
    currency: str = "BRL"
    provider_fee_cents: int = 0
    platform_fee_cents: int = 0
    streamer_amount_cents: int = 0
    status: TransactionStatus
    buyer_note: Optional[str] = None
    provider_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeeBreakdown(BaseModel):
    """정수 센트 단위 수수료 분배"""

    gross_cents: int = Field(..., ge=0)
    provider_fee_cents: int = Field(..., ge=0)
    platform_fee_cents: int = Field(..., ge=0)
    net_cents: int


class TransactionStatusResponse(BaseModel):
    """구매자 측 결제 확인 폴링 응답"""

    transaction_id: str
    status: TransactionStatus
    is_paid: bool
