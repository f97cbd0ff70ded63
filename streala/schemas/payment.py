from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class PixPaymentRequest(BaseModel):
    """구매자 PIX 결제 생성 요청"""

    alert_id: str = Field(..., min_length=1)
    # 구매자 클라이언트가 결제 생성 전에 발급하는 거래 ID (없으면 서버에서 발급)
    transaction_id: Optional[str] = Field(None, min_length=1, max_length=36)
    buyer_note: Optional[str] = Field(None, max_length=200)
    payer_email: Optional[EmailStr] = None

    @field_validator("buyer_note")
    @classmethod
    def strip_note(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class PixPaymentResponse(BaseModel):
    transaction_id: str
    payment_id: str
    qr_code_base64: str
    qr_code: str
    expires_at: Optional[datetime] = None
    ticket_url: Optional[str] = None
