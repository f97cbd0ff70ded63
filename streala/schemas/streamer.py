from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class StreamerSchema(BaseModel):
    id: str
    auth_user_id: str
    handle: str
    display_name: str
    email: str
    public_key: str

    class Config:
        from_attributes = True


class StreamerSettingsSchema(BaseModel):
    streamer_id: str
    overlay_image_duration_seconds: Optional[int] = None
    widget_position: Optional[str] = None
    alert_start_delay_seconds: Optional[int] = None
    alert_between_delay_seconds: Optional[int] = None
    notification_retention_days: Optional[int] = None

    class Config:
        from_attributes = True


class StreamerPaymentConfigSchema(BaseModel):
    """스트리머 Mercado Pago 연동 정보 (읽기 전용)"""

    streamer_id: str
    mp_access_token: str = Field(..., repr=False)
    mp_user_id: Optional[str] = None
    commission_rate: Optional[Decimal] = None

    class Config:
        from_attributes = True
