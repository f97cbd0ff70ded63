from typing import Optional

from pydantic import BaseModel, Field

from streala.models.alert import MediaType


class AlertSchema(BaseModel):
    id: str
    streamer_id: str
    title: str
    description: Optional[str] = None
    media_type: MediaType
    media_path: str
    thumb_path: Optional[str] = None
    price_cents: int
    duration_seconds: Optional[int] = None
    status: str = "active"

    class Config:
        from_attributes = True


class AlertContent(BaseModel):
    """위젯에서 재생할 알림 내용 (큐 항목 payload 병합 결과)"""

    queue_id: int = Field(..., description="큐 항목 ID")
    alert_id: str
    title: str
    media_type: MediaType
    media_path: str
    thumb_path: Optional[str] = None
    price_cents: int
    duration_seconds: Optional[int] = None
    buyer_name: Optional[str] = None
    buyer_note: Optional[str] = None
