from typing import List

from pydantic import BaseModel, Field

from streala.schemas.alert_queue import QueueItemSchema


class WidgetSettings(BaseModel):
    """오버레이 위젯 설정 (기본값 적용 완료)"""

    streamer_id: str
    overlay_image_duration_seconds: int = Field(5, ge=0)
    widget_position: str = "center"
    alert_start_delay_seconds: int = Field(0, ge=0)
    alert_between_delay_seconds: int = Field(1, ge=0)


class WidgetQueueResponse(BaseModel):
    items: List[QueueItemSchema]
    total_count: int
