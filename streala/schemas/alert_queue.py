from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field
from typing_extensions import Annotated

from streala.models.alert_queue import QueueStatus


class QueueItemSchema(BaseModel):
    """알림 큐 항목"""

    id: int
    streamer_id: str
    alert_id: str
    transaction_id: Optional[str] = None
    is_test: bool = False
    payload: Optional[Dict[str, Any]] = None
    status: QueueStatus = QueueStatus.QUEUED
    enqueued_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# manage-alert-queue 요청 (action 필드로 구분되는 태그드 유니온)
# ---------------------------------------------------------------------------


class CreateTestAlertRequest(BaseModel):
    action: Literal["create_test"]
    alert_id: str = Field(..., min_length=1)


class UpdateStatusRequest(BaseModel):
    action: Literal["update_status"]
    queue_id: int = Field(..., gt=0)
    # playing / finished 이외의 값은 쓰기 전에 검증 단계에서 거부
    status: Literal["playing", "finished"]
    public_key: str = Field(..., min_length=1)


ManageQueueRequest = Annotated[
    Union[CreateTestAlertRequest, UpdateStatusRequest],
    Field(discriminator="action"),
]


class QueueInsertEvent(BaseModel):
    """실시간 채널로 전달되는 큐 삽입 이벤트"""

    event: Literal["INSERT"] = "INSERT"
    item: QueueItemSchema
