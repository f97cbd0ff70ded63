from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationSchema(BaseModel):
    id: int
    streamer_id: str
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationCleanupResult(BaseModel):
    deleted: int
    processed_streamers: int
