import enum
import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from streala.models.base import BaseModel


class MediaType(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"
    IMAGE = "image"


class Alert(BaseModel):
    """판매 가능한 알림 (오디오/비디오/이미지 클립)"""

    __tablename__ = "alerts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    streamer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("streamers.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_type: Mapped[str] = mapped_column(String(10), nullable=False)
    media_path: Mapped[str] = mapped_column(Text, nullable=False)
    thumb_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    # 오디오/비디오의 재생 길이 (헤드리스 플레이어용, 업로드 시 기록)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
