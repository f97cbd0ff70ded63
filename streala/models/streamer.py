import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from streala.models.base import BaseModel


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Streamer(BaseModel):
    __tablename__ = "streamers"
    __table_args__ = (
        Index("idx_streamers_auth_user", "auth_user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    auth_user_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    handle: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    # 위젯(OBS 브라우저 소스)에 노출되는 공개 키 - 금융 데이터 접근 권한 없음
    public_key: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, default=lambda: uuid.uuid4().hex
    )

    def __repr__(self):
        return f"<Streamer(id={self.id}, handle={self.handle})>"


class StreamerSettings(BaseModel):
    """
    스트리머 오버레이/알림 설정

    값이 NULL이면 위젯 측에서 기본값(5초, center, 0초, 1초)을 적용합니다.
    """

    __tablename__ = "settings"

    streamer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("streamers.id"), primary_key=True
    )
    overlay_image_duration_seconds: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    widget_position: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alert_start_delay_seconds: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    alert_between_delay_seconds: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )
    notification_retention_days: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )


class StreamerPaymentConfig(BaseModel):
    """
    스트리머가 연결한 Mercado Pago 계정 정보 (OAuth 교환 흐름에서 기록)

    이 서비스에서는 읽기 전용입니다. 레코드가 없으면 플랫폼 기본 자격증명과
    기본 플랫폼 수수료율이 사용됩니다.
    """

    __tablename__ = "streamer_mp_config"

    streamer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("streamers.id"), primary_key=True
    )
    mp_access_token: Mapped[str] = mapped_column(Text, nullable=False)
    mp_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 4), nullable=True
    )
