from typing import Optional

from sqlalchemy.orm import Session

from streala.models.streamer import Streamer, StreamerPaymentConfig, StreamerSettings
from streala.repositories.base import BaseRepository
from streala.schemas.streamer import (
    StreamerPaymentConfigSchema,
    StreamerSchema,
    StreamerSettingsSchema,
)


class StreamerRepository(BaseRepository[Streamer, StreamerSchema]):
    """스트리머 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Streamer, StreamerSchema, db)

    def get_by_public_key(self, public_key: str) -> Optional[StreamerSchema]:
        """위젯 공개 키로 스트리머 조회"""
        if not public_key:
            return None
        return self.get_by_field("public_key", public_key)

    def get_by_auth_user_id(self, auth_user_id: str) -> Optional[StreamerSchema]:
        """세션 사용자 ID로 스트리머 조회"""
        return self.get_by_field("auth_user_id", auth_user_id)


class StreamerSettingsRepository(BaseRepository[StreamerSettings, StreamerSettingsSchema]):
    """스트리머 설정 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(StreamerSettings, StreamerSettingsSchema, db)

    def get_for_streamer(self, streamer_id: str) -> Optional[StreamerSettingsSchema]:
        return self.get_by_field("streamer_id", streamer_id)

    def list_with_retention(self) -> list[StreamerSettingsSchema]:
        """알림 보관 기간이 설정된 스트리머 목록"""
        self._ensure_clean_session()
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.notification_retention_days.isnot(None))
            .all()
        )
        return self._to_schemas(model_instances)


class StreamerPaymentConfigRepository(
    BaseRepository[StreamerPaymentConfig, StreamerPaymentConfigSchema]
):
    """스트리머 Mercado Pago 연동 정보 리포지토리 (읽기 전용)"""

    def __init__(self, db: Session):
        super().__init__(StreamerPaymentConfig, StreamerPaymentConfigSchema, db)

    def get_for_streamer(self, streamer_id: str) -> Optional[StreamerPaymentConfigSchema]:
        return self.get_by_field("streamer_id", streamer_id)
