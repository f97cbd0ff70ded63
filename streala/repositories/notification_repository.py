from datetime import datetime
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from streala.models.notification import Notification
from streala.repositories.base import BaseRepository
from streala.schemas.notification import NotificationSchema


class NotificationRepository(BaseRepository[Notification, NotificationSchema]):
    """대시보드 알림 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Notification, NotificationSchema, db)

    def create_notification(
        self,
        streamer_id: str,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> Optional[NotificationSchema]:
        return self.create(
            streamer_id=streamer_id,
            type=type,
            title=title,
            message=message,
            link=link,
            is_read=False,
        )

    def delete_older_than(self, streamer_id: str, cutoff: datetime) -> int:
        """
        cutoff 이전에 생성된 알림 삭제

        Returns:
            int: 삭제된 행 수
        """
        try:
            deleted_count = (
                self.db.query(self.model_class)
                .filter(
                    and_(
                        self.model_class.streamer_id == streamer_id,
                        self.model_class.created_at < cutoff,
                    )
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted_count
        except Exception:
            self.db.rollback()
            raise
