from sqlalchemy.orm import Session

from streala.models.alert import Alert
from streala.repositories.base import BaseRepository
from streala.schemas.alert import AlertSchema


class AlertRepository(BaseRepository[Alert, AlertSchema]):
    """알림(판매 상품) 리포지토리 - 생성/수정은 외부 CRUD 화면 담당"""

    def __init__(self, db: Session):
        super().__init__(Alert, AlertSchema, db)
