from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from streala.models.transaction import Transaction, TransactionStatus
from streala.repositories.base import BaseRepository
from streala.schemas.transaction import FeeBreakdown, TransactionSchema


class TransactionRepository(BaseRepository[Transaction, TransactionSchema]):
    """거래 원장 데이터 접근 계층"""

    def __init__(self, db: Session):
        super().__init__(Transaction, TransactionSchema, db)

    def create_pending(
        self,
        transaction_id: str,
        streamer_id: str,
        alert_id: str,
        amount_cents: int,
        currency: str,
        buyer_note: Optional[str] = None,
    ) -> Optional[TransactionSchema]:
        """결제 생성 전 pending 상태의 거래 생성"""
        return self.create(
            id=transaction_id,
            streamer_id=streamer_id,
            alert_id=alert_id,
            amount_cents=amount_cents,
            currency=currency,
            buyer_note=buyer_note,
            status=TransactionStatus.PENDING,
        )

    def set_provider_payment_id(self, transaction_id: str, payment_id: str) -> bool:
        """결제사 결제 ID 기록 (paid 거래는 건드리지 않음)"""
        try:
            updated_count = (
                self.db.query(self.model_class)
                .filter(
                    and_(
                        self.model_class.id == transaction_id,
                        self.model_class.status != TransactionStatus.PAID,
                    )
                )
                .update(
                    {self.model_class.provider_payment_id: payment_id},
                    synchronize_session="fetch",
                )
            )
            self.db.commit()
            return updated_count > 0
        except Exception:
            self.db.rollback()
            raise

    def mark_paid(
        self, transaction_id: str, provider_payment_id: str, fees: FeeBreakdown
    ) -> bool:
        """
        거래를 paid로 전환 (조건부 쓰기)

        현재 상태가 paid가 아닐 때만 갱신하므로, 동시에 도착한 중복 웹훅 중
        하나만 True를 받습니다. 갱신은 이 메서드 안에서 커밋됩니다.

        Args:
            transaction_id: 거래 ID
            provider_payment_id: Mercado Pago 결제 ID
            fees: 수수료 분배

        Returns:
            bool: 이번 호출로 상태가 바뀌었는지 여부
        """
        try:
            updated_count = (
                self.db.query(self.model_class)
                .filter(
                    and_(
                        self.model_class.id == transaction_id,
                        self.model_class.status != TransactionStatus.PAID,
                    )
                )
                .update(
                    {
                        self.model_class.status: TransactionStatus.PAID,
                        self.model_class.provider_payment_id: provider_payment_id,
                        self.model_class.amount_cents: fees.gross_cents,
                        self.model_class.provider_fee_cents: fees.provider_fee_cents,
                        self.model_class.platform_fee_cents: fees.platform_fee_cents,
                        self.model_class.streamer_amount_cents: fees.net_cents,
                    },
                    synchronize_session="fetch",
                )
            )
            self.db.commit()
            return updated_count > 0
        except Exception:
            self.db.rollback()
            raise

    def mark_failed(self, transaction_id: str) -> bool:
        """
        pending 거래를 failed로 전환

        Returns:
            bool: 이번 호출로 상태가 바뀌었는지 여부
        """
        try:
            updated_count = (
                self.db.query(self.model_class)
                .filter(
                    and_(
                        self.model_class.id == transaction_id,
                        self.model_class.status == TransactionStatus.PENDING,
                    )
                )
                .update(
                    {self.model_class.status: TransactionStatus.FAILED},
                    synchronize_session="fetch",
                )
            )
            self.db.commit()
            return updated_count > 0
        except Exception:
            self.db.rollback()
            raise
