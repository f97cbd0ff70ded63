"""
거래 원장(Transaction Ledger) 모델

구매 의사(purchase intent) 하나당 한 행이 생성되며, 상태 변경은
웹훅 정산기(WebhookService)만 수행합니다. 행은 삭제되지 않습니다.
"""

import enum
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from streala.models.base import Base


class TransactionStatus(str, enum.Enum):
    """거래 상태 - paid는 종료 상태"""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    @classmethod
    def allowed_transitions(cls) -> dict:
        return {
            cls.PENDING: {cls.PAID, cls.FAILED},
            # 거절 후 같은 external_reference로 승인된 결제는 기록해야 함
            cls.FAILED: {cls.PAID},
            cls.PAID: set(),
        }

    @classmethod
    def can_transition(
        cls, current: Union[str, "TransactionStatus"], target: Union[str, "TransactionStatus"]
    ) -> bool:
        """current -> target 전이가 허용되는지 확인"""
        return cls(target) in cls.allowed_transitions()[cls(current)]


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_streamer_status", "streamer_id", "status"),
    )

    # 결제 생성 전에 구매자 측에서 발급되어 external_reference로 전달되는 ID
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    streamer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("streamers.id"), nullable=False
    )
    alert_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("alerts.id"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BRL")
    provider_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streamer_amount_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(
            TransactionStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=TransactionStatus.PENDING,
    )
    buyer_note: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    provider_payment_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, status={self.status})>"
