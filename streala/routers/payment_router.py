from fastapi import APIRouter, Depends, Path

from streala.deps import get_payment_service
from streala.schemas.payment import PixPaymentRequest, PixPaymentResponse
from streala.schemas.transaction import TransactionStatusResponse
from streala.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/pix", response_model=PixPaymentResponse)
async def create_pix_payment(
    payload: PixPaymentRequest,
    payment_service: PaymentService = Depends(get_payment_service),
) -> PixPaymentResponse:
    """구매자 PIX 결제 생성 (QR 코드 + 복사용 코드 반환)"""
    return await payment_service.create_pix_payment(payload)


@router.get("/{transaction_id}/status", response_model=TransactionStatusResponse)
def get_payment_status(
    transaction_id: str = Path(..., min_length=1, max_length=36),
    payment_service: PaymentService = Depends(get_payment_service),
) -> TransactionStatusResponse:
    """실시간 확인이 끊겼을 때 구매자 화면이 사용하는 폴링 엔드포인트"""
    return payment_service.get_status(transaction_id)
