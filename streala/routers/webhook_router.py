import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError

from streala.deps import get_webhook_service
from streala.schemas.webhook import MercadoPagoNotification, WebhookAck, WebhookResult
from streala.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _merge_query_fallback(body: Dict[str, Any], request: Request) -> Dict[str, Any]:
    """IPN 형식(?topic=payment&id=123, ?type=payment&data.id=123) 알림 보정"""
    params = request.query_params
    if not body.get("type"):
        body["type"] = params.get("type") or params.get("topic")

    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    if not data.get("id"):
        query_id = params.get("data.id") or params.get("id")
        if query_id:
            data = {**data, "id": query_id}
    body["data"] = data
    return body


@router.post("/mercadopago", response_model=WebhookAck)
async def mercadopago_webhook(
    request: Request,
    streamer: Optional[str] = Query(None, description="결제를 생성한 스트리머 ID"),
    webhook_service: WebhookService = Depends(get_webhook_service),
) -> WebhookAck:
    """Mercado Pago 결제 알림 수신

    HTTP Status:
        200: 처리 완료 또는 의도적으로 무시 (재전송 불필요)
        500: external_reference에 해당하는 거래 없음 (연동 오류)
        502: 결제 조회 실패 (게이트웨이 재전송 유도)
    """
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    logger.info(f"[webhook] Received notification: {body} query={dict(request.query_params)}")

    try:
        notification = MercadoPagoNotification.model_validate(
            _merge_query_fallback(body, request)
        )
    except PydanticValidationError as e:
        logger.warning(f"[webhook] Malformed notification ignored: {e}")
        return WebhookAck(result=WebhookResult.IGNORED)

    return await webhook_service.process_notification(notification, streamer_hint=streamer)
