import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from streala.core.auth_middleware import get_current_auth_user_id_optional
from streala.core.exceptions import AuthenticationError
from streala.deps import get_alert_queue_service
from streala.models.alert_queue import QueueStatus
from streala.schemas.alert_queue import CreateTestAlertRequest, ManageQueueRequest
from streala.schemas.common import BaseResponse
from streala.services.alert_queue_service import AlertQueueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alert-queue", tags=["alert-queue"])


@router.post("", response_model=BaseResponse)
async def manage_alert_queue(
    payload: ManageQueueRequest = Body(...),
    auth_user_id: Optional[str] = Depends(get_current_auth_user_id_optional),
    service: AlertQueueService = Depends(get_alert_queue_service),
) -> BaseResponse:
    """알림 큐 관리

    action:
        create_test: 세션 인증된 스트리머가 자신의 알림으로 테스트 항목 삽입
        update_status: 위젯이 공개 키로 큐 항목 상태를 playing/finished로 갱신

    HTTP Status:
        200: 성공
        401: create_test 세션 토큰 없음/만료
        403: 소유권 불일치 또는 잘못된 공개 키
        404: 스트리머/알림/큐 항목 없음
        409: 허용되지 않는 상태 전이
        422: 요청 형식 오류 (허용되지 않는 status 포함)
        429: 테스트 알림 한도 초과
    """
    if isinstance(payload, CreateTestAlertRequest):
        if not auth_user_id:
            raise AuthenticationError("Authentication required")
        item = await service.create_test_alert(auth_user_id, payload.alert_id)
        return BaseResponse(
            success=True,
            data={"message": "Test alert queued", "item": item.model_dump(mode="json")},
        )

    item = service.update_status(
        public_key=payload.public_key,
        queue_id=payload.queue_id,
        status=QueueStatus(payload.status),
    )
    return BaseResponse(success=True, data={"item": item.model_dump(mode="json")})
