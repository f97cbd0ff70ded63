"""
Overlay widget routes.

Two URL styles share one implementation:
- path style:  /widget/{public_key}/settings
- query style: /overlay/settings?key=<public_key>

The public key only grants read access to the streamer's queue, settings and
alert content. Status writes go through POST /alert-queue.
"""

import logging
from typing import AsyncIterator, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import StreamingResponse
from redis.asyncio.client import PubSub
from starlette.background import BackgroundTask

from streala.containers import Container
from streala.deps import get_widget_service
from streala.schemas.alert import AlertContent
from streala.schemas.widget import WidgetQueueResponse, WidgetSettings
from streala.services.realtime_service import RealtimeService
from streala.services.widget_service import WidgetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/widget", tags=["widget"])
overlay_router = APIRouter(prefix="/overlay", tags=["widget"])

SSE_RETRY_MILLISECONDS = 3000


async def _event_stream(
    request: Request,
    realtime_service: RealtimeService,
    streamer_id: str,
    pubsub: Optional[PubSub],
) -> AsyncIterator[str]:
    yield f"retry: {SSE_RETRY_MILLISECONDS}\n\n"
    if pubsub is None:
        return
    async for event in realtime_service.listen(streamer_id, pubsub=pubsub):
        if await request.is_disconnected():
            break
        if event is None:
            yield ": keepalive\n\n"
            continue
        yield f"event: insert\ndata: {event.model_dump_json()}\n\n"


async def _sse_response(
    request: Request, realtime_service: RealtimeService, streamer_id: str
) -> StreamingResponse:
    # 구독은 응답 헤더가 나가기 전에 완료
    pubsub = await realtime_service.subscribe(streamer_id)
    background = None
    if pubsub is not None:
        background = BackgroundTask(realtime_service.unsubscribe, pubsub, streamer_id)
    return StreamingResponse(
        _event_stream(request, realtime_service, streamer_id, pubsub),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=background,
    )


# ---------------------------------------------------------------------------
# path style
# ---------------------------------------------------------------------------


@router.get("/{public_key}/settings", response_model=WidgetSettings)
def get_widget_settings(
    public_key: str = Path(..., min_length=1),
    widget_service: WidgetService = Depends(get_widget_service),
) -> WidgetSettings:
    """위젯 설정 (기본값 적용)"""
    return widget_service.get_settings(public_key)


@router.get("/{public_key}/queue", response_model=WidgetQueueResponse)
def get_widget_queue(
    public_key: str = Path(..., min_length=1),
    limit: int = Query(100, ge=1, le=500),
    widget_service: WidgetService = Depends(get_widget_service),
) -> WidgetQueueResponse:
    """재생 대기 항목 (도착 순서)"""
    return widget_service.list_queued(public_key, limit=limit)


@router.get("/{public_key}/alerts/{alert_id}", response_model=AlertContent)
def get_widget_alert(
    public_key: str = Path(..., min_length=1),
    alert_id: str = Path(..., min_length=1),
    queue_id: int = Query(..., gt=0),
    widget_service: WidgetService = Depends(get_widget_service),
) -> AlertContent:
    """재생할 알림 내용 + 구매자 메시지"""
    return widget_service.get_alert_content(public_key, alert_id, queue_id)


@router.get("/{public_key}/events")
@inject
async def stream_widget_events(
    request: Request,
    public_key: str = Path(..., min_length=1),
    widget_service: WidgetService = Depends(get_widget_service),
    realtime_service: RealtimeService = Depends(Provide[Container.gateways.realtime_service]),
) -> StreamingResponse:
    """큐 삽입 이벤트 SSE 스트림 (재연결 시 위젯이 복구 로드를 다시 수행)"""
    streamer = widget_service.resolve_streamer(public_key)
    return await _sse_response(request, realtime_service, streamer.id)


# ---------------------------------------------------------------------------
# query style
# ---------------------------------------------------------------------------


@overlay_router.get("/settings", response_model=WidgetSettings)
def get_overlay_settings(
    key: str = Query(..., min_length=1),
    widget_service: WidgetService = Depends(get_widget_service),
) -> WidgetSettings:
    return widget_service.get_settings(key)


@overlay_router.get("/queue", response_model=WidgetQueueResponse)
def get_overlay_queue(
    key: str = Query(..., min_length=1),
    limit: int = Query(100, ge=1, le=500),
    widget_service: WidgetService = Depends(get_widget_service),
) -> WidgetQueueResponse:
    return widget_service.list_queued(key, limit=limit)


@overlay_router.get("/alerts/{alert_id}", response_model=AlertContent)
def get_overlay_alert(
    alert_id: str = Path(..., min_length=1),
    key: str = Query(..., min_length=1),
    queue_id: int = Query(..., gt=0),
    widget_service: WidgetService = Depends(get_widget_service),
) -> AlertContent:
    return widget_service.get_alert_content(key, alert_id, queue_id)


@overlay_router.get("/events")
@inject
async def stream_overlay_events(
    request: Request,
    key: str = Query(..., min_length=1),
    widget_service: WidgetService = Depends(get_widget_service),
    realtime_service: RealtimeService = Depends(Provide[Container.gateways.realtime_service]),
) -> StreamingResponse:
    streamer = widget_service.resolve_streamer(key)
    return await _sse_response(request, realtime_service, streamer.id)
