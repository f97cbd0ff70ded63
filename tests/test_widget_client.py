import json

import httpx
import pytest

from streala.models.alert_queue import QueueStatus
from streala.overlay.client import WidgetApiClient
from streala.schemas.alert_queue import QueueItemSchema

SETTINGS_BODY = {
    "streamer_id": "streamer-1",
    "overlay_image_duration_seconds": 7,
    "widget_position": "top",
    "alert_start_delay_seconds": 0,
    "alert_between_delay_seconds": 2,
}

ITEM_BODY = {
    "id": 11,
    "streamer_id": "streamer-1",
    "alert_id": "alert-1",
    "transaction_id": "tx-1",
    "is_test": False,
    "payload": {"buyer_note": "Salve!"},
    "status": "queued",
}


class Recorder:
    def __init__(self, responder):
        self.requests = []
        self.responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def make_client(responder, route_style: str = "path") -> tuple:
    recorder = Recorder(responder)
    client = WidgetApiClient(
        "https://api.streala.test/",
        "pk_demo",
        route_style=route_style,
        transport=httpx.MockTransport(recorder),
    )
    return client, recorder


@pytest.mark.asyncio
async def test_path_style_settings():
    client, recorder = make_client(lambda r: httpx.Response(200, json=SETTINGS_BODY))

    widget_settings = await client.get_settings()
    await client.aclose()

    assert widget_settings.overlay_image_duration_seconds == 7
    assert recorder.requests[0].url.path == "/api/v1/widget/pk_demo/settings"
    assert "key" not in recorder.requests[0].url.params


@pytest.mark.asyncio
async def test_query_style_settings():
    client, recorder = make_client(
        lambda r: httpx.Response(200, json=SETTINGS_BODY), route_style="query"
    )

    await client.get_settings()
    await client.aclose()

    assert recorder.requests[0].url.path == "/api/v1/overlay/settings"
    assert recorder.requests[0].url.params["key"] == "pk_demo"


@pytest.mark.asyncio
async def test_list_queued():
    client, recorder = make_client(
        lambda r: httpx.Response(200, json={"items": [ITEM_BODY], "total_count": 1})
    )

    items = await client.list_queued()
    await client.aclose()

    assert [item.id for item in items] == [11]
    assert items[0].status == QueueStatus.QUEUED
    assert recorder.requests[0].url.path == "/api/v1/widget/pk_demo/queue"


@pytest.mark.asyncio
async def test_get_alert_sends_queue_id():
    content_body = {
        "queue_id": 11,
        "alert_id": "alert-1",
        "title": "Buzina",
        "media_type": "audio",
        "media_path": "alerts/buzina.mp3",
        "price_cents": 2500,
        "duration_seconds": 3,
        "buyer_note": "Salve!",
    }
    client, recorder = make_client(
        lambda r: httpx.Response(200, json=content_body), route_style="query"
    )

    content = await client.get_alert(QueueItemSchema(**ITEM_BODY))
    await client.aclose()

    request = recorder.requests[0]
    assert request.url.path == "/api/v1/overlay/alerts/alert-1"
    assert request.url.params["queue_id"] == "11"
    assert request.url.params["key"] == "pk_demo"
    assert content.buyer_note == "Salve!"


@pytest.mark.asyncio
async def test_update_status_body():
    client, recorder = make_client(lambda r: httpx.Response(200, json={"success": True}))

    await client.update_status(11, QueueStatus.PLAYING)
    await client.aclose()

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/alert-queue"
    assert json.loads(request.content) == {
        "action": "update_status",
        "queue_id": 11,
        "status": "playing",
        "public_key": "pk_demo",
    }


@pytest.mark.asyncio
async def test_error_status_raises():
    client, _ = make_client(lambda r: httpx.Response(403, json={"success": False}))

    with pytest.raises(httpx.HTTPStatusError):
        await client.get_settings()
    await client.aclose()


def test_rejects_unknown_route_style():
    with pytest.raises(ValueError):
        WidgetApiClient("https://api.streala.test", "pk_demo", route_style="header")


@pytest.mark.asyncio
async def test_events_parses_insert_stream():
    second = dict(ITEM_BODY, id=12)
    body = (
        "retry: 3000\n\n"
        ": keepalive\n\n"
        f"event: insert\ndata: {json.dumps({'event': 'INSERT', 'item': ITEM_BODY})}\n\n"
        "event: insert\ndata: not-json\n\n"
        f"event: insert\ndata: {json.dumps({'event': 'INSERT', 'item': second})}\n\n"
    )
    client, recorder = make_client(
        lambda r: httpx.Response(
            200, content=body.encode(), headers={"content-type": "text/event-stream"}
        )
    )

    received = [item async for item in client.events()]
    await client.aclose()

    assert received[0] is None
    assert [item.id for item in received[1:]] == [11, 12]
    assert recorder.requests[0].url.path == "/api/v1/widget/pk_demo/events"


@pytest.mark.asyncio
async def test_events_signals_connect_only_after_first_line():
    """응답 헤더만 받고 본문이 없으면 복구 신호(None)를 보내지 않음"""
    client, _ = make_client(
        lambda r: httpx.Response(200, content=b"", headers={"content-type": "text/event-stream"})
    )

    received = [item async for item in client.events()]
    await client.aclose()

    assert received == []
