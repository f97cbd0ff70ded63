import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from streala.models.alert_queue import QueueStatus
from streala.schemas.alert import AlertContent
from streala.schemas.alert_queue import QueueInsertEvent, QueueItemSchema
from streala.schemas.widget import WidgetQueueResponse, WidgetSettings

logger = logging.getLogger(__name__)

ROUTE_STYLES = ("path", "query")


class WidgetApiClient:
    """
    HTTP client for the widget surface.

    Both route styles (``/widget/{key}/...`` and ``/overlay/...?key=``) go
    through ``_url`` so consumers of either style run the same protocol.
    """

    def __init__(
        self,
        base_url: str,
        public_key: str,
        route_style: str = "path",
        api_prefix: str = "/api/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if route_style not in ROUTE_STYLES:
            raise ValueError(f"route_style must be one of {ROUTE_STYLES}: {route_style}")
        self.public_key = public_key
        self.route_style = route_style
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    def _url(self, resource: str) -> Tuple[str, Dict[str, Any]]:
        if self.route_style == "path":
            return f"{self.api_prefix}/widget/{self.public_key}/{resource}", {}
        return f"{self.api_prefix}/overlay/{resource}", {"key": self.public_key}

    async def _get_json(self, resource: str, **params: Any) -> Any:
        path, base_params = self._url(resource)
        response = await self._client.get(path, params={**base_params, **params})
        response.raise_for_status()
        return response.json()

    async def get_settings(self) -> WidgetSettings:
        return WidgetSettings.model_validate(await self._get_json("settings"))

    async def list_queued(self) -> List[QueueItemSchema]:
        data = await self._get_json("queue")
        return WidgetQueueResponse.model_validate(data).items

    async def get_alert(self, item: QueueItemSchema) -> AlertContent:
        data = await self._get_json(f"alerts/{item.alert_id}", queue_id=item.id)
        return AlertContent.model_validate(data)

    async def update_status(self, queue_id: int, status: QueueStatus) -> None:
        response = await self._client.post(
            f"{self.api_prefix}/alert-queue",
            json={
                "action": "update_status",
                "queue_id": queue_id,
                "status": QueueStatus(status).value,
                "public_key": self.public_key,
            },
        )
        response.raise_for_status()

    async def events(self) -> AsyncIterator[Optional[QueueItemSchema]]:
        """
        Stream queue insertions from the SSE endpoint.

        Yields None once the first line arrives (the server is subscribed by
        then) so the caller can run its recovery load, then one item per
        insert event. Returns when the server closes the stream.
        """
        path, params = self._url("events")
        timeout = httpx.Timeout(self._client.timeout.connect, read=None)
        async with self._client.stream("GET", path, params=params, timeout=timeout) as response:
            response.raise_for_status()

            connected = False
            event_name: Optional[str] = None
            data_lines: List[str] = []
            async for line in response.aiter_lines():
                if not connected:
                    connected = True
                    yield None
                if line == "":
                    if event_name == "insert" and data_lines:
                        item = self._parse_insert("\n".join(data_lines))
                        if item is not None:
                            yield item
                    event_name, data_lines = None, []
                elif line.startswith(":"):
                    continue
                elif line.startswith("event:"):
                    event_name = line[len("event:"):].strip()
                elif line.startswith("data:"):
                    data_lines.append(line[len("data:"):].strip())

    @staticmethod
    def _parse_insert(data: str) -> Optional[QueueItemSchema]:
        try:
            return QueueInsertEvent.model_validate(json.loads(data)).item
        except ValueError as e:
            logger.warning(f"[overlay] Ignoring malformed insert event: {e}")
            return None

    async def aclose(self) -> None:
        await self._client.aclose()
