"""
Overlay queue consumer.

Drains a streamer's alert queue one item at a time:

    start delay -> playing -> fetch content -> play -> finished
    -> between delay -> next

Two producers feed ``accept``: the recovery load (run at start, on every
realtime (re)connect and on a polling interval) and the realtime insert
stream. ``accept`` drops ids it has already seen, so either producer alone is
enough and duplicates between them are harmless. A processed id is forgotten
once it is older than ``seen_retention_seconds`` and a later recovery load no
longer lists it as queued, which keeps the seen set bounded.

``current`` is a single slot owned by this instance. ``_pump`` is synchronous
and reserves the head item before any await, so concurrent triggers can never
start two items.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Set

import httpx

from streala.models.alert_queue import QueueStatus
from streala.overlay.client import WidgetApiClient
from streala.overlay.player import AlertPlayer
from streala.schemas.alert import AlertContent
from streala.schemas.alert_queue import QueueItemSchema
from streala.schemas.widget import WidgetSettings

logger = logging.getLogger(__name__)


class OverlayConsumer:
    def __init__(
        self,
        client: WidgetApiClient,
        player: AlertPlayer,
        max_play_seconds: float = 120.0,
        poll_interval_seconds: float = 30.0,
        reconnect_delay_seconds: float = 3.0,
        seen_retention_seconds: float = 300.0,
    ):
        self.client = client
        self.player = player
        self.max_play_seconds = max_play_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.reconnect_delay_seconds = reconnect_delay_seconds
        self.seen_retention_seconds = seen_retention_seconds

        self.widget_settings: Optional[WidgetSettings] = None
        self.queue: Deque[QueueItemSchema] = deque()
        self.current: Optional[QueueItemSchema] = None

        self._seen: Set[int] = set()
        # id -> loop time its processing ended
        self._processed: Dict[int, float] = {}
        self._stopped = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._play_task: Optional[asyncio.Task] = None
        self._background: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def start(self, realtime: bool = True, polling: bool = True) -> None:
        """Load settings, run the recovery load, then start the producers."""
        self.widget_settings = await self.client.get_settings()
        logger.info(
            f"[overlay] Settings for streamer {self.widget_settings.streamer_id}: "
            f"image={self.widget_settings.overlay_image_duration_seconds}s "
            f"start_delay={self.widget_settings.alert_start_delay_seconds}s "
            f"between_delay={self.widget_settings.alert_between_delay_seconds}s"
        )
        await self.recover()

        if realtime:
            self._background.append(asyncio.create_task(self._subscribe_loop()))
        if polling:
            self._background.append(asyncio.create_task(self._poll_loop()))

    async def run_forever(self) -> None:
        await self.start()
        await asyncio.gather(*self._background)

    async def join(self) -> None:
        """Wait until nothing is playing and the local buffer is empty."""
        await self._idle.wait()

    async def stop(self) -> None:
        self._stopped = True
        tasks = list(self._background)
        if self._play_task is not None:
            tasks.append(self._play_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()

    # ------------------------------------------------------------------
    # producers
    # ------------------------------------------------------------------

    def accept(self, item: QueueItemSchema) -> bool:
        """Buffer a queued item unless it was already seen. Returns True if buffered."""
        if item.id in self._seen or item.status != QueueStatus.QUEUED:
            return False
        self._seen.add(item.id)
        self.queue.append(item)
        self._pump()
        return True

    async def recover(self) -> int:
        """Load every queued item from the server and buffer the unseen ones."""
        try:
            items = await self.client.list_queued()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[overlay] Recovery load failed: {e}")
            return 0

        self._prune_seen(item.id for item in items)
        accepted = sum(1 for item in items if self.accept(item))
        if accepted:
            logger.info(f"[overlay] Recovery load buffered {accepted} item(s)")
        return accepted

    def _prune_seen(self, queued_ids: Iterable[int]) -> None:
        still_queued = set(queued_ids)
        cutoff = asyncio.get_running_loop().time() - self.seen_retention_seconds
        for item_id, processed_at in list(self._processed.items()):
            if processed_at <= cutoff and item_id not in still_queued:
                del self._processed[item_id]
                self._seen.discard(item_id)

    async def _subscribe_loop(self) -> None:
        while not self._stopped:
            try:
                async for item in self.client.events():
                    if item is None:
                        # recovery load on every (re)connect
                        await self.recover()
                        continue
                    self.accept(item)
                logger.info("[overlay] Realtime stream closed by server")
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[overlay] Realtime stream error: {e}")
            await asyncio.sleep(self.reconnect_delay_seconds)

    async def _poll_loop(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.poll_interval_seconds)
            await self.recover()

    # ------------------------------------------------------------------
    # drain loop
    # ------------------------------------------------------------------

    def _pump(self) -> None:
        if self.current is not None:
            return
        if self._stopped or not self.queue:
            self._idle.set()
            return
        self._idle.clear()
        item = self.queue.popleft()
        self._reserve(item)
        self._play_task = asyncio.get_running_loop().create_task(self._play(item))

    def _reserve(self, item: QueueItemSchema) -> None:
        if self.current is not None:
            raise RuntimeError(
                f"Cannot reserve queue item {item.id}: {self.current.id} is still playing"
            )
        self.current = item

    async def _play(self, item: QueueItemSchema) -> None:
        try:
            await self._run_item(item)
        except asyncio.CancelledError:
            self.current = None
            raise
        except Exception:
            logger.exception(f"[overlay] Unexpected error while playing queue item {item.id}")

        self._processed[item.id] = asyncio.get_running_loop().time()
        self.current = None
        self._play_task = None
        self._pump()

    async def _run_item(self, item: QueueItemSchema) -> None:
        widget_settings = self.widget_settings or WidgetSettings(streamer_id=item.streamer_id)

        if widget_settings.alert_start_delay_seconds:
            await asyncio.sleep(widget_settings.alert_start_delay_seconds)

        await self._update_status(item, QueueStatus.PLAYING)

        content = await self._fetch_content(item)
        if content is not None:
            await self._play_content(content, widget_settings)
            await self._update_status(item, QueueStatus.FINISHED)

        if widget_settings.alert_between_delay_seconds:
            await asyncio.sleep(widget_settings.alert_between_delay_seconds)

    async def _fetch_content(self, item: QueueItemSchema) -> Optional[AlertContent]:
        try:
            return await self.client.get_alert(item)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"[overlay] Failed to fetch alert {item.alert_id} for queue item {item.id}: {e}"
            )
            return None

    async def _play_content(self, content: AlertContent, widget_settings: WidgetSettings) -> None:
        try:
            await asyncio.wait_for(
                self.player.play(content, widget_settings), timeout=self.max_play_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[overlay] Queue item {content.queue_id} exceeded {self.max_play_seconds}s, "
                f"advancing"
            )
        except Exception as e:
            logger.error(f"[overlay] Player failed on queue item {content.queue_id}: {e}")

    async def _update_status(self, item: QueueItemSchema, status: QueueStatus) -> None:
        try:
            await self.client.update_status(item.id, status)
            logger.info(f"[overlay] Queue item {item.id} -> {status.value}")
        except (httpx.HTTPError, ValueError) as e:
            # local playback continues even if the remote status lags
            logger.error(f"[overlay] Failed to mark queue item {item.id} {status.value}: {e}")
