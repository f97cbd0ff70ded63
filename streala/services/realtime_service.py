"""
Realtime queue fan-out over Redis pub/sub.
- Never raises on publish (returns False on failure); delivery is best-effort
- Lazy connection with health checks
- One channel per streamer: "<prefix>:<streamer_id>"

Realtime is at-most-once per connection. Widgets must re-run their recovery
load on every (re)connect; this channel is not a durability mechanism.
"""

from typing import AsyncIterator, Optional
import redis.asyncio as redis
from redis.asyncio.client import PubSub
import logging

from streala.config import Settings
from streala.schemas.alert_queue import QueueInsertEvent, QueueItemSchema

logger = logging.getLogger(__name__)


class RealtimeService:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None

    async def _get_client(self) -> Optional[redis.Redis]:
        """Lazy connection with health check"""
        if not self._settings.REDIS_ENABLED:
            return None
        if self._client is None:
            try:
                redis_kwargs = {
                    "host": self._settings.REDIS_HOST,
                    "port": self._settings.REDIS_PORT,
                    "db": self._settings.REDIS_DB,
                    "decode_responses": True,
                    "socket_connect_timeout": 5,
                    "socket_keepalive": True,
                    "health_check_interval": 30,
                }

                # Only add password if it's set
                if self._settings.REDIS_PASSWORD:
                    redis_kwargs["password"] = self._settings.REDIS_PASSWORD

                self._client = redis.Redis(**redis_kwargs)
                await self._client.ping()
            except Exception as e:
                logger.warning(f"Redis connection failed: {e}")
                self._client = None
        return self._client

    def channel_for(self, streamer_id: str) -> str:
        return f"{self._settings.REALTIME_CHANNEL_PREFIX}:{streamer_id}"

    async def publish_insert(self, item: QueueItemSchema) -> bool:
        """Publish a queue insertion to the streamer's channel, returns success status"""
        try:
            client = await self._get_client()
            if client is None:
                return False
            event = QueueInsertEvent(item=item)
            await client.publish(self.channel_for(item.streamer_id), event.model_dump_json())
            return True
        except Exception as e:
            logger.warning(f"Realtime publish failed for queue item {item.id}: {e}")
            return False

    async def subscribe(self, streamer_id: str) -> Optional[PubSub]:
        """
        Subscribe to a streamer's channel and return the live subscription.

        Returns None when Redis is unavailable. Events published after this
        returns are buffered on the subscription until it is read.
        """
        client = await self._get_client()
        if client is None:
            return None

        channel = self.channel_for(streamer_id)
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(channel)
        except Exception as e:
            logger.warning(f"[realtime] Subscribe failed for {channel}: {e}")
            await pubsub.aclose()
            return None
        logger.info(f"[realtime] Subscribed to {channel}")
        return pubsub

    async def unsubscribe(self, pubsub: PubSub, streamer_id: str) -> None:
        channel = self.channel_for(streamer_id)
        try:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
        except Exception as e:
            logger.warning(f"[realtime] Unsubscribe failed for {channel}: {e}")
        logger.info(f"[realtime] Unsubscribed from {channel}")

    async def listen(
        self,
        streamer_id: str,
        keepalive_seconds: Optional[float] = None,
        pubsub: Optional[PubSub] = None,
    ) -> AsyncIterator[Optional[QueueInsertEvent]]:
        """
        Yield insert events for a streamer until the connection drops.

        Yields None every keepalive interval without traffic so callers can
        emit heartbeats. Ends immediately when Redis is unavailable.

        A subscription from ``subscribe`` may be passed in so nothing published
        between subscribing and iterating is missed; the caller then owns its
        cleanup. Otherwise one is opened here and closed when iteration ends.
        """
        owned = pubsub is None
        if owned:
            pubsub = await self.subscribe(streamer_id)
            if pubsub is None:
                return

        timeout = keepalive_seconds or self._settings.REALTIME_KEEPALIVE_SECONDS
        channel = self.channel_for(streamer_id)
        try:
            while True:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=timeout
                )
                if message is None:
                    yield None
                    continue
                try:
                    yield QueueInsertEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.warning(f"[realtime] Dropping malformed event on {channel}: {e}")
        finally:
            if owned:
                await self.unsubscribe(pubsub, streamer_id)

    async def ping(self) -> bool:
        client = await self._get_client()
        return client is not None

    async def close(self):
        """Close connection pool on app shutdown"""
        if self._client:
            await self._client.aclose()
            self._client = None
