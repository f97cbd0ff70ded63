"""
Headless overlay consumer.

Drains a streamer's alert queue with the same protocol as the OBS widget and
logs each alert instead of rendering it.

    OVERLAY_PUBLIC_KEY=<key> python scripts/run_overlay.py
    OVERLAY_PUBLIC_KEY=<key> OVERLAY_ROUTE_STYLE=query python scripts/run_overlay.py --once
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from streala.config import settings
from streala.logging_config import setup_logging
from streala.overlay.client import WidgetApiClient
from streala.overlay.consumer import OverlayConsumer
from streala.overlay.player import LoggingPlayer

logger = logging.getLogger("streala")


async def main(once: bool) -> None:
    public_key = os.environ.get("OVERLAY_PUBLIC_KEY")
    if not public_key:
        raise SystemExit("OVERLAY_PUBLIC_KEY is required")

    client = WidgetApiClient(
        base_url=os.environ.get("OVERLAY_API_URL", settings.PUBLIC_BASE_URL),
        public_key=public_key,
        route_style=os.environ.get("OVERLAY_ROUTE_STYLE", "path"),
        api_prefix=settings.API_V1_STR,
    )
    consumer = OverlayConsumer(
        client,
        LoggingPlayer(),
        max_play_seconds=settings.OVERLAY_MAX_PLAY_SECONDS,
        poll_interval_seconds=settings.OVERLAY_POLL_INTERVAL_SECONDS,
        reconnect_delay_seconds=settings.OVERLAY_RECONNECT_DELAY_SECONDS,
        seen_retention_seconds=settings.OVERLAY_SEEN_RETENTION_SECONDS,
    )
    try:
        if once:
            await consumer.start(realtime=False, polling=False)
            await consumer.join()
        else:
            await consumer.run_forever()
    finally:
        await consumer.stop()
        await client.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Headless overlay consumer")
    parser.add_argument("--once", action="store_true", help="drain the current queue and exit")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL, json_logs=False)
    try:
        asyncio.run(main(args.once))
    except KeyboardInterrupt:
        logger.info("[overlay] Stopped")
