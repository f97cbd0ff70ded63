import asyncio
import logging
from abc import ABC, abstractmethod

from streala.models.alert import MediaType
from streala.schemas.alert import AlertContent
from streala.schemas.widget import WidgetSettings

logger = logging.getLogger(__name__)


class AlertPlayer(ABC):
    """Display surface for one alert. ``play`` returns when playback completes."""

    @abstractmethod
    async def play(self, content: AlertContent, widget_settings: WidgetSettings) -> None:
        raise NotImplementedError


class LoggingPlayer(AlertPlayer):
    """
    Headless player that logs each alert and waits out its display time.

    Images last the configured display duration. Audio and video last their
    recorded ``duration_seconds``; media with no recorded duration never
    signals completion, like a clip whose ended event never fires.
    """

    async def play(self, content: AlertContent, widget_settings: WidgetSettings) -> None:
        note = f' "{content.buyer_note}"' if content.buyer_note else ""
        logger.info(
            f"[overlay] Playing alert {content.alert_id} ({content.media_type.value}) "
            f"queue={content.queue_id} title={content.title!r}{note} "
            f"position={widget_settings.widget_position}"
        )

        if content.media_type == MediaType.IMAGE:
            await asyncio.sleep(widget_settings.overlay_image_duration_seconds)
            return

        if content.duration_seconds is None:
            logger.warning(
                f"[overlay] No duration for {content.media_type.value} alert "
                f"{content.alert_id}, waiting for completion signal"
            )
            await asyncio.Event().wait()
            return

        await asyncio.sleep(content.duration_seconds)
