"""Webhook notifications for deploy results"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import aiohttp

from .config import NotificationConfig
from .protocols import NotificationSink

logger = logging.getLogger(__name__)


@dataclass
class WebhookNotifier:
    """Posts short status messages to a webhook URL.

    Delivery is best effort: failures are logged and reported as ``False``.
    """

    url: str
    timeout: float = 10.0
    session: Optional[aiohttp.ClientSession] = field(default=None, repr=False)

    async def notify(self, message: str) -> bool:
        """Post ``{"status": message}`` to the webhook"""
        owns_session = self.session is None
        session = self.session or aiohttp.ClientSession()
        try:
            async with session.post(
                self.url,
                json={"status": message},
                headers={"User-Agent": "Pushr"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status >= 300:
                    logger.warning(
                        f"Notification rejected with HTTP {response.status}: {message}"
                    )
                    return False
                logger.debug(f"Notification sent: {message}")
                return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Notification failed: {e}")
            return False
        finally:
            if owns_session:
                await session.close()

    async def notify_all(self, messages: Iterable[str]) -> int:
        """Send every message in order; returns how many were delivered."""
        return await send_notifications(self, messages)


async def send_notifications(sink: NotificationSink, messages: Iterable[str]) -> int:
    """Deliver messages one at a time through any notification sink.

    Returns:
        Number of messages the sink reported as delivered
    """
    delivered = 0
    for message in messages:
        if await sink.notify(message):
            delivered += 1
    return delivered


def get_notifier(config: NotificationConfig) -> Optional[WebhookNotifier]:
    """Notifier for the configured webhook, None when notifications are off."""
    if not config.enabled:
        logger.debug("No notification URL configured")
        return None
    return WebhookNotifier(url=config.url, timeout=config.timeout)
