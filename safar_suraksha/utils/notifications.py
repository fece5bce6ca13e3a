import asyncio
import aiohttp
import logging
from typing import Any, Dict, Optional

from safar_suraksha.core.emergency_alert import AlertBroadcaster, AlertSubscription

logger = logging.getLogger(__name__)

class WebhookAlertForwarder:
    """
    Alert observer that POSTs every broadcast event to an HTTP endpoint

    Runs as a background task holding its own broadcaster subscription.
    Delivery failures are logged and the event is dropped.
    """

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._subscription: Optional[AlertSubscription] = None
        self._task: Optional[asyncio.Task] = None

    async def send_event(self, session: aiohttp.ClientSession, event: Dict[str, Any]) -> bool:
        """Send one event to the webhook"""
        try:
            async with session.post(
                self.url,
                json=event,
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status >= 400:
                    response_text = await response.text()
                    logger.error(f"Alert webhook error: {response.status} - {response_text}")
                    return False
                return True

        except asyncio.TimeoutError:
            logger.error("Alert webhook request timeout")
            return False
        except Exception as e:
            logger.error(f"Alert webhook request error: {e}")
            return False

    async def start(self, broadcaster: AlertBroadcaster):
        self._subscription = broadcaster.subscribe("webhook")
        self._task = asyncio.create_task(self._forward(self._subscription))
        logger.info(f"Forwarding panic alerts to {self.url}")

    async def stop(self, broadcaster: AlertBroadcaster):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._subscription is not None:
            broadcaster.unsubscribe(self._subscription)
            self._subscription = None

    async def _forward(self, subscription: AlertSubscription):
        async with aiohttp.ClientSession() as session:
            async for event in subscription:
                await self.send_event(session, event)
