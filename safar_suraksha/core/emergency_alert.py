import asyncio
import logging
import threading
import time
from typing import Any, Dict, Optional

from safar_suraksha.models.emergency import PanicAlert
from safar_suraksha.models.zone import GeoPoint

logger = logging.getLogger(__name__)

NEW_ALERT_EVENT = "new-alert"

class AlertIdGenerator:
    """Nanosecond timestamps, bumped when needed so ids strictly increase"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            self._last = max(time.time_ns(), self._last + 1)
            return self._last

_alert_ids = AlertIdGenerator()

def create_panic_alert(subject_id: str, latitude: float, longitude: float) -> PanicAlert:
    return PanicAlert(
        id=_alert_ids.next_id(),
        subject_id=subject_id,
        location=GeoPoint(latitude=latitude, longitude=longitude)
    )

class AlertSubscription:
    """Observer handle returned by AlertBroadcaster.subscribe()"""

    def __init__(self, subscription_id: int, name: str, max_pending: int):
        self.id = subscription_id
        self.name = name
        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=max_pending)

    def offer(self, event: Dict[str, Any]) -> bool:
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            return False

    async def get(self) -> Dict[str, Any]:
        return await self._queue.get()

    def get_nowait(self) -> Optional[Dict[str, Any]]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict[str, Any]:
        return await self.get()

class AlertBroadcaster:
    """
    Publish/subscribe hub for panic alerts.

    Subscriber set mutations and publish snapshots hold a lock and never await.
    Each observer owns a bounded queue. Publishing only enqueues, so a slow
    or dead observer never holds up the others; when an observer's queue is
    full the event is dropped for that observer and logged. Nothing is kept
    for observers that subscribe later.
    """

    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._subscribers: Dict[int, AlertSubscription] = {}
        self._lock = threading.Lock()
        self._next_id = 0

    def subscribe(self, name: str = "") -> AlertSubscription:
        with self._lock:
            self._next_id += 1
            subscription = AlertSubscription(
                self._next_id, name or f"observer-{self._next_id}", self.max_pending
            )
            self._subscribers[subscription.id] = subscription
        logger.info("Alert observer subscribed: %s", subscription.name)
        return subscription

    def unsubscribe(self, subscription: AlertSubscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        if removed is not None:
            logger.info("Alert observer unsubscribed: %s", subscription.name)

    def publish(self, alert: PanicAlert) -> int:
        """Fan the alert out to current observers. Returns how many accepted it."""
        event = {"event": NEW_ALERT_EVENT, "data": alert.to_payload()}

        with self._lock:
            subscribers = list(self._subscribers.values())

        delivered = 0
        for subscription in subscribers:
            try:
                if subscription.offer(event):
                    delivered += 1
                else:
                    logger.warning(
                        "Dropping alert %s for slow observer %s", alert.id, subscription.name
                    )
            except Exception:
                logger.exception("Failed to queue alert %s for %s", alert.id, subscription.name)

        logger.info("Panic alert %s published to %d/%d observer(s)",
                    alert.id, delivered, len(subscribers))
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
