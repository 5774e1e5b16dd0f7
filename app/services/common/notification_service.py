"""
Outbound sinks for inventory events.

Notifier    -> human-facing alerts (reorder alerts, expired batches)
Broadcaster -> machine-facing change events, served to live subscribers
               as server-sent events by ``event_stream``

Both are fire-and-forget from the caller's point of view: the
``*_safely`` helpers log and swallow sink failures because the state
change has already been committed when they run.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx

from app.core.config import ALERT_WEBHOOK_URLS, ALERT_WEBHOOK_TIMEOUT, EVENT_STREAM_HEARTBEAT_SECONDS

logger = logging.getLogger(__name__)


# =====================================================
# NOTIFIERS
# =====================================================
class Notifier(ABC):
    @abstractmethod
    async def notify(
        self,
        alert_type: str,
        severity: str,
        message: str,
        details: dict[str, Any],
    ) -> None:
        pass


class LoggingNotifier(Notifier):
    async def notify(self, alert_type, severity, message, details):
        logger.warning(
            message,
            extra={"alert_type": alert_type, "severity": severity, "details": details},
        )


class WebhookNotifier(Notifier):
    """POSTs every notification to each configured URL."""

    def __init__(self, urls: list[str], timeout: float = ALERT_WEBHOOK_TIMEOUT):
        self.urls = urls
        self.timeout = timeout

    async def notify(self, alert_type, severity, message, details):
        payload = {
            "event": alert_type,
            "severity": severity,
            "message": message,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for url in self.urls:
                try:
                    resp = await client.post(url, json=payload)
                    if not resp.is_success:
                        logger.error(f"Webhook {url} answered {resp.status_code}")
                except httpx.HTTPError as e:
                    logger.error(f"Webhook failed for {url}: {e}")


def build_notifier() -> Notifier:
    if ALERT_WEBHOOK_URLS:
        return WebhookNotifier(ALERT_WEBHOOK_URLS)
    return LoggingNotifier()


# =====================================================
# BROADCASTERS
# =====================================================
class EventBroadcaster(ABC):
    @abstractmethod
    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        pass


class InMemoryBroadcaster(EventBroadcaster):
    """Fans every event out to the queues of current subscribers."""

    def __init__(self, max_queue_size: int = 1000):
        self._subscribers: list[asyncio.Queue] = []
        self._max_queue_size = max_queue_size

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def publish(self, event, payload):
        message = {"event": event, "payload": payload}
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Dropping event for slow subscriber", extra={"event": event})


def event_stream(
    broadcaster: InMemoryBroadcaster,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    heartbeat: float = EVENT_STREAM_HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """
    Server-sent events over a fresh subscription.

    The subscription is taken immediately so nothing published between this
    call and the first read is lost. A comment line is sent after every
    ``heartbeat`` seconds of silence.
    """
    queue = broadcaster.subscribe()

    async def _stream():
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                data = json.dumps(message["payload"], default=str)
                yield f"event: {message['event']}\ndata: {data}\n\n"
        finally:
            broadcaster.unsubscribe(queue)

    return _stream()


# =====================================================
# BEST-EFFORT WRAPPERS
# =====================================================
async def notify_safely(notifier: Notifier | None, alert_type, severity, message, details) -> None:
    if notifier is None:
        return
    try:
        await notifier.notify(alert_type, severity, message, details)
    except Exception:
        logger.exception("Notification failed", extra={"alert_type": alert_type})


async def publish_safely(broadcaster: EventBroadcaster | None, event: str, payload: dict) -> None:
    if broadcaster is None:
        return
    try:
        await broadcaster.publish(event, payload)
    except Exception:
        logger.exception("Event publish failed", extra={"event": event})
