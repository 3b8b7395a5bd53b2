"""
tekron.services.alert_bus - In-process Alert Pub/Sub
=====================================================

Newly created alerts are published here; the participant SSE stream
subscribes and forwards them.  One bus lives per API process.

``publish`` never blocks: each subscriber owns a bounded queue and a
subscriber that stops draining loses messages instead of stalling the
publisher.  Subscribers that miss messages can always re-read
``GET /participant/alerts``, which is served from storage.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class AlertBus:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue[dict]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[dict]:
        queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.debug("Alert subscriber added (%d total)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Alert subscriber removed (%d total)", len(self._subscribers))

    def publish(self, alert: dict) -> int:
        """Deliver *alert* to every subscriber; return how many received it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(alert)
            except asyncio.QueueFull:
                logger.warning("Alert subscriber queue full; dropping alert %s", alert.get("id"))
                continue
            delivered += 1
        return delivered

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue[dict]]:
        queue = self.subscribe()
        try:
            yield queue
        finally:
            self.unsubscribe(queue)
