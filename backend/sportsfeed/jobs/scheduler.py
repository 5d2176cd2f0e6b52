from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass

from sportsfeed.config.settings import settings
from sportsfeed.feeds.catalog import FeedCatalog
from sportsfeed.jobs.orchestrator import FetchOrchestrator
from sportsfeed.schemas.feed import FeedDescriptor
from sportsfeed.schemas.snapshot import AcquisitionUnavailable, Snapshot

logger = logging.getLogger(__name__)

_subscription_ids = itertools.count(1)


@dataclass(frozen=True)
class SubscriptionHandle:
    feed_id: str
    subscription_id: int
    interval_seconds: float


class RefreshScheduler:
    """Periodic and manual refresh of feeds, one in-flight orchestration per feed.

    A ``trigger`` that arrives while a feed is already being fetched awaits the
    running task instead of starting another one, so every concurrent caller
    receives the very same Snapshot object.
    """

    def __init__(
        self,
        catalog: FeedCatalog,
        orchestrator: FetchOrchestrator,
        default_interval_seconds: float | None = None,
    ) -> None:
        self._catalog = catalog
        self._orchestrator = orchestrator
        self._default_interval = (
            default_interval_seconds
            if default_interval_seconds is not None
            else settings.default_interval_seconds
        )
        self._inflight: dict[str, asyncio.Task] = {}
        self._timers: dict[SubscriptionHandle, asyncio.Task] = {}

    async def trigger(self, feed_id: str) -> Snapshot | AcquisitionUnavailable:
        feed = self._catalog.get(feed_id)
        task = self._inflight.get(feed_id)
        if task is None:
            task = asyncio.create_task(self._run(feed), name=f"sportsfeed-fetch:{feed_id}")
            self._inflight[feed_id] = task
        else:
            logger.debug("%s joining in-flight fetch", feed_id)
        # Shielded so a cancelled waiter (e.g. an unsubscribed timer) leaves the fetch running.
        return await asyncio.shield(task)

    async def _run(self, feed: FeedDescriptor) -> Snapshot | AcquisitionUnavailable:
        try:
            return await self._orchestrator.run(feed)
        finally:
            self._inflight.pop(feed.feed_id, None)

    def is_inflight(self, feed_id: str) -> bool:
        return feed_id in self._inflight

    def subscribe(self, feed_id: str, interval_seconds: float | None = None) -> SubscriptionHandle:
        self._catalog.get(feed_id)
        interval = interval_seconds if interval_seconds is not None else self._default_interval
        if interval <= 0:
            raise ValueError("interval_seconds must be positive")
        handle = SubscriptionHandle(
            feed_id=feed_id, subscription_id=next(_subscription_ids), interval_seconds=interval
        )
        self._timers[handle] = asyncio.create_task(
            self._periodic(handle), name=f"sportsfeed-timer:{feed_id}:{handle.subscription_id}"
        )
        logger.info("%s subscribed every %.1fs", feed_id, interval)
        return handle

    async def _periodic(self, handle: SubscriptionHandle) -> None:
        while True:
            try:
                await self.trigger(handle.feed_id)
            except Exception:
                logger.exception("%s scheduled refresh failed", handle.feed_id)
            await asyncio.sleep(handle.interval_seconds)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        task = self._timers.pop(handle, None)
        if task is None:
            return
        task.cancel()
        logger.info("%s unsubscribed", handle.feed_id)

    def subscriptions(self) -> list[SubscriptionHandle]:
        return list(self._timers)

    def get_latest(self, feed_id: str) -> Snapshot | None:
        return self._orchestrator.latest.get(feed_id)

    async def close(self) -> None:
        timers = list(self._timers.values())
        self._timers.clear()
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        inflight = list(self._inflight.values())
        if inflight:
            await asyncio.gather(*inflight, return_exceptions=True)
