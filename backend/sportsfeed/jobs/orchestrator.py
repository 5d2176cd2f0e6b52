from __future__ import annotations

import datetime
import enum
import json
import logging
from collections.abc import Callable
from time import perf_counter
from typing import Any

import httpx

from sportsfeed.cache import SnapshotStore
from sportsfeed.config.settings import Settings, settings
from sportsfeed.errors import (
    AcquisitionError,
    HttpStatusError,
    NormalizationError,
    SyntheticOverwriteError,
)
from sportsfeed.fallback.synthetic import generate
from sportsfeed.feeds.catalog import resolve_candidates
from sportsfeed.normalization.normalizer import normalize
from sportsfeed.providers.http import build_url, get_json
from sportsfeed.schemas.feed import EndpointCandidate, FeedDescriptor, FetchAttemptResult
from sportsfeed.schemas.snapshot import AcquisitionUnavailable, Snapshot

logger = logging.getLogger(__name__)

_RAW_EXCERPT_CHARS = 2000


class FetchState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted_candidates"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    SYNTHESIZED = "synthesized"
    UNAVAILABLE = "unavailable"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _raw_excerpt(payload: Any) -> str:
    try:
        text = json.dumps(payload, default=str)
    except (TypeError, ValueError):
        text = repr(payload)
    return text[:_RAW_EXCERPT_CHARS]


class FetchOrchestrator:
    """Resolves one feed to a Snapshot: live candidates, then cache, then synthetic data.

    ``run`` never raises for endpoint, status or payload problems; callers read
    ``provenance`` and ``last_error_message`` on the returned Snapshot instead.
    """

    def __init__(
        self,
        store: SnapshotStore,
        client: httpx.AsyncClient,
        config: Settings | None = None,
        fallback: Callable[..., list] = generate,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        config = config or settings
        self._store = store
        self._client = client
        self._base_url = config.base_url
        self._timeout_seconds = config.http.timeout_seconds
        self._synthetic_count = config.synthetic_count
        self._fallback = fallback
        self._clock = clock
        self.latest: dict[str, Snapshot] = {}
        self.last_state: dict[str, FetchState] = {}

    def _defaults(self, feed: FeedDescriptor) -> dict[str, Any]:
        sport = feed.base_parameters.get("sport")
        return {"sport": sport} if sport else {}

    def _normalize(self, feed: FeedDescriptor, payload: Any, now: datetime.datetime) -> list:
        try:
            return normalize(
                feed.feed_id, payload, kind=feed.kind, defaults=self._defaults(feed), now=now
            )
        except NormalizationError:
            raise
        except Exception as exc:
            logger.exception("%s normalizer failed on payload", feed.feed_id)
            raise NormalizationError(f"normalization failed: {exc!r}") from exc

    async def _attempt(
        self,
        feed: FeedDescriptor,
        candidate: EndpointCandidate,
        now: datetime.datetime,
    ) -> tuple[FetchAttemptResult, Any, list | None]:
        url = build_url(self._base_url, candidate.path)
        timeout = candidate.timeout_seconds or self._timeout_seconds
        started = perf_counter()
        payload: Any = None
        try:
            payload, status = await get_json(self._client, url, feed.base_parameters, timeout)
            records = self._normalize(feed, payload, now)
        except AcquisitionError as exc:
            elapsed_ms = int((perf_counter() - started) * 1000)
            http_status = exc.status_code if isinstance(exc, HttpStatusError) else None
            logger.warning(
                "%s candidate %s (%s) failed: %s",
                feed.feed_id, candidate.display_name or candidate.path, candidate.path, exc,
            )
            attempt = FetchAttemptResult(
                candidate=candidate,
                succeeded=False,
                http_status=http_status,
                error=str(exc),
                elapsed_ms=elapsed_ms,
            )
            return attempt, payload, None
        elapsed_ms = int((perf_counter() - started) * 1000)
        attempt = FetchAttemptResult(
            candidate=candidate, succeeded=True, http_status=status, elapsed_ms=elapsed_ms
        )
        return attempt, payload, records

    async def run(self, feed: FeedDescriptor) -> Snapshot | AcquisitionUnavailable:
        feed_id = feed.feed_id
        now = self._clock()
        attempts: list[FetchAttemptResult] = []
        self.last_state[feed_id] = FetchState.IDLE

        for candidate in resolve_candidates(feed):
            self.last_state[feed_id] = FetchState.FETCHING
            attempt, payload, records = await self._attempt(feed, candidate, now)
            attempts.append(attempt)
            if records is None:
                continue
            snapshot = Snapshot(
                feed_id=feed_id,
                records=records,
                captured_at=now,
                provenance="live",
                source_endpoint=candidate.path,
            )
            await self._store.write(feed_id, snapshot)
            logger.info(
                "%s loaded %d records from %s", feed_id, len(records), candidate.path
            )
            return await self._finish(feed_id, snapshot, FetchState.SUCCEEDED, attempts, payload)

        self.last_state[feed_id] = FetchState.EXHAUSTED
        last_error = attempts[-1].error if attempts else "no endpoint candidates configured"

        cached = await self._store.read(feed_id)
        if cached is None:
            previous = self.latest.get(feed_id)
            if previous is not None and previous.provenance != "synthetic":
                cached = previous
        if cached is not None:
            provenance = "cached" if cached.provenance == "live" else cached.provenance
            snapshot = cached.model_copy(
                update={"provenance": provenance, "last_error_message": last_error}
            )
            logger.warning(
                "%s serving %s snapshot captured at %s: %s",
                feed_id, provenance, cached.captured_at.isoformat(), last_error,
            )
            return await self._finish(feed_id, snapshot, FetchState.CACHE_HIT, attempts)

        self.last_state[feed_id] = FetchState.CACHE_MISS
        count = feed.fallback_count if feed.fallback_count is not None else self._synthetic_count
        try:
            records = self._fallback(feed_id, count, kind=feed.kind, now=now)
        except Exception as exc:
            logger.exception("%s fallback generator failed", feed_id)
            self.last_state[feed_id] = FetchState.UNAVAILABLE
            await self._write_trace(feed_id, None, FetchState.UNAVAILABLE, attempts, error=str(exc))
            return AcquisitionUnavailable(
                feed_id=feed_id, reason=f"{last_error}; fallback failed: {exc}"
            )

        snapshot = Snapshot(
            feed_id=feed_id,
            records=records,
            captured_at=now,
            provenance="synthetic",
            last_error_message=last_error,
        )
        try:
            await self._store.write(feed_id, snapshot)
        except SyntheticOverwriteError as exc:
            logger.warning("%s", exc)
        logger.warning("%s using %d synthetic records: %s", feed_id, len(records), last_error)
        return await self._finish(feed_id, snapshot, FetchState.SYNTHESIZED, attempts)

    async def _finish(
        self,
        feed_id: str,
        snapshot: Snapshot,
        state: FetchState,
        attempts: list[FetchAttemptResult],
        payload: Any = None,
    ) -> Snapshot:
        self.latest[feed_id] = snapshot
        self.last_state[feed_id] = state
        await self._write_trace(feed_id, snapshot, state, attempts, payload=payload)
        return snapshot

    async def _write_trace(
        self,
        feed_id: str,
        snapshot: Snapshot | None,
        state: FetchState,
        attempts: list[FetchAttemptResult],
        payload: Any = None,
        error: str | None = None,
    ) -> None:
        trace: dict[str, Any] = {
            "feed_id": feed_id,
            "state": state.value,
            "attempts": [attempt.model_dump() for attempt in attempts],
            "recorded_at": self._clock().isoformat(),
        }
        if snapshot is not None:
            trace["provenance"] = snapshot.provenance
            trace["source_endpoint"] = snapshot.source_endpoint
            trace["record_count"] = len(snapshot.records)
            trace["last_error_message"] = snapshot.last_error_message
        if payload is not None:
            trace["raw_excerpt"] = _raw_excerpt(payload)
        if error is not None:
            trace["error"] = error
        await self._store.write_debug_trace(feed_id, trace)
