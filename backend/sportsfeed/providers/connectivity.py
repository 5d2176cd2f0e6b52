from __future__ import annotations

import asyncio
from time import perf_counter
from typing import Optional

import httpx
from pydantic import BaseModel

from sportsfeed.config.settings import settings
from sportsfeed.feeds.catalog import resolve_candidates
from sportsfeed.providers.http import build_url
from sportsfeed.schemas.feed import EndpointCandidate, FeedDescriptor


class CandidateProbe(BaseModel):
    path: str
    display_name: str
    ok: bool
    status_code: Optional[int] = None
    elapsed_ms: int = 0
    error: Optional[str] = None


async def probe_candidate(
    client: httpx.AsyncClient,
    base_url: str,
    candidate: EndpointCandidate,
    params: dict[str, str],
    timeout_seconds: float,
) -> CandidateProbe:
    url = build_url(base_url, candidate.path)
    started = perf_counter()
    try:
        async with asyncio.timeout(candidate.timeout_seconds or timeout_seconds):
            response = await client.get(url, params=params or None)
    except (TimeoutError, httpx.HTTPError, httpx.InvalidURL) as exc:
        return CandidateProbe(
            path=candidate.path,
            display_name=candidate.display_name,
            ok=False,
            elapsed_ms=int((perf_counter() - started) * 1000),
            error=str(exc) or type(exc).__name__,
        )
    return CandidateProbe(
        path=candidate.path,
        display_name=candidate.display_name,
        ok=response.is_success,
        status_code=response.status_code,
        elapsed_ms=int((perf_counter() - started) * 1000),
    )


async def probe_candidates(
    client: httpx.AsyncClient,
    feed: FeedDescriptor,
    base_url: str | None = None,
    timeout_seconds: float | None = None,
) -> list[CandidateProbe]:
    """Hit every candidate of ``feed`` once, concurrently, for developer diagnostics."""
    base_url = base_url or settings.base_url
    timeout_seconds = timeout_seconds or settings.http.timeout_seconds
    return list(
        await asyncio.gather(
            *(
                probe_candidate(client, base_url, candidate, feed.base_parameters, timeout_seconds)
                for candidate in resolve_candidates(feed)
            )
        )
    )
