from __future__ import annotations

import asyncio
from typing import Any

import httpx

from sportsfeed.config.settings import HttpSettings, settings
from sportsfeed.errors import HttpStatusError, NormalizationError, TransportError


def build_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def build_client(http: HttpSettings | None = None, **kwargs: Any) -> httpx.AsyncClient:
    http = http or settings.http
    headers = {"Accept": "application/json", "User-Agent": http.user_agent}
    headers.update(http.extra_headers)
    limits = httpx.Limits(max_connections=16, max_keepalive_connections=8)
    return httpx.AsyncClient(
        headers=headers,
        timeout=http.timeout_seconds,
        limits=limits,
        follow_redirects=True,
        **kwargs,
    )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, str] | None = None,
    timeout_seconds: float = 10.0,
) -> tuple[Any, int]:
    """GET ``url`` and decode its JSON body, bounded by ``timeout_seconds`` overall.

    Raises TransportError, HttpStatusError or NormalizationError (body is not JSON).
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            response = await client.get(url, params=params or None)
    except TimeoutError as exc:
        raise TransportError(f"{url} timed out after {timeout_seconds:.1f}s") from exc
    except httpx.TimeoutException as exc:
        raise TransportError(f"{url} timed out: {exc}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise TransportError(f"{url} failed with transport error: {exc}") from exc

    if not response.is_success:
        raise HttpStatusError(response.status_code, url)
    try:
        return response.json(), response.status_code
    except ValueError as exc:
        raise NormalizationError(f"{url} returned a non-JSON body") from exc
