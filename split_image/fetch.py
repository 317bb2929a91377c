"""Download source images over HTTP(S)."""

from __future__ import annotations

import asyncio
import logging

import httpx

from split_image.errors import FetchError
from split_image.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)
_BACKOFF_BASE_S = 0.5
_BACKOFF_CAP_S = 8.0


async def _sleep(delay: float) -> None:
    await asyncio.sleep(delay)


def request_timeout(settings: Settings) -> httpx.Timeout:
    return httpx.Timeout(connect=10.0, read=settings.fetch.timeout_s, write=30.0, pool=10.0)


async def fetch_image_bytes(
    url: str,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> bytes:
    """GET ``url`` and return the body.

    Transport errors and 5xx responses are retried with exponential backoff up
    to ``FETCH_MAX_ATTEMPTS``. Client errors fail immediately. Bodies larger
    than ``FETCH_MAX_BYTES`` are rejected.
    """

    cfg = settings or get_settings()
    owns_client = client is None
    http_client = client or httpx.AsyncClient(timeout=request_timeout(cfg), follow_redirects=True, http2=True)
    attempts = max(1, cfg.fetch.max_attempts)
    try:
        attempt = 1
        while True:
            try:
                return await _fetch_once(http_client, url, max_bytes=cfg.fetch.max_bytes)
            except FetchError as exc:
                if not exc.retryable or attempt >= attempts:
                    raise
                delay = min(_BACKOFF_CAP_S, _BACKOFF_BASE_S * 2 ** (attempt - 1))
                LOGGER.warning(
                    "Fetching %s failed (attempt %s/%s): %s; retrying in %.1fs",
                    redact_url(url),
                    attempt,
                    attempts,
                    exc,
                    delay,
                )
                await _sleep(delay)
                attempt += 1
    finally:
        if owns_client:
            await http_client.aclose()


async def _fetch_once(client: httpx.AsyncClient, url: str, *, max_bytes: int) -> bytes:
    safe_url = redact_url(url)
    try:
        async with client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise FetchError(
                    f"Downloading {safe_url} failed with HTTP {response.status_code}",
                    url=safe_url,
                    status_code=response.status_code,
                    retryable=response.status_code >= 500,
                )
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise _too_large(safe_url, max_bytes)
            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_bytes:
                    raise _too_large(safe_url, max_bytes)
                chunks.append(chunk)
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
        raise FetchError(f"Invalid image URL {safe_url}: {exc}", url=safe_url) from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"Downloading {safe_url} failed: {exc}", url=safe_url, retryable=True) from exc
    LOGGER.debug("Fetched %s bytes from %s", received, safe_url)
    return b"".join(chunks)


def _too_large(url: str, max_bytes: int) -> FetchError:
    return FetchError(f"Image at {url} exceeds the {max_bytes} byte limit", url=url)


def redact_url(url: str) -> str:
    """Drop the query string so SAS signatures never reach logs."""

    return url.split("?", 1)[0]
