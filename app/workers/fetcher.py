"""Async HTTP fetcher.

Responsible solely for outbound HTTP: the primary page fetch, the favicon
HEAD probe and the oEmbed JSON fetch.

Uses httpx.AsyncClient which is meant to be long-lived and reused.
A single shared client is managed by the module; see ``get_http_client``
and ``close_http_client`` for lifecycle hooks.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    wait_exponential,
)

from app.core.config import settings
from app.core.exceptions import FetchError, ScrapeError
from app.services.scraper.url_guard import validate

logger = logging.getLogger(__name__)

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


async def _guard_redirect(response: httpx.Response) -> None:
    """Response hook: refuse to follow a redirect the URL guard would reject."""
    if not response.has_redirect_location:
        return
    location = response.url.join(response.headers["Location"])
    try:
        validate(str(location))
    except ScrapeError as exc:
        logger.warning("Refusing redirect from %s to %s: %s", response.url, location, exc)
        raise FetchError(f"Redirect to blocked host {location.host}: {exc}") from exc


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing.

    Redirects are followed, but every hop is checked by ``_guard_redirect``.
    """
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            verify=settings.http_verify_ssl,
            headers={"User-Agent": settings.user_agent},
            event_hooks={"response": [_guard_redirect]},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    stop=lambda rs: rs.attempt_number >= settings.http_max_retries + 1,
    wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=False,
)
async def _fetch_with_retry(url: str) -> str:
    """Single fetch attempt; tenacity retries on transient errors."""
    return await _do_fetch(url)


async def fetch_page(url: str) -> str:
    """Fetch the markup of *url* and return it as text.

    Transient errors (timeouts, connection failures) are retried
    ``settings.http_max_retries`` times with exponential backoff.  Raises
    :class:`FetchError` on permanent failures, on an HTTP error status, or
    when all attempts are exhausted.

    The ``stop`` condition uses a lambda so ``settings.http_max_retries``
    is read per-attempt, not at import time; patches in tests work as
    expected.
    """
    try:
        return await _fetch_with_retry(url)
    except RetryError as exc:
        raise FetchError(
            f"Failed to fetch {url} after {settings.http_max_retries + 1} attempts: "
            f"{exc.last_attempt.exception()}"
        ) from exc


async def _do_fetch(url: str) -> str:
    """Perform a single HTTP GET and return the decoded body."""
    client = get_http_client()

    try:
        response = await client.get(url)
    except httpx.InvalidURL as exc:
        raise FetchError(f"Invalid URL '{url}': {exc}") from exc
    except httpx.TimeoutException:
        raise  # propagate for retry logic
    except httpx.ConnectError:
        raise  # propagate for retry logic
    except httpx.RequestError as exc:
        raise FetchError(f"Request error for '{url}': {exc}") from exc

    if response.is_error:
        raise FetchError(f"Unexpected status {response.status_code} for '{url}'")

    return response.text


async def probe(url: str) -> bool:
    """Issue a HEAD request to *url*; ``True`` when it answers with 2xx."""
    client = get_http_client()
    try:
        response = await client.head(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(f"HEAD {url} failed: {exc}") from exc
    return response.is_success


async def fetch_json(url: str) -> Any:
    """GET *url* and decode the body as JSON.

    Raises:
        FetchError: on transport failure, error status or an undecodable body.
    """
    client = get_http_client()
    try:
        response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(f"GET {url} failed: {exc}") from exc

    if response.is_error:
        raise FetchError(f"Unexpected status {response.status_code} for '{url}'")

    try:
        return response.json()
    except ValueError as exc:
        raise FetchError(f"Response from '{url}' is not valid JSON: {exc}") from exc
