"""Favicon resolution.

Two steps, the first success wins:

1. An icon declared in the page: ``link[rel=icon]``, then
   ``link[rel="shortcut icon"]``, then ``link[rel=apple-touch-icon]``.  The
   ``href`` is resolved against the page's base URL.
2. A ``HEAD`` probe of ``<origin>/favicon.ico``.

When both fail the favicon is simply absent.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from app.core.exceptions import FaviconNotFound, FetchError
from app.models.target import TargetUrl
from app.repositories.cache import FetchCache
from app.services.scraper.document import Document
from app.workers.fetcher import probe

logger = logging.getLogger(__name__)

FAVICON_SELECTORS = (
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
    'link[rel="apple-touch-icon"]',
)


def page_base(document: Document, target: TargetUrl) -> str:
    """Base URL for relative links: ``<base href>`` if declared, else the page URL.

    A ``<base href>`` that cannot be parsed is ignored.
    """
    base_href = document.base_href()
    if base_href:
        try:
            return urljoin(target.url, base_href)
        except ValueError as exc:
            logger.warning("Ignoring malformed <base href> on %s: %s", target, exc)
    return target.url


def declared_favicon(document: Document, target: TargetUrl) -> Optional[str]:
    href = document.attr(FAVICON_SELECTORS, "href")
    if href is None:
        return None
    try:
        return urljoin(page_base(document, target), href)
    except ValueError as exc:
        logger.warning("Ignoring malformed icon href %r on %s: %s", href, target, exc)
        return None


async def probe_favicon(target: TargetUrl) -> str:
    """Return ``<origin>/favicon.ico`` if it answers a HEAD with 2xx.

    Raises:
        FaviconNotFound: the probe answered with a non-success status.
        FetchError: the probe could not be sent.
    """
    favicon_url = target.join("/favicon.ico")
    if await probe(favicon_url):
        logger.info("Fetched %s", favicon_url)
        return favicon_url
    raise FaviconNotFound(f"No favicon found for {target}")


async def resolve_favicon(
    document: Document, target: TargetUrl, cache: FetchCache
) -> Optional[str]:
    """Resolve the favicon URL for *target*, ``None`` when there is none."""

    async def produce() -> str:
        declared = declared_favicon(document, target)
        if declared is not None:
            logger.info("Favicon found in HTML: %s", declared)
            return declared
        return await probe_favicon(target)

    try:
        return await cache.resolve(f"{target}-favicon", produce)
    except FaviconNotFound as exc:
        logger.info("%s", exc)
    except FetchError as exc:
        logger.warning("Favicon probe failed for %s: %s", target, exc)
    return None
