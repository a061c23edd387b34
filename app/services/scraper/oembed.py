from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urljoin

from app.core.exceptions import (
    FetchError,
    InvalidUrl,
    LocalhostBlocked,
    MalformedOembedLink,
    OembedFetchError,
)
from app.models.target import TargetUrl
from app.repositories.cache import FetchCache
from app.services.scraper.document import Document
from app.services.scraper.favicon import page_base
from app.services.scraper.url_guard import validate
from app.workers.fetcher import fetch_json

logger = logging.getLogger(__name__)

OEMBED_SELECTOR = 'link[rel="alternate"][type="application/json+oembed"]'


def discover_oembed_url(document: Document, target: TargetUrl) -> Optional[str]:
    """Absolute URL of the page's oEmbed endpoint, ``None`` if it has none.

    Raises:
        MalformedOembedLink: the discovery link has no usable ``href``, or it
            points at a host the URL guard rejects.
    """
    link = document.query(OEMBED_SELECTOR)
    if link is None:
        return None

    href = (link.get("href") or "").strip()
    if not href:
        raise MalformedOembedLink("oEmbed link tag lacks href attribute")

    try:
        oembed_url = urljoin(page_base(document, target), href)
    except ValueError as exc:
        raise MalformedOembedLink(f"oEmbed href {href!r} is not a valid URL: {exc}") from exc

    try:
        validate(oembed_url)
    except (InvalidUrl, LocalhostBlocked) as exc:
        raise MalformedOembedLink(f"oEmbed href {href!r} rejected: {exc}") from exc
    return oembed_url


async def fetch_oembed(url: str) -> dict[str, Any]:
    try:
        payload = await fetch_json(url)
    except FetchError as exc:
        raise OembedFetchError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise OembedFetchError(
            f"oEmbed response from '{url}' is a {type(payload).__name__}, not an object"
        )
    return payload


async def resolve_oembed(
    document: Document, target: TargetUrl, cache: FetchCache
) -> Optional[dict[str, Any]]:
    """Return the page's oEmbed object, or ``None`` when it does not expose one.

    No request is made unless the page declares a discovery link.

    Raises:
        MalformedOembedLink, OembedFetchError
    """
    oembed_url = discover_oembed_url(document, target)
    if oembed_url is None:
        logger.info("Website doesn't seem to have oEmbed, skipping...")
        return None

    logger.info("Detected oEmbed at %s", oembed_url)
    payload = await cache.resolve(f"{target}-oembed", lambda: fetch_oembed(oembed_url))
    return payload or None
