from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import MalformedOembedLink, OembedFetchError
from app.models.metadata.schemas import MetadataRecord
from app.models.target import TargetUrl
from app.repositories.cache import FetchCache
from app.services.scraper.document import Document
from app.services.scraper.extractor import extract_metadata
from app.services.scraper.favicon import resolve_favicon
from app.services.scraper.oembed import resolve_oembed
from app.services.scraper.url_guard import ensure_public_host, validate
from app.workers.fetcher import fetch_page

logger = logging.getLogger(__name__)


async def _nothing() -> None:
    return None


class ScrapeService:
    """Fetch a page once and assemble its link-preview metadata."""

    def __init__(self, cache: FetchCache) -> None:
        self._cache = cache

    async def load(self, raw_url: str) -> tuple[TargetUrl, Document]:
        """Validate *raw_url*, fetch its markup through the cache and parse it.

        Raises:
            InvalidUrl, LocalhostBlocked: the URL was rejected.
            FetchError: the page could not be retrieved.
            ParseError: the markup could not be parsed.
        """
        target = validate(raw_url)
        if settings.resolve_hosts:
            await ensure_public_host(target)

        url = str(target)
        markup = await self._cache.resolve(url, lambda: fetch_page(url))
        return target, Document.parse(markup)

    async def scrape(self, raw_url: str, include_oembed: bool = True) -> MetadataRecord:
        """Return the full metadata record for *raw_url*.

        Favicon and oEmbed resolution run concurrently and never fail the
        request; their errors leave the corresponding field absent.  With
        ``include_oembed=False`` the oEmbed endpoint is never contacted.
        """
        target, document = await self.load(raw_url)

        # both resolvers settle before any error is raised
        results = await asyncio.gather(
            resolve_favicon(document, target, self._cache),
            self._oembed(document, target) if include_oembed else _nothing(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        favicon, oembed = results

        record = extract_metadata(document)
        return record.model_copy(update={"favicon": favicon, "oembed": oembed})

    async def favicon(self, raw_url: str) -> Optional[str]:
        """Resolve only the favicon of *raw_url*."""
        target, document = await self.load(raw_url)
        return await resolve_favicon(document, target, self._cache)

    async def _oembed(self, document: Document, target: TargetUrl) -> Optional[dict[str, Any]]:
        try:
            return await resolve_oembed(document, target, self._cache)
        except (MalformedOembedLink, OembedFetchError) as exc:
            logger.warning("oEmbed unavailable for %s: %s", target, exc)
            return None
