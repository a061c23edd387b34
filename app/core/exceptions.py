"""Error taxonomy for the scraper.

Request-level errors (``InvalidUrl``, ``LocalhostBlocked``, ``FetchError``,
``ParseError``) abort a scrape and are mapped to an HTTP status by the route
layer through ``status_code``.  The remaining errors are raised by the
sub-resolvers and caught inside the service, where they degrade to an absent
field.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for every error raised while scraping a page."""

    status_code: int = 400


class InvalidUrl(ScrapeError):
    """The raw URL could not be parsed as an absolute http(s) URL."""

    status_code = 422


class LocalhostBlocked(ScrapeError):
    """The target host is a loopback address."""

    status_code = 403


class PrivateAddressBlocked(LocalhostBlocked):
    """The target host is (or resolves to) a private or reserved address."""


class FetchError(ScrapeError):
    """Raised when the fetcher cannot retrieve a remote resource."""


class ParseError(ScrapeError):
    """The fetched markup could not be turned into a document."""


class SelectorError(ScrapeError):
    """A CSS selector was malformed."""


class MalformedOembedLink(ScrapeError):
    """An oEmbed discovery link was found but carries no ``href``."""


class OembedFetchError(ScrapeError):
    """The oEmbed document could not be fetched or was not a JSON object."""


class FaviconNotFound(ScrapeError):
    """Neither the page nor ``/favicon.ico`` provided an icon."""

    status_code = 404
