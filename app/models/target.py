from __future__ import annotations

from urllib.parse import urljoin

from pydantic import BaseModel, ConfigDict


class TargetUrl(BaseModel):
    """A validated absolute http(s) URL.

    Only ``app.services.scraper.url_guard.validate`` should build one; the
    host has already been checked against the loopback block list.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    scheme: str
    host: str

    def __str__(self) -> str:
        return self.url

    @property
    def origin(self) -> str:
        return urljoin(self.url, "/").rstrip("/")

    def join(self, href: str) -> str:
        """Resolve *href* (absolute, protocol- or root-relative) against this URL."""
        return urljoin(self.url, href)
