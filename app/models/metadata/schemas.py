from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class OpenGraph(BaseModel):
    """``og:*`` meta tags."""

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    image_alt: Optional[str] = None
    image_width: Optional[str] = None
    image_height: Optional[str] = None
    url: Optional[str] = None
    type: Optional[str] = None
    site_name: Optional[str] = None


class TwitterCard(BaseModel):
    """``twitter:*`` meta tags."""

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    site: Optional[str] = None
    card: Optional[str] = None


class MetadataRecord(BaseModel):
    """Link-preview metadata for one page.

    A nested group (``og``, ``twitter``, ``oembed``) is ``None`` rather than
    an empty object when none of its fields were found.  The route layer
    serialises with ``exclude_none`` so absent fields are omitted entirely.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    favicon: Optional[str] = None
    theme_color: Optional[str] = None
    og: Optional[OpenGraph] = None
    twitter: Optional[TwitterCard] = None
    oembed: Optional[dict[str, Any]] = None
