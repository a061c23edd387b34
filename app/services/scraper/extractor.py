from __future__ import annotations

from typing import Optional, TypeVar

from pydantic import BaseModel

from app.models.metadata.schemas import MetadataRecord, OpenGraph, TwitterCard
from app.services.scraper.document import Document

G = TypeVar("G", bound=BaseModel)

# output field -> og:<property>
OG_PROPERTIES: dict[str, str] = {
    "title": "title",
    "description": "description",
    "image": "image",
    "image_alt": "image:alt",
    "image_width": "image:width",
    "image_height": "image:height",
    "url": "url",
    "type": "type",
    "site_name": "site_name",
}

# output field -> twitter:<name>
TWITTER_NAMES: dict[str, str] = {
    "title": "title",
    "description": "description",
    "image": "image",
    "site": "site",
    "card": "card",
}


def meta_name(document: Document, name: str) -> Optional[str]:
    return document.attr(f'meta[name="{name}"]', "content")


def meta_property(document: Document, prop: str) -> Optional[str]:
    return document.attr(f'meta[property="{prop}"]', "content")


def group_or_none(model: type[G], values: dict[str, Optional[str]]) -> Optional[G]:
    """Build *model* from *values*, or ``None`` if every value is absent."""
    if all(value is None for value in values.values()):
        return None
    return model(**values)


def extract_open_graph(document: Document) -> Optional[OpenGraph]:
    return group_or_none(
        OpenGraph,
        {field: meta_property(document, f"og:{prop}") for field, prop in OG_PROPERTIES.items()},
    )


def extract_twitter(document: Document) -> Optional[TwitterCard]:
    return group_or_none(
        TwitterCard,
        {field: meta_name(document, f"twitter:{name}") for field, name in TWITTER_NAMES.items()},
    )


def extract_metadata(document: Document) -> MetadataRecord:
    """Read the page-level fields out of *document*.

    ``favicon`` and ``oembed`` need network access and are filled in by the
    service; an element that is missing simply leaves its field ``None``.
    """
    return MetadataRecord(
        title=document.text("title"),
        description=meta_name(document, "description"),
        theme_color=meta_name(document, "theme-color"),
        og=extract_open_graph(document),
        twitter=extract_twitter(document),
    )
