"""Read-only CSS-selector access to a parsed HTML page."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from app.core.exceptions import ParseError, SelectorError

logger = logging.getLogger(__name__)

Selectors = Union[str, Sequence[str]]


class Document:
    """Wraps a parsed markup tree; never mutates it.

    Lookups follow first-match semantics in document order.  ``query``
    accepts either one selector or an ordered fallback chain and treats a
    malformed selector as "no match"; ``select`` is the strict single
    selector lookup that raises :class:`SelectorError`.
    """

    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    @classmethod
    def parse(cls, markup: str) -> Document:
        try:
            soup = BeautifulSoup(markup, "html.parser")
        except Exception as exc:
            raise ParseError(f"Failed to parse: {exc}") from exc
        return cls(soup)

    def select(self, selector: str) -> Optional[Tag]:
        try:
            element = self._soup.select_one(selector)
        except SelectorSyntaxError as exc:
            raise SelectorError(f"Malformed selector '{selector}': {exc}") from exc
        if element is None:
            logger.debug("No elements found for selector '%s'", selector)
        return element

    def query(self, selectors: Selectors) -> Optional[Tag]:
        """Return the first match of the first selector in *selectors* that matches."""
        if isinstance(selectors, str):
            selectors = (selectors,)

        for selector in selectors:
            try:
                element = self.select(selector)
            except SelectorError as exc:
                logger.warning("%s", exc)
                continue
            if element is not None:
                return element
        return None

    def text(self, selectors: Selectors) -> Optional[str]:
        """Stripped text content of the first match, ``None`` when absent or blank."""
        element = self.query(selectors)
        if element is None:
            return None
        return element.get_text(strip=True) or None

    def attr(self, selectors: Selectors, name: str) -> Optional[str]:
        """Stripped value of attribute *name* on the first match, ``None`` when absent or blank."""
        element = self.query(selectors)
        if element is None:
            return None
        value = element.get(name)
        if isinstance(value, list):  # multi-valued attributes such as ``rel``
            value = " ".join(value)
        if value is None:
            return None
        return value.strip() or None

    def base_href(self) -> Optional[str]:
        """``href`` of the page's ``<base>`` element, if it declares one."""
        return self.attr("base[href]", "href")
