"""
serpnav/page_intelligence/snapshot.py

Layout snapshots - the DOM a result page had at one instant, plus layout.

The live browser adapter stamps every element with its scroll-independent
top offset and a visibility flag before serializing the document, so the
whole extraction heuristic can run in Python over BeautifulSoup:

    <div class="g" data-serpnav-top="412.5" data-serpnav-visible="1">...</div>

Saved pages without the stamps still work; unmeasured elements simply keep
document order.

ResultPage is the interface the redirect pipeline drives. StaticResultPage
implements it over a fixed HTML string (offline debugging, tests).
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from serpnav.core.exceptions import SelectorFault

logger = logging.getLogger(__name__)

OFFSET_ATTR = "data-serpnav-top"
VISIBLE_ATTR = "data-serpnav-visible"


class LayoutSnapshot:
    """Parsed page HTML with per-element layout stamps."""

    def __init__(self, html: str, url: str):
        self.url = url
        self.soup = BeautifulSoup(html, "html.parser")

    def select(self, selector: str) -> List[Tag]:
        """Return matching elements in document order.

        Raises:
            SelectorFault: the selector cannot be compiled or evaluated
        """
        try:
            return list(self.soup.select(selector))
        except Exception as e:
            raise SelectorFault(selector, str(e)) from e

    def closest(self, selector: str, element: Tag) -> Optional[Tag]:
        """Nearest ancestor of ``element`` (excluding itself) matching ``selector``."""
        parent = element.parent
        if parent is None or not isinstance(parent, Tag) or parent is self.soup:
            return None
        try:
            match = parent.css.closest(selector)
        except Exception as e:
            raise SelectorFault(selector, str(e)) from e
        return match if match is not self.soup else None

    def matches(self, selector: str, element: Tag) -> bool:
        try:
            return element.css.match(selector)
        except Exception as e:
            raise SelectorFault(selector, str(e)) from e

    def href_of(self, element: Tag) -> str:
        """Absolute link target of an element, or '' when it has none."""
        raw = element.get("href")
        if not raw or not str(raw).strip():
            return ""
        return urljoin(self.url, str(raw).strip())

    @staticmethod
    def offset_of(element: Tag) -> Optional[float]:
        raw = element.get(OFFSET_ATTR)
        if raw is None:
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def is_hidden(element: Tag) -> bool:
        return element.get(VISIBLE_ATTR) == "0"

    def input_values(self, selectors: Sequence[str]) -> List[str]:
        """Non-empty ``value``s of inputs matched by ``selectors``, in selector order."""
        values = []
        for selector in selectors:
            for element in self.select(selector):
                value = element.get("value")
                if value:
                    values.append(str(value))
        return values


class ResultPage(ABC):
    """
    The page a redirect session runs against.

    Implementations: PlaywrightResultPage (live browser tab) and
    StaticResultPage (fixed HTML).
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Current page URL."""

    @abstractmethod
    async def count(self, selector: str) -> int:
        """Number of elements currently matching ``selector``.

        Raises:
            SelectorFault: the selector is malformed
        """

    @abstractmethod
    async def snapshot(self) -> LayoutSnapshot:
        """Capture the current DOM with layout stamps."""

    @abstractmethod
    async def input_values(self, selectors: Sequence[str]) -> List[str]:
        """Current non-empty values of inputs matched by ``selectors``, in order."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Send the page to ``url``."""


class StaticResultPage(ResultPage):
    """ResultPage over a fixed HTML document; navigation is only recorded."""

    def __init__(self, html: str, url: str):
        self._url = url
        self._html = html
        self._snapshot: Optional[LayoutSnapshot] = None
        self.navigations: List[str] = []

    @property
    def url(self) -> str:
        return self._url

    def set_html(self, html: str) -> None:
        """Replace the document (simulates late rendering)."""
        self._html = html
        self._snapshot = None

    def _current(self) -> LayoutSnapshot:
        if self._snapshot is None:
            self._snapshot = LayoutSnapshot(self._html, self._url)
        return self._snapshot

    async def count(self, selector: str) -> int:
        return len(self._current().select(selector))

    async def snapshot(self) -> LayoutSnapshot:
        return self._current()

    async def input_values(self, selectors: Sequence[str]) -> List[str]:
        return self._current().input_values(selectors)

    async def navigate(self, url: str) -> None:
        logger.info(f"[StaticPage] navigate -> {url}")
        self.navigations.append(url)
