"""
serpnav/browser/playwright_page.py

ResultPage adapter over a live Playwright page.

Before serializing the DOM for extraction, a small script stamps every
element with its scroll-independent top offset and a visibility flag (see
serpnav.page_intelligence.snapshot), so offsets reflect the layout the user
actually sees at that instant.
"""

import logging
from typing import List, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from serpnav.core.exceptions import SelectorFault, SnapshotError
from serpnav.page_intelligence.snapshot import (
    OFFSET_ATTR,
    VISIBLE_ATTR,
    LayoutSnapshot,
    ResultPage,
)

logger = logging.getLogger(__name__)

STAMP_LAYOUT_JS = """([offsetAttr, visibleAttr]) => {
    const scrollY = window.scrollY || document.documentElement.scrollTop || 0;
    let stamped = 0;
    for (const el of document.body ? document.body.querySelectorAll('*') : []) {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const hidden = (rect.width === 0 && rect.height === 0)
            || style.display === 'none'
            || style.visibility === 'hidden';
        el.setAttribute(offsetAttr, String(rect.top + scrollY));
        el.setAttribute(visibleAttr, hidden ? '0' : '1');
        stamped++;
    }
    return stamped;
}"""

CLEAR_LAYOUT_JS = """([offsetAttr, visibleAttr]) => {
    for (const el of document.querySelectorAll(`[${offsetAttr}]`)) {
        el.removeAttribute(offsetAttr);
        el.removeAttribute(visibleAttr);
    }
}"""


class PlaywrightResultPage(ResultPage):
    """ResultPage backed by ``playwright.async_api.Page``."""

    def __init__(self, page: Page, navigation_timeout_ms: int = 30000):
        self.page = page
        self.navigation_timeout_ms = navigation_timeout_ms

    @property
    def url(self) -> str:
        return self.page.url

    async def count(self, selector: str) -> int:
        try:
            return await self.page.locator(selector).count()
        except PlaywrightError as e:
            raise SelectorFault(selector, str(e)) from e

    async def snapshot(self) -> LayoutSnapshot:
        """Stamp layout, serialize, then remove the stamps again."""
        args = [OFFSET_ATTR, VISIBLE_ATTR]
        try:
            stamped = await self.page.evaluate(STAMP_LAYOUT_JS, args)
            html = await self.page.content()
        except PlaywrightError as e:
            raise SnapshotError(f"Could not capture {self.page.url}: {e}") from e
        finally:
            try:
                await self.page.evaluate(CLEAR_LAYOUT_JS, args)
            except PlaywrightError as e:
                logger.debug(f"[PlaywrightPage] Could not clear layout stamps: {e}")

        logger.debug(f"[PlaywrightPage] Snapshot of {self.page.url}: {stamped} elements, {len(html)} chars")
        return LayoutSnapshot(html, self.page.url)

    async def input_values(self, selectors: Sequence[str]) -> List[str]:
        values = []
        for selector in selectors:
            try:
                elements = await self.page.locator(selector).all()
                for element in elements:
                    value = await element.input_value()
                    if value:
                        values.append(value)
            except PlaywrightError as e:
                logger.debug(f"[PlaywrightPage] input {selector!r} unreadable: {e}")
        return values

    async def navigate(self, url: str) -> None:
        # "commit" returns as soon as the navigation is underway
        await self.page.goto(url, wait_until="commit", timeout=self.navigation_timeout_ms)
