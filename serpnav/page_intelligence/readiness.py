"""
serpnav/page_intelligence/readiness.py

Content Readiness Waiter - wait for result markup before extracting.

Result pages keep rendering after navigation, so one immediate check races
the page's own pipeline. The waiter polls the profile's selector rules at a
fixed interval with a bounded attempt budget (defaults: 250ms x 20 = 5s).
Each poll sleeps on the event loop, so cancelling the surrounding task stops
the wait at the next suspension point.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from serpnav.core.config import RedirectTimings, get_settings
from serpnav.core.exceptions import SelectorFault
from serpnav.core.models import EngineProfile
from serpnav.page_intelligence.snapshot import ResultPage

logger = logging.getLogger(__name__)


@dataclass
class ReadinessResult:
    """Result of a wait operation."""
    found: bool
    attempts: int = 0
    selector: Optional[str] = None
    elements_found: int = 0
    elapsed_ms: float = 0


class ContentReadinessWaiter:
    """Poll a page until any selector rule of a profile matches."""

    def __init__(
        self,
        poll_interval_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
        timings: Optional[RedirectTimings] = None,
    ):
        timings = timings or get_settings().timings
        self.poll_interval_ms = poll_interval_ms if poll_interval_ms is not None else timings.poll_interval_ms
        self.max_attempts = max_attempts if max_attempts is not None else timings.max_poll_attempts

    async def wait(self, page: ResultPage, profile: EngineProfile) -> ReadinessResult:
        """
        Wait for result markup to appear.

        Args:
            page: Page being inspected
            profile: Provider profile whose selector rules mark results

        Returns:
            ReadinessResult with found=True on the first match, found=False
            once the attempt budget is spent
        """
        start_time = time.monotonic()
        attempts = 0

        while attempts < self.max_attempts:
            attempts += 1
            selector, count = await self._probe(page, profile)
            if selector:
                elapsed = (time.monotonic() - start_time) * 1000
                logger.info(f"[Readiness] {profile.name}: {count} results after {elapsed:.0f}ms (attempt {attempts})")
                return ReadinessResult(
                    found=True,
                    attempts=attempts,
                    selector=selector,
                    elements_found=count,
                    elapsed_ms=elapsed,
                )

            if attempts < self.max_attempts:
                await asyncio.sleep(self.poll_interval_ms / 1000.0)

        elapsed = (time.monotonic() - start_time) * 1000
        logger.warning(f"[Readiness] {profile.name}: timeout waiting for results ({attempts} attempts, {elapsed:.0f}ms)")
        return ReadinessResult(found=False, attempts=attempts, elapsed_ms=elapsed)

    async def _probe(self, page: ResultPage, profile: EngineProfile) -> tuple[Optional[str], int]:
        for selector in profile.selectors:
            try:
                count = await page.count(selector)
            except SelectorFault as e:
                logger.warning(f"[Readiness] {profile.name}: {e.message}")
                continue
            if count > 0:
                return selector, count
        return None, 0
