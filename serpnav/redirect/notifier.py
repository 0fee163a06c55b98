"""
serpnav/redirect/notifier.py

Notifier - user-facing feedback while a redirect is pending.

All calls are fire-and-forget: the controller never waits on or reads back
from a notifier, and a failing notifier is logged, not propagated.

Implementations:
    LoggingNotifier  - writes the notifications to the log (CLI, headless)
    NullNotifier     - discards everything
    OverlayNotifier  - renders toasts inside the live page (serpnav.browser)
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


def ordinal(n: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def progress_message(url: str, rank: int) -> str:
    return f"Opening {ordinal(rank)} result: {url} (Esc to cancel)"


class Notifier(ABC):
    """Receives redirect progress for display."""

    @abstractmethod
    def show_progress(self, url: str, rank: int, delay_ms: int) -> None:
        """A navigation to ``url`` is scheduled in ``delay_ms``."""

    def countdown_tick(self, remaining_ms: int) -> None:
        """Time left before navigation; optional to implement."""

    @abstractmethod
    def hide_progress(self) -> None:
        """Remove any progress display."""

    @abstractmethod
    def show_cancelled(self) -> None:
        """Tell the user the pending navigation was cancelled."""


class NullNotifier(Notifier):
    def show_progress(self, url: str, rank: int, delay_ms: int) -> None:
        pass

    def hide_progress(self) -> None:
        pass

    def show_cancelled(self) -> None:
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the ``serpnav.notify`` logger."""

    def __init__(self, name: str = "serpnav.notify"):
        self._log = logging.getLogger(name)
        self._last_second = None

    def show_progress(self, url: str, rank: int, delay_ms: int) -> None:
        self._last_second = None
        self._log.info(f"[Notify] {progress_message(url, rank)} in {delay_ms}ms")

    def countdown_tick(self, remaining_ms: int) -> None:
        # Only log whole-second changes, ticks arrive every 100ms
        second = (remaining_ms + 999) // 1000
        if second != self._last_second:
            self._last_second = second
            self._log.info(f"[Notify] Redirecting in {second}s")

    def hide_progress(self) -> None:
        self._log.debug("[Notify] Progress hidden")

    def show_cancelled(self) -> None:
        self._log.info("[Notify] Redirect cancelled")
