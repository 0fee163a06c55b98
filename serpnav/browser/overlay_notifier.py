"""
serpnav/browser/overlay_notifier.py

Overlay Notifier - render the redirect toasts inside the live page.

The controller calls notifiers synchronously, so each call schedules the
page work as a task; failures are logged and never reach the controller.
The toast style (dark/light) comes from ThemeScorer over signals sampled
from the page once per document.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from serpnav.engines.detector import EngineDetector
from serpnav.page_intelligence.theme_scorer import ThemeDecision, ThemeSignals, score_theme
from serpnav.redirect.notifier import Notifier, progress_message

logger = logging.getLogger(__name__)

TOAST_ID = "serpnav-toast"

COLLECT_SIGNALS_JS = """() => {
    const roots = [document.documentElement, document.body].filter(Boolean);
    const classNames = [];
    const dataAttributes = {};
    for (const el of roots) {
        classNames.push(...el.classList);
        for (const attr of ['data-theme', 'data-color-mode', 'data-bs-theme', 'data-color-scheme', 'data-dark']) {
            const value = el.getAttribute(attr);
            if (value) dataAttributes[attr] = value;
        }
    }
    const meta = document.querySelector('meta[name="color-scheme"]');
    const sample = (selector, prop) => Array.from(document.querySelectorAll(selector))
        .slice(0, 3)
        .map(el => window.getComputedStyle(el)[prop]);
    return {
        class_names: classNames,
        data_attributes: dataAttributes,
        color_scheme_meta: meta ? meta.getAttribute('content') : null,
        prefers_dark: window.matchMedia ? window.matchMedia('(prefers-color-scheme: dark)').matches : null,
        background_colors: [
            ...sample('html', 'backgroundColor'),
            ...sample('body', 'backgroundColor'),
            ...sample('main, #main, #search, #b_content, header', 'backgroundColor'),
        ],
        text_colors: [...sample('body', 'color'), ...sample('h3, a', 'color')],
    };
}"""

RENDER_TOAST_JS = """({id, text, theme, linger}) => {
    let toast = document.getElementById(id);
    if (!toast) {
        toast = document.createElement('div');
        toast.id = id;
        toast.setAttribute('role', 'status');
        document.documentElement.appendChild(toast);
    }
    const dark = theme === 'dark';
    Object.assign(toast.style, {
        position: 'fixed', top: '16px', right: '16px', zIndex: '2147483647',
        padding: '10px 14px', borderRadius: '8px', font: '14px system-ui, sans-serif',
        background: dark ? '#202124' : '#ffffff', color: dark ? '#e8eaed' : '#202124',
        boxShadow: '0 2px 10px rgba(0,0,0,0.3)', maxWidth: '420px',
    });
    toast.dataset.base = text;
    toast.textContent = text;
    if (linger > 0) {
        setTimeout(() => { if (toast.textContent === text) toast.remove(); }, linger);
    }
}"""

COUNTDOWN_JS = """({id, seconds}) => {
    const toast = document.getElementById(id);
    if (toast && toast.dataset.base) toast.textContent = `${toast.dataset.base} - ${seconds}s`;
}"""

REMOVE_TOAST_JS = """(id) => { const t = document.getElementById(id); if (t) t.remove(); }"""


class OverlayNotifier(Notifier):
    """Notifier drawing a toast in the page via ``page.evaluate``."""

    def __init__(
        self,
        page: Page,
        detector: Optional[EngineDetector] = None,
        cancelled_linger_ms: int = 2000,
    ):
        self.page = page
        self.detector = detector
        self.cancelled_linger_ms = cancelled_linger_ms
        self._theme: Optional[ThemeDecision] = None
        self._theme_url: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()

    def show_progress(self, url: str, rank: int, delay_ms: int) -> None:
        self._spawn(self._render(progress_message(url, rank), linger=0))

    def countdown_tick(self, remaining_ms: int) -> None:
        seconds = (remaining_ms + 999) // 1000
        self._spawn(self.page.evaluate(COUNTDOWN_JS, {"id": TOAST_ID, "seconds": seconds}))

    def hide_progress(self) -> None:
        self._spawn(self.page.evaluate(REMOVE_TOAST_JS, TOAST_ID))

    def show_cancelled(self) -> None:
        self._spawn(self._render("Redirect cancelled", linger=self.cancelled_linger_ms))

    async def flush(self) -> None:
        """Wait for every scheduled page update (tests, shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def detect_theme(self) -> ThemeDecision:
        """Score the current document's theme, cached per URL."""
        if self._theme is not None and self._theme_url == self.page.url:
            return self._theme

        raw: Dict[str, Any] = await self.page.evaluate(COLLECT_SIGNALS_JS)
        engine_key = None
        if self.detector is not None:
            profile = self.detector.detect_url(self.page.url)
            engine_key = profile.key if profile else None

        signals = ThemeSignals(
            class_names=list(raw.get("class_names") or []),
            data_attributes=dict(raw.get("data_attributes") or {}),
            color_scheme_meta=raw.get("color_scheme_meta"),
            prefers_dark=raw.get("prefers_dark"),
            background_colors=list(raw.get("background_colors") or []),
            text_colors=list(raw.get("text_colors") or []),
            engine_key=engine_key,
        )
        self._theme = score_theme(signals)
        self._theme_url = self.page.url
        logger.debug(
            f"[Overlay] Theme {self._theme.theme} "
            f"(dark={self._theme.dark_score}, light={self._theme.light_score})"
        )
        return self._theme

    async def _render(self, text: str, linger: int) -> None:
        decision = await self.detect_theme()
        await self.page.evaluate(RENDER_TOAST_JS, {
            "id": TOAST_ID,
            "text": text,
            "theme": decision.theme,
            "linger": linger,
        })

    def _spawn(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("[Overlay] No running loop, notification dropped")
            return
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, PlaywrightError):
            # Page navigated or closed under the toast
            logger.debug(f"[Overlay] Page update skipped: {error}")
        elif error is not None:
            logger.warning(f"[Overlay] Page update failed: {error}")
