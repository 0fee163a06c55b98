"""
serpnav/browser/host.py

Redirect Host - wire RedirectControllers into a Playwright browser context.

One controller per page. Main-frame navigations drop the in-flight session
and, once the new document has loaded, start a fresh attempt. A main-frame
navigation request marks the next commit as a new document, so reloading the
same URL starts over; fragment and history changes to the same URL do not.

An init script forwards Escape presses to the page's controller through an
exposed binding.

Usage:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)
        context = await browser.new_context()
        host = RedirectHost(context, store)
        await host.start()
        page = await context.new_page()
        await page.goto("https://duckduckgo.com/?q=python")
"""

import asyncio
import itertools
import logging
from typing import Dict, Optional, Set
from urllib.parse import urldefrag

from playwright.async_api import BrowserContext, Frame, Page, Request
from playwright.async_api import Error as PlaywrightError

from serpnav.browser.overlay_notifier import OverlayNotifier
from serpnav.browser.playwright_page import PlaywrightResultPage
from serpnav.core.config import Settings, get_settings
from serpnav.engines.detector import EngineDetector
from serpnav.redirect.controller import RedirectController
from serpnav.redirect.emitter import RedirectEventEmitter, get_event_emitter
from serpnav.redirect.notifier import LoggingNotifier
from serpnav.redirect.settings_store import InMemorySettingsStore
from serpnav.redirect.status_board import StatusBoard

logger = logging.getLogger(__name__)

KEY_BINDING = "__serpnavKey"

KEY_LISTENER_JS = """
(() => {
    if (window.__serpnavKeyListener) return;
    window.__serpnavKeyListener = true;
    window.addEventListener('keydown', (event) => {
        if (event.key === 'Escape' && typeof window.%s === 'function') {
            window.%s(event.key);
        }
    }, true);
})();
""" % (KEY_BINDING, KEY_BINDING)


class RedirectHost:
    """Attach the redirect pipeline to every page of a browser context."""

    def __init__(
        self,
        context: BrowserContext,
        settings_store: InMemorySettingsStore,
        detector: Optional[EngineDetector] = None,
        emitter: Optional[RedirectEventEmitter] = None,
        settings: Optional[Settings] = None,
        overlay: bool = True,
    ):
        self.context = context
        self.settings_store = settings_store
        self.settings = settings or get_settings()
        self.detector = detector or EngineDetector()
        self.emitter = emitter or get_event_emitter()
        self.status_board = StatusBoard(self.emitter, settings_store, timings=self.settings.timings)
        self.overlay = overlay

        self.controllers: Dict[str, RedirectController] = {}
        self._tab_ids: Dict[int, str] = {}  # id(page) -> tab_id
        self._last_urls: Dict[str, str] = {}
        self._new_documents: Set[str] = set()  # tabs with a document request in flight
        self._tasks: Set[asyncio.Task] = set()
        self._counter = itertools.count(1)

    async def start(self) -> None:
        """Install the key binding and attach to current and future pages."""
        await self.context.expose_binding(KEY_BINDING, self._on_key_binding)
        await self.context.add_init_script(KEY_LISTENER_JS)
        self.context.on("page", self.attach)
        for page in self.context.pages:
            self.attach(page)
        logger.info(f"[Host] Attached to context ({len(self.context.pages)} open pages)")

    def attach(self, page: Page) -> str:
        """Create the controller for ``page``; returns its tab id."""
        existing = self._tab_ids.get(id(page))
        if existing:
            return existing

        tab_id = f"tab-{next(self._counter)}"
        if self.overlay:
            notifier = OverlayNotifier(
                page,
                detector=self.detector,
                cancelled_linger_ms=self.settings.timings.cancelled_linger_ms,
            )
        else:
            notifier = LoggingNotifier()

        controller = RedirectController(
            tab_id,
            self.settings_store,
            notifier=notifier,
            emitter=self.emitter,
            detector=self.detector,
            timings=self.settings.timings,
        )
        result_page = PlaywrightResultPage(page, navigation_timeout_ms=self.settings.browser.timeout_ms)

        self.controllers[tab_id] = controller
        self._tab_ids[id(page)] = tab_id
        self.status_board.register_tab(tab_id, controller.cancel)

        page.on("request", lambda request: self._on_request(tab_id, page, request))
        page.on("framenavigated", lambda frame: self._on_frame_navigated(tab_id, page, result_page, frame))
        page.on("close", lambda _: self.detach(tab_id, page))
        logger.debug(f"[Host] {tab_id} attached")

        if page.url and page.url != "about:blank":
            self._spawn(self._attempt_after_load(tab_id, page, result_page))
        return tab_id

    def detach(self, tab_id: str, page: Optional[Page] = None) -> None:
        controller = self.controllers.pop(tab_id, None)
        if controller is not None:
            controller.close()
        if page is not None:
            self._tab_ids.pop(id(page), None)
        self._last_urls.pop(tab_id, None)
        self._new_documents.discard(tab_id)
        self.status_board.on_tab_removed(tab_id)
        self.emitter.close(tab_id)
        logger.debug(f"[Host] {tab_id} detached")

    def request_cancel(self, tab_id: str) -> bool:
        """Page-action click for a tab."""
        return self.status_board.request_cancel(tab_id)

    async def close(self) -> None:
        for tab_id in list(self.controllers):
            self.detach(tab_id)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self.status_board.close()

    def _on_frame_navigated(self, tab_id: str, page: Page, result_page: PlaywrightResultPage, frame: Frame) -> None:
        if frame != page.main_frame:
            return
        controller = self.controllers.get(tab_id)
        if controller is None:
            return

        url, _ = urldefrag(frame.url)
        new_document = tab_id in self._new_documents
        self._new_documents.discard(tab_id)
        if not new_document and self._last_urls.get(tab_id) == url:
            return
        self._last_urls[tab_id] = url

        controller.on_navigation(new_document=new_document)
        self.status_board.on_tab_loading(tab_id)
        self._spawn(self._attempt_after_load(tab_id, page, result_page))

    def _on_request(self, tab_id: str, page: Page, request: Request) -> None:
        if request.is_navigation_request() and request.frame == page.main_frame:
            self._new_documents.add(tab_id)

    async def _attempt_after_load(self, tab_id: str, page: Page, result_page: PlaywrightResultPage) -> None:
        try:
            # Returns at once for same-document navigations
            await page.wait_for_load_state("load", timeout=self.settings.browser.timeout_ms)
        except PlaywrightError as e:
            logger.debug(f"[Host] {tab_id}: load state not reached: {e}")
            return
        controller = self.controllers.get(tab_id)
        if controller is None:
            return
        outcome = await controller.on_page_load(result_page)
        logger.debug(f"[Host] {tab_id}: {page.url} -> {outcome.value}")

    def _on_key_binding(self, source, key: str) -> bool:
        tab_id = self._tab_ids.get(id(source["page"]))
        controller = self.controllers.get(tab_id) if tab_id else None
        if controller is None:
            return False
        return controller.on_key(key)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[Host] Background task failed: {error}", exc_info=error)
