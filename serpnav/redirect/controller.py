"""
serpnav/redirect/controller.py

Redirect Controller - drive one page from "search results loaded" to either
a navigation to the Nth result or a clean stop.

Pipeline per qualifying page load:
    EngineDetector -> QueryPresenceCheck -> ContentReadinessWaiter
    -> ResultExtractor -> countdown -> navigate | cancel

One controller per page/tab. It owns the current RedirectSession and the
processed-identifier record; collaborators only send it signals (page load,
cancel, key press, navigation, settings changes) or observe its events.

Usage:
    controller = RedirectController("tab-1", store, notifier=LoggingNotifier())
    outcome = await controller.on_page_load(page)
    await controller.wait_settled()
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from serpnav.core.config import RedirectTimings, get_settings
from serpnav.core.exceptions import SerpNavError
from serpnav.core.models import EngineProfile, SearchContext
from serpnav.engines.detector import EngineDetector
from serpnav.engines.query_check import QueryPresenceCheck
from serpnav.page_intelligence.readiness import ContentReadinessWaiter
from serpnav.page_intelligence.result_extractor import ResultExtractor
from serpnav.page_intelligence.snapshot import ResultPage
from serpnav.redirect.emitter import RedirectEventEmitter, get_event_emitter
from serpnav.redirect.events import (
    RedirectCancelledEvent,
    RedirectCompleteEvent,
    RedirectFailedEvent,
    RedirectingEvent,
)
from serpnav.redirect.notifier import NullNotifier, Notifier
from serpnav.redirect.session import (
    AttemptOutcome,
    FailureReason,
    RedirectSession,
    SessionStatus,
)
from serpnav.redirect.settings_store import SettingsStore

logger = logging.getLogger(__name__)

CANCEL_KEYS = ("Escape", "Esc")


class RedirectController:
    """Per-page redirect state machine."""

    def __init__(
        self,
        tab_id: str,
        settings_store: SettingsStore,
        notifier: Optional[Notifier] = None,
        emitter: Optional[RedirectEventEmitter] = None,
        detector: Optional[EngineDetector] = None,
        query_check: Optional[QueryPresenceCheck] = None,
        waiter: Optional[ContentReadinessWaiter] = None,
        extractor: Optional[ResultExtractor] = None,
        timings: Optional[RedirectTimings] = None,
    ):
        self.tab_id = tab_id
        self.timings = timings or get_settings().timings
        self.notifier = notifier or NullNotifier()
        self.emitter = emitter or get_event_emitter()
        self.detector = detector or EngineDetector()
        self.query_check = query_check or QueryPresenceCheck()
        self.waiter = waiter or ContentReadinessWaiter(timings=self.timings)
        self.extractor = extractor or ResultExtractor()

        self.settings_store = settings_store
        self.settings = settings_store.get()
        self._unsubscribe = settings_store.subscribe(self._on_settings_changed)

        self.session: Optional[RedirectSession] = None
        self.processed_identifier: Optional[str] = None

        self._page: Optional[ResultPage] = None
        self._attempt_task: Optional[asyncio.Task] = None
        self._reattempt_task: Optional[asyncio.Task] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._navigate_task: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._deadline: float = 0.0
        self._progress_shown = False
        self._settled: Optional[asyncio.Event] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Inbound signals
    # ------------------------------------------------------------------

    @property
    def has_live_session(self) -> bool:
        return self.session is not None and not self.session.is_terminal

    @property
    def is_pending(self) -> bool:
        """A navigation is scheduled and can still be cancelled."""
        return self.session is not None and self.session.is_pending and self._timer is not None

    async def on_page_load(self, page: ResultPage) -> AttemptOutcome:
        """
        Evaluate a freshly loaded page and start a session if it qualifies.

        Returns immediately after the session starts; the wait, extraction
        and countdown run as tasks on the event loop.

        Args:
            page: The loaded page

        Returns:
            AttemptOutcome.STARTED, or the reason nothing started
        """
        self._page = page

        if self._closed or not self.settings.enabled:
            logger.debug(f"[Redirect] {self.tab_id}: redirect disabled")
            return AttemptOutcome.REDIRECT_DISABLED

        profile = self.detector.detect_url(page.url)
        if profile is None:
            logger.debug(f"[Redirect] {self.tab_id}: no engine for {page.url}")
            return AttemptOutcome.NO_ENGINE_MATCH

        if not self.settings.engine_enabled(profile.key):
            logger.debug(f"[Redirect] {self.tab_id}: {profile.name} disabled in settings")
            return AttemptOutcome.ENGINE_DISABLED

        context = await self.query_check.check(page, profile)
        if context is None:
            return AttemptOutcome.QUERY_ABSENT

        # Re-checked after the await: another trigger may have started meanwhile
        if self.has_live_session or context.identifier == self.processed_identifier:
            logger.debug(f"[Redirect] {self.tab_id}: already processed {context.identifier}")
            return AttemptOutcome.ALREADY_PROCESSED

        self._start_session(page, context)
        return AttemptOutcome.STARTED

    def cancel(self) -> bool:
        """
        Cancel a scheduled navigation.

        Returns:
            True if a pending navigation was cancelled; False when nothing
            was pending (not yet found, already fired, or no session)
        """
        session = self.session
        timer = self._timer
        # Check and clear in one synchronous step: the timer callback cannot
        # interleave with this block on the event loop
        if session is None or timer is None or not session.is_pending:
            return False
        self._timer = None
        timer.cancel()

        self._stop_countdown()
        session.transition(SessionStatus.CANCELLED)
        logger.info(f"[Redirect] {self.tab_id}: cancelled redirect to {session.target_url}")

        if self._progress_shown:
            self._notify("hide_progress")
            self._progress_shown = False
        self._notify("show_cancelled")
        self.emitter.emit(RedirectCancelledEvent(tab_id=self.tab_id))
        self._clear_identifier(session)
        self._settle()
        return True

    def on_key(self, key: str) -> bool:
        """Escape cancels, and only while a navigation is pending."""
        if key not in CANCEL_KEYS or not self.is_pending:
            return False
        return self.cancel()

    def on_navigation(self, new_document: bool = False) -> None:
        """
        The page is going away: drop any in-flight session without reporting it.

        Args:
            new_document: A fresh document replaces the page (load or reload),
                so the processed-identifier record starts over as well
        """
        if self.session is not None and not self.session.is_terminal:
            logger.debug(f"[Redirect] {self.tab_id}: page navigated, dropping {self.session.status.value} session")
            self.session = None
        self._abort_tasks()
        if new_document:
            self.processed_identifier = None
        self._progress_shown = False
        self._settle()

    def close(self) -> None:
        """Detach from the settings stream and stop everything."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self.on_navigation()
        if self._reattempt_task is not None:
            self._reattempt_task.cancel()
            self._reattempt_task = None

    async def wait_resolved(self) -> None:
        """Wait until the current attempt has found a result or failed."""
        # A re-attempt may be what creates the attempt task
        if self._reattempt_task is not None and not self._reattempt_task.done():
            await asyncio.wait({self._reattempt_task})
        task = self._attempt_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def wait_settled(self) -> None:
        """Wait until the current session is terminal (navigation finished included)."""
        await self.wait_resolved()
        if self._settled is not None:
            await self._settled.wait()
        if self._navigate_task is not None and not self._navigate_task.done():
            await asyncio.wait({self._navigate_task})

    # ------------------------------------------------------------------
    # Session pipeline
    # ------------------------------------------------------------------

    def _start_session(self, page: ResultPage, context: SearchContext) -> None:
        self.processed_identifier = context.identifier
        session = RedirectSession(
            target_index=self.settings.result_index,
            identifier=context.identifier,
        )
        session.transition(SessionStatus.WAITING)
        self.session = session
        self._settled = asyncio.Event()
        logger.info(
            f"[Redirect] {self.tab_id}: {context.profile.name} search "
            f"{context.sanitized_query!r}, waiting for results"
        )
        self._attempt_task = asyncio.get_running_loop().create_task(
            self._run_attempt(session, page, context.profile)
        )

    async def _run_attempt(self, session: RedirectSession, page: ResultPage, profile: EngineProfile) -> None:
        readiness = await self.waiter.wait(page, profile)
        if session is not self.session:
            return
        if not readiness.found:
            self._fail(session, FailureReason.CONTENT_TIMEOUT)
            return

        # Rank is fixed once results are ready; later changes apply to the next session
        session.target_index = self.settings.result_index
        try:
            snapshot = await page.snapshot()
            url = self.extractor.extract(snapshot, profile, session.target_index)
        except SerpNavError as e:
            logger.warning(f"[Redirect] {self.tab_id}: extraction error: {e.message}")
            url = None
        if session is not self.session:
            return
        if url is None:
            self._fail(session, FailureReason.EXTRACTION_MISS)
            return

        session.target_url = url
        session.transition(SessionStatus.FOUND)
        delay_ms = self.timings.redirect_delay_ms
        self.emitter.emit(RedirectingEvent(
            tab_id=self.tab_id,
            index=session.target_index,
            url=url,
            delay_ms=delay_ms,
        ))
        if self.settings.show_notification:
            self._notify("show_progress", url, session.target_index, delay_ms)
            self._progress_shown = True

        self._schedule_navigation(session, page, delay_ms)
        session.transition(SessionStatus.COUNTING_DOWN)

    def _schedule_navigation(self, session: RedirectSession, page: ResultPage, delay_ms: int) -> None:
        if self._timer is not None:
            # Never two live timers
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + delay_ms / 1000.0
        self._timer = loop.call_later(delay_ms / 1000.0, self._fire, session, page)
        if self._progress_shown:
            self._countdown_task = loop.create_task(self._countdown(session))
        logger.info(f"[Redirect] {self.tab_id}: redirecting to {session.target_url} in {delay_ms}ms")

    def _fire(self, session: RedirectSession, page: ResultPage) -> None:
        self._timer = None
        if session is not self.session or session.status is not SessionStatus.COUNTING_DOWN:
            return
        self._stop_countdown()
        session.transition(SessionStatus.REDIRECTING)
        self._navigate_task = asyncio.get_running_loop().create_task(self._navigate(session, page))

    async def _navigate(self, session: RedirectSession, page: ResultPage) -> None:
        url = session.target_url
        if self._progress_shown:
            self._notify("hide_progress")
            self._progress_shown = False
        try:
            await page.navigate(url)
        except Exception as e:
            logger.error(f"[Redirect] {self.tab_id}: navigation to {url} failed: {e}")
            self.emitter.emit(RedirectFailedEvent(
                tab_id=self.tab_id,
                reason="navigation_error",
                detail=str(e),
            ))
        else:
            logger.info(f"[Redirect] {self.tab_id}: navigated to {url}")
            self.emitter.emit(RedirectCompleteEvent(tab_id=self.tab_id, url=url))
        finally:
            self._clear_identifier(session)
            self._settle()

    async def _countdown(self, session: RedirectSession) -> None:
        loop = asyncio.get_running_loop()
        tick = self.timings.countdown_tick_ms / 1000.0
        while session.is_pending:
            remaining_ms = max(0, int(round((self._deadline - loop.time()) * 1000)))
            self._notify("countdown_tick", remaining_ms)
            if remaining_ms <= 0:
                break
            await asyncio.sleep(min(tick, remaining_ms / 1000.0))

    def _fail(self, session: RedirectSession, reason: FailureReason) -> None:
        session.fail(reason)
        logger.info(f"[Redirect] {self.tab_id}: session failed ({reason.value})")
        self._clear_identifier(session)
        self.emitter.emit(RedirectFailedEvent(tab_id=self.tab_id, reason=reason.value))
        self._settle()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clear_identifier(self, session: RedirectSession) -> None:
        if self.processed_identifier == session.identifier:
            self.processed_identifier = None

    def _settle(self) -> None:
        if self._settled is not None:
            self._settled.set()

    def _stop_countdown(self) -> None:
        if self._countdown_task is not None:
            self._countdown_task.cancel()
            self._countdown_task = None

    def _abort_tasks(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._stop_countdown()
        if self._attempt_task is not None and not self._attempt_task.done():
            self._attempt_task.cancel()
        self._attempt_task = None

    def _notify(self, method: str, *args: Any) -> None:
        try:
            getattr(self.notifier, method)(*args)
        except Exception as e:
            logger.warning(f"[Redirect] {self.tab_id}: notifier {method} failed: {e}")

    def _on_settings_changed(self, changes: Dict[str, Any]) -> None:
        self.settings = self.settings_store.get()
        if not changes.get("enabled") or self._page is None or self.has_live_session:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"[Redirect] {self.tab_id}: re-enabled outside the event loop, no re-attempt")
            return
        logger.info(f"[Redirect] {self.tab_id}: redirect re-enabled, re-checking current page")
        self._reattempt_task = loop.create_task(self.on_page_load(self._page))
