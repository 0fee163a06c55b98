"""
serpnav/redirect/status_board.py

Status Board - per-tab redirect status for the host UI (toolbar badge, page
action, window title).

Listens to lifecycle events and keeps, per tab:
    redirecting -> "Redirecting to 2nd result - click to cancel"
    cancelled   -> "Redirect cancelled" (lingers, then cleared)

A page-action click is routed to the tab's controller as a cancel. The board
also owns the global on/off toggle, written through the settings store.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from serpnav.core.config import RedirectTimings, get_settings
from serpnav.redirect.emitter import RedirectEventEmitter
from serpnav.redirect.events import EventType
from serpnav.redirect.notifier import ordinal
from serpnav.redirect.settings_store import InMemorySettingsStore

logger = logging.getLogger(__name__)

CancelHandler = Callable[[], bool]


class TabState(str, Enum):
    REDIRECTING = "redirecting"
    CANCELLED = "cancelled"


@dataclass
class TabStatus:
    state: TabState
    title: str
    url: Optional[str] = None


class StatusBoard:
    """Tracks what the UI should show for every tab."""

    def __init__(
        self,
        emitter: RedirectEventEmitter,
        settings_store: InMemorySettingsStore,
        timings: Optional[RedirectTimings] = None,
    ):
        self.settings_store = settings_store
        self.timings = timings or get_settings().timings
        self._tabs: Dict[str, TabStatus] = {}
        self._cancel_handlers: Dict[str, CancelHandler] = {}
        self._linger: Dict[str, asyncio.TimerHandle] = {}
        self._emitter = emitter
        emitter.add_listener(self.on_event)

    def register_tab(self, tab_id: str, cancel: CancelHandler) -> None:
        """Route page-action clicks for ``tab_id`` to ``cancel``."""
        self._cancel_handlers[tab_id] = cancel

    def status(self, tab_id: str) -> Optional[TabStatus]:
        return self._tabs.get(tab_id)

    def title(self, tab_id: str) -> str:
        status = self._tabs.get(tab_id)
        if status is not None:
            return status.title
        return "serpnav: on" if self.settings_store.get().enabled else "serpnav: off"

    def on_event(self, event) -> None:
        if event.type == EventType.REDIRECTING.value:
            self._cancel_linger(event.tab_id)
            self._tabs[event.tab_id] = TabStatus(
                state=TabState.REDIRECTING,
                title=f"Redirecting to {ordinal(event.index)} result - click to cancel",
                url=event.url,
            )
        elif event.type == EventType.REDIRECT_CANCELLED.value:
            self._tabs[event.tab_id] = TabStatus(state=TabState.CANCELLED, title="Redirect cancelled")
            self._schedule_clear(event.tab_id)
        elif event.type in (EventType.REDIRECT_COMPLETE.value, EventType.REDIRECT_FAILED.value):
            self._clear(event.tab_id)

    def request_cancel(self, tab_id: str) -> bool:
        """Page-action click: cancel the tab's pending redirect, if any."""
        status = self._tabs.get(tab_id)
        handler = self._cancel_handlers.get(tab_id)
        if status is None or status.state is not TabState.REDIRECTING or handler is None:
            return False
        return handler()

    def toggle_enabled(self) -> bool:
        """Flip the global switch; returns the new value."""
        enabled = not self.settings_store.get().enabled
        self.settings_store.set(enabled=enabled)
        logger.info(f"[StatusBoard] Redirect {'enabled' if enabled else 'disabled'}")
        return enabled

    def on_tab_loading(self, tab_id: str) -> None:
        """The tab started a new navigation; its old status no longer applies."""
        self._clear(tab_id)

    def on_tab_removed(self, tab_id: str) -> None:
        self._clear(tab_id)
        self._cancel_handlers.pop(tab_id, None)

    def close(self) -> None:
        self._emitter.remove_listener(self.on_event)
        for tab_id in list(self._linger):
            self._cancel_linger(tab_id)

    def _schedule_clear(self, tab_id: str) -> None:
        self._cancel_linger(tab_id)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._tabs.pop(tab_id, None)
            return
        self._linger[tab_id] = loop.call_later(
            self.timings.cancelled_linger_ms / 1000.0,
            self._expire_cancelled,
            tab_id,
        )

    def _expire_cancelled(self, tab_id: str) -> None:
        self._linger.pop(tab_id, None)
        status = self._tabs.get(tab_id)
        if status is not None and status.state is TabState.CANCELLED:
            del self._tabs[tab_id]

    def _cancel_linger(self, tab_id: str) -> None:
        handle = self._linger.pop(tab_id, None)
        if handle is not None:
            handle.cancel()

    def _clear(self, tab_id: str) -> None:
        self._cancel_linger(tab_id)
        self._tabs.pop(tab_id, None)
