"""
Unit tests for the status board.

Tests serpnav/redirect/status_board.py alone and wired to a controller.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from serpnav.core.config import RedirectTimings
from serpnav.core.models import UserSettings
from serpnav.redirect.controller import RedirectController
from serpnav.redirect.events import (
    RedirectCancelledEvent,
    RedirectCompleteEvent,
    RedirectFailedEvent,
    RedirectingEvent,
)
from serpnav.redirect.session import SessionStatus
from serpnav.redirect.settings_store import InMemorySettingsStore
from serpnav.redirect.status_board import StatusBoard, TabState


@pytest.fixture
def store():
    return InMemorySettingsStore()


@pytest.fixture
def board(emitter, store, fast_timings):
    board = StatusBoard(emitter, store, timings=fast_timings)
    yield board
    board.close()


class TestTabStatus:

    def test_redirecting_title(self, board, emitter):
        emitter.emit(RedirectingEvent(tab_id="t1", index=2, url="https://b.example/"))
        status = board.status("t1")
        assert status.state is TabState.REDIRECTING
        assert status.url == "https://b.example/"
        assert board.title("t1") == "Redirecting to 2nd result - click to cancel"

    @pytest.mark.parametrize("event", [
        RedirectCompleteEvent(tab_id="t1", url="https://b.example/"),
        RedirectFailedEvent(tab_id="t1", reason="extraction_miss"),
    ])
    def test_terminal_events_clear(self, board, emitter, event):
        emitter.emit(RedirectingEvent(tab_id="t1", index=1, url="https://a.example/"))
        emitter.emit(event)
        assert board.status("t1") is None

    def test_idle_title_reflects_toggle(self, board):
        assert board.title("t9") == "serpnav: on"
        assert board.toggle_enabled() is False
        assert board.title("t9") == "serpnav: off"

    def test_toggle_writes_store(self, board, store):
        board.toggle_enabled()
        assert store.get().enabled is False
        board.toggle_enabled()
        assert store.get().enabled is True

    def test_tabs_are_independent(self, board, emitter):
        emitter.emit(RedirectingEvent(tab_id="t1", index=1, url="https://a.example/"))
        emitter.emit(RedirectingEvent(tab_id="t2", index=3, url="https://c.example/"))
        board.on_tab_loading("t1")
        assert board.status("t1") is None
        assert board.title("t2") == "Redirecting to 3rd result - click to cancel"


class TestCancelledLinger:

    @pytest.mark.asyncio
    async def test_cancelled_state_lingers_then_clears(self, board, emitter):
        emitter.emit(RedirectCancelledEvent(tab_id="t1"))
        assert board.status("t1").state is TabState.CANCELLED
        assert board.title("t1") == "Redirect cancelled"
        await asyncio.sleep(0.06)
        assert board.status("t1") is None

    @pytest.mark.asyncio
    async def test_new_redirect_replaces_cancelled(self, board, emitter):
        emitter.emit(RedirectCancelledEvent(tab_id="t1"))
        emitter.emit(RedirectingEvent(tab_id="t1", index=1, url="https://a.example/"))
        await asyncio.sleep(0.06)
        assert board.status("t1").state is TabState.REDIRECTING

    def test_without_loop_cancelled_clears_at_once(self, board, emitter):
        emitter.emit(RedirectCancelledEvent(tab_id="t1"))
        assert board.status("t1") is None


class TestPageAction:

    def test_click_routes_cancel(self, board, emitter):
        handler = MagicMock(return_value=True)
        board.register_tab("t1", handler)
        emitter.emit(RedirectingEvent(tab_id="t1", index=1, url="https://a.example/"))
        assert board.request_cancel("t1") is True
        handler.assert_called_once_with()

    def test_click_without_pending_redirect(self, board):
        handler = MagicMock(return_value=True)
        board.register_tab("t1", handler)
        assert board.request_cancel("t1") is False
        handler.assert_not_called()

    def test_removed_tab_forgets_handler(self, board, emitter):
        handler = MagicMock(return_value=True)
        board.register_tab("t1", handler)
        board.on_tab_removed("t1")
        emitter.emit(RedirectingEvent(tab_id="t1", index=1, url="https://a.example/"))
        assert board.request_cancel("t1") is False

    @pytest.mark.asyncio
    async def test_click_cancels_controller(self, emitter, example_detector, three_results_page):
        store = InMemorySettingsStore(UserSettings(result_index=1))
        timings = RedirectTimings(redirect_delay_ms=300, poll_interval_ms=5, cancelled_linger_ms=20)
        board = StatusBoard(emitter, store, timings=timings)
        controller = RedirectController("t1", store, emitter=emitter, detector=example_detector, timings=timings)
        board.register_tab("t1", controller.cancel)

        await controller.on_page_load(three_results_page)
        await controller.wait_resolved()
        assert board.status("t1").state is TabState.REDIRECTING

        assert board.request_cancel("t1") is True
        assert controller.session.status is SessionStatus.CANCELLED
        assert board.status("t1").state is TabState.CANCELLED

        await asyncio.sleep(0.35)
        assert three_results_page.navigations == []
        controller.close()
        board.close()
