"""
Unit tests for RedirectHost navigation handling (no browser: Page is mocked).

Tests serpnav/browser/host.py
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from serpnav.browser.host import KEY_BINDING, KEY_LISTENER_JS, RedirectHost
from serpnav.core.config import Settings
from serpnav.core.models import UserSettings
from serpnav.redirect.settings_store import InMemorySettingsStore

from conftest import SEARCH_URL


def mock_page(url="about:blank"):
    page = MagicMock()
    page.url = url
    page.main_frame = MagicMock()
    page.main_frame.url = url
    page.wait_for_load_state = AsyncMock()
    return page


def handlers_of(page):
    return {call.args[0]: call.args[1] for call in page.on.call_args_list}


def navigation_request(frame, is_navigation=True):
    request = MagicMock()
    request.is_navigation_request.return_value = is_navigation
    request.frame = frame
    return request


@pytest.fixture
def host(emitter, example_detector, fast_timings):
    settings = Settings(_env_file=None, timings=fast_timings)
    store = InMemorySettingsStore(UserSettings(result_index=2))
    host = RedirectHost(
        MagicMock(),
        store,
        detector=example_detector,
        emitter=emitter,
        settings=settings,
        overlay=False,
    )
    # Attempts after load need a live page; only the scheduling is checked here
    host._spawn = MagicMock(side_effect=lambda coro: coro.close())
    return host


@pytest.fixture
def attached(host):
    """A page attached to the host, with its controller's on_navigation recorded."""
    page = mock_page()
    tab_id = host.attach(page)
    controller = host.controllers[tab_id]
    controller.on_navigation = MagicMock()
    return page, tab_id, controller


def navigate(page, url):
    page.main_frame.url = url
    handlers_of(page)["framenavigated"](page.main_frame)


class TestRedirectHostNavigation:

    @pytest.mark.asyncio
    async def test_start_installs_key_listener(self, host):
        host.context.expose_binding = AsyncMock()
        host.context.add_init_script = AsyncMock()
        host.context.pages = []
        await host.start()
        host.context.expose_binding.assert_awaited_once_with(KEY_BINDING, host._on_key_binding)
        host.context.add_init_script.assert_awaited_once_with(KEY_LISTENER_JS)

    @pytest.mark.asyncio
    async def test_first_navigation_starts_attempt(self, host, attached):
        page, _, controller = attached
        navigate(page, SEARCH_URL)
        controller.on_navigation.assert_called_once_with(new_document=False)
        assert host._spawn.call_count == 1

    @pytest.mark.asyncio
    async def test_fragment_change_is_ignored(self, host, attached):
        page, _, controller = attached
        navigate(page, SEARCH_URL)
        navigate(page, SEARCH_URL + "#top")
        assert controller.on_navigation.call_count == 1
        assert host._spawn.call_count == 1

    @pytest.mark.asyncio
    async def test_reload_of_same_url_starts_over(self, host, attached):
        page, _, controller = attached
        navigate(page, SEARCH_URL)

        handlers_of(page)["request"](navigation_request(page.main_frame))
        navigate(page, SEARCH_URL)

        assert controller.on_navigation.call_count == 2
        controller.on_navigation.assert_called_with(new_document=True)
        assert host._spawn.call_count == 2

    @pytest.mark.asyncio
    async def test_subresource_and_iframe_requests_do_not_count(self, host, attached):
        page, _, controller = attached
        navigate(page, SEARCH_URL)

        handlers = handlers_of(page)
        handlers["request"](navigation_request(page.main_frame, is_navigation=False))
        handlers["request"](navigation_request(MagicMock()))
        navigate(page, SEARCH_URL)

        assert controller.on_navigation.call_count == 1

    @pytest.mark.asyncio
    async def test_detach_forgets_pending_document(self, host, attached):
        page, tab_id, _ = attached
        handlers_of(page)["request"](navigation_request(page.main_frame))
        host.detach(tab_id, page)
        assert tab_id not in host.controllers
        assert tab_id not in host._new_documents


class TestReloadDuringCountdown:

    @pytest.mark.asyncio
    async def test_reload_drops_pending_redirect(self, host, three_results_page):
        page = mock_page()
        tab_id = host.attach(page)
        controller = host.controllers[tab_id]
        navigate(page, SEARCH_URL)

        await controller.on_page_load(three_results_page)
        await controller.wait_resolved()
        assert controller.is_pending
        assert controller.processed_identifier == SEARCH_URL

        handlers_of(page)["request"](navigation_request(page.main_frame))
        navigate(page, SEARCH_URL)

        assert not controller.is_pending
        assert controller.processed_identifier is None
        await asyncio.sleep(0.1)
        assert three_results_page.navigations == []
        await host.close()
