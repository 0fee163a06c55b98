"""
Shared fixtures for serpnav tests.

Result pages are built as HTML with the same layout stamps the Playwright
adapter writes (data-serpnav-top / data-serpnav-visible), so extraction and
the redirect pipeline run end to end without a browser.
"""

from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from serpnav.core.config import RedirectTimings
from serpnav.core.models import EngineProfile
from serpnav.engines.detector import EngineDetector
from serpnav.engines.registry import EngineRegistry
from serpnav.page_intelligence.snapshot import StaticResultPage
from serpnav.redirect.emitter import RedirectEventEmitter
from serpnav.redirect.notifier import Notifier

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SEARCH_URL = "https://example.com/search?q=test"


def make_profile(**overrides) -> EngineProfile:
    """Example provider: results are <div class="result"><a class="r">."""
    data = {
        "key": "example",
        "name": "Example",
        "domains": ["example.com"],
        "search_path": "/search",
        "query_param": "q",
        "selectors": ["a.r"],
        "container": {"ancestor": "div.result"},
    }
    data.update(overrides)
    return EngineProfile.model_validate(data)


def result_block(
    href: str,
    top: Optional[float] = None,
    visible: bool = True,
    css_class: str = "result",
    link_class: str = "r",
    attrs: str = "",
) -> str:
    stamps = f' data-serpnav-visible="{1 if visible else 0}"'
    if top is not None:
        stamps += f' data-serpnav-top="{top}"'
    return (
        f'<div class="{css_class}"{stamps} {attrs}>'
        f'<a class="{link_class}" href="{href}">{href}</a>'
        f"</div>"
    )


def results_page(*blocks: str, extra: str = "") -> str:
    return (
        "<html><head><title>results</title></head><body>"
        f'<div id="main">{"".join(blocks)}</div>{extra}'
        "</body></html>"
    )


class CountingPage(StaticResultPage):
    """StaticResultPage that records readiness probes."""

    def __init__(self, html: str, url: str):
        super().__init__(html, url)
        self.count_calls: List[str] = []

    async def count(self, selector: str) -> int:
        self.count_calls.append(selector)
        return await super().count(selector)


@pytest.fixture
def example_profile() -> EngineProfile:
    return make_profile()


@pytest.fixture
def example_registry(example_profile) -> EngineRegistry:
    return EngineRegistry([example_profile])


@pytest.fixture
def example_detector(example_registry) -> EngineDetector:
    return EngineDetector(example_registry)


@pytest.fixture
def fast_timings() -> RedirectTimings:
    return RedirectTimings(
        redirect_delay_ms=50,
        poll_interval_ms=5,
        max_poll_attempts=4,
        countdown_tick_ms=10,
        cancelled_linger_ms=30,
    )


@pytest.fixture
def emitter() -> RedirectEventEmitter:
    return RedirectEventEmitter()


@pytest.fixture
def collected_events(emitter) -> list:
    events = []
    emitter.add_listener(events.append)
    return events


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock(spec=Notifier)


@pytest.fixture
def three_results_page() -> CountingPage:
    """Three container-distinct results laid out at offsets 400, 100, 250."""
    html = results_page(
        result_block("https://a.example/", top=400),
        result_block("https://b.example/", top=100),
        result_block("https://c.example/", top=250),
    )
    return CountingPage(html, SEARCH_URL)
