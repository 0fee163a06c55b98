"""
Unit tests for query presence detection.

Tests sanitize_query and QueryPresenceCheck from serpnav/engines/query_check.py
"""

import unicodedata

import pytest

from serpnav.engines.query_check import QueryPresenceCheck, sanitize_query
from serpnav.page_intelligence.snapshot import StaticResultPage

from conftest import make_profile

SAMPLES = [
    "python",
    "  padded  ",
    "zero\u200bwidth",
    "\u200b\u200c\u200d\ufeff",
    "bidi\u202eoverride\u202c",
    "soft\u00adhyphen",
    "bell\x07and\x00null",
    "line\nbreak\ttab",
    "cafe\u0301",
    "\x1b[31mred\x1b[0m",
    "",
    "\t \n",
]


class TestSanitizeQuery:
    """Tests for sanitize_query."""

    def test_plain_query_unchanged(self):
        assert sanitize_query("python asyncio") == "python asyncio"

    def test_strips_whitespace(self):
        assert sanitize_query("  padded  ") == "padded"

    def test_removes_zero_width_characters(self):
        assert sanitize_query("zero\u200bwidth") == "zerowidth"
        assert sanitize_query("\u200b\u200c\u200d\ufeff") == ""

    def test_removes_control_characters(self):
        assert sanitize_query("bell\x07and\x00null") == "bellandnull"

    def test_keeps_inner_newline_and_tab(self):
        assert sanitize_query("line\nbreak\ttab") == "line\nbreak\ttab"

    def test_composes_to_nfc(self):
        assert sanitize_query("cafe\u0301") == "caf\u00e9"

    @pytest.mark.parametrize("sample", SAMPLES)
    def test_idempotent(self, sample):
        once = sanitize_query(sample)
        assert sanitize_query(once) == once

    @pytest.mark.parametrize("sample", SAMPLES)
    def test_no_control_or_format_characters_left(self, sample):
        for char in sanitize_query(sample):
            category = unicodedata.category(char)
            assert category != "Cf"
            assert category != "Cc" or char in "\n\t\r"


class TestQueryPresenceCheck:
    """Tests for QueryPresenceCheck.check."""

    @pytest.mark.asyncio
    async def test_url_query_present(self):
        url = "https://example.com/search?q=python+asyncio"
        context = await QueryPresenceCheck().check(StaticResultPage("<html></html>", url), make_profile())
        assert context is not None
        assert context.raw_query == "python asyncio"
        assert context.sanitized_query == "python asyncio"
        assert context.identifier == url

    @pytest.mark.asyncio
    async def test_url_query_missing(self):
        page = StaticResultPage("<html></html>", "https://example.com/search?other=1")
        assert await QueryPresenceCheck().check(page, make_profile()) is None

    @pytest.mark.asyncio
    async def test_url_query_blank(self):
        page = StaticResultPage("<html></html>", "https://example.com/search?q=")
        assert await QueryPresenceCheck().check(page, make_profile()) is None

    @pytest.mark.asyncio
    async def test_url_query_only_invisible_characters(self):
        page = StaticResultPage("<html></html>", "https://example.com/search?q=%E2%80%8B%20")
        assert await QueryPresenceCheck().check(page, make_profile()) is None

    @pytest.mark.asyncio
    async def test_input_driven_engine_reads_search_box(self):
        profile = make_profile(query_param=None, uses_url_params=False)
        html = '<form><input name="query" value=" python\u200b "></form>'
        page = StaticResultPage(html, "https://example.com/search")
        context = await QueryPresenceCheck().check(page, profile)
        assert context.sanitized_query == "python"
        assert context.identifier == "/searchpython"

    @pytest.mark.asyncio
    async def test_input_driven_engine_falls_back_to_later_inputs(self):
        profile = make_profile(query_param=None, uses_url_params=False)
        html = '<input name="query" value=""><input type="search" value="rust">'
        page = StaticResultPage(html, "https://example.com/search")
        context = await QueryPresenceCheck().check(page, profile)
        assert context.sanitized_query == "rust"

    @pytest.mark.asyncio
    async def test_invisible_only_input_does_not_hide_later_input(self):
        profile = make_profile(query_param=None, uses_url_params=False)
        html = '<input name="query" value="\u200b"><input type="search" value="rust">'
        page = StaticResultPage(html, "https://example.com/search")
        context = await QueryPresenceCheck().check(page, profile)
        assert context.raw_query == "rust"
        assert context.sanitized_query == "rust"

    @pytest.mark.asyncio
    async def test_input_driven_engine_without_input(self):
        profile = make_profile(query_param=None, uses_url_params=False)
        page = StaticResultPage("<html><body></body></html>", "https://example.com/search")
        assert await QueryPresenceCheck().check(page, profile) is None

    def test_query_from_url_first_value(self):
        assert QueryPresenceCheck.query_from_url("https://x/?q=a&q=b", "q") == "a"
        assert QueryPresenceCheck.query_from_url("https://x/?q=a", None) is None
