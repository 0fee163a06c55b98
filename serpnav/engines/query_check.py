"""
serpnav/engines/query_check.py

Query Presence Check - is this page an executed search with a real query?

URL-param engines read the query from the page URL; input-driven engines
(POST searches such as Startpage) read the search box instead. Either way the
value is sanitized before it counts, so pasted control or zero-width
characters cannot make an empty query look present, and the dedup identifier
stays stable.
"""

import logging
import unicodedata
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from serpnav.core.models import EngineProfile, SearchContext
from serpnav.page_intelligence.snapshot import ResultPage

logger = logging.getLogger(__name__)

# Fallback matchers for the search box of input-driven engines, in order
QUERY_INPUT_SELECTORS = (
    'input[name="query"]',
    'input[name="q"]',
    'input[type="search"]',
)

_KEPT_CONTROLS = {"\n", "\t", "\r"}


def sanitize_query(text: str) -> str:
    """
    Canonicalize a raw query string.

    Drops control characters (except newline, tab, carriage return) and
    invisible format characters (zero-width spaces/joiners, BOM, bidi marks,
    soft hyphens), composes to NFC and trims surrounding whitespace.
    Idempotent.
    """
    if not text:
        return ""
    kept = []
    for char in text:
        category = unicodedata.category(char)
        if category == "Cc" and char not in _KEPT_CONTROLS:
            continue
        if category == "Cf":
            continue
        kept.append(char)
    return unicodedata.normalize("NFC", "".join(kept)).strip()


class QueryPresenceCheck:
    """Derive the SearchContext for a page, or None when no query ran."""

    def __init__(self, input_selectors: tuple[str, ...] = QUERY_INPUT_SELECTORS):
        self.input_selectors = input_selectors

    async def check(self, page: ResultPage, profile: EngineProfile) -> Optional[SearchContext]:
        url = page.url
        if profile.uses_url_params:
            raw = self.query_from_url(url, profile.query_param)
        else:
            # An input holding only invisible characters must not hide a later one
            values = await page.input_values(self.input_selectors)
            raw = next((value for value in values if sanitize_query(value)), None)

        if raw is None:
            logger.debug(f"[QueryCheck] {profile.name}: no query on {url}")
            return None

        sanitized = sanitize_query(raw)
        if not sanitized:
            logger.debug(f"[QueryCheck] {profile.name}: query empty after sanitizing")
            return None

        return SearchContext(
            profile=profile,
            raw_query=raw,
            sanitized_query=sanitized,
            identifier=self.identifier_for(url, profile, sanitized),
        )

    @staticmethod
    def query_from_url(url: str, param: Optional[str]) -> Optional[str]:
        if not param:
            return None
        values = parse_qs(urlsplit(url).query, keep_blank_values=True).get(param)
        return values[0] if values else None

    @staticmethod
    def identifier_for(url: str, profile: EngineProfile, sanitized_query: str) -> str:
        """Dedup key: full URL, or path + query when the URL does not carry it."""
        if profile.uses_url_params:
            return url
        return f"{urlsplit(url).path}{sanitized_query}"
