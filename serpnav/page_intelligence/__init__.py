"""
Page Intelligence - reading result pages.

Contains:
- LayoutSnapshot / ResultPage / StaticResultPage: the page interface
- ContentReadinessWaiter: poll until result markup exists
- ResultExtractor: visually ordered, deduplicated Nth result
- score_theme: dark/light decision for notifications
"""

from serpnav.page_intelligence.readiness import ContentReadinessWaiter, ReadinessResult
from serpnav.page_intelligence.result_extractor import (
    CandidateResult,
    ExtractionResult,
    ResultExtractor,
    normalize_href,
)
from serpnav.page_intelligence.snapshot import LayoutSnapshot, ResultPage, StaticResultPage
from serpnav.page_intelligence.theme_scorer import ThemeDecision, ThemeSignals, score_theme

__all__ = [
    "CandidateResult",
    "ContentReadinessWaiter",
    "ExtractionResult",
    "LayoutSnapshot",
    "ReadinessResult",
    "ResultExtractor",
    "ResultPage",
    "StaticResultPage",
    "ThemeDecision",
    "ThemeSignals",
    "normalize_href",
    "score_theme",
]
