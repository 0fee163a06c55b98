"""
serpnav/page_intelligence/result_extractor.py

Result Extractor - find the Nth organic result link on a results page.

Selector match order does not follow layout on most providers (ads, modules
and sidebars are interleaved in the DOM), so candidates are re-ordered by the
vertical position of their enclosing result block before ranking.

Per selector rule, in profile order:
  1. collect matching link elements
  2. drop links inside a skip container (carousels, panels, sidebars)
  3. drop links without a target or pointing at the page itself, resolve the
     enclosing container, drop links without one (or with a hidden one)
  4-5. record (href, container, offset) and sort by offset
  6-7. walk in visual order, dropping repeats (container identity or
     normalized href), excluded hrefs and structural exclusions
  8. the first rule reaching N results answers; none reaching N is a miss

Usage:
    extractor = ResultExtractor()
    url = extractor.extract(snapshot, profile, rank=2)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from bs4 import Tag

from serpnav.core.exceptions import SelectorFault
from serpnav.core.models import EngineProfile
from serpnav.page_intelligence.snapshot import LayoutSnapshot

logger = logging.getLogger(__name__)


@dataclass
class CandidateResult:
    """A link found by a selector rule, before filtering."""
    href: str
    element: Tag
    container: Tag
    visual_offset: Optional[float]
    order: int  # document order within the rule

    @property
    def sort_key(self):
        # Unmeasured containers go last, keeping document order
        if self.visual_offset is None:
            return (1, 0.0, self.order)
        return (0, self.visual_offset, self.order)


@dataclass
class ExtractionResult:
    """Outcome of one extraction pass."""
    url: Optional[str] = None
    selector: Optional[str] = None
    valid_results: List[CandidateResult] = field(default_factory=list)
    faults: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.url is not None


def normalize_href(href: str) -> str:
    """Canonical form used to detect the same result behind different markup."""
    parts = urlsplit(href.strip())
    path = parts.path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


class ResultExtractor:
    """
    Rank result links by visual position and pick the Nth survivor.

    Stateless; one instance can serve every page.
    """

    def extract(self, snapshot: LayoutSnapshot, profile: EngineProfile, rank: int) -> Optional[str]:
        """Return the href of the ``rank``-th (1-based) result, or None."""
        return self.rank_results(snapshot, profile, rank).url

    def rank_results(self, snapshot: LayoutSnapshot, profile: EngineProfile, rank: int) -> ExtractionResult:
        """
        Run the full extraction pass.

        Args:
            snapshot: Layout snapshot of the results page
            profile: Provider profile with selector rules
            rank: 1-based rank wanted

        Returns:
            ExtractionResult; ``valid_results`` holds the winning rule's list,
            or the longest partial list when no rule reached ``rank``
        """
        if rank < 1:
            raise ValueError(f"rank must be >= 1, got {rank}")

        result = ExtractionResult()
        best_partial: List[CandidateResult] = []

        for selector in profile.selectors:
            try:
                valid = self._rank_rule(snapshot, profile, selector, rank)
            except SelectorFault as e:
                logger.warning(f"[Extractor] {profile.name}: {e.message}")
                result.faults.append(selector)
                continue

            if len(valid) >= rank:
                result.url = valid[rank - 1].href
                result.selector = selector
                result.valid_results = valid
                logger.info(f"[Extractor] {profile.name}: result #{rank} -> {result.url} (rule {selector!r})")
                return result

            logger.debug(f"[Extractor] {profile.name}: rule {selector!r} yielded {len(valid)}/{rank}")
            if len(valid) > len(best_partial):
                best_partial = valid

        result.valid_results = best_partial
        logger.info(f"[Extractor] {profile.name}: no rule yielded {rank} results")
        return result

    def collect_candidates(
        self,
        snapshot: LayoutSnapshot,
        profile: EngineProfile,
        selector: str,
    ) -> List[CandidateResult]:
        """Steps 1-5: matched links with resolved containers, in visual order."""
        skip_ids = self._skip_container_ids(snapshot, profile)
        container_selector = profile.container.selector

        candidates: List[CandidateResult] = []
        for order, element in enumerate(snapshot.select(selector)):
            if skip_ids and self._inside(element, skip_ids):
                continue

            href = snapshot.href_of(element)
            if not href or href == snapshot.url:
                continue

            container = snapshot.closest(container_selector, element)
            if container is None or snapshot.is_hidden(container):
                continue

            candidates.append(CandidateResult(
                href=href,
                element=element,
                container=container,
                visual_offset=snapshot.offset_of(container),
                order=order,
            ))

        candidates.sort(key=lambda candidate: candidate.sort_key)
        return candidates

    def _rank_rule(
        self,
        snapshot: LayoutSnapshot,
        profile: EngineProfile,
        selector: str,
        rank: int,
    ) -> List[CandidateResult]:
        candidates = self.collect_candidates(snapshot, profile, selector)
        patterns = [pattern.lower() for pattern in profile.exclude_patterns]

        valid: List[CandidateResult] = []
        seen_containers: set[int] = set()
        seen_hrefs: set[str] = set()

        for candidate in candidates:
            # Containers compare by identity: equal markup is still two results
            container_id = id(candidate.container)
            if container_id in seen_containers:
                continue
            normalized = normalize_href(candidate.href)
            if normalized in seen_hrefs:
                continue
            href_lower = candidate.href.lower()
            if any(pattern in href_lower for pattern in patterns):
                continue
            if self._structurally_excluded(snapshot, profile, candidate.element):
                continue

            valid.append(candidate)
            seen_containers.add(container_id)
            seen_hrefs.add(normalized)
            if len(valid) >= rank:
                break

        return valid

    @staticmethod
    def _skip_container_ids(snapshot: LayoutSnapshot, profile: EngineProfile) -> set[int]:
        ids: set[int] = set()
        for selector in profile.skip_container_selectors:
            try:
                ids.update(id(element) for element in snapshot.select(selector))
            except SelectorFault as e:
                # One bad skip rule must not void the whole rule
                logger.warning(f"[Extractor] {profile.name}: skip container {e.message}")
        return ids

    @staticmethod
    def _inside(element: Tag, container_ids: set[int]) -> bool:
        for parent in element.parents:
            if id(parent) in container_ids:
                return True
        return False

    @staticmethod
    def _structurally_excluded(snapshot: LayoutSnapshot, profile: EngineProfile, element: Tag) -> bool:
        for exclusion in profile.structural_exclusions:
            nearest = snapshot.closest(exclusion.nearest, element)
            if nearest is not None and snapshot.matches(exclusion.marker, nearest):
                return True
        return False
