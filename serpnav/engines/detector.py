"""
serpnav/engines/detector.py

Engine Detector - match the current page against the provider table.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from serpnav.core.models import EngineProfile
from serpnav.engines.registry import EngineRegistry, get_engine_registry

logger = logging.getLogger(__name__)


class EngineDetector:
    """
    Select the provider profile for a page from its host and path.

    A profile matches when one of its domains is a substring of the host and
    one of its path fragments is a substring of the path. The first match in
    registry order wins.
    """

    def __init__(self, registry: Optional[EngineRegistry] = None):
        self.registry = registry or get_engine_registry()

    def detect(self, host: str, path: str) -> Optional[EngineProfile]:
        for profile in self.registry:
            if not any(domain in host for domain in profile.domains):
                continue
            if any(matcher in path for matcher in profile.search_path_matchers):
                return profile
        return None

    def detect_url(self, url: str) -> Optional[EngineProfile]:
        parts = urlsplit(url)
        profile = self.detect(parts.hostname or "", parts.path or "/")
        if profile:
            logger.debug(f"[EngineDetector] {parts.hostname}{parts.path} -> {profile.key}")
        return profile
