"""
Unit tests for EngineDetector.

Tests serpnav/engines/detector.py against the bundled table.
"""

import pytest

from serpnav.engines.detector import EngineDetector
from serpnav.engines.registry import EngineRegistry, load_engine_registry

from conftest import make_profile


@pytest.fixture(scope="module")
def detector():
    return EngineDetector(load_engine_registry())


class TestDetect:
    """Tests for host/path matching."""

    def test_every_profile_detected_from_its_own_rules(self, detector):
        for profile in detector.registry:
            for domain in profile.domains:
                for matcher in profile.search_path_matchers:
                    assert detector.detect(domain, matcher).key == profile.key

    def test_host_substring_match(self, detector):
        assert detector.detect("www.google.co.uk", "/search").key == "google"

    def test_unknown_host(self, detector):
        assert detector.detect("www.example.org", "/search") is None

    def test_path_must_match(self, detector):
        assert detector.detect("www.google.com", "/maps/place") is None

    def test_detect_url(self, detector):
        assert detector.detect_url("https://www.bing.com/search?q=python").key == "bing"
        assert detector.detect_url("https://duckduckgo.com/?q=python").key == "duckduckgo"
        assert detector.detect_url("https://www.startpage.com/do/search").key == "startpage"

    def test_detect_url_without_host(self, detector):
        assert detector.detect_url("about:blank") is None

    def test_first_profile_in_order_wins(self):
        broad = make_profile(key="broad", name="Broad", domains=["example.com"], search_path="/")
        narrow = make_profile(key="narrow", name="Narrow", domains=["search.example.com"])
        detector = EngineDetector(EngineRegistry([broad, narrow]))
        assert detector.detect("search.example.com", "/search").key == "broad"
