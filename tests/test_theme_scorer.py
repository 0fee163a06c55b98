"""
Unit tests for the theme scorer.

Tests serpnav/page_intelligence/theme_scorer.py
"""

import pytest

from serpnav.page_intelligence.theme_scorer import ThemeSignals, brightness, score_theme


class TestBrightness:

    @pytest.mark.parametrize("color, expected", [
        ("rgb(0, 0, 0)", 0.0),
        ("rgb(255, 255, 255)", 255.0),
        ("rgba(255, 255, 255, 0.5)", 255.0),
        ("rgb(255 255 255 / 50%)", 255.0),
    ])
    def test_parse(self, color, expected):
        assert brightness(color) == pytest.approx(expected)

    @pytest.mark.parametrize("color", ["rgba(0, 0, 0, 0)", "transparent", "", "#fff"])
    def test_unreadable_or_transparent(self, color):
        assert brightness(color) is None


class TestScoreTheme:

    def test_no_signals_is_light(self):
        decision = score_theme(ThemeSignals())
        assert decision.theme == "light"
        assert decision.dark_score == decision.light_score == 0

    def test_tie_is_light(self):
        decision = score_theme(ThemeSignals(class_names=["dark-mode", "light-header"]))
        assert decision.dark_score == decision.light_score
        assert not decision.is_dark

    def test_dark_background_samples(self):
        signals = ThemeSignals(background_colors=["rgb(32, 33, 36)", "rgb(20, 20, 20)"])
        assert score_theme(signals).is_dark

    def test_light_text_implies_dark_page(self):
        signals = ThemeSignals(text_colors=["rgb(232, 234, 237)"])
        assert score_theme(signals).is_dark

    def test_data_attribute_outweighs_class(self):
        signals = ThemeSignals(class_names=["light"], data_attributes={"data-theme": "dark"})
        assert score_theme(signals).is_dark

    def test_color_scheme_meta(self):
        assert score_theme(ThemeSignals(color_scheme_meta="dark")).is_dark
        assert not score_theme(ThemeSignals(color_scheme_meta="light")).is_dark
        both = score_theme(ThemeSignals(color_scheme_meta="light dark"))
        assert both.dark_score == both.light_score == 0

    def test_os_preference(self):
        assert score_theme(ThemeSignals(prefers_dark=True)).is_dark
        assert not score_theme(ThemeSignals(prefers_dark=False)).is_dark

    def test_provider_override(self):
        signals = ThemeSignals(
            class_names=["b_dark"],
            background_colors=["rgb(255, 255, 255)"] * 3,
            engine_key="bing",
        )
        assert score_theme(signals).is_dark

    def test_provider_marker_ignored_for_other_engine(self):
        signals = ThemeSignals(
            class_names=["b_dark"],
            background_colors=["rgb(255, 255, 255)"] * 3,
            engine_key="google",
        )
        assert not score_theme(signals).is_dark
