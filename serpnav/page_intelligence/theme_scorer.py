"""
serpnav/page_intelligence/theme_scorer.py

Theme Scorer - pick a dark or light style for the redirect notification.

Purely cosmetic: nothing in extraction or navigation depends on it. Each
signal adds a fixed weight to a dark or a light score; dark wins only on a
strict majority, ties fall back to light.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DARK_KEYWORDS = ("dark", "night", "black", "dim")
LIGHT_KEYWORDS = ("light", "day", "white", "bright")

WEIGHTS = {
    "class_keyword": 2.0,
    "data_attribute": 3.0,
    "color_scheme_meta": 2.0,
    "os_preference": 2.0,
    "background_sample": 1.0,
    "text_sample": 0.5,
    "provider_override": 4.0,
}

# Markers providers set on <html>/<body> when their own dark theme is active
PROVIDER_DARK_MARKERS: Dict[str, tuple[str, ...]] = {
    "google": ("dark-mode", "srp-dark"),
    "bing": ("b_dark",),
    "duckduckgo": ("dark-bg", "theme-dark"),
    "brave": ("theme-dark",),
    "kagi": ("theme_dark",),
    "yandex": ("theme_dark",),
}

# Perceived brightness threshold (0-255) below which a colour reads as dark
BRIGHTNESS_THRESHOLD = 128

_RGB_RE = re.compile(r"rgba?\(\s*([\d.]+)[,\s]+([\d.]+)[,\s]+([\d.]+)(?:[,\s/]+([\d.]+%?))?\s*\)")


@dataclass
class ThemeSignals:
    """Evidence gathered from the page (see OverlayNotifier for collection)."""
    class_names: List[str] = field(default_factory=list)
    data_attributes: Dict[str, str] = field(default_factory=dict)
    color_scheme_meta: Optional[str] = None
    prefers_dark: Optional[bool] = None
    background_colors: List[str] = field(default_factory=list)
    text_colors: List[str] = field(default_factory=list)
    engine_key: Optional[str] = None


@dataclass
class ThemeDecision:
    theme: str
    dark_score: float
    light_score: float

    @property
    def is_dark(self) -> bool:
        return self.theme == "dark"


def brightness(color: str) -> Optional[float]:
    """Perceived brightness of a CSS rgb()/rgba() colour; None if unreadable or transparent."""
    match = _RGB_RE.search(color or "")
    if not match:
        return None
    alpha = match.group(4)
    if alpha is not None:
        value = float(alpha.rstrip("%")) / (100.0 if alpha.endswith("%") else 1.0)
        if value == 0:
            return None
    r, g, b = (float(match.group(i)) for i in range(1, 4))
    return (r * 299 + g * 587 + b * 114) / 1000


def _keyword_side(text: str) -> Optional[str]:
    lowered = text.lower()
    if any(keyword in lowered for keyword in DARK_KEYWORDS):
        return "dark"
    if any(keyword in lowered for keyword in LIGHT_KEYWORDS):
        return "light"
    return None


def score_theme(signals: ThemeSignals) -> ThemeDecision:
    """Combine weighted evidence into a dark/light decision."""
    scores = {"dark": 0.0, "light": 0.0}

    for name in signals.class_names:
        side = _keyword_side(name)
        if side:
            scores[side] += WEIGHTS["class_keyword"]

    for value in signals.data_attributes.values():
        side = _keyword_side(value)
        if side:
            scores[side] += WEIGHTS["data_attribute"]

    if signals.color_scheme_meta:
        schemes = set(signals.color_scheme_meta.lower().split())
        # "light dark" declares support for both and says nothing
        if schemes == {"dark"} or schemes == {"only", "dark"}:
            scores["dark"] += WEIGHTS["color_scheme_meta"]
        elif schemes == {"light"} or schemes == {"only", "light"}:
            scores["light"] += WEIGHTS["color_scheme_meta"]

    if signals.prefers_dark is not None:
        scores["dark" if signals.prefers_dark else "light"] += WEIGHTS["os_preference"]

    for color in signals.background_colors:
        value = brightness(color)
        if value is not None:
            scores["dark" if value < BRIGHTNESS_THRESHOLD else "light"] += WEIGHTS["background_sample"]

    # Light text implies a dark page and vice versa
    for color in signals.text_colors:
        value = brightness(color)
        if value is not None:
            scores["light" if value < BRIGHTNESS_THRESHOLD else "dark"] += WEIGHTS["text_sample"]

    markers = PROVIDER_DARK_MARKERS.get(signals.engine_key or "", ())
    if markers and any(marker in name for name in signals.class_names for marker in markers):
        scores["dark"] += WEIGHTS["provider_override"]

    theme = "dark" if scores["dark"] > scores["light"] else "light"
    return ThemeDecision(theme=theme, dark_score=scores["dark"], light_score=scores["light"])
