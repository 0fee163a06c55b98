"""
serpnav - open the Nth organic search result automatically.

Recognizes a rendered results page from a known provider, ranks its organic
result links in visual order (skipping ads, carousels, sidebars and
duplicates) and navigates to the configured rank after a short, cancellable
countdown.

Packages:
- serpnav.core: configuration, logging, exceptions, models
- serpnav.engines: provider table, detection, query presence
- serpnav.page_intelligence: layout snapshots, readiness, extraction, theme
- serpnav.redirect: session state machine, controller, events, status board
- serpnav.browser: Playwright adapters and host
"""

__version__ = "0.3.0"
