#!/usr/bin/env python3
"""
serpnav command line.

    serpnav engines [--json]
    serpnav detect URL
    serpnav extract HTML_FILE --url URL [--rank N] [--engine KEY]
    serpnav browse [URL] [--rank N] [--headless] [--engine KEY ...]

``extract`` runs the extraction heuristic over a saved results page. Pages
saved without layout stamps keep document order.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from serpnav.browser.host import RedirectHost
from serpnav.core.config import get_settings
from serpnav.core.exceptions import SerpNavError
from serpnav.core.logging_config import setup_logging
from serpnav.core.models import UserSettings
from serpnav.engines.detector import EngineDetector
from serpnav.engines.registry import EngineRegistry, get_engine_registry, load_engine_registry
from serpnav.page_intelligence.result_extractor import ResultExtractor
from serpnav.page_intelligence.snapshot import LayoutSnapshot
from serpnav.redirect.emitter import RedirectEventEmitter
from serpnav.redirect.events import EventType
from serpnav.redirect.settings_store import InMemorySettingsStore

TERMINAL_EVENTS = {
    EventType.REDIRECT_COMPLETE.value,
    EventType.REDIRECT_FAILED.value,
    EventType.REDIRECT_CANCELLED.value,
}


def _registry(args: argparse.Namespace) -> EngineRegistry:
    if args.engines_file:
        return load_engine_registry(Path(args.engines_file))
    return get_engine_registry()


def cmd_engines(args: argparse.Namespace) -> int:
    registry = _registry(args)
    if args.json:
        data = [profile.model_dump(mode="json") for profile in registry]
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0

    for profile in registry:
        mode = f"?{profile.query_param}=" if profile.uses_url_params else "search box"
        print(f"{profile.key:<12} {profile.name:<12} {', '.join(profile.domains)}")
        print(f"  paths={', '.join(profile.search_path_matchers)} query={mode} rules={len(profile.selectors)}")
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    profile = EngineDetector(_registry(args)).detect_url(args.url)
    if profile is None:
        print("(no engine)")
        return 1
    print(f"{profile.key} ({profile.name})")
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    registry = _registry(args)
    if args.engine:
        profile = registry.get(args.engine)
        if profile is None:
            print(f"Unknown engine: {args.engine}", file=sys.stderr)
            return 2
    else:
        profile = EngineDetector(registry).detect_url(args.url)
        if profile is None:
            print(f"No engine matches {args.url}; pass --engine", file=sys.stderr)
            return 2

    html = Path(args.html_file).read_text(encoding="utf-8", errors="replace")
    snapshot = LayoutSnapshot(html, args.url)
    result = ResultExtractor().rank_results(snapshot, profile, args.rank)

    for position, candidate in enumerate(result.valid_results, start=1):
        offset = "-" if candidate.visual_offset is None else f"{candidate.visual_offset:.0f}"
        print(f"{position:>2}. [{offset:>6}] {candidate.href}")
    for selector in result.faults:
        print(f"  faulty rule: {selector}", file=sys.stderr)

    if not result.found:
        print(f"(no result #{args.rank} for {profile.name})")
        return 1
    print(f"-> {result.url}  (rule {result.selector!r})")
    return 0


async def _watch_tab(emitter: RedirectEventEmitter, tab_id: str, done: asyncio.Event, stop_on_outcome: bool) -> None:
    async for event in emitter.stream_events(tab_id):
        print(f"[{tab_id}] {event.type}: {event.model_dump(exclude={'tab_id', 'timestamp', 'type'})}")
        if stop_on_outcome and event.type in TERMINAL_EVENTS:
            done.set()


async def _browse(args: argparse.Namespace) -> int:
    settings = get_settings()
    headless = args.headless or settings.browser.headless
    registry = _registry(args)
    store = InMemorySettingsStore(UserSettings(
        result_index=args.rank,
        enabled_engines={key: True for key in args.engine} if args.engine else {},
    ))

    done = asyncio.Event()
    emitter = RedirectEventEmitter()

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        context = await browser.new_context(
            viewport={"width": settings.browser.viewport_width, "height": settings.browser.viewport_height},
        )
        host = RedirectHost(
            context,
            store,
            detector=EngineDetector(registry),
            emitter=emitter,
            settings=settings,
            overlay=not args.no_overlay,
        )
        await host.start()

        page = await context.new_page()
        page.on("close", lambda _: done.set())
        tab_id = host.attach(page)
        emitter.open(tab_id)
        watcher = asyncio.create_task(_watch_tab(emitter, tab_id, done, stop_on_outcome=headless))
        if args.url:
            await page.goto(args.url, timeout=settings.browser.timeout_ms)

        try:
            if headless:
                await asyncio.wait_for(done.wait(), timeout=args.wait)
            else:
                await done.wait()
        except asyncio.TimeoutError:
            print(f"(nothing happened within {args.wait}s)")
        finally:
            # Closing the host ends the tab stream
            await host.close()
            await watcher
            await browser.close()
    return 0


def cmd_browse(args: argparse.Namespace) -> int:
    return asyncio.run(_browse(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Open the Nth search result automatically.")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--engines-file", default=None, help="Alternative engine registry YAML")
    sub = parser.add_subparsers(dest="command")

    engines_parser = sub.add_parser("engines", help="List known search engines")
    engines_parser.add_argument("--json", action="store_true")
    engines_parser.set_defaults(func=cmd_engines)

    detect_parser = sub.add_parser("detect", help="Show which engine a URL belongs to")
    detect_parser.add_argument("url")
    detect_parser.set_defaults(func=cmd_detect)

    extract_parser = sub.add_parser("extract", help="Rank result links in a saved results page")
    extract_parser.add_argument("html_file")
    extract_parser.add_argument("--url", required=True, help="URL the page was saved from")
    extract_parser.add_argument("--rank", type=int, default=1, choices=range(1, 6))
    extract_parser.add_argument("--engine", default=None, help="Engine key (default: detect from --url)")
    extract_parser.set_defaults(func=cmd_extract)

    browse_parser = sub.add_parser("browse", help="Open a browser that redirects to the Nth result")
    browse_parser.add_argument("url", nargs="?")
    browse_parser.add_argument("--rank", type=int, default=1, choices=range(1, 6))
    browse_parser.add_argument("--headless", action="store_true")
    browse_parser.add_argument("--engine", action="append", default=[], help="Only enable these engines (repeatable)")
    browse_parser.add_argument("--no-overlay", action="store_true", help="Log notifications instead of drawing them")
    browse_parser.add_argument("--wait", type=float, default=15.0, help="Headless: seconds to wait for an outcome")
    browse_parser.set_defaults(func=cmd_browse)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    # Inspection commands print to stdout; keep the console for their output
    setup_logging(level=args.log_level, log_to_console=args.command == "browse")
    try:
        return args.func(args)
    except SerpNavError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
