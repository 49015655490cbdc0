"""Command-line entry for calendarapp_lite.

Scripting/debugging front end over the ICS engine: parse or import a local
``.ics`` file, export a JSON store back to ``.ics``, fetch a feed, or sync
the subscriptions named in the config file.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import re
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional

from . import _init_logging
from .config_loader import Config, load_config
from .exceptions import CalendarAppError
from .ics_service import CalendarICSService
from .json_store import JsonCalendarStore, dump_occurrence
from .lite_fetcher import LiteICSFetcher
from .lite_logging import configure_lite_logging
from .lite_models import ICSParseResult, Subscription
from .lite_parser import LiteICSParser

logger = logging.getLogger(__name__)

DEFAULT_STORE = "calendarapp_store.json"


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendarapp CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarapp",
        description="CalendarApp Lite - iCalendar import/export tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calendarapp parse feed.ics                       # Summarize a file
  calendarapp parse feed.ics --json                # Dump parsed occurrences
  calendarapp import feed.ics --store events.json  # Upsert into a JSON store
  calendarapp export --store events.json --out-dir exports/
  calendarapp fetch webcal://example.com/cal.ics   # Download and parse a feed
  calendarapp sync --store events.json             # Sync configured subscriptions
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file")
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (default: from config, or CALENDARAPP_LOG_LEVEL)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse an .ics file and print its occurrences")
    p_parse.add_argument("file", help="Path to the .ics file")
    p_parse.add_argument("--json", action="store_true", help="Print occurrences as JSON")

    p_import = sub.add_parser("import", help="Import an .ics file into a JSON store")
    p_import.add_argument("file", help="Path to the .ics file")
    p_import.add_argument("--store", default=DEFAULT_STORE, help="JSON store path")

    p_export = sub.add_parser("export", help="Export stored events to an .ics file")
    p_export.add_argument("--store", default=DEFAULT_STORE, help="JSON store path")
    p_export.add_argument("--out-dir", default=".", help="Directory for the exported file")
    p_export.add_argument("--event-id", help="Export only this event")
    p_export.add_argument("--fold", action="store_true", help="Fold lines longer than 75 octets")

    p_fetch = sub.add_parser("fetch", help="Download a feed and print its occurrences")
    p_fetch.add_argument("source", help="Feed URL or the name of a configured subscription")
    p_fetch.add_argument("--json", action="store_true", help="Print occurrences as JSON")
    p_fetch.add_argument("--save", metavar="PATH", help="Also write the raw feed to PATH")

    p_sync = sub.add_parser("sync", help="Sync configured subscriptions into a JSON store")
    p_sync.add_argument("--store", default=DEFAULT_STORE, help="JSON store path")

    return parser


def _print_result(result: ICSParseResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps([dump_occurrence(e) for e in result.events], ensure_ascii=False, indent=2))
        return

    name = result.calendar_name or result.source_url or "calendar"
    print(
        f"{name}: {result.event_count} occurrences from {result.total_components} VEVENTs "
        f"({result.recurring_event_count} recurring, {result.override_count} overrides, "
        f"{result.skipped_components} skipped)"
    )
    for warning in result.warnings:
        print(f"  warning: {warning}")
    for event in sorted(result.events, key=lambda e: e.id):
        if event.kind == "all_day":
            span = f"{event.start_date.isoformat()} .. {event.end_date.isoformat()}"
        else:
            span = f"{event.start_at.isoformat()} .. {event.end_at.isoformat()}"
        print(f"  {span}  {event.title}  [{event.id}]")


def _subscription_id(name: str) -> str:
    slug = re.sub(r"\W+", "-", name.strip().lower()).strip("-")
    return slug or "subscription"


async def _cmd_parse(args: argparse.Namespace, cfg: Config) -> int:
    path = Path(args.file)
    content = await asyncio.to_thread(path.read_text, encoding="utf-8-sig")
    result = LiteICSParser(cfg).parse_ics_content(content, source_url=str(path))
    _print_result(result, args.json)
    return 0 if result.success else 1


async def _cmd_import(args: argparse.Namespace, cfg: Config) -> int:
    store = JsonCalendarStore(args.store)
    service = CalendarICSService(events=store, settings=cfg)
    count = await service.import_ics_file(args.file)
    print(f"Imported {count} events into {store.path}")
    return 0


async def _cmd_export(args: argparse.Namespace, cfg: Config) -> int:
    store = JsonCalendarStore(args.store)
    out_dir = Path(args.out_dir)

    async def write_file(file_name: str, content: str) -> None:
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / file_name
        # newline="" keeps the CRLF line endings intact
        await asyncio.to_thread(target.write_text, content, encoding="utf-8", newline="")
        print(f"Wrote {target}")

    service = CalendarICSService(events=store, sink=write_file, settings=cfg, fold=args.fold)
    if args.event_id:
        event = await store.get_event(args.event_id)
        if event is None:
            print(f"No event with id {args.event_id!r} in {store.path}", file=sys.stderr)
            return 1
        await service.export_event(event)
    else:
        await service.export_all_events()
    return 0


async def _cmd_fetch(args: argparse.Namespace, cfg: Config) -> int:
    configured = cfg.find_subscription(args.source)
    url = configured.url if configured else args.source

    async with LiteICSFetcher(cfg) as fetcher:
        content = await fetcher.fetch_text(url)

    if args.save:
        await asyncio.to_thread(Path(args.save).write_text, content, encoding="utf-8", newline="")

    result = LiteICSParser(cfg).parse_ics_content(content, source_url=url)
    _print_result(result, args.json)
    return 0


async def _cmd_sync(args: argparse.Namespace, cfg: Config) -> int:
    if not cfg.subscriptions:
        print("No subscriptions configured", file=sys.stderr)
        return 1

    store = JsonCalendarStore(args.store)
    for entry in cfg.subscriptions:
        sub_id = _subscription_id(entry.name)
        existing = await store.get_subscription(sub_id)
        if existing is None or existing.url != entry.url:
            await store.add_subscription(
                Subscription(id=sub_id, name=entry.name, url=entry.url, color=entry.color)
            )

    async with LiteICSFetcher(cfg) as fetcher:
        service = CalendarICSService(subscriptions=store, settings=cfg, fetcher=fetcher)
        summary = await service.sync_all_subscriptions()

    print(f"Synced {summary.success} subscriptions, {summary.failed} failed")
    for sub_id, error in summary.errors.items():
        print(f"  {sub_id}: {error}", file=sys.stderr)
    return 0 if summary.failed == 0 else 1


COMMANDS: dict[str, Any] = {
    "parse": _cmd_parse,
    "import": _cmd_import,
    "export": _cmd_export,
    "fetch": _cmd_fetch,
    "sync": _cmd_sync,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the calendarapp CLI and return the process exit code."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging(args.log_level or os.environ.get("CALENDARAPP_LOG_LEVEL"))

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"Error: could not load config: {exc}", file=sys.stderr)
        return 2

    configure_lite_logging(debug_mode=(args.log_level or cfg.log_level).upper() == "DEBUG")
    if args.log_level is None and not os.environ.get("CALENDARAPP_LOG_LEVEL"):
        logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))

    try:
        return asyncio.run(COMMANDS[args.command](args, cfg))
    except CalendarAppError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
