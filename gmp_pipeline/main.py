"""CLI orchestrator for the IPO GMP render and populate jobs."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import gspread
import requests
from dateutil import parser as date_parser
from google.auth.exceptions import GoogleAuthError
from pandas.errors import ParserError

from gmp_pipeline import config
from gmp_pipeline.filters import grouping, status_filters
from gmp_pipeline.io import render_html, save_html, sheet_merge, sheets
from gmp_pipeline.scraper import csv_source, gmp_source, normalize
from gmp_pipeline.scraper.exchange_lookup import ExchangeTypeLookup
from gmp_pipeline.scraper.models import GmpRow, Status

logger = logging.getLogger(__name__)

MODES = ("render", "populate", "sheets-check")


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=config.LOG_FORMAT,
    )


def resolve_now(value: Optional[str] = None) -> datetime:
    """Reference instant for the run: ``--now`` when given, else the clock."""
    if not value:
        return status_filters.reference_now()
    try:
        parsed = date_parser.isoparse(value)
    except ValueError as exc:
        logger.error(f"Invalid --now value {value!r}: {exc}")
        raise SystemExit(2) from exc
    return status_filters.reference_now(parsed)


def render_records(
    records: Iterable[Mapping[str, object]],
    now: datetime,
    cap: Optional[int] = config.GROUP_CAP,
    show_batch: int = config.SHOW_BATCH,
    dedupe_names: bool = config.DEDUPE_NAMES,
    default_type: str = config.DEFAULT_TYPE,
) -> Tuple[Dict[Status, List[GmpRow]], str]:
    """Normalise, classify, group and render raw sheet records."""
    rows = normalize.normalize_records(records, now=now, default_type=default_type)
    groups = grouping.build_groups(rows, cap=cap, dedupe_names=dedupe_names)
    fragment = render_html.render_fragment(groups, now, show_batch=show_batch)
    return groups, fragment


def run_render_mode(args: argparse.Namespace) -> Dict[Status, List[GmpRow]]:
    source_url = args.source_url or config.SOURCE_CSV_URL
    if not source_url:
        logger.error("Missing GMP_SHEET_CSV_URL (or --source-url).")
        raise SystemExit(2)

    now = resolve_now(args.now)
    try:
        text = csv_source.fetch_csv_text(source_url)
    except requests.RequestException as exc:
        logger.error(f"Failed to fetch CSV: {exc}")
        raise SystemExit(1) from exc

    try:
        records = csv_source.parse_csv_records(text)
    except ParserError as exc:
        logger.error(f"Failed to parse CSV: {exc}")
        raise SystemExit(1) from exc

    groups, fragment = render_records(
        records,
        now,
        cap=args.cap,
        show_batch=args.show_batch,
        dedupe_names=args.dedupe,
        default_type=config.DEFAULT_TYPE,
    )
    status_counter = Counter({status.value: len(rows) for status, rows in groups.items()})
    total = sum(status_counter.values())

    if args.dry_run:
        print(fragment)
        print(f"\nDry run: rendered {total} rows (nothing written)", file=sys.stderr)
        print("Status distribution:", status_counter, file=sys.stderr)
        return groups

    fragment_file = Path(args.fragment) if args.fragment else None
    dest = save_html.publish(
        fragment,
        dest_file=Path(args.dest),
        fragment_file=fragment_file,
        backup_dir=Path(args.backup_dir),
        keep=args.backup_keep,
        now=now,
    )
    print(f"Rendered {total} rows into {dest}")
    if fragment_file is not None:
        print(f"Fragment written to {fragment_file}")
    print("Status distribution:", status_counter)
    return groups


def _require_sheet_config() -> None:
    missing = []
    if not (config.SERVICE_ACCOUNT_JSON or config.SERVICE_ACCOUNT_JSON_B64):
        missing.append("GOOGLE_SERVICE_ACCOUNT_JSON (or GOOGLE_SERVICE_ACCOUNT_JSON_B64)")
    if not config.SHEET_ID:
        missing.append("GOOGLE_SHEET_ID")
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        raise SystemExit(2)


def _open_worksheet() -> gspread.Worksheet:
    try:
        client = sheets.authorize()
    except ValueError as exc:
        logger.error(f"Invalid service-account credentials: {exc}")
        raise SystemExit(2) from exc
    return sheets.open_worksheet(client)


def run_populate_mode(args: argparse.Namespace) -> None:
    urls = args.source_urls or config.SOURCE_URLS
    if not urls:
        logger.error("Missing GMP_SOURCE_URLS (or --source-url).")
        raise SystemExit(2)
    _require_sheet_config()

    scraped = gmp_source.scrape_first_available(urls, use_browser=args.browser)
    if not scraped:
        raise SystemExit("No data parsed from any source.")
    print(f"Scraped {len(scraped)} rows")

    try:
        ws = _open_worksheet()
        values = sheets.read_values(ws)
        if not values:
            raise SystemExit("Sheet is empty. Ensure headers exist in row 1.")

        updated, appended = sheet_merge.merge_scraped_rows(values, scraped)
        filled = 0
        if args.fill_type or config.DEFAULT_TYPE:
            lookup = ExchangeTypeLookup().lookup if args.fill_type else None
            filled = sheet_merge.fill_types(values, lookup, config.DEFAULT_TYPE)

        if args.dry_run:
            print(f"Dry run: {updated} updated, {appended} appended, {filled} types filled (nothing written)")
            return
        sheets.write_values(ws, values)
    except (gspread.exceptions.GSpreadException, GoogleAuthError) as exc:
        logger.error(f"Google Sheets request failed: {exc}")
        raise SystemExit(1) from exc

    print("\nSheet Update Summary:")
    print(f"  Updated: {updated}")
    print(f"  Appended: {appended}")
    print(f"  Types filled: {filled}")


def run_sheets_check_mode(args: argparse.Namespace) -> None:
    """Authorise against the sheet and print its header row."""
    _require_sheet_config()
    try:
        ws = _open_worksheet()
        values = sheets.read_values(ws)
    except (gspread.exceptions.GSpreadException, GoogleAuthError) as exc:
        logger.error(f"Google Sheets request failed: {exc}")
        raise SystemExit(1) from exc

    print(f"Worksheet: {ws.title}")
    print(f"Rows: {len(values)}")
    print("Header:", values[0] if values else "(empty)")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Render the sheet into index.html
  python -m gmp_pipeline.main --mode render --source-url https://docs.google.com/.../pub?output=csv

  # Deterministic preview on stdout
  python -m gmp_pipeline.main --mode render --now 2025-11-16T12:00:00+05:30 --dry-run

  # Scrape GMP pages into the Google Sheet
  python -m gmp_pipeline.main --mode populate --source-url https://example.com/ipo-gmp
        """,
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="render",
        help="Job to run.",
    )
    parser.add_argument(
        "--source-url",
        dest="source_urls",
        action="append",
        default=None,
        help="CSV export URL (render) or GMP page URL (populate, repeatable).",
    )
    parser.add_argument(
        "--dest",
        default=str(config.DEST_FILE),
        help=f"Page to inject the GMP block into (default: {config.DEST_FILE})",
    )
    parser.add_argument(
        "--fragment",
        default=str(config.FRAGMENT_FILE),
        help="Standalone fragment file; pass an empty string to skip it.",
    )
    parser.add_argument(
        "--backup-dir",
        default=str(config.BACKUP_DIR),
        help=f"Directory for timestamped backups (default: {config.BACKUP_DIR})",
    )
    parser.add_argument(
        "--backup-keep",
        type=int,
        default=config.BACKUP_KEEP,
        help=f"Backups kept per file (default: {config.BACKUP_KEEP})",
    )
    parser.add_argument(
        "--cap",
        type=int,
        default=config.GROUP_CAP,
        help=f"Maximum rows per status group, negative for no cap (default: {config.GROUP_CAP})",
    )
    parser.add_argument(
        "--show-batch",
        type=int,
        default=config.SHOW_BATCH,
        help=f"Cards visible before 'Load more' (default: {config.SHOW_BATCH})",
    )
    parser.add_argument(
        "--dedupe",
        action="store_true",
        default=config.DEDUPE_NAMES,
        help="Drop rows whose names match an earlier row.",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="ISO-8601 reference instant; naive values are read as IST.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute everything but write nothing.",
    )
    parser.add_argument(
        "--browser",
        action="store_true",
        help="Render populate sources in headless Chromium.",
    )
    parser.add_argument(
        "--fill-type",
        action="store_true",
        default=config.FILL_TYPE_FROM_EXCHANGES,
        help="Fill empty type cells from the NSE/BSE upcoming-issue pages.",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help=f"Logging level (default: {config.LOG_LEVEL})",
    )
    args = parser.parse_args(argv)
    args.source_url = args.source_urls[0] if args.source_urls else None
    return args


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.mode == "render":
        run_render_mode(args)
        return
    if args.mode == "populate":
        run_populate_mode(args)
        return
    if args.mode == "sheets-check":
        run_sheets_check_mode(args)
        return
    raise SystemExit(f"Unsupported mode: {args.mode}")


if __name__ == "__main__":
    main()
