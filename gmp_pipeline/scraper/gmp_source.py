"""Scrape GMP rows from third-party HTML or JSON pages.

Strategy for HTML pages:
1. First table whose text mentions gmp / kostak / sauda / grey
2. Table following a "GMP" / "grey market premium" heading
3. Largest table with more than one row
4. Fallback: div/section blocks whose children read as line-separated rows

Rows come back as dicts keyed by normalised headers (``parse_utils.normalize_header``).
Tables with unrecognised headers are read positionally as
IPO, GMP, Kostak, SubjectToSauda, Date.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError

from gmp_pipeline import config
from gmp_pipeline.scraper import browser_driver, parse_utils

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": config.REQUEST_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
}

TABLE_KEYWORDS = ("gmp", "kostak", "sauda", "grey")
BLOCK_KEYWORDS = ("gmp", "kostak", "sauda", "ipo")
HEADER_KEYWORDS = ("gmp", "ipo", "name", "company", "kostak", "sauda", "subject", "date", "status", "type")
POSITIONAL_FIELDS = ("ipo", "gmp", "kostak", "subjecttosauda", "date")
JSON_LIST_KEYS = ("gmp_list", "data", "rows", "items")

_GMP_HEADING = re.compile(r"gmp|grey market premium|live ipo gmp", re.I)


class SourceParseError(Exception):
    """Raised when a source page holds nothing that looks like GMP rows."""


def fetch_source(url: str, use_browser: bool = False) -> str:
    """Return the page body, rendered in headless Chromium when requested."""
    if use_browser:
        return asyncio.run(browser_driver.fetch_rendered_html(url))
    logger.info(f"Fetching GMP source: {url}")
    response = requests.get(url, headers=DEFAULT_HEADERS, timeout=config.REQUEST_TIMEOUT)
    response.raise_for_status()
    return response.text


def parse_source(text: str) -> List[Dict[str, str]]:
    """Parse a JSON payload or an HTML page into normalised rows."""
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            logger.debug("Source looked like JSON but did not decode; trying HTML")
        else:
            return parse_json_payload(payload)
    return parse_html(text)


def _normalize_row(row: Dict[str, object]) -> Dict[str, str]:
    return {
        parse_utils.normalize_header(key): parse_utils.clean_text(None if value is None else str(value)) or ""
        for key, value in row.items()
    }


def parse_json_payload(payload: object) -> List[Dict[str, str]]:
    items = payload
    if isinstance(payload, dict):
        items = next(
            (payload[key] for key in JSON_LIST_KEYS if isinstance(payload.get(key), list)),
            None,
        )
    if not isinstance(items, list):
        raise SourceParseError("JSON payload does not contain a list of rows.")
    rows = [_normalize_row(item) for item in items if isinstance(item, dict)]
    rows = [row for row in rows if any(row.values())]
    if not rows:
        raise SourceParseError("JSON payload contains no rows.")
    logger.info(f"Parsed {len(rows)} row(s) from JSON payload")
    return rows


def parse_html(html: str) -> List[Dict[str, str]]:
    soup = BeautifulSoup(html, "lxml")
    table = select_table(soup)
    if table is None:
        rows = parse_blocks(soup)
        if rows:
            logger.info(f"Parsed {len(rows)} row(s) using block fallback")
            return rows
        raise SourceParseError("No table or list-like data found on GMP source page.")

    rows = parse_table(table)
    if not rows:
        raise SourceParseError("No data rows parsed from selected table.")
    logger.info(f"Parsed {len(rows)} row(s) from table")
    return rows


def select_table(soup: BeautifulSoup) -> Optional[Tag]:
    tables = soup.find_all("table")
    for table in tables:
        text = table.get_text(" ", strip=True).lower()
        if any(keyword in text for keyword in TABLE_KEYWORDS):
            return table

    for heading in soup.find_all(["h1", "h2", "h3"]):
        if _GMP_HEADING.search(heading.get_text(" ", strip=True)):
            following = heading.find_next("table")
            if following is not None:
                return following
            break

    best = max(tables, key=lambda t: len(t.find_all("tr")), default=None)
    if best is not None and len(best.find_all("tr")) > 1:
        return best
    return None


def _cell_text(cell: Tag) -> str:
    return parse_utils.clean_text(cell.get_text(" ", strip=True)) or ""


def _positional_row(values: List[str]) -> Dict[str, str]:
    return {field: values[i] if i < len(values) else "" for i, field in enumerate(POSITIONAL_FIELDS)}


def parse_table(table: Tag) -> List[Dict[str, str]]:
    trs = table.find_all("tr")
    if not trs:
        return []
    header_cells = trs[0].find_all("th") or trs[0].find_all("td")
    headers = [parse_utils.normalize_header(_cell_text(cell)) for cell in header_cells]
    positional = not any(keyword in header for header in headers for keyword in HEADER_KEYWORDS)
    if positional:
        logger.info("Header row not recognized; using positional mapping: IPO,GMP,Kostak,SubjectToSauda,Date.")

    rows: List[Dict[str, str]] = []
    for tr in trs[1:]:
        cells = tr.find_all("td")
        if not cells:
            continue
        values = [_cell_text(cell) for cell in cells]
        if positional:
            rows.append(_positional_row(values))
            continue
        rows.append(
            {
                (headers[i] if i < len(headers) and headers[i] else f"col{i}"): value
                for i, value in enumerate(values)
            }
        )
    return rows


def parse_blocks(soup: BeautifulSoup) -> List[Dict[str, str]]:
    """Read div/section children as rows of line-separated values."""
    for block in soup.find_all(["div", "section"]):
        text = block.get_text(" ", strip=True).lower()
        if not any(keyword in text for keyword in BLOCK_KEYWORDS):
            continue
        rows: List[Dict[str, str]] = []
        for child in block.find_all(recursive=False):
            parts = [parse_utils.clean_text(line) for line in child.get_text("\n").split("\n")]
            parts = [part for part in parts if part]
            if len(parts) >= 2:
                rows.append(_positional_row(parts))
        if rows:
            return rows
    return []


def scrape_first_available(urls: List[str], use_browser: bool = False) -> List[Dict[str, str]]:
    """Try each source in order and return rows from the first that parses."""
    for url in urls:
        try:
            rows = parse_source(fetch_source(url, use_browser=use_browser))
        except (requests.RequestException, PlaywrightError, SourceParseError) as exc:
            logger.warning(f"Source failed: {url} ({exc})")
            continue
        if rows:
            logger.info(f"Succeeded parsing with {url}")
            return rows
    return []
