"""Merge scraped GMP rows into the spreadsheet's value grid."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from gmp_pipeline import config
from gmp_pipeline.io import dedupe
from gmp_pipeline.scraper import parse_utils

logger = logging.getLogger(__name__)

NAME_KEYS = ("ipo", "iponame", "name", "company", "companyname")
NAME_KEY_HINTS = ("ipo", "name", "company")

# Canonical sheet column -> scraped keys to read it from, in priority order.
SCRAPED_ALIASES: Dict[str, Tuple[str, ...]] = {
    "gmp": ("gmp", "gmpvalue", "gmprs", "premium", "gmpraw"),
    "kostak": ("kostak", "kost", "ipoprice", "price"),
    "subjecttosauda": ("subjecttosauda", "sauda", "subject", "listinggain"),
    "date": ("date", "daterange", "listingdate", "dates"),
}
UPDATED_COLUMNS = tuple(SCRAPED_ALIASES)


def scraped_name(row: Mapping[str, str]) -> str:
    keys = list(row)
    name_key = next((k for k in NAME_KEYS if k in row), None)
    if name_key is None:
        name_key = next((k for k in keys if any(hint in k for hint in NAME_KEY_HINTS)), None)
    if name_key is None and keys:
        name_key = keys[0]
    return (row.get(name_key) or "").strip() if name_key else ""


def canonical_scraped_row(row: Mapping[str, str]) -> Dict[str, str]:
    """Reduce a scraped row to the ipo/gmp/kostak/subjecttosauda/date columns."""
    out = {"ipo": scraped_name(row)}
    for column, aliases in SCRAPED_ALIASES.items():
        out[column] = next((str(row[a]).strip() for a in aliases if row.get(a)), "")
    return out


def ensure_header(values: List[List[str]], columns: Sequence[str] = config.SHEET_COLUMNS) -> Dict[str, int]:
    """Append missing columns to the header row; return normalised header -> index."""
    if not values:
        raise ValueError("Sheet is empty. Ensure headers exist in row 1.")
    header = values[0]
    header_map: Dict[str, int] = {}
    for i, h in enumerate(header):
        header_map.setdefault(parse_utils.normalize_header(h), i)
    for column in columns:
        if column not in header_map:
            header_map[column] = len(header)
            header.append(column)
    return header_map


def _set_cell(row: List[str], index: int, value: str) -> None:
    if len(row) <= index:
        row.extend([""] * (index + 1 - len(row)))
    row[index] = value


def _get_cell(row: Sequence[str], index: int) -> str:
    return str(row[index]) if index < len(row) else ""


def merge_scraped_rows(values: List[List[str]], scraped: Sequence[Mapping[str, str]]) -> Tuple[int, int]:
    """Update matching sheet rows in place and append new ones.

    A scraped value only overwrites a cell when it is non-empty. Returns
    ``(updated, appended)`` counts.
    """
    header_map = ensure_header(values)
    width = len(values[0])
    name_index = header_map["ipo"]
    canonical = dedupe.dedupe_by_key(
        (canonical_scraped_row(row) for row in scraped), keys=("ipo",)
    )

    updated = appended = 0
    for item in canonical:
        if not item["ipo"]:
            continue
        match = dedupe.find_matching_row_index(values, item["ipo"], column=name_index)
        if match >= 1:
            row = values[match]
            for column in UPDATED_COLUMNS:
                _set_cell(row, header_map[column], item[column] or _get_cell(row, header_map[column]))
            updated += 1
        else:
            row = [""] * width
            row[name_index] = item["ipo"]
            for column in UPDATED_COLUMNS:
                row[header_map[column]] = item[column]
            values.append(row)
            appended += 1
    logger.info(f"Merged scraped rows: updated={updated}, appended={appended}")
    return updated, appended


def fill_types(
    values: List[List[str]],
    lookup: Optional[Callable[[str], Optional[str]]] = None,
    default_type: str = "",
) -> int:
    """Fill empty ``type`` cells from ``lookup`` or ``default_type``; return count filled."""
    header_map = ensure_header(values)
    type_index = header_map["type"]
    name_index = header_map["ipo"]
    filled = 0
    for row in values[1:]:
        if _get_cell(row, type_index).strip():
            continue
        name = _get_cell(row, name_index).strip()
        if not name:
            continue
        value = lookup(name) if lookup is not None else None
        value = value or default_type
        if value:
            _set_cell(row, type_index, value)
            filled += 1
    return filled
