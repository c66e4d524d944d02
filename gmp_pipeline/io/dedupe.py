"""Utilities for deduplicating and matching IPO rows by name."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from gmp_pipeline.scraper.models import GmpRow


def dedupe_by_key(
    rows: Iterable[dict],
    keys: Sequence[str],
) -> List[dict]:
    """Deduplicate rows by the composite key given by `keys`."""
    seen: set[Tuple] = set()
    unique_rows: List[dict] = []
    for row in rows:
        key = tuple(row.get(k) for k in keys)
        if key in seen:
            continue
        seen.add(key)
        unique_rows.append(row)
    return unique_rows


def names_match(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive exact or substring match of two IPO names."""
    a = (left or "").strip().lower()
    b = (right or "").strip().lower()
    if not a or not b:
        return False
    return a == b or a in b or b in a


def dedupe_by_name(rows: Iterable[GmpRow]) -> List[GmpRow]:
    """Keep the first row for every group of matching names."""
    unique_rows: List[GmpRow] = []
    for row in rows:
        if any(names_match(row.name, kept.name) for kept in unique_rows):
            continue
        unique_rows.append(row)
    return unique_rows


def find_matching_row_index(
    sheet_rows: Sequence[Sequence[object]],
    name: str,
    column: int = 0,
) -> int:
    """Return the index of the first data row whose `column` cell matches `name`.

    Row 0 is the header row. Returns -1 when nothing matches.
    """
    for index in range(1, len(sheet_rows)):
        row = sheet_rows[index]
        cell = str(row[column]) if column < len(row) else ""
        if names_match(cell, name):
            return index
    return -1
