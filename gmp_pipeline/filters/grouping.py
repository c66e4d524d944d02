"""Group classified rows by status, sort each group by GMP and cap its size."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from gmp_pipeline.io import dedupe
from gmp_pipeline.scraper.models import STATUS_ORDER, GmpRow, Status

logger = logging.getLogger(__name__)


def gmp_sort_key(row: GmpRow) -> Tuple[bool, float, str, str]:
    """Highest GMP first, rows without a number last, then by name."""
    has_value = row.gmp_numeric is not None
    return (
        not has_value,
        -row.gmp_numeric if has_value else 0.0,
        row.name.lower(),
        row.name,
    )


def group_by_status(rows: Iterable[GmpRow]) -> Dict[Status, List[GmpRow]]:
    groups: Dict[Status, List[GmpRow]] = {status: [] for status in STATUS_ORDER}
    for row in rows:
        groups[row.status].append(row)
    return groups


def cap_group(rows: List[GmpRow], cap: Optional[int]) -> List[GmpRow]:
    if cap is None or cap < 0:
        return list(rows)
    return rows[:cap]


def build_groups(
    rows: Iterable[GmpRow],
    cap: Optional[int] = None,
    dedupe_names: bool = False,
) -> Dict[Status, List[GmpRow]]:
    """Return ``{active, upcoming, closed}`` groups, sorted and capped.

    With ``dedupe_names`` the first row of every set of matching names (see
    ``dedupe.names_match``) is kept before grouping.
    """
    rows = list(rows)
    if dedupe_names:
        before = len(rows)
        rows = dedupe.dedupe_by_name(rows)
        if len(rows) != before:
            logger.info("Removed %d duplicate IPO name(s)", before - len(rows))

    groups = group_by_status(rows)
    for status, members in groups.items():
        members.sort(key=gmp_sort_key)
        capped = cap_group(members, cap)
        if len(capped) < len(members):
            logger.info(
                "Capped %s group to %d of %d rows", status.value, len(capped), len(members)
            )
        groups[status] = capped
    return groups
