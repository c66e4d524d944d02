"""Status classification for IPO rows: explicit labels first, then date windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import Iterable, List, Optional

from gmp_pipeline import config
from gmp_pipeline.scraper import parse_utils
from gmp_pipeline.scraper.models import Status

logger = logging.getLogger(__name__)

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)


@dataclass
class StatusBucket:
    status: Status
    keywords: List[str]


# Checked in order, so "upcoming" wins over a label that also says "open".
DEFAULT_BUCKETS = [
    StatusBucket(Status.UPCOMING, ["upcom"]),
    StatusBucket(Status.CLOSED, ["clos", "list"]),
    StatusBucket(Status.ACTIVE, ["activ", "open"]),
]


def status_from_label(
    label: Optional[str],
    buckets: Iterable[StatusBucket] = DEFAULT_BUCKETS,
) -> Optional[Status]:
    """Map a free-text status label to a Status, or None when unrecognised."""
    label_lower = (label or "").strip().lower()
    if not label_lower:
        return None
    for bucket in buckets:
        if any(keyword in label_lower for keyword in bucket.keywords):
            return bucket.status
    return None


def reference_now(now: Optional[datetime] = None) -> datetime:
    """Return ``now`` as an aware datetime in the target timezone.

    Naive values are taken as wall-clock time in the target timezone.
    """
    if now is None:
        return datetime.now(config.TARGET_TZ)
    if now.tzinfo is None:
        return now.replace(tzinfo=config.TARGET_TZ)
    return now.astimezone(config.TARGET_TZ)


def classify_status(
    date_text: Optional[str],
    explicit_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Status:
    """Classify a row as upcoming, active or closed.

    A recognised explicit status label overrides the dates. Otherwise the
    window ``[start 00:00:00, end 23:59:59]`` in the target timezone is
    compared with ``now``; both ends are inclusive. Rows whose dates cannot
    be parsed are ``upcoming``.
    """
    labelled = status_from_label(explicit_status)
    if labelled is not None:
        return labelled

    current = reference_now(now).replace(microsecond=0)
    window = parse_utils.parse_date_range(date_text, today=current.date())
    if window.is_unknown:
        return Status.UPCOMING

    start_day = window.start or window.end
    end_day = window.end or window.start
    start = datetime.combine(start_day, DAY_START, tzinfo=config.TARGET_TZ)
    end = datetime.combine(end_day, DAY_END, tzinfo=config.TARGET_TZ)

    if current < start:
        return Status.UPCOMING
    if current <= end:
        return Status.ACTIVE
    return Status.CLOSED
