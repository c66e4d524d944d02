"""Shared data models for the GMP pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class Status(str, Enum):
    """Lifecycle status of an IPO listing."""

    ACTIVE = "active"
    UPCOMING = "upcoming"
    CLOSED = "closed"


# Render order of the status groups.
STATUS_ORDER = (Status.ACTIVE, Status.UPCOMING, Status.CLOSED)


@dataclass(slots=True)
class DateWindow:
    """Parsed endpoints of a free-text date range; either may be unknown."""

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_unknown(self) -> bool:
        return self.start is None and self.end is None


@dataclass(slots=True)
class GmpRow:
    """Normalised representation of one spreadsheet row."""

    name: str
    gmp_raw: str = ""
    gmp_numeric: Optional[float] = None
    price_text: str = ""
    gain_text: str = ""
    type_text: str = ""
    date_text: str = ""
    explicit_status: Optional[str] = None
    status: Status = Status.UPCOMING
