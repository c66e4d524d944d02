"""Parsing helpers for GMP values and free-text IPO date ranges."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Callable, NamedTuple, Optional, Tuple

from gmp_pipeline import config
from gmp_pipeline.scraper.models import DateWindow

logger = logging.getLogger(__name__)

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def clean_text(value: Optional[str]) -> Optional[str]:
    """Normalize whitespace and strip strings."""
    if value is None:
        return None
    return " ".join(str(value).split()).strip() or None


def normalize_header(value: Optional[str]) -> str:
    """Lowercase a column header and drop everything but letters and digits."""
    return re.sub(r"[^a-z0-9]", "", str(value or "").strip().lower())


def slugify(name: Optional[str]) -> str:
    slug = re.sub(r"\s+", "-", str(name or "").lower())
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    return re.sub(r"-+", "-", slug).strip("-")


# ---------------------------------------------------------------------------
# GMP values
# ---------------------------------------------------------------------------

_CURRENCY = re.compile(r"₹|\$|€|£|\brs\.?|\binr\b", re.I)
_GLYPHS = re.compile(r"[▲▼△▽↑↓⬆⬇%]")
_NUMBER = re.compile(r"([+-]?)\s*(\d+(?:\.\d+)?|\.\d+)")


def parse_gmp_number(raw: Optional[str]) -> Optional[float]:
    """Extract the signed premium from a GMP cell, or None when there is none.

    Currency symbols, thousands separators, percent signs and arrow glyphs
    are ignored, so ``"₹1,234"`` gives ``1234.0`` while ``"—"``, ``""`` and a
    bare ``"+"`` give ``None``.
    """
    if raw is None:
        return None
    text = str(raw).replace("\u2212", "-")
    text = _CURRENCY.sub("", text)
    text = _GLYPHS.sub("", text).replace(",", "")
    match = _NUMBER.search(text)
    if match is None:
        return None
    return float(match.group(1) + match.group(2))


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def gmp_label_and_class(raw: Optional[str]) -> Tuple[str, str]:
    """Return the display label and CSS class for a GMP cell."""
    value = parse_gmp_number(raw)
    if value is None:
        return (clean_text(raw) or "", "gmp-neutral")
    if value > 0:
        return (f"▲ {format_number(value)}", "gmp-up")
    if value < 0:
        return (f"▼ {format_number(abs(value))}", "gmp-down")
    return (format_number(value), "gmp-neutral")


# ---------------------------------------------------------------------------
# Date ranges
# ---------------------------------------------------------------------------

_UNKNOWN_MARKERS = re.compile(
    r"\b(?:tba|tbd|to be announced|not announced|coming soon|n/a|na|nil)\b",
    re.I,
)
_PARENTHESISED = re.compile(r"\([^)]*\)")
_DASH_CHARS = re.compile(r"[\u2010-\u2015\u2212\ufe58\ufe63\uff0d]")
_RANGE_WORDS = re.compile(r"\s+(?:to|till|until|through)\s+", re.I)
_ORDINAL = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\b", re.I)
_WEEKDAY = re.compile(
    r"\b(?:mon|tues?|wed(?:nes)?|thu(?:rs?)?|fri|sat(?:ur)?|sun)(?:day)?\b\.?",
    re.I,
)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})[-/.](\d{1,2})[-/.](\d{4}|\d{2})\b")
_TRAILING_YEAR = re.compile(r"^\d{4}$")
# "14-nov" and "14-nov-2025" are single dates, not ranges.
_DAY_DASH_MONTH = re.compile(r"\b(\d{1,2})-([a-z]{3,})\b(?:-(\d{4})\b)?")

_POINT_NUMERIC = re.compile(r"^(\d{1,2})(?:[/.](\d{1,2})(?:[/.](\d{4}|\d{2}))?)?$")
_POINT_DAY_MONTH = re.compile(r"^(\d{1,2}) ([a-z]{3,})\.?(?: (\d{4}))?$")
_POINT_MONTH_DAY = re.compile(r"^([a-z]{3,})\.? (\d{1,2})(?: (\d{4}))?$")


class _Point(NamedTuple):
    day: int
    month: Optional[int]
    year: Optional[int]


def _join_day_month(match: re.Match) -> str:
    # "nov 14-nov 18" is a range; only a bare "14-nov" is one date.
    if re.search(r"[a-z]\.? $", match.string[: match.start()]):
        return match.group(0)
    return " ".join(group for group in match.groups() if group)


def _normalize_date_text(text: str) -> str:
    value = _PARENTHESISED.sub(" ", text)
    value = _DASH_CHARS.sub("-", value)
    value = _RANGE_WORDS.sub("-", value)
    value = _ORDINAL.sub(r"\1", value)
    value = _WEEKDAY.sub(" ", value)
    value = value.replace(",", " ").replace("'", " ")
    value = _NUMERIC_DATE.sub(lambda m: "/".join(m.groups()), value)
    value = re.sub(r"\s*-\s*", "-", value)
    value = " ".join(value.split()).lower()
    value = _DAY_DASH_MONTH.sub(_join_day_month, value)
    return value.strip(" -")


def _is_unknown(text: str) -> bool:
    stripped = text.strip()
    if not stripped or not re.search(r"[0-9a-z]", stripped, re.I):
        return True
    return bool(_UNKNOWN_MARKERS.search(stripped))


def _month_from_word(word: str) -> Optional[int]:
    return MONTHS.get(word[:3]) if len(word) >= 3 else None


def _year_from_text(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    year = int(value)
    return year + 2000 if year < 100 else year


def _parse_point(token: str) -> Optional[_Point]:
    token = token.strip()
    match = _POINT_NUMERIC.match(token)
    if match:
        day, month, year = match.groups()
        return _Point(int(day), int(month) if month else None, _year_from_text(year))
    match = _POINT_DAY_MONTH.match(token)
    if match:
        month = _month_from_word(match.group(2))
        if month is None:
            return None
        return _Point(int(match.group(1)), month, _year_from_text(match.group(3)))
    match = _POINT_MONTH_DAY.match(token)
    if match:
        month = _month_from_word(match.group(1))
        if month is None:
            return None
        return _Point(int(match.group(2)), month, _year_from_text(match.group(3)))
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _split_year(text: str) -> Tuple[str, Optional[int]]:
    """Detach a trailing bare year that applies to the whole range."""
    tokens = text.split(" ")
    if len(tokens) > 1 and _TRAILING_YEAR.match(tokens[-1]):
        return " ".join(tokens[:-1]), int(tokens[-1])
    return text, None


def _previous_month(value: date, day: int) -> Optional[date]:
    if value.month == 1:
        return _safe_date(value.year - 1, 12, day)
    return _safe_date(value.year, value.month - 1, day)


def _match_year_only(text: str, today: date) -> Optional[DateWindow]:
    if not _TRAILING_YEAR.match(text):
        return None
    year = int(text)
    return DateWindow(date(year, 1, 1), date(year, 12, 31))


def _match_numeric_day_range(text: str, today: date) -> Optional[DateWindow]:
    """``14-18`` is a day range in the current month, ``14-11`` is 14 November."""
    body, year = _split_year(text)
    match = re.match(r"^(\d{1,2})-(\d{1,2})$", body)
    if not match:
        return None
    first, second = int(match.group(1)), int(match.group(2))
    year = year or today.year
    if first <= second:
        start = _safe_date(year, today.month, first)
        end = _safe_date(year, today.month, second)
    elif 1 <= second <= 12:
        start = end = _safe_date(year, second, first)
    else:
        return None
    if start is None and end is None:
        return None
    return DateWindow(start, end or start)


def _match_range(text: str, today: date) -> Optional[DateWindow]:
    body, year_override = _split_year(text)
    if body.count("-") != 1:
        return None
    left_text, right_text = body.split("-")
    left = _parse_point(left_text)
    right = _parse_point(right_text)
    if left is None and right is None:
        return None

    end = None
    # An end that is present but unreadable lends the start no month.
    end_month = today.month if not right_text.strip() else None
    end_year = year_override or (left.year if left and left.year else today.year)
    if right is not None:
        end_month = right.month or (left.month if left and left.month else today.month)
        end_year = right.year or end_year
        end = _safe_date(end_year, end_month, right.day)

    start = None
    start_month = (left.month or end_month) if left is not None else None
    if start_month is not None:
        start = _safe_date(left.year or end_year, start_month, left.day)
        if start and end and start > end:
            # "28-2 Dec" starts in November, "30 Dec-2 Jan" in the previous
            # year, "30 Dec 2025-2 Jan" ends in the next one.
            if left.month is None:
                start = _previous_month(end, left.day)
            elif left.year is None:
                start = _safe_date(end_year - 1, start_month, left.day)
            elif right.year is None and year_override is None:
                end = _safe_date(end_year + 1, end_month, right.day)

    if start is None and end is None:
        return None
    return DateWindow(start, end or start)


def _match_single(text: str, today: date) -> Optional[DateWindow]:
    body, year_override = _split_year(text)
    point = _parse_point(body)
    if point is None:
        return None
    day = _safe_date(
        point.year or year_override or today.year,
        point.month or today.month,
        point.day,
    )
    if day is None:
        return None
    return DateWindow(day, day)


# Tried in order; each returns a window or None for "no match".
DATE_MATCHERS: Tuple[Tuple[str, Callable[[str, date], Optional[DateWindow]]], ...] = (
    ("year_only", _match_year_only),
    ("numeric_day_range", _match_numeric_day_range),
    ("range", _match_range),
    ("single", _match_single),
)


def parse_date_range(text: Optional[str], today: Optional[date] = None) -> DateWindow:
    """Parse a free-text IPO date or date range into a ``DateWindow``.

    Missing month/year parts default to ``today`` (the reference date in the
    target timezone). Unknown markers such as ``TBA`` and anything that does
    not parse give an empty window; this function never raises.
    """
    raw = clean_text(text) or ""
    if _is_unknown(raw):
        return DateWindow()
    if today is None:
        today = datetime.now(config.TARGET_TZ).date()

    normalized = _normalize_date_text(raw)
    if not normalized:
        return DateWindow()
    for name, matcher in DATE_MATCHERS:
        window = matcher(normalized, today)
        if window is not None:
            logger.debug("Parsed %r with %s matcher: %s", raw, name, window)
            return window
    logger.debug("Unparseable date text %r", raw)
    return DateWindow()
