"""Tests for explicit-label and date-window status classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gmp_pipeline import config
from gmp_pipeline.filters import status_filters
from gmp_pipeline.scraper.models import Status


def ist(*args) -> datetime:
    return datetime(*args, tzinfo=config.TARGET_TZ)


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Upcoming", Status.UPCOMING),
        ("Listed", Status.CLOSED),
        ("closed", Status.CLOSED),
        ("Open", Status.ACTIVE),
        ("ACTIVE", Status.ACTIVE),
        ("Upcoming (opens Monday)", Status.UPCOMING),
        ("", None),
        (None, None),
        ("allotment", None),
    ],
)
def test_status_from_label(label, expected):
    assert status_filters.status_from_label(label) == expected


@pytest.mark.parametrize(
    "now, expected",
    [
        (ist(2025, 11, 13, 23, 59, 59), Status.UPCOMING),
        (ist(2025, 11, 14, 0, 0, 0), Status.ACTIVE),
        (ist(2025, 11, 16, 12, 0, 0), Status.ACTIVE),
        (ist(2025, 11, 18, 23, 59, 59), Status.ACTIVE),
        (ist(2025, 11, 18, 23, 59, 59, 999999), Status.ACTIVE),
        (ist(2025, 11, 19, 0, 0, 0), Status.CLOSED),
        (ist(2025, 11, 20, 9, 0, 0), Status.CLOSED),
    ],
)
def test_day_range_window_is_inclusive(now, expected):
    assert status_filters.classify_status("14-18 Nov", now=now) == expected


def test_single_day_is_active_on_that_day():
    assert status_filters.classify_status("15 Nov", now=ist(2025, 11, 15, 10, 0)) == Status.ACTIVE
    assert status_filters.classify_status("15 Nov", now=ist(2025, 11, 16, 0, 0)) == Status.CLOSED


@pytest.mark.parametrize("text", ["TBA", "", "to be announced", None, "—"])
@pytest.mark.parametrize("now", [ist(2020, 1, 1), ist(2025, 11, 16, 12), ist(2030, 12, 31, 23, 59)])
def test_unknown_dates_are_upcoming(text, now):
    assert status_filters.classify_status(text, now=now) == Status.UPCOMING


def test_explicit_label_overrides_dates():
    now = ist(2025, 11, 16, 12, 0)
    assert status_filters.classify_status("14-18 Nov", now=now) == Status.ACTIVE
    assert status_filters.classify_status("14-18 Nov", explicit_status="Listed", now=now) == Status.CLOSED


def test_unrecognised_label_falls_back_to_dates():
    now = ist(2025, 11, 20, 12, 0)
    assert status_filters.classify_status("14-18 Nov", explicit_status="Allotment", now=now) == Status.CLOSED


def test_aware_now_is_converted_to_target_timezone():
    # 18:29:59 UTC is 23:59:59 IST on the 18th; one second later is the 19th.
    assert status_filters.classify_status(
        "14-18 Nov", now=datetime(2025, 11, 18, 18, 29, 59, tzinfo=timezone.utc)
    ) == Status.ACTIVE
    assert status_filters.classify_status(
        "14-18 Nov", now=datetime(2025, 11, 18, 18, 30, 0, tzinfo=timezone.utc)
    ) == Status.CLOSED


def test_naive_now_is_target_timezone_wall_clock():
    assert status_filters.classify_status("14-18 Nov", now=datetime(2025, 11, 18, 23, 0)) == Status.ACTIVE
    assert status_filters.reference_now(datetime(2025, 11, 18, 23, 0)) == ist(2025, 11, 18, 23, 0)


def test_reference_year_comes_from_now():
    """A date without a year is read in the year of ``now``, not of the host clock."""
    assert status_filters.classify_status("14-18 Nov", now=ist(2031, 11, 16)) == Status.ACTIVE
    assert status_filters.classify_status("14-18 Nov", now=ist(2031, 12, 1)) == Status.CLOSED


def test_day_dash_month_is_classified_in_its_own_month():
    assert status_filters.classify_status("14-Nov-2025", now=ist(2025, 10, 14, 12)) == Status.UPCOMING
    assert status_filters.classify_status("14-Nov", now=ist(2025, 11, 14, 12)) == Status.ACTIVE


def test_window_spanning_new_year_is_active_across_it():
    assert status_filters.classify_status("30 Dec 2025 - 2 Jan", now=ist(2026, 1, 1, 9)) == Status.ACTIVE
