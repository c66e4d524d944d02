"""Configuration constants for the GMP render and populate jobs."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from dateutil import tz

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_lines(*names: str) -> List[str]:
    for name in names:
        raw = os.getenv(name, "")
        values = [line.strip() for line in raw.splitlines() if line.strip()]
        if values:
            return values
    return []


# ---------------------------------------------------------------------------
# Time handling
# ---------------------------------------------------------------------------

# Status windows are evaluated in India Standard Time as a fixed offset so
# classification does not depend on the host clock's zone.
TARGET_TZ = tz.tzoffset("IST", int(timedelta(hours=5, minutes=30).total_seconds()))
TZ_DISPLAY = "Asia/Kolkata"

# Cadence of the scheduled run, used for the next-run hint in the page.
RUN_INTERVAL_MINUTES = _env_int("GMP_RUN_INTERVAL_MINUTES", 60)

# ---------------------------------------------------------------------------
# Render job
# ---------------------------------------------------------------------------

SOURCE_CSV_URL: Optional[str] = os.getenv("GMP_SHEET_CSV_URL") or None
DEST_FILE = Path(os.getenv("GMP_DEST_FILE", "index.html"))
FRAGMENT_FILE = Path(os.getenv("GMP_FRAGMENT_FILE", "_gmp.html"))
BACKUP_DIR = Path(os.getenv("GMP_BACKUP_DIR", "backups"))
BACKUP_KEEP = _env_int("GMP_BACKUP_KEEP", 30)

GROUP_CAP = _env_int("GMP_GROUP_CAP", 20)
SHOW_BATCH = _env_int("GMP_SHOW_BATCH", 7)
DEDUPE_NAMES = _env_flag("GMP_DEDUPE_NAMES")

DEFAULT_TYPE = os.getenv("DEFAULT_TYPE", "").strip()

MARKER_START = "<!-- GMP_START -->"
MARKER_END = "<!-- GMP_END -->"
LEGACY_PLACEHOLDER = "<!-- GMP_TABLE -->"

# ---------------------------------------------------------------------------
# Populate job
# ---------------------------------------------------------------------------

SOURCE_URLS = _env_lines("GMP_SOURCE_URLS", "GMP_SOURCE_URL")
FILL_TYPE_FROM_EXCHANGES = _env_flag("FILL_TYPE_FROM_NSE")

NSE_UPCOMING_URL = "https://www.nseindia.com/market-data/all-upcoming-issues-ipo"
BSE_UPCOMING_URL = "https://www.bseindia.com/publicissue.html"
EXCHANGE_TYPE_LABEL = "Mainboard"

SERVICE_ACCOUNT_JSON: Optional[str] = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or None
# Decoded when the Sheets client is built, so render runs never touch it.
SERVICE_ACCOUNT_JSON_B64: Optional[str] = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON_B64", "").strip() or None
SHEET_ID: Optional[str] = os.getenv("GOOGLE_SHEET_ID") or None
SHEET_WORKSHEET = os.getenv("GOOGLE_SHEET_WORKSHEET", "Sheet1")
SHEET_SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)
SHEET_COLUMNS = ("ipo", "gmp", "kostak", "subjecttosauda", "date", "status", "type")

# ---------------------------------------------------------------------------
# HTTP / browser
# ---------------------------------------------------------------------------

REQUEST_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/123.0.0.0 Safari/537.36"
)
REQUEST_TIMEOUT = 30

PLAYWRIGHT_HEADLESS = True
PLAYWRIGHT_VIEWPORT = {"width": 1440, "height": 900}
PLAYWRIGHT_LOCALE = "en-IN"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("GMP_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
