"""Fetch and parse the published spreadsheet CSV export."""

from __future__ import annotations

import io
import logging
from typing import Dict, List

import pandas as pd
import requests

from gmp_pipeline import config

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": config.REQUEST_USER_AGENT,
    "Accept": "text/csv,text/plain;q=0.9,*/*;q=0.8",
}


def fetch_csv_text(url: str, timeout: int = config.REQUEST_TIMEOUT) -> str:
    """Download the CSV export; raises ``requests.HTTPError`` on non-2xx."""
    logger.info(f"Fetching CSV: {url}")
    response = requests.get(url, headers=DEFAULT_HEADERS, timeout=timeout)
    response.raise_for_status()
    response.encoding = response.encoding or "utf-8"
    return response.text


def parse_csv_records(text: str) -> List[Dict[str, str]]:
    """Parse CSV text into header-keyed records with every cell as a string."""
    if not text.strip():
        return []
    df = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    records = df.to_dict(orient="records")
    logger.info(f"Parsed {len(records)} CSV row(s) with columns {list(df.columns)}")
    return records
