"""Google Sheets access for the populate job."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

import gspread
from google.oauth2.service_account import Credentials

from gmp_pipeline import config

logger = logging.getLogger(__name__)


def service_account_info(
    service_account_json: Optional[str] = None,
    service_account_json_b64: Optional[str] = None,
) -> Dict[str, Any]:
    """Load service-account credentials from raw or base64-encoded JSON text.

    The base64 form wins when both are configured. Raises ``ValueError`` when
    neither is set or the text does not decode to a JSON object.
    """
    raw = service_account_json
    encoded = service_account_json_b64 or (None if raw else config.SERVICE_ACCOUNT_JSON_B64)
    if encoded:
        try:
            raw = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValueError(f"GOOGLE_SERVICE_ACCOUNT_JSON_B64 is not valid base64: {exc}") from exc
    raw = raw or config.SERVICE_ACCOUNT_JSON
    if not raw:
        raise ValueError(
            "GOOGLE_SERVICE_ACCOUNT_JSON (or GOOGLE_SERVICE_ACCOUNT_JSON_B64) is required."
        )
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Service-account credentials are not valid JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise ValueError("Service-account credentials must be a JSON object.")
    return info


def authorize(service_account_json: Optional[str] = None) -> gspread.Client:
    """Build a gspread client from service-account JSON text."""
    info = service_account_info(service_account_json)
    creds = Credentials.from_service_account_info(info, scopes=list(config.SHEET_SCOPES))
    logger.info(f"Authorized Google Sheets client for {info.get('client_email', '<unknown>')}")
    return gspread.authorize(creds)


def open_worksheet(
    client: gspread.Client,
    sheet_id: Optional[str] = None,
    worksheet: str = config.SHEET_WORKSHEET,
) -> gspread.Worksheet:
    sheet_id = sheet_id or config.SHEET_ID
    if not sheet_id:
        raise ValueError("GOOGLE_SHEET_ID is required.")
    return client.open_by_key(sheet_id).worksheet(worksheet)


def read_values(ws: gspread.Worksheet) -> List[List[str]]:
    values = ws.get_all_values()
    logger.info(f"Read {len(values)} row(s) from worksheet {ws.title!r}")
    return values


def write_values(ws: gspread.Worksheet, values: List[List[str]]) -> None:
    width = max((len(row) for row in values), default=0)
    padded = [list(row) + [""] * (width - len(row)) for row in values]
    ws.update(range_name="A1", values=padded, value_input_option="RAW")
    logger.info(f"Sheet updated: rows={len(padded)}")
