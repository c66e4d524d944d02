"""Turn raw spreadsheet records into GmpRow objects."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from gmp_pipeline.filters import status_filters
from gmp_pipeline.scraper import parse_utils
from gmp_pipeline.scraper.models import GmpRow

logger = logging.getLogger(__name__)

# Normalised header (see parse_utils.normalize_header) -> canonical field.
HEADER_ALIASES: Dict[str, str] = {
    "ipo": "name",
    "name": "name",
    "iponame": "name",
    "company": "name",
    "companyname": "name",
    "issue": "name",
    "issuename": "name",
    "gmp": "gmp",
    "gmpvalue": "gmp",
    "gmprs": "gmp",
    "premium": "gmp",
    "greymarketpremium": "gmp",
    "date": "date",
    "listingdate": "date",
    "daterange": "date",
    "dates": "date",
    "ipodate": "date",
    "kostak": "price",
    "ipoprice": "price",
    "price": "price",
    "issueprice": "price",
    "priceband": "price",
    "subjecttosauda": "gain",
    "sauda": "gain",
    "listinggain": "gain",
    "estlisting": "gain",
    "type": "type",
    "ipotype": "type",
    "board": "type",
    "category": "type",
    "status": "status",
    "stage": "status",
}


def canonical_fields(record: Mapping[str, object]) -> Dict[str, str]:
    """Map a raw record onto canonical field names.

    Headers are normalised once; the first non-empty value wins when several
    columns alias the same field.
    """
    fields: Dict[str, str] = {}
    for header, value in record.items():
        field = HEADER_ALIASES.get(parse_utils.normalize_header(header))
        if field is None or fields.get(field):
            continue
        fields[field] = parse_utils.clean_text(None if value is None else str(value)) or ""
    return fields


def normalize_record(
    record: Mapping[str, object],
    now: Optional[datetime] = None,
    default_type: str = "",
) -> Optional[GmpRow]:
    """Build a classified GmpRow, or None when the record has no name."""
    fields = canonical_fields(record)
    name = fields.get("name", "")
    if not name:
        logger.debug("Dropping record without a name: %s", dict(record))
        return None

    gmp_raw = fields.get("gmp", "")
    date_text = fields.get("date", "")
    explicit_status = fields.get("status") or None
    return GmpRow(
        name=name,
        gmp_raw=gmp_raw,
        gmp_numeric=parse_utils.parse_gmp_number(gmp_raw),
        price_text=fields.get("price", ""),
        gain_text=fields.get("gain", ""),
        type_text=fields.get("type") or default_type,
        date_text=date_text,
        explicit_status=explicit_status,
        status=status_filters.classify_status(date_text, explicit_status, now=now),
    )


def normalize_records(
    records: Iterable[Mapping[str, object]],
    now: Optional[datetime] = None,
    default_type: str = "",
) -> List[GmpRow]:
    rows: List[GmpRow] = []
    dropped = 0
    for record in records:
        row = normalize_record(record, now=now, default_type=default_type)
        if row is None:
            dropped += 1
            continue
        rows.append(row)
    if dropped:
        logger.info("Dropped %d record(s) without an IPO name", dropped)
    return rows
