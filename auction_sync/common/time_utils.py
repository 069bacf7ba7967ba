"""Date helpers: run metadata and regional-calendar conversion."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

from auction_sync.common.constants import ROC_YEAR_OFFSET

# 1150310 / 990105: ROC year of 2-3 digits followed by MMDD.
ROC_COMPACT_PATTERN = re.compile(r"^(\d{2,3})(\d{2})(\d{2})$")
# 115/03/10, 115-3-10, 115.03.10
ROC_SEPARATED_PATTERN = re.compile(r"^(\d{2,3})[/\-.](\d{1,2})[/\-.](\d{1,2})$")
GREGORIAN_PATTERN = re.compile(r"^(\d{4})[/\-.]?(\d{1,2})[/\-.]?(\d{1,2})$")


def utc_today_iso() -> str:
    return datetime.now(tz=timezone.utc).date().isoformat()


def parse_run_date(value: str | None) -> str:
    if not value:
        return utc_today_iso()
    parsed = date.fromisoformat(value)
    return parsed.isoformat()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def _iso_or_none(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def to_iso_date(value: object) -> str | None:
    """Convert a provider date string to ISO ``YYYY-MM-DD``.

    Compact (``1150310``) and separated (``115/03/10``) dates whose year has
    two or three digits are read as ROC calendar dates and shifted by 1911
    years. Four-digit years are taken as Gregorian already. Returns ``None``
    for anything that does not parse to a real calendar day.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    # Drop a trailing time component such as "115/03/10 10:00".
    text = text.split()[0]

    for pattern in (ROC_COMPACT_PATTERN, ROC_SEPARATED_PATTERN):
        match = pattern.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return _iso_or_none(year + ROC_YEAR_OFFSET, month, day)

    match = GREGORIAN_PATTERN.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _iso_or_none(year, month, day)
    return None
