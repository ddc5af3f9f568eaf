"""
Shared date-parse contract for type_cast and date_part.

Layouts are tried in order; numeric input (or a numeric string) is read as
a Unix timestamp, seconds for values in [1e9, 1e13) and milliseconds from
1e13 up. Naive results are taken to be UTC.
"""

from datetime import datetime, date, timezone
from typing import Any, Optional

from etl.transformers.values import parse_float

RFC3339_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

DATE_LAYOUTS = RFC3339_LAYOUTS + (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%b %d, %Y",
)

SECONDS_MIN = 1e9
MILLISECONDS_MIN = 1e13


def parse_unix_timestamp(value: float) -> Optional[datetime]:
    """Seconds vs. milliseconds is decided by magnitude"""
    try:
        if SECONDS_MIN <= value < MILLISECONDS_MIN:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        if value >= MILLISECONDS_MIN:
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return None


def try_parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a record value into an aware datetime, or None"""
    parsed = None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        return parse_unix_timestamp(float(value))
    elif isinstance(value, str):
        text = value.strip()
        for layout in DATE_LAYOUTS:
            try:
                parsed = datetime.strptime(text, layout)
                break
            except ValueError:
                continue
        else:
            number = parse_float(text)
            if number is not None:
                return parse_unix_timestamp(number)
            return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_rfc3339(value: datetime) -> str:
    text = value.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")
