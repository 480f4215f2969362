"""
Calendar date helpers.

Dates cross every boundary of the data layer as "YYYY-MM-DD" strings.
"Today" is recomputed on each call from the configured TIME_ZONE.
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from django.utils import timezone

DATE_FORMAT = "%Y-%m-%d"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def format_date(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime):
        value = local_date_of(value)
    return value.strftime(DATE_FORMAT)


def today() -> date:
    return timezone.localdate()


def today_string() -> str:
    return format_date(today())


def yesterday_string() -> str:
    return format_date(today() - timedelta(days=1))


def local_date_of(moment: datetime) -> date:
    """Calendar date of a timestamp in the current time zone."""
    if timezone.is_naive(moment):
        return moment.date()
    return timezone.localtime(moment).date()


def parse_date_string(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return local_date_of(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    return datetime.strptime(value, DATE_FORMAT).date()


def normalize_date(value: Union[str, date]) -> str:
    """Canonical "YYYY-MM-DD" form of a date or date string."""
    return format_date(parse_date_string(value))


def validate_time(value: Optional[str], field: str = "time") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise ValueError(f"{field} must be HH:MM (24-hour), got {value!r}")
    return value
