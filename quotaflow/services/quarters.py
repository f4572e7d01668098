"""Calendar quarter helpers (UTC)."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple

VIEWS = ("ytd", "qtd", "prevq")


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize a date, datetime or ISO string to an aware UTC datetime.

    Naive datetimes (SQLite returns these) are treated as UTC.
    Date-only values become midnight UTC. Returns None if unparsable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc_datetime(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def get_quarter_for_date(d: datetime) -> Tuple[int, int]:
    """Return (year, quarter) for a date."""
    return d.year, (d.month - 1) // 3 + 1


def get_quarter_date_range_utc(year: int, quarter: int) -> Tuple[datetime, datetime]:
    """First instant and last second of a quarter."""
    start_month = (quarter - 1) * 3 + 1
    start = datetime(year, start_month, 1, tzinfo=timezone.utc)
    if quarter == 4:
        next_start = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_start = datetime(year, start_month + 3, 1, tzinfo=timezone.utc)
    return start, next_start - timedelta(seconds=1)


def get_previous_quarter(year: int, quarter: int) -> Tuple[int, int]:
    """Previous (year, quarter); Q1 wraps to Q4 of the prior year."""
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def format_quarter(year: int, quarter: int) -> str:
    return f"Q{quarter} {year}"


def get_view_date_range(view: str, now: datetime) -> Tuple[datetime, datetime]:
    """
    Close-date window for a reporting view.

    - ytd: Jan 1 through now
    - qtd: the whole current quarter
    - prevq: the whole previous quarter
    """
    now = to_utc_datetime(now)
    year, quarter = get_quarter_for_date(now)
    if view == "ytd":
        return datetime(year, 1, 1, tzinfo=timezone.utc), now
    if view == "prevq":
        return get_quarter_date_range_utc(*get_previous_quarter(year, quarter))
    return get_quarter_date_range_utc(year, quarter)
