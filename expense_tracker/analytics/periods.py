"""
Date handling for the ledger: instant parsing, month keys and the
date-filter presets.

Stored dates are ISO-8601 strings. Naive values are read as UTC and
filter bounds are always written as UTC with millisecond precision.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from expense_tracker.models.ledger import DateFilter, DateFilterPreset


Instant = Union[datetime, str]


def parse_instant(value: Optional[Instant]) -> Optional[datetime]:
    """Parse an ISO-8601 instant. Returns None when it cannot be read."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


def format_instant(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def month_key(value: Optional[Instant]) -> Optional[str]:
    """YYYY-MM of the instant's own calendar date."""
    parsed = parse_instant(value)
    return parsed.strftime("%Y-%m") if parsed else None


def month_start(value: datetime) -> datetime:
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_months(value: datetime, count: int) -> datetime:
    """Shift to the first day of the month `count` months away."""
    month_index = (value.year * 12) + (value.month - 1) + count
    return month_start(value).replace(year=month_index // 12, month=(month_index % 12) + 1)


def month_end(value: datetime) -> datetime:
    """Last millisecond of the month."""
    return add_months(value, 1) - timedelta(milliseconds=1)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_date_filter(
    preset: Union[DateFilterPreset, str],
    reference: Optional[datetime] = None,
    start: Optional[Instant] = None,
    end: Optional[Instant] = None,
) -> DateFilter:
    """
    Build a DateFilter for a preset.

    Month and year boundaries are taken in the reference's own timezone.

    Raises:
        ValueError: for a custom range without both bounds, or with
                    start after end.
    """
    preset = DateFilterPreset(preset)
    reference = parse_instant(reference) or _now()

    if preset == DateFilterPreset.CUSTOM:
        start_at = parse_instant(start)
        end_at = parse_instant(end)
        if start_at is None or end_at is None:
            raise ValueError("Custom date filter requires start and end dates")
        if start_at > end_at:
            raise ValueError("Start date must be before end date")
    elif preset == DateFilterPreset.LAST_MONTH:
        start_at = add_months(reference, -1)
        end_at = month_end(start_at)
    elif preset == DateFilterPreset.THIS_YEAR:
        start_at = month_start(reference).replace(month=1)
        end_at = month_end(start_at.replace(month=12))
    else:
        start_at = month_start(reference)
        end_at = month_end(reference)

    return DateFilter(
        preset=preset,
        start_date=format_instant(start_at),
        end_date=format_instant(end_at),
    )


def filter_range(date_filter: DateFilter) -> Optional[tuple[datetime, datetime]]:
    """The parsed (start, end) bounds, or None if either is unreadable."""
    start = parse_instant(date_filter.start_date)
    end = parse_instant(date_filter.end_date)
    if start is None or end is None:
        return None
    return start, end
