"""
Data normalization utilities for scrapers.

These functions standardize scraped text and dates into consistent formats.
"""

import calendar
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

MAX_TEXT_LENGTH = 2000

# Trailing marker the site appends to titles of verified postings
_VERIFICATION_SUFFIX = re.compile(r'\s*with verification\s*$', re.IGNORECASE)

_RELATIVE_DATE = re.compile(r'(\d+)\s*(hour|day|week|month|year)s?\s*ago')
_ABSOLUTE_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')


def clean_text(text: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """
    Collapse whitespace and bound the length of scraped text.

    Examples:
        "  Senior\\n  Engineer\\t" -> "Senior Engineer"
        None -> ""
    """
    if not text:
        return ''
    return re.sub(r'\s+', ' ', text).strip()[:max_length]


def clean_title(title: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """
    Normalize a job title.

    Examples:
        "Data Engineer with verification" -> "Data Engineer"
        "  Staff   SRE " -> "Staff SRE"
    """
    if not title:
        return ''
    title = re.sub(r'\s+', ' ', title).strip()
    title = _VERIFICATION_SUFFIX.sub('', title).strip()
    return title[:max_length]


def to_iso(dt: datetime) -> str:
    """
    Format a datetime as a UTC ISO-8601 string with millisecond precision.

    Examples:
        2024-03-05 14:07:09.123456+00:00 -> "2024-03-05T14:07:09.123Z"
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"


def _shift_months(dt: datetime, months: int) -> datetime:
    """Move a datetime back by whole months, clamping the day to the target month."""
    month_index = dt.month - 1 - months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def relative_date_to_iso(relative_date: Optional[str], now: datetime) -> Optional[str]:
    """
    Convert a relative posting date to an absolute ISO timestamp.

    Examples:
        "3 days ago" -> now - 3 days
        "1 week ago" -> now - 7 days
        "Reposted 2 months ago" -> now - 2 months
        "3 fortnights ago" -> None

    Args:
        relative_date: Text as rendered by the site
        now: Capture time the offset is measured from

    Returns:
        ISO string, or None when the text is not a recognized relative date
    """
    if not relative_date:
        return None

    match = _RELATIVE_DATE.search(relative_date.lower().strip())
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2)

    if unit == 'hour':
        target = now - timedelta(hours=amount)
    elif unit == 'day':
        target = now - timedelta(days=amount)
    elif unit == 'week':
        target = now - timedelta(weeks=amount)
    elif unit == 'month':
        target = _shift_months(now, amount)
    else:
        target = _shift_months(now, amount * 12)

    return to_iso(target)


def normalize_posted_date(posted: Optional[str], now: datetime) -> Optional[str]:
    """
    Normalize a posted-date value from either a relative or an absolute form.

    Cards carry a machine date ("2024-05-01") while the detail panel shows
    relative text ("3 days ago").

    Examples:
        "2024-05-01" -> "2024-05-01T00:00:00.000Z"
        "3 days ago" -> now - 3 days
    """
    if not posted:
        return None

    match = _ABSOLUTE_DATE.match(posted.strip())
    if match:
        try:
            year, month, day = (int(part) for part in match.groups())
            return to_iso(datetime(year, month, day, tzinfo=timezone.utc))
        except ValueError:
            return None

    return relative_date_to_iso(posted, now)
