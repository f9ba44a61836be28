"""Parse dates from records and page text (relative and absolute)."""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Tuple

# Type alias: (posted_date or None, posted_days_ago or None)
DateResult = Tuple[Optional[datetime], Optional[int]]

_MONTHS_ABBR = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)"
_MONTHS_FULL = r"(?:january|february|march|april|may|june|july|august|september|october|november|december)"
_OPEN_ENDED = {"present", "current", "now", "today", "ongoing"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_posted_date(raw_text: str, now: Optional[datetime] = None) -> DateResult:
    """
    Attempt to extract a posting date from raw text.
    Handles: "2 days ago", "1 week ago", "Posted 3h ago", "Jan 12, 2025", "12 January 2025", "2025-01-12".
    Returns (posted_date, posted_days_ago). If cannot determine, returns (None, None).
    """
    if not raw_text or not raw_text.strip():
        return (None, None)

    text = raw_text.strip().lower()
    now = ensure_utc(now) if now else utc_now()

    if text in ("today", "just now", "just posted"):
        return (now, 0)
    if text == "yesterday":
        return (now - timedelta(days=1), 1)

    # ---- Relative: X hours ago ----
    m = re.search(r"(?:posted\s+)?(\d+)\s*h(?:ou)?r?s?\s+ago", text)
    if m:
        posted = now - timedelta(hours=int(m.group(1)))
        return (posted, max(0, (now - posted).days))

    # ---- Relative: X days / weeks / months ago ----
    for pattern, multiplier in (
        (r"(?:posted\s+)?(\d+)\s*days?\s+ago", 1),
        (r"(?:posted\s+)?(\d+)\s*weeks?\s+ago", 7),
        # Approximate: 30 days per month
        (r"(?:posted\s+)?(\d+)\s*months?\s+ago", 30),
    ):
        m = re.search(pattern, text)
        if m:
            days = int(m.group(1)) * multiplier
            return (now - timedelta(days=days), days)

    posted = parse_date(text)
    if posted is not None and posted <= now:
        return (posted, (now - posted).days)
    return (None, None)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Coerce a datetime, date, timestamp or date string into an aware UTC datetime.
    Accepts ISO strings, "Jan 12, 2025", "12 January 2025", "Jan 2020", "2020-01" and "2020".
    Returns None for empty, open-ended ("Present") or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds from the collection layer, seconds otherwise
        seconds = value / 1000.0 if abs(value) > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip().lower()
    if not text or text in _OPEN_ENDED:
        return None

    try:
        return ensure_utc(datetime.fromisoformat(text.replace("z", "+00:00")))
    except ValueError:
        pass

    # 12 Jan 2025
    m = re.search(rf"(\d{{1,2}})\s+({_MONTHS_ABBR}|{_MONTHS_FULL})\.?\s*,?\s*(\d{{4}})", text)
    if m:
        return _safe_datetime(int(m.group(3)), m.group(2), int(m.group(1)))

    # Jan 12, 2025
    m = re.search(rf"({_MONTHS_ABBR}|{_MONTHS_FULL})\.?\s+(\d{{1,2}})\s*,?\s*(\d{{4}})", text)
    if m:
        return _safe_datetime(int(m.group(3)), m.group(1), int(m.group(2)))

    # Jan 2020
    m = re.search(rf"({_MONTHS_ABBR}|{_MONTHS_FULL})[a-z]*\.?\s*,?\s*(\d{{4}})", text)
    if m:
        return _safe_datetime(int(m.group(2)), m.group(1), 1)

    # 2025-01-12 embedded in text, or 2020-01 / 01/2020
    m = re.search(r"(\d{4})-(\d{1,2})(?:-(\d{1,2}))?", text)
    if m:
        return _safe_datetime(int(m.group(1)), int(m.group(2)), int(m.group(3) or 1))
    m = re.fullmatch(r"(\d{1,2})/(\d{4})", text)
    if m:
        return _safe_datetime(int(m.group(2)), int(m.group(1)), 1)

    m = re.fullmatch(r"(\d{4})", text)
    if m:
        return _safe_datetime(int(m.group(1)), 1, 1)
    return None


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative if end precedes start)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 86400.0


def _safe_datetime(year: int, month: Any, day: int) -> Optional[datetime]:
    try:
        month_num = month if isinstance(month, int) else _month_num(month)
        return datetime(year, month_num, day, tzinfo=timezone.utc)
    except (ValueError, KeyError):
        return None


def _month_num(mon_str: str) -> int:
    s = mon_str.lower()[:3]
    months = [
        "jan", "feb", "mar", "apr", "may", "jun",
        "jul", "aug", "sep", "oct", "nov", "dec",
    ]
    for i, m in enumerate(months, 1):
        if s == m:
            return i
    raise KeyError(mon_str)
