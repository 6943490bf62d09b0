"""Date and time normalization for FareHarbor item pages."""
import re
from datetime import date
from typing import Optional

from processor.models import ClockTime, TimeWindow

MONTH_NAMES = [
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
]

# "Saturday, January 31, 2026" (weekday optional)
DATE_LABEL_RE = re.compile(r'(?:\w+\s*,\s*)?([A-Za-z]+)\s+(\d{1,2}),\s*(\d{4})')

_CLOCK = r'(\d{1,2})(?::(\d{2}))?(?!\d)'
_MERIDIEM = r'([ap]\.?m\.?)(?![a-z])'

TIME_RANGE_RE = re.compile(
    r'(?<!\d)' + _CLOCK + r'(?:\s*' + _MERIDIEM + r')?'
    + r'\s*(?:-|–|—|\bto\b)\s*'
    + _CLOCK + r'(?:\s*' + _MERIDIEM + r')?',
    re.IGNORECASE
)
START_TIME_RE = re.compile(r'\b' + _CLOCK + r'\s*' + _MERIDIEM, re.IGNORECASE)
DURATION_HOURS_RE = re.compile(r'\b(\d+(?:\.\d+)?)\s*hours?\b', re.IGNORECASE)
DURATION_MINUTES_RE = re.compile(r'\b(\d{1,3})\s*minutes?\b', re.IGNORECASE)

MINUTES_PER_DAY = 24 * 60

DEFAULT_WINDOW = TimeWindow(
    start=ClockTime(hour12=10, minute=0, meridiem='AM'),
    end=ClockTime(hour12=8, minute=0, meridiem='PM')
)


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace (including non-breaking spaces) to single spaces."""
    return re.sub(r'\s+', ' ', (text or '').replace('\u00a0', ' ')).strip()


def normalize_meridiem(raw: Optional[str]) -> Optional[str]:
    """
    Normalize an AM/PM marker.

    Args:
        raw: Marker as written, e.g. "pm", "P.M.", "AM"

    Returns:
        "AM", "PM" or None
    """
    if not raw:
        return None
    value = raw.upper().replace('.', '')
    return value if value in ('AM', 'PM') else None


def _valid_clock(hour: int, minute: int) -> bool:
    return 1 <= hour <= 12 and 0 <= minute < 60


def parse_date_label(label: Optional[str]) -> Optional[date]:
    """
    Parse an availability date label into a calendar date.

    Args:
        label: Label text, e.g. "Saturday, January 31, 2026"

    Returns:
        date or None if the label does not name a real calendar day
    """
    match = DATE_LABEL_RE.search((label or '').strip())
    if not match:
        return None

    month_name, day_str, year_str = match.groups()
    month_name = month_name.lower()
    if month_name not in MONTH_NAMES:
        return None

    try:
        return date(int(year_str), MONTH_NAMES.index(month_name) + 1, int(day_str))
    except ValueError:
        return None


def parse_time_range(text: Optional[str]) -> Optional[TimeWindow]:
    """
    Find an explicit clock range such as "6pm - 10pm" or "6 to 10 PM".

    At least one side must carry AM/PM; a side without one inherits it
    from the other. Ranges with no marker on either side are ambiguous
    and skipped in favour of the next match.

    Args:
        text: Free page text

    Returns:
        TimeWindow or None if no usable range is present
    """
    normalized = normalize_text(text)
    if not normalized:
        return None

    for match in TIME_RANGE_RE.finditer(normalized):
        sh, sm, s_ap, eh, em, e_ap = match.groups()
        start_ap = normalize_meridiem(s_ap)
        end_ap = normalize_meridiem(e_ap)

        if not start_ap and not end_ap:
            continue
        start_ap = start_ap or end_ap
        end_ap = end_ap or start_ap

        start = ClockTime(int(sh), int(sm or 0), start_ap)
        end = ClockTime(int(eh), int(em or 0), end_ap)
        if not (_valid_clock(start.hour12, start.minute) and _valid_clock(end.hour12, end.minute)):
            continue

        return TimeWindow(start=start, end=end)

    return None


def parse_start_and_duration(text: Optional[str]) -> Optional[TimeWindow]:
    """
    Derive a window from a start time plus a duration, e.g. "6:00 PM" and "2 Hours".

    The end time wraps modulo 24 hours; a window that crosses midnight
    ends earlier in the day than it starts.

    Args:
        text: Free page text

    Returns:
        TimeWindow or None if there is no start time or no duration
    """
    normalized = normalize_text(text)
    if not normalized:
        return None

    start = None
    for match in START_TIME_RE.finditer(normalized):
        hour, minute, meridiem = int(match.group(1)), int(match.group(2) or 0), normalize_meridiem(match.group(3))
        if meridiem and _valid_clock(hour, minute):
            start = ClockTime(hour, minute, meridiem)
            break
    if start is None:
        return None

    duration = 0
    hours_match = DURATION_HOURS_RE.search(normalized)
    if hours_match:
        duration += round(float(hours_match.group(1)) * 60)
    minutes_match = DURATION_MINUTES_RE.search(normalized)
    if minutes_match:
        duration += int(minutes_match.group(1))
    if duration <= 0:
        return None

    start_hour, start_minute = start.to_24h()
    end_total = (start_hour * 60 + start_minute + duration) % MINUTES_PER_DAY
    end_hour24, end_minute = divmod(end_total, 60)
    end = ClockTime(
        hour12=(end_hour24 + 11) % 12 + 1,
        minute=end_minute,
        meridiem='PM' if end_hour24 >= 12 else 'AM'
    )
    return TimeWindow(start=start, end=end)


def extract_time_window(text: Optional[str]) -> Optional[TimeWindow]:
    """Explicit range first, then start time plus duration."""
    return parse_time_range(text) or parse_start_and_duration(text)


def to_local_iso(day: date, hour: int, minute: int) -> str:
    """
    Format a local timestamp without an offset.

    Args:
        day: Calendar date
        hour: Hour on the 24-hour clock
        minute: Minute

    Returns:
        String like "2026-01-31T18:00:00"
    """
    return f"{day.isoformat()}T{hour:02d}:{minute:02d}:00"
