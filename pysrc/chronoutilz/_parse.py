"""Recognizers for the textual date shapes accepted by ``parse_date``.

Each shape turns a string into zero or more candidate field sets, in the
order they should be tried. Nothing here decides whether a candidate is a
real date: that's left to the round-trip check in the caller,
so every shape gets the same overflow protection.
"""

import re
from datetime import (
    date as _date,
    datetime as _datetime,
    timezone as _timezone,
)
from typing import Callable, NamedTuple, Optional

from ._common import mk_fixed_tzinfo


class DateFields(NamedTuple):
    """Date and time fields as written. The month is 1-based."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    millisecond: int = 0
    # None means the fields are local wall-clock time
    offset: Optional[_timezone] = None


_MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

MONTH_ABBREVIATIONS = [name[:3].title() for name in _MONTH_NAMES]


def month_from_name(name: str) -> Optional[int]:
    """Resolve a month name by its first three letters, case-insensitively.

    >>> month_from_name("SEPT")
    9
    """
    if len(name) < 3:
        return None
    prefix = name[:3].lower()
    for number, full in enumerate(_MONTH_NAMES, start=1):
        if full.startswith(prefix):
            return number
    return None


_match_slash = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})", re.ASCII).fullmatch
_match_day_month_name = re.compile(
    r"(\d{1,2})\s+([a-zA-Z]{3,})\s+(\d{4})", re.ASCII
).fullmatch
_match_month_name_day = re.compile(
    r"([a-zA-Z]{3,})\s+(\d{1,2}),?\s+(\d{4})", re.ASCII
).fullmatch
_match_yearmonth = re.compile(r"(\d{4})-(\d{2})", re.ASCII).fullmatch
_match_rfc2822 = re.compile(
    r"(?:([a-zA-Z]{3})\s*,\s*)?(\d{1,2})\s+([a-zA-Z]{3})\s+(\d{4})\s+"
    r"(\d{2}):(\d{2})(?::(\d{2}))?\s+([+-]\d{4}|[a-zA-Z]{1,3})",
    re.ASCII,
).fullmatch


def slash_format(s: str) -> list[DateFields]:
    # Month-first wins; day-first is only a fallback for when
    # month-first doesn't give a real date.
    if (match := _match_slash(s)) is None:
        return []
    first, second, year = map(int, match.groups())
    return [DateFields(year, first, second), DateFields(year, second, first)]


def day_month_name(s: str) -> list[DateFields]:
    if (match := _match_day_month_name(s)) is None:
        return []
    month = month_from_name(match[2])
    if month is None:
        return []
    return [DateFields(int(match[3]), month, int(match[1]))]


def month_name_day(s: str) -> list[DateFields]:
    if (match := _match_month_name_day(s)) is None:
        return []
    month = month_from_name(match[1])
    if month is None:
        return []
    return [DateFields(int(match[3]), month, int(match[2]))]


def _fields_from_iso(s: str) -> DateFields:
    # prevent isoformat from parsing stuff we don't want it to
    if "W" in s or len(s) < 8:
        raise ValueError(f"Invalid format: {s!r}")
    dt = _datetime.fromisoformat(s)
    offset = dt.utcoffset()
    return DateFields(
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second,
        dt.microsecond // 1_000,
        None if offset is None else mk_fixed_tzinfo(int(offset.total_seconds())),
    )


def _fields_from_yearmonth(s: str) -> DateFields:
    if (match := _match_yearmonth(s)) is None:
        raise ValueError(f"Invalid format: {s!r}")
    return DateFields(int(match[1]), int(match[2]), 1)


_RFC2822_MONTHS = {
    name.lower(): number for number, name in enumerate(MONTH_ABBREVIATIONS, 1)
}

_RFC2822_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_RFC2822_ZONES = {
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
}


def _fields_from_rfc2822(s: str) -> DateFields:
    if (match := _match_rfc2822(s)) is None:
        raise ValueError(f"Invalid format: {s!r}")
    weekday_raw, day_raw, month_raw, year_raw, hh, mm, ss, zone = match.groups()
    month = _RFC2822_MONTHS.get(month_raw.lower())
    if month is None:
        raise ValueError(f"Invalid month: {month_raw!r}")
    year, day = int(year_raw), int(day_raw)
    if (
        weekday_raw
        and _RFC2822_WEEKDAYS.index(weekday_raw.lower())
        != _date(year, month, day).weekday()
    ):
        raise ValueError(f"Weekday doesn't match date: {s!r}")

    if zone[0] in "+-":
        sign = 1 if zone[0] == "+" else -1
        offset_secs = sign * (int(zone[1:3]) * 3600 + int(zone[3:]) * 60)
    else:
        # According to the RFC, unknown zones should
        # just be treated at -0000 (UTC with unknown offset)
        offset_secs = _RFC2822_ZONES.get(zone.upper(), 0) * 3600

    return DateFields(
        year,
        month,
        day,
        int(hh),
        int(mm),
        int(ss or 0),
        0,
        mk_fixed_tzinfo(offset_secs),
    )


def generic_fallback(s: str) -> list[DateFields]:
    """The catch-all shape: ISO 8601, ``YYYY-MM`` year-months and RFC 2822"""
    if not s.isascii():
        return []
    for extract in (_fields_from_iso, _fields_from_yearmonth, _fields_from_rfc2822):
        try:
            return [extract(s)]
        except ValueError:
            continue
    return []


class Shape(NamedTuple):
    name: str
    candidates: Callable[[str], list[DateFields]]


# In order of priority. The first candidate that survives
# round-trip validation is the result.
SHAPES: tuple[Shape, ...] = (
    Shape("slash", slash_format),
    Shape("day-month-name", day_month_name),
    Shape("month-name-day", month_name_day),
    Shape("generic", generic_fallback),
)


# Shape checks for validate_date_format(), keyed by template
_FORMAT_MATCHERS: dict[str, Callable[[str], Optional[re.Match[str]]]] = {
    "YYYY-MM-DD": re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII).fullmatch,
    "MM/DD/YYYY": _match_slash,
    "DD/MM/YYYY": _match_slash,
    "YYYY-MM-DD HH:mm:ss": re.compile(
        r"(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})", re.ASCII
    ).fullmatch,
    "DD MMM YYYY": re.compile(
        r"(\d{1,2}) ([A-Za-z]{3}) (\d{4})", re.ASCII
    ).fullmatch,
    "MMM DD, YYYY": re.compile(
        r"([A-Za-z]{3}) (\d{1,2}), (\d{4})", re.ASCII
    ).fullmatch,
    "HH:mm:ss": re.compile(r"(\d{2}):(\d{2}):(\d{2})", re.ASCII).fullmatch,
    "hh:mm A": re.compile(r"(\d{1,2}):(\d{2}) ([AP]M)", re.ASCII).fullmatch,
}


def match_format(s: str, fmt: str) -> Optional[re.Match[str]]:
    """Match a string against the shape of a format template.
    Returns None for non-matching strings and unknown templates."""
    try:
        matcher = _FORMAT_MATCHERS[fmt]
    except KeyError:
        return None
    return matcher(s)
