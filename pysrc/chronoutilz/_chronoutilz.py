# The MIT License (MIT)
#
# Copyright (c) ChronoUtilz contributors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

# Maintainer's notes:
#
# - Why are the types and functions in one file?
#   - Flat is better than nested
#   - It prevents circular imports since the classes 'know' about each other
#     and the functions that coerce their inputs
#   - It's easier to vendor (i.e. copy-paste) this library if needed
# - Every public function coerces its date-like arguments through
#   `_coerce()`, which is `parse_date()` in raising mode. Invalid input
#   never gets past that point.
# - Calendar fields are always read in the system timezone. An Instant
#   remembers the local datetime it resolved to when it was created.
from __future__ import annotations

__version__ = "0.1.0"

import enum
import logging
from datetime import (
    date as _date,
    datetime as _datetime,
    timedelta as _timedelta,
)
from math import isfinite
from time import time_ns
from typing import (
    TYPE_CHECKING,
    Any,
    Iterable,
    Literal,
    NamedTuple,
    Optional,
    Union,
    no_type_check,
    overload,
)

from . import _math, _tz
from ._common import (
    ERROR_TAG,
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
    MS_PER_WEEK,
    UTC,
    Millis,
)
from ._parse import MONTH_ABBREVIATIONS, SHAPES, DateFields, match_format

__all__ = [
    # Types
    "Instant",
    "CalendarDate",
    "Weekday",
    "Age",
    "DateError",
    "TimeUnit",
    "StartOfUnit",
    "CalendarUnit",
    "DateFormat",
    "DateLike",
    # Parsing and formatting
    "parse_date",
    "is_valid_date",
    "format_date",
    "validate_date_format",
    # Calendar arithmetic
    "create_date",
    "add_time",
    "subtract_time",
    "date_diff",
    "is_between_dates",
    "start_of",
    "end_of",
    "day_of_year",
    "week_of_year",
    "is_leap_year",
    "days_in_month",
    # Derived utilities
    "relative_time",
    "to_utc",
    "utc_now",
    "timezone_offset",
    "timezone_string",
    "generate_date_range",
    "format_duration",
    "quarter",
    "quarter_date",
    "business_days",
    "calculate_age",
]

_logger = logging.getLogger(__name__)

TimeUnit = Literal[
    "millisecond", "second", "minute", "hour", "day", "week", "month", "year"
]
StartOfUnit = Literal["hour", "day", "week", "month", "year"]
CalendarUnit = Literal["day", "week", "month", "year"]
DateFormat = Literal[
    "YYYY-MM-DD",
    "MM/DD/YYYY",
    "DD/MM/YYYY",
    "YYYY-MM-DD HH:mm:ss",
    "DD MMM YYYY",
    "MMM DD, YYYY",
    "HH:mm:ss",
    "hh:mm A",
]


class DateError(ValueError):
    """Raised for any invalid date input, format, unit, or calculation.

    The message always starts with ``"ChronoUtilz Error: "``.

    Example
    -------
    >>> parse_date("not-a-date", raise_on_invalid=True)
    Traceback (most recent call last):
      ...
    chronoutilz.DateError: ChronoUtilz Error: Unable to parse date: not-a-date
    """

    def __init__(self, message: str) -> None:
        super().__init__(ERROR_TAG + message)

    # The tag is added again when unpickling
    @no_type_check
    def __reduce__(self):
        return DateError, (self.args[0].removeprefix(ERROR_TAG),)


class Weekday(enum.IntEnum):
    """The days of the week; ``.value`` counts from Sunday (0) to Saturday (6)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class Age(NamedTuple):
    """An age broken down into calendar components"""

    years: int
    months: int
    days: int


# Helpers that pre-compute/lookup as much as possible
_object_new = object.__new__
_EPOCH = _datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = _timedelta(milliseconds=1)
_WEEKEND = (Weekday.SATURDAY, Weekday.SUNDAY)

# Units with a fixed length
_UNIT_MILLIS: dict[str, int] = {
    "millisecond": 1,
    "second": MS_PER_SECOND,
    "minute": MS_PER_MINUTE,
    "hour": MS_PER_HOUR,
    "day": MS_PER_DAY,
    "week": MS_PER_WEEK,
}


class _ImmutableBase:
    __slots__ = ()

    # Immutable classes don't need to be copied
    @no_type_check
    def __copy__(self):
        return self

    @no_type_check
    def __deepcopy__(self, _):
        return self


if TYPE_CHECKING:
    from typing import final
else:

    def final(cls):

        def init_subclass_not_allowed(cls, **kwargs):  # pragma: no cover
            raise TypeError("Subclassing not allowed")

        cls.__init_subclass__ = init_subclass_not_allowed
        return cls


@final
class Instant(_ImmutableBase):
    """A moment in time with millisecond precision.

    It maps 1:1 to a UNIX timestamp in milliseconds. Its calendar fields
    (``year``, ``month``, ``day``, ...) are those of the system timezone,
    so the same instant reads differently on machines with different
    timezone settings.

    Instances are created by :func:`parse_date`, :func:`create_date`,
    or the classmethods below. All arithmetic returns new instances.

    Example
    -------
    >>> i = create_date(2025, 4, 7, 14, 30)
    >>> i.year, i.month, i.day
    (2025, 5, 7)
    >>> i.month_index  # zero-based, as used by create_date()
    4
    """

    __slots__ = ("_millis", "_py_dt")

    _millis: Millis
    _py_dt: _datetime  # aware, in the system timezone

    def __init__(self) -> None:
        raise TypeError(
            "Instant instances cannot be created through the constructor. "
            "Use `parse_date`, `create_date`, or `Instant.now` instead."
        )

    @classmethod
    def now(cls) -> Instant:
        """The current time. This is the only place the clock is read."""
        return cls.from_timestamp_millis(time_ns() // 1_000_000)

    @classmethod
    def from_timestamp_millis(cls, ms: int, /) -> Instant:
        """Create an Instant from a UNIX timestamp in milliseconds.

        The inverse of :meth:`timestamp_millis`.
        """
        if not isinstance(ms, int) or isinstance(ms, bool):
            raise TypeError("method requires an integer")
        try:
            local = _tz.to_local(_EPOCH + _timedelta(milliseconds=ms))
        except (OverflowError, ValueError, OSError):
            raise DateError(f"Invalid timestamp: {ms}") from None
        self = _object_new(cls)
        self._millis = ms
        self._py_dt = local
        return self

    @classmethod
    def from_py_datetime(cls, d: _datetime, /) -> Instant:
        """Create from a standard library ``datetime``.

        Aware datetimes keep their exact moment. Naive ones are
        read as wall-clock time in the system timezone.
        Sub-millisecond precision is truncated.
        """
        if not isinstance(d, _datetime):
            raise TypeError(f"Expected datetime, got {type(d)!r}")
        try:
            aware = _tz.resolve_local(d) if d.tzinfo is None else d
            return cls._from_aware(aware)
        except DateError:
            raise
        except (OverflowError, ValueError, OSError):
            raise DateError(f"Datetime out of range: {d}") from None

    @classmethod
    def _from_aware(cls, d: _datetime, /) -> Instant:
        return cls.from_timestamp_millis((d - _EPOCH) // _ONE_MS)

    @classmethod
    def _from_local_fields(
        cls,
        year: int,
        month_index: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        millisecond: int = 0,
    ) -> Instant:
        # Fields may overflow; the excess carries into the larger fields.
        try:
            naive = _math.overflowing_datetime(
                year, month_index, day, hour, minute, second, millisecond
            )
            return cls._from_aware(_tz.resolve_local(naive))
        except DateError:
            raise
        except (OverflowError, ValueError, OSError):
            raise DateError("Date is outside the supported range") from None

    def timestamp_millis(self) -> Millis:
        """The UNIX timestamp in milliseconds"""
        return self._millis

    def py_datetime(self) -> _datetime:
        """Convert to an aware standard library ``datetime`` in the
        system timezone"""
        return self._py_dt

    @property
    def year(self) -> int:
        return self._py_dt.year

    @property
    def month(self) -> int:
        """The month, from 1 to 12"""
        return self._py_dt.month

    @property
    def month_index(self) -> int:
        """The month, from 0 to 11"""
        return self._py_dt.month - 1

    @property
    def day(self) -> int:
        return self._py_dt.day

    @property
    def hour(self) -> int:
        return self._py_dt.hour

    @property
    def minute(self) -> int:
        return self._py_dt.minute

    @property
    def second(self) -> int:
        return self._py_dt.second

    @property
    def millisecond(self) -> int:
        return self._py_dt.microsecond // 1_000

    def day_of_week(self) -> Weekday:
        """The day of the week

        Example
        -------
        >>> create_date(2025, 4, 7).day_of_week()
        <Weekday.WEDNESDAY: 3>
        """
        return Weekday(self._py_dt.isoweekday() % 7)

    def utc_offset_minutes(self) -> int:
        """The offset of the system timezone from UTC at this moment,
        positive east of Greenwich"""
        return self._utc_offset_millis() // MS_PER_MINUTE

    def _utc_offset_millis(self) -> int:
        # mypy doesn't know utcoffset() can never return None here
        return self._py_dt.utcoffset() // _ONE_MS  # type: ignore[operator]

    def date(self) -> CalendarDate:
        """The calendar date of this instant in the current system timezone.
        Shortcut for :meth:`CalendarDate.from_instant`."""
        return CalendarDate.from_instant(self)

    def format(self, fmt: DateFormat = "YYYY-MM-DD", /) -> str:
        """Format according to one of the fixed templates.
        Shortcut for :func:`format_date`."""
        return format_date(self, fmt)

    def _fields(self) -> list[int]:
        dt = self._py_dt
        return [
            dt.year,
            dt.month - 1,
            dt.day,
            dt.hour,
            dt.minute,
            dt.second,
            dt.microsecond // 1_000,
        ]

    def __str__(self) -> str:
        return self._py_dt.isoformat(timespec="milliseconds")

    def __repr__(self) -> str:
        return f"Instant({str(self).replace('T', ' ')})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis == other._millis

    def __hash__(self) -> int:
        return hash(self._millis)

    def __lt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis < other._millis

    def __le__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis <= other._millis

    def __gt__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis > other._millis

    def __ge__(self, other: Instant) -> bool:
        if not isinstance(other, Instant):
            return NotImplemented
        return self._millis >= other._millis

    # The local fields are re-derived when unpickling,
    # since the system timezone may differ by then.
    @no_type_check
    def __reduce__(self):
        return _unpkl_inst, (self._millis,)


# A separate unpickling function allows us to make backwards-compatible changes
# to the pickling format in the future
@no_type_check
def _unpkl_inst(millis: int) -> Instant:
    return Instant.from_timestamp_millis(millis)


DateLike = Union[str, int, float, Instant, _datetime, _date]


def _as_whole(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------


@overload
def parse_date(
    value: object, /, *, raise_on_invalid: Literal[True], fallback: Any = ...
) -> Instant: ...


@overload
def parse_date(
    value: object,
    /,
    *,
    raise_on_invalid: bool = ...,
    fallback: Optional[Instant] = ...,
) -> Optional[Instant]: ...


def parse_date(
    value: object,
    /,
    *,
    raise_on_invalid: bool = False,
    fallback: Optional[Instant] = None,
) -> Optional[Instant]:
    """Turn a string, timestamp, or datetime into an :class:`Instant`.

    Strings are tried against these shapes, in order:

    1. ``MM/DD/YYYY``, falling back to ``DD/MM/YYYY`` if the former
       isn't a real date
    2. ``DD Month YYYY`` (month names matched by their first three letters)
    3. ``Month DD, YYYY`` (the comma is optional)
    4. ISO 8601, ``YYYY-MM``, and RFC 2822

    A candidate is only accepted if building it reproduces the written
    year, month, and day exactly, so ``"04/31/2025"`` is rejected rather
    than rolled over into May. Strings without an offset are read as
    wall-clock time in the system timezone.

    Numbers are UNIX timestamps in milliseconds.

    On failure, raises :class:`DateError` if ``raise_on_invalid`` is set,
    and returns ``fallback`` otherwise.

    Example
    -------
    >>> parse_date("05/07/2025")
    Instant(2025-05-07 00:00:00.000+02:00)
    >>> parse_date("31/12/2025").month
    12
    >>> parse_date("2025-02-30") is None
    True
    """
    try:
        return _parse(value)
    except DateError:
        if raise_on_invalid:
            raise
        _logger.debug("Could not parse %r, returning fallback", value)
        return fallback


def _coerce(value: DateLike) -> Instant:
    return _parse(value)


def _parse(value: object) -> Instant:
    if isinstance(value, Instant):
        # Always a fresh instance, and re-derived in the current system timezone
        return Instant.from_timestamp_millis(value._millis)
    elif isinstance(value, _datetime):
        return Instant.from_py_datetime(value)
    elif isinstance(value, _date):
        return Instant._from_local_fields(value.year, value.month - 1, value.day)
    elif isinstance(value, bool):
        raise DateError("Invalid input type for date")
    elif isinstance(value, int):
        return Instant.from_timestamp_millis(value)
    elif isinstance(value, float):
        if not isfinite(value):
            raise DateError(f"Invalid timestamp: {value}")
        return Instant.from_timestamp_millis(int(value))
    elif isinstance(value, str):
        return _parse_str(value)
    raise DateError("Invalid input type for date")


def _parse_str(s: str) -> Instant:
    for shape in SHAPES:
        for fields in shape.candidates(s):
            if (result := _accept(fields)) is not None:
                _logger.debug("Parsed %r using the %s shape", s, shape.name)
                return result
            _logger.debug("Rejected %s candidate %s for %r", shape.name, fields, s)
    raise DateError(f"Unable to parse date: {s}")


def _accept(fields: DateFields) -> Optional[Instant]:
    """Build the candidate, but only if it round-trips to the written date"""
    try:
        naive = _math.overflowing_datetime(
            fields.year,
            fields.month - 1,
            fields.day,
            fields.hour,
            fields.minute,
            fields.second,
            fields.millisecond,
        )
        if fields.offset is None:
            result = Instant._from_aware(_tz.resolve_local(naive))
            written = result._py_dt
        else:
            result = Instant._from_aware(naive.replace(tzinfo=fields.offset))
            written = result._py_dt.astimezone(fields.offset)
    except (OverflowError, ValueError, OSError):  # includes DateError
        return None
    if (written.year, written.month, written.day) != fields[:3]:
        return None
    return result


def is_valid_date(value: object) -> bool:
    """Whether :func:`parse_date` accepts the value

    Example
    -------
    >>> is_valid_date("05/07/2025")
    True
    >>> is_valid_date("02/30/2025")
    False
    """
    return parse_date(value) is not None


# ----------------------------------------------------------------------
# Formatting
# ----------------------------------------------------------------------

_FORMAT_TEMPLATES: dict[str, str] = {
    "YYYY-MM-DD": "{year}-{month:02d}-{day:02d}",
    "MM/DD/YYYY": "{month:02d}/{day:02d}/{year}",
    "DD/MM/YYYY": "{day:02d}/{month:02d}/{year}",
    "YYYY-MM-DD HH:mm:ss": (
        "{year}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}"
    ),
    "DD MMM YYYY": "{day:02d} {month_abbr} {year}",
    "MMM DD, YYYY": "{month_abbr} {day:02d}, {year}",
    "HH:mm:ss": "{hour:02d}:{minute:02d}:{second:02d}",
    "hh:mm A": "{hour12:02d}:{minute:02d} {ampm}",
}


def format_date(value: DateLike, fmt: DateFormat = "YYYY-MM-DD") -> str:
    """Format a date-like value according to one of the fixed templates.

    The value is parsed first, so anything :func:`parse_date` accepts
    works here too.

    Example
    -------
    >>> i = create_date(2025, 4, 7, 14, 30)
    >>> format_date(i, "DD MMM YYYY")
    '07 May 2025'
    >>> format_date(i, "hh:mm A")
    '02:30 PM'
    """
    dt = _coerce(value)._py_dt
    template = _FORMAT_TEMPLATES.get(fmt) if isinstance(fmt, str) else None
    if template is None:
        raise DateError(f"Unsupported date format: {fmt}")
    return template.format(
        year=dt.year,
        month=dt.month,
        day=dt.day,
        hour=dt.hour,
        hour12=dt.hour % 12 or 12,
        minute=dt.minute,
        second=dt.second,
        ampm="PM" if dt.hour >= 12 else "AM",
        month_abbr=MONTH_ABBREVIATIONS[dt.month - 1],
    )


# Which group of each template's shape holds which field,
# using strftime-like letters. `b` is a month name and `p` is AM/PM.
_FORMAT_FIELDS: dict[str, str] = {
    "YYYY-MM-DD": "Ymd",
    "MM/DD/YYYY": "mdY",
    "DD/MM/YYYY": "dmY",
    "YYYY-MM-DD HH:mm:ss": "YmdHMS",
    "DD MMM YYYY": "dbY",
    "MMM DD, YYYY": "bdY",
    "HH:mm:ss": "HMS",
    "hh:mm A": "IMp",
}

_FIELD_RANGES: dict[str, range] = {
    "m": range(1, 13),
    "d": range(1, 32),
    "H": range(24),
    "M": range(60),
    "S": range(60),
    "I": range(1, 13),
}


def validate_date_format(s: str, fmt: DateFormat) -> bool:
    """Check that a string has the shape of a format template
    *and* denotes a real date.

    Unknown templates aren't an error: they simply don't validate.
    Templates without a date part are checked by shape and range only.

    Example
    -------
    >>> validate_date_format("05/07/2025", "MM/DD/YYYY")
    True
    >>> validate_date_format("13/07/2025", "MM/DD/YYYY")
    False
    >>> validate_date_format("14:30 PM", "hh:mm A")
    False
    """
    if not isinstance(s, str) or not isinstance(fmt, str):
        return False
    if (match := match_format(s, fmt)) is None:
        return False
    for field, raw in zip(_FORMAT_FIELDS[fmt], match.groups()):
        if field in _FIELD_RANGES and int(raw) not in _FIELD_RANGES[field]:
            return False
    if "d" not in _FORMAT_FIELDS[fmt]:
        return True
    return is_valid_date(s)


# ----------------------------------------------------------------------
# Calendar arithmetic
# ----------------------------------------------------------------------


def create_date(
    year: int,
    month_index: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    millisecond: int = 0,
) -> Instant:
    """Create an Instant from wall-clock fields in the system timezone.

    Note that the month is zero-based (0 is January), and that a day which
    doesn't exist in the month is an error rather than rolling over.
    Time fields may overflow into the next day as long as
    the month stays the same.

    Example
    -------
    >>> create_date(2024, 1, 29)  # February 29th
    Instant(2024-02-29 00:00:00.000+01:00)
    >>> create_date(2025, 3, 31)
    Traceback (most recent call last):
      ...
    chronoutilz.DateError: ChronoUtilz Error: Invalid day 31 for month 3
    """
    parts = [
        _as_whole(v)
        for v in (year, month_index, day, hour, minute, second, millisecond)
    ]
    if None in parts:
        raise DateError("Invalid date components provided to create_date")
    if not 0 <= parts[1] <= 11:  # type: ignore[operator]
        raise DateError(f"Month must be between 0 and 11, got {month_index}")
    try:
        result = Instant._from_local_fields(*parts)  # type: ignore[arg-type]
    except DateError:
        raise DateError(
            "Invalid date components provided to create_date"
        ) from None
    # Overflowing days roll into the next month, e.g. April 31st -> May 1st
    if result.month_index != parts[1]:
        raise DateError(f"Invalid day {day} for month {month_index}")
    return result


def add_time(value: DateLike, amount: int, unit: TimeUnit) -> Instant:
    """Add an amount of the given unit.

    Units up to an hour are exact durations. Days and weeks move the
    calendar date while keeping the wall-clock time, so a day across a DST
    transition may be 23 or 25 hours long. Months and years move the
    calendar fields and let an overflowing day roll over into the next
    month, the same way the standard JavaScript ``Date`` does:

    >>> add_time("2025-01-31", 1, "month")
    Instant(2025-03-03 00:00:00.000+01:00)
    >>> add_time("2024-02-29", 1, "year")
    Instant(2025-03-01 00:00:00.000+01:00)

    This is deliberately more permissive than :func:`create_date`.

    Since days and weeks keep the wall-clock time, subtracting what was
    added only gives back the same instant when no DST transition
    lies in between.
    """
    start = _coerce(value)
    if (n := _as_whole(amount)) is None:
        raise DateError(f"Invalid amount: {amount!r}")

    if unit in ("millisecond", "second", "minute", "hour"):
        return Instant.from_timestamp_millis(start._millis + n * _UNIT_MILLIS[unit])

    fields = start._fields()
    if unit == "day":
        fields[2] += n
    elif unit == "week":
        fields[2] += n * 7
    elif unit == "month":
        fields[1] += n
    elif unit == "year":
        fields[0] += n
    else:
        raise DateError(f"Invalid time unit: {unit}")
    return Instant._from_local_fields(*fields)


def subtract_time(value: DateLike, amount: int, unit: TimeUnit) -> Instant:
    """The inverse of :func:`add_time`"""
    if (n := _as_whole(amount)) is None:
        raise DateError(f"Invalid amount: {amount!r}")
    return add_time(value, -n, unit)


def date_diff(a: DateLike, b: DateLike, unit: TimeUnit) -> int | float:
    """The difference ``a - b`` in the given unit.

    Fixed-length units are floored, so half a day in the past is ``-1``.
    ``month`` counts calendar months between the two dates
    while ignoring the day of the month. ``year`` is a fractional
    count of twelfths, based on the months only.

    Example
    -------
    >>> date_diff("2025-05-10", "2025-05-05", "day")
    5
    >>> date_diff("2025-08-01", "2025-05-31", "month")
    3
    >>> date_diff("2025-08-01", "2024-05-31", "year")
    1.25
    """
    first, second = _coerce(a), _coerce(b)
    if unit == "month":
        return _math.months_between(first._py_dt, second._py_dt)
    elif unit == "year":
        return (first.year - second.year) + (first.month - second.month) / 12
    try:
        size = _UNIT_MILLIS[unit]
    except KeyError:
        raise DateError(f"Invalid time unit: {unit}") from None
    return (first._millis - second._millis) // size


def is_between_dates(
    value: DateLike, start: DateLike, end: DateLike, inclusive: bool = True
) -> bool:
    """Whether a moment lies between two others.
    The bounds themselves count only if ``inclusive`` is set."""
    moment, low, high = _coerce(value), _coerce(start), _coerce(end)
    if inclusive:
        return low <= moment <= high
    return low < moment < high


def start_of(value: DateLike, unit: StartOfUnit) -> Instant:
    """The first moment of the hour, day, week, month, or year.
    Weeks start on Sunday.

    Example
    -------
    >>> start_of(create_date(2025, 4, 7, 14, 30), "week")
    Instant(2025-05-04 00:00:00.000+02:00)
    """
    moment = _coerce(value)
    year, month_index, day, hour, *_ = moment._fields()
    if unit == "hour":
        return Instant._from_local_fields(year, month_index, day, hour)
    elif unit == "day":
        return Instant._from_local_fields(year, month_index, day)
    elif unit == "week":
        return Instant._from_local_fields(
            year, month_index, day - moment.day_of_week()
        )
    elif unit == "month":
        return Instant._from_local_fields(year, month_index, 1)
    elif unit == "year":
        return Instant._from_local_fields(year, 0, 1)
    raise DateError(f"Invalid time unit for start_of: {unit}")


def end_of(value: DateLike, unit: StartOfUnit) -> Instant:
    """The last millisecond of the hour, day, week, month, or year.
    Weeks end on Saturday."""
    moment = _coerce(value)
    year, month_index, day, hour, *_ = moment._fields()
    if unit == "hour":
        return Instant._from_local_fields(
            year, month_index, day, hour, 59, 59, 999
        )
    elif unit == "day":
        pass
    elif unit == "week":
        day += 6 - moment.day_of_week()
    elif unit == "month":
        # day 0 of the next month is the last day of this one
        month_index, day = month_index + 1, 0
    elif unit == "year":
        month_index, day = 11, 31
    else:
        raise DateError(f"Invalid time unit for end_of: {unit}")
    return Instant._from_local_fields(year, month_index, day, 23, 59, 59, 999)


def day_of_year(value: DateLike) -> int:
    """The day of the year, from 1 to 366

    >>> day_of_year("2024-05-07")
    128
    """
    return _math.day_of_year(_coerce(value)._py_dt.date())


def week_of_year(value: DateLike) -> int:
    """The ISO 8601 week number, from 1 to 53.

    Weeks start on Monday, and week 1 is the week holding the first
    Thursday of the year. Early January days may therefore be in week
    52 or 53, and late December days in week 1.

    >>> week_of_year("2021-01-01")
    53
    """
    return _math.iso_week(_coerce(value)._py_dt.date())


def is_leap_year(year_or_date: int | DateLike) -> bool:
    """Whether a year (or the year of a date) is a Gregorian leap year.

    Numbers are always years here, never timestamps.
    """
    if isinstance(year_or_date, (int, float)) and not isinstance(
        year_or_date, bool
    ):
        year = _as_whole(year_or_date)
        return year is not None and _math.is_leap(year)
    return _math.is_leap(_coerce(year_or_date).year)


def days_in_month(value: DateLike) -> int:
    """The number of days in the month of a date"""
    moment = _coerce(value)
    return _math.days_in_month(moment.year, moment.month)


# ----------------------------------------------------------------------
# Calendar dates
# ----------------------------------------------------------------------


@final
class CalendarDate(_ImmutableBase):
    """A date without a time component

    Unlike :func:`create_date`, the month is one-based.

    Example
    -------
    >>> d = CalendarDate(2025, 5, 7)
    >>> d.add(1, "month")
    CalendarDate(2025-06-07)
    """

    __slots__ = ("_year", "_month", "_day")

    def __init__(self, year: int, month: int, day: int) -> None:
        month_index = (
            month - 1
            if isinstance(month, (int, float)) and not isinstance(month, bool)
            else month
        )
        moment = create_date(year, month_index, day)
        self._year = moment.year
        self._month = moment.month
        self._day = moment.day

    @classmethod
    def from_instant(cls, i: Instant, /) -> CalendarDate:
        """The date of an instant in the current system timezone.

        Like every other function taking an :class:`Instant`, this re-reads
        the fields under the current ``TZ``, not the fields the instant
        was created with.
        """
        if not isinstance(i, Instant):
            raise TypeError(f"Expected Instant, got {type(i)!r}")
        dt = _coerce(i)._py_dt
        return cls._from_fields_unchecked(dt.year, dt.month, dt.day)

    @classmethod
    def from_py_date(cls, d: _date, /) -> CalendarDate:
        """Create from a :class:`~datetime.date`"""
        if not isinstance(d, _date):
            raise TypeError(f"Expected date, got {type(d)!r}")
        return cls(d.year, d.month, d.day)

    @classmethod
    def parse(cls, value: DateLike, /) -> CalendarDate:
        """Parse anything :func:`parse_date` accepts, keeping only the date

        >>> CalendarDate.parse("May 7, 2025")
        CalendarDate(2025-05-07)
        """
        return cls.from_instant(_coerce(value))

    @classmethod
    def _from_fields_unchecked(
        cls, year: int, month: int, day: int
    ) -> CalendarDate:
        self = _object_new(cls)
        self._year = year
        self._month = month
        self._day = day
        return self

    @property
    def year(self) -> int:
        return self._year

    @property
    def month(self) -> int:
        """The month, from 1 to 12"""
        return self._month

    @property
    def day(self) -> int:
        return self._day

    def to_instant(self) -> Instant:
        """The start of this date (local midnight)"""
        return create_date(self._year, self._month - 1, self._day)

    def py_date(self) -> _date:
        """Convert to a standard library :class:`~datetime.date`"""
        return _date(self._year, self._month, self._day)

    def add(self, amount: int, unit: CalendarUnit) -> CalendarDate:
        """Add days, weeks, months, or years.

        Like :func:`add_time`, an overflowing day rolls over:

        >>> CalendarDate(2025, 1, 31).add(1, "month")
        CalendarDate(2025-03-03)
        """
        if unit not in ("day", "week", "month", "year"):
            raise DateError(f"Invalid time unit for CalendarDate: {unit}")
        return CalendarDate.from_instant(
            add_time(self.to_instant(), amount, unit)
        )

    def _key(self) -> tuple[int, int, int]:
        return (self._year, self._month, self._day)

    def equals(self, other: CalendarDate) -> bool:
        return isinstance(other, CalendarDate) and self._key() == other._key()

    def compare(self, other: CalendarDate) -> int:
        """Negative if this date is earlier, zero if equal,
        and positive if it's later"""
        if self._year != other._year:
            return self._year - other._year
        if self._month != other._month:
            return self._month - other._month
        return self._day - other._day

    def is_before(self, other: CalendarDate) -> bool:
        return self.compare(other) < 0

    def is_after(self, other: CalendarDate) -> bool:
        return self.compare(other) > 0

    def __str__(self) -> str:
        return format_date(self.to_instant(), "YYYY-MM-DD")

    def __repr__(self) -> str:
        return f"CalendarDate({self})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CalendarDate):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: CalendarDate) -> bool:
        if not isinstance(other, CalendarDate):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: CalendarDate) -> bool:
        if not isinstance(other, CalendarDate):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: CalendarDate) -> bool:
        if not isinstance(other, CalendarDate):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: CalendarDate) -> bool:
        if not isinstance(other, CalendarDate):
            return NotImplemented
        return self._key() >= other._key()

    @no_type_check
    def __reduce__(self):
        return _unpkl_date, (self._year, self._month, self._day)


@no_type_check
def _unpkl_date(year: int, month: int, day: int) -> CalendarDate:
    return CalendarDate._from_fields_unchecked(year, month, day)


# ----------------------------------------------------------------------
# Derived utilities
# ----------------------------------------------------------------------


def relative_time(value: DateLike, base: Optional[DateLike] = None) -> str:
    """Describe a moment relative to another (by default: now)

    Up to four weeks, the difference is expressed in the largest unit that
    fits. Beyond that, whole calendar months or years are counted.

    Example
    -------
    >>> relative_time("2025-05-07 12:35", base="2025-05-07 12:30")
    'in 5 minutes'
    >>> relative_time("2024-11-07", base="2025-05-07")
    '6 months ago'
    """
    target = _coerce(value)
    origin = Instant.now() if base is None else _coerce(base)

    delta = target._millis - origin._millis
    is_past = delta < 0
    # rounded half up
    seconds = (abs(delta) + 500) // MS_PER_SECOND

    def phrase(count: int, unit: str) -> str:
        noun = unit if count == 1 else unit + "s"
        return f"{count} {noun} ago" if is_past else f"in {count} {noun}"

    if seconds < 5:
        return "just now"
    elif seconds < 60:
        return phrase(seconds, "second")
    elif seconds < 3_600:
        return phrase(seconds // 60, "minute")
    elif seconds < 86_400:
        return phrase(seconds // 3_600, "hour")
    elif seconds < 604_800:
        return phrase(seconds // 86_400, "day")
    elif seconds < 2_629_800:
        return phrase(seconds // 604_800, "week")

    to, from_ = target._py_dt.date(), origin._py_dt.date()
    months = _math.months_between(to, from_)
    # the day of the month hasn't been reached yet
    if to.day < from_.day:
        months -= 1
    if abs(months) >= 12:
        return phrase(abs(months) // 12, "year")
    return phrase(abs(months), "month")


def to_utc(value: DateLike) -> Instant:
    """Shift a moment by the local UTC offset, so that its calendar fields
    (read in the system timezone, as always) show the UTC wall-clock time.

    The result is a *different* moment in time. It's only meaningful for
    reading or formatting fields.

    >>> to_utc(create_date(2025, 4, 7, 12)).hour  # in UTC+02:00
    10
    """
    moment = _coerce(value)
    return Instant.from_timestamp_millis(
        moment._millis - moment._utc_offset_millis()
    )


def utc_now() -> Instant:
    """:func:`to_utc` applied to the current time"""
    return to_utc(Instant.now())


def timezone_offset(value: Optional[DateLike] = None) -> int:
    """The minutes to add to local time to get UTC, at the given moment
    (by default: now). Positive west of Greenwich, e.g. ``300`` for New York
    in winter, and ``-120`` for Amsterdam in summer."""
    moment = Instant.now() if value is None else _coerce(value)
    return -moment.utc_offset_minutes()


def timezone_string() -> str:
    """The current offset of the system timezone, e.g. ``UTC+02:00``"""
    offset = timezone_offset()
    sign = "+" if offset <= 0 else "-"
    hours, minutes = divmod(abs(offset), 60)
    return f"UTC{sign}{hours:02d}:{minutes:02d}"


def generate_date_range(
    start: DateLike,
    end: DateLike,
    *,
    unit: TimeUnit = "day",
    step: int = 1,
    inclusive: bool = True,
) -> list[Instant]:
    """All moments from ``start`` up to ``end``, ``step`` units apart.

    Steps are taken with :func:`add_time`, so month steps roll over
    the same way.

    Example
    -------
    >>> [i.day for i in generate_date_range("2025-05-01", "2025-05-03")]
    [1, 2, 3]
    >>> len(generate_date_range("2025-05-01", "2025-05-03", inclusive=False))
    2
    """
    first, last = _coerce(start), _coerce(end)
    if first > last:
        raise DateError("Start date must be before or equal to end date")
    if (n := _as_whole(step)) is None or n < 1:
        raise DateError(f"Step must be a positive whole number, got {step!r}")

    result = []
    current = first
    while current < last or (inclusive and current == last):
        result.append(current)
        current = add_time(current, n, unit)
    return result


_DURATION_UNITS: list[tuple[str, str, int]] = [
    ("year", "y", 31_536_000_000),
    ("month", "mo", 2_592_000_000),
    ("day", "d", MS_PER_DAY),
    ("hour", "h", MS_PER_HOUR),
    ("minute", "m", MS_PER_MINUTE),
    ("second", "s", MS_PER_SECOND),
    ("millisecond", "ms", 1),
]


def format_duration(
    milliseconds: int | float,
    *,
    long_format: bool = True,
    max_units: int = 3,
) -> str:
    """Describe a duration using its largest units.

    Years are 365 days and months 30 days. The sign is ignored.

    Example
    -------
    >>> format_duration(90_061_000)
    '1 day, 1 hour, 1 minute'
    >>> format_duration(90_061_000, long_format=False, max_units=4)
    '1d 1h 1m 1s'
    """
    if (
        not isinstance(milliseconds, (int, float))
        or isinstance(milliseconds, bool)
        or not isfinite(milliseconds)
    ):
        raise DateError(f"Invalid duration: {milliseconds!r}")
    if (limit := _as_whole(max_units)) is None or limit < 1:
        raise DateError(
            f"max_units must be a positive whole number, got {max_units!r}"
        )
    parts: list[str] = []
    remaining = abs(milliseconds)
    for long_name, short_name, size in _DURATION_UNITS:
        if len(parts) >= limit:
            break
        count, remaining = divmod(remaining, size)
        if not count:
            continue
        count = int(count)
        if long_format:
            parts.append(f"{count} {long_name}{'' if count == 1 else 's'}")
        else:
            parts.append(f"{count}{short_name}")
    if not parts:
        return "0 milliseconds" if long_format else "0ms"
    return (", " if long_format else " ").join(parts)


def quarter(value: DateLike) -> int:
    """The quarter of the year, from 1 to 4

    >>> quarter("2025-04-10")
    2
    """
    return _coerce(value).month_index // 3 + 1


def quarter_date(value: DateLike, which: Literal["start", "end"]) -> Instant:
    """Local midnight of the first or last day of the date's quarter

    >>> quarter_date("2025-09-15", "end")
    Instant(2025-09-30 00:00:00.000+02:00)
    """
    moment = _coerce(value)
    q = quarter(moment)
    if which == "start":
        return Instant._from_local_fields(moment.year, (q - 1) * 3, 1)
    elif which == "end":
        # day 0 of the next quarter is the last day of this one
        return Instant._from_local_fields(moment.year, q * 3, 0)
    raise DateError(f"Expected 'start' or 'end', got {which!r}")


def business_days(
    start: DateLike, end: DateLike, holidays: Iterable[DateLike] = ()
) -> int:
    """Count the weekdays from the start date up to ``end``, inclusive,
    leaving out holidays.

    Example
    -------
    >>> business_days("2025-05-01", "2025-05-07", ["2025-05-05"])
    4
    """
    # This is such a common mistake, that we raise a descriptive error
    if isinstance(holidays, (str, bytes)):
        raise DateError("holidays must be an iterable of dates, not a string")
    first, last = _coerce(start), _coerce(end)
    skipped = {format_date(h, "YYYY-MM-DD") for h in holidays}

    count = 0
    current = start_of(first, "day")
    while current <= last:
        if (
            current.day_of_week() not in _WEEKEND
            and format_date(current, "YYYY-MM-DD") not in skipped
        ):
            count += 1
        current = add_time(current, 1, "day")
    return count


@overload
def calculate_age(
    birth: DateLike,
    *,
    reference: Optional[DateLike] = ...,
    units: None = ...,
) -> int: ...


@overload
def calculate_age(
    birth: DateLike,
    *,
    reference: Optional[DateLike] = ...,
    units: Iterable[Literal["year", "month", "day"]],
) -> int | Age: ...


def calculate_age(
    birth: DateLike,
    *,
    reference: Optional[DateLike] = None,
    units: Optional[Iterable[Literal["year", "month", "day"]]] = None,
) -> int | Age:
    """The age at a reference date (by default: now).

    Without ``units`` (or with only ``"year"``), returns the completed
    years. Otherwise, returns an :class:`Age` with years, months and days.

    Example
    -------
    >>> calculate_age("2000-05-01", reference="2025-05-07")
    25
    >>> calculate_age("1990-06-15", reference="2025-05-07", units=["year", "month", "day"])
    Age(years=34, months=10, days=22)
    """
    born = _coerce(birth)
    ref = Instant.now() if reference is None else _coerce(reference)
    if born > ref:
        raise DateError("Birth date cannot be in the future")

    wanted = (units,) if isinstance(units, str) else tuple(units or ())
    if unknown := set(wanted) - {"year", "month", "day"}:
        raise DateError(f"Invalid units for calculate_age: {sorted(unknown)}")

    b, r = born._py_dt, ref._py_dt
    if not wanted or wanted == ("year",):
        age = r.year - b.year
        # the birthday hasn't come yet this year
        if (r.month, r.day) < (b.month, b.day):
            age -= 1
        return age

    years = r.year - b.year
    months = r.month - b.month
    days = r.day - b.day
    if days < 0:
        months -= 1
        # borrow the length of the month before the reference date
        if r.month == 1:
            days += _math.days_in_month(r.year - 1, 12)
        else:
            days += _math.days_in_month(r.year, r.month - 1)
    if months < 0:
        years -= 1
        months += 12
    return Age(years, months, days)


# We expose the public members in the root of the module.
# For clarity, we remove the "_chronoutilz" part from the names,
# since this is an implementation detail.
for name in __all__:
    member = locals()[name]
    if getattr(member, "__module__", None) == __name__:
        member.__module__ = "chronoutilz"

# clear up loop variables so they don't leak into the namespace
del name
del member

for _unpkl in (_unpkl_inst, _unpkl_date):
    _unpkl.__module__ = "chronoutilz"

# disable further subclassing
final(_ImmutableBase)


# ----------------------------------------------------------------------
# Clock patching (for testing)
# ----------------------------------------------------------------------


def _patch_time_frozen(inst: Instant) -> None:
    global time_ns

    def time_ns() -> int:
        return inst.timestamp_millis() * 1_000_000


def _patch_time_keep_ticking(inst: Instant) -> None:
    global time_ns

    _patched_at = time_ns()
    _time_ns = time_ns

    def time_ns() -> int:
        return inst.timestamp_millis() * 1_000_000 + _time_ns() - _patched_at


def _unpatch_time() -> None:
    global time_ns

    from time import time_ns
