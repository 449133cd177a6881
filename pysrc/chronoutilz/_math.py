"""Date, calendar, and time arithmetic helpers."""

from datetime import (
    date as _date,
    datetime as _datetime,
    timedelta as _timedelta,
)


def is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


# 1-indexed days per month
_MONTHDAYS = [0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


def days_in_month(year: int, month: int) -> int:
    return _MONTHDAYS[month] + (month == 2 and is_leap(year))


def overflowing_datetime(
    year: int,
    month_index: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    millisecond: int = 0,
) -> _datetime:
    """Build a naive datetime from fields that may exceed their usual range.

    Excess carries into the next larger field: month index 12 is January of
    the following year, day 0 is the last day of the previous month,
    and hour 24 is midnight of the next day.

    Raises ValueError or OverflowError if the result falls outside
    the years 1-9999.
    """
    year_overflow, month0 = divmod(month_index, 12)
    return _datetime(year + year_overflow, month0 + 1, 1) + _timedelta(
        days=day - 1,
        hours=hour,
        minutes=minute,
        seconds=second,
        milliseconds=millisecond,
    )


def day_of_year(d: _date) -> int:
    return d.toordinal() - _date(d.year, 1, 1).toordinal() + 1


def iso_week(d: _date) -> int:
    # The ISO week of a date is the week of the Thursday in that same week,
    # and week 1 is the one holding the year's first Thursday.
    thursday = d + _timedelta(3 - d.weekday())
    jan_1 = thursday.replace(month=1, day=1)
    first_thursday = jan_1 + _timedelta((3 - jan_1.weekday()) % 7)
    return 1 + (thursday - first_thursday).days // 7


def months_between(a: _date, b: _date) -> int:
    """Whole calendar months from b to a, ignoring the day of the month"""
    return (a.year - b.year) * 12 + (a.month - b.month)
