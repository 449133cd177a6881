from datetime import date as py_date

import pytest
from hypothesis import given
from hypothesis.strategies import floats, integers, sampled_from

from chronoutilz import (
    Age,
    DateError,
    Instant,
    add_time,
    business_days,
    calculate_age,
    create_date,
    format_duration,
    generate_date_range,
    parse_date,
    quarter,
    quarter_date,
    relative_time,
    timezone_offset,
    to_utc,
)

from .common import system_tz, system_tz_ams, system_tz_nyc, system_tz_utc

BASE = 1_746_621_000_000  # 2025-05-07T12:30Z
SECOND = 1_000
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR


class TestRelativeTime:

    @pytest.mark.parametrize(
        "delta, expect",
        [
            (0, "just now"),
            (4_499, "just now"),
            (-4_499, "just now"),
            (4_500, "in 5 seconds"),
            (-30 * SECOND, "30 seconds ago"),
            (-59_499, "59 seconds ago"),
            (59_500, "in 1 minute"),
            (MINUTE, "in 1 minute"),
            (-45 * MINUTE, "45 minutes ago"),
            (90 * MINUTE, "in 1 hour"),
            (-2 * HOUR, "2 hours ago"),
            (DAY, "in 1 day"),
            (-6 * DAY, "6 days ago"),
            (7 * DAY, "in 1 week"),
            (-30 * DAY, "4 weeks ago"),
            (31 * DAY, "in 1 month"),
        ],
    )
    def test_thresholds(self, delta, expect):
        assert relative_time(BASE + delta, base=BASE) == expect

    @system_tz_ams()
    @pytest.mark.parametrize(
        "value, base, expect",
        [
            ("2024-11-07", "2025-05-07", "6 months ago"),
            ("2025-11-07", "2025-05-07", "in 6 months"),
            ("2025-07-06", "2025-05-07", "in 1 month"),
            ("2025-07-07", "2025-05-07", "in 2 months"),
            ("2024-05-07", "2025-05-07", "1 year ago"),
            ("2023-01-01", "2025-05-07", "2 years ago"),
            ("2030-05-07", "2025-05-07", "in 5 years"),
        ],
    )
    def test_calendar_months(self, value, base, expect):
        assert relative_time(value, base=base) == expect

    def test_invalid(self):
        with pytest.raises(DateError, match="Unable to parse date"):
            relative_time("nope", base=BASE)
        with pytest.raises(DateError, match="Unable to parse date"):
            relative_time(BASE, base="nope")

    @given(integers(-10 * 365 * DAY, 10 * 365 * DAY))
    def test_direction(self, delta):
        with system_tz_ams():
            phrase = relative_time(BASE + delta, base=BASE)
            if phrase != "just now":
                assert phrase.endswith(" ago") == (delta < 0)
                assert phrase.startswith("in ") == (delta > 0)


class TestToUtc:

    @system_tz_ams()
    def test_shifts_fields(self):
        assert to_utc(create_date(2025, 4, 7, 12)).hour == 10
        assert to_utc(create_date(2025, 0, 7, 12)).hour == 11

    @system_tz_nyc()
    def test_west(self):
        assert to_utc(create_date(2025, 0, 7, 12)).hour == 17
        assert to_utc(create_date(2025, 0, 7, 22)).day == 8

    @system_tz_utc()
    def test_noop_in_utc(self):
        i = create_date(2025, 4, 7, 12)
        assert to_utc(i) == i

    @system_tz_ams()
    def test_is_a_different_moment(self):
        i = create_date(2025, 4, 7, 12)
        assert to_utc(i).timestamp_millis() - i.timestamp_millis() == -2 * HOUR


class TestTimezoneOffset:

    @pytest.mark.parametrize(
        "tz, winter, summer",
        [
            ("Europe/Amsterdam", -60, -120),
            ("America/New_York", 300, 240),
            ("Asia/Kolkata", -330, -330),
            ("UTC", 0, 0),
        ],
    )
    def test_sign_convention(self, tz, winter, summer):
        with system_tz(tz):
            assert timezone_offset("2025-01-15T12:00:00Z") == winter
            assert timezone_offset("2025-07-15T12:00:00Z") == summer

    def test_invalid(self):
        with pytest.raises(DateError):
            timezone_offset("nope")


class TestGenerateDateRange:

    @system_tz_ams()
    def test_days(self):
        result = generate_date_range("2025-05-01", "2025-05-03")
        assert result == [
            create_date(2025, 4, 1),
            create_date(2025, 4, 2),
            create_date(2025, 4, 3),
        ]

    @system_tz_ams()
    def test_exclusive(self):
        result = generate_date_range("2025-05-01", "2025-05-03", inclusive=False)
        assert [i.day for i in result] == [1, 2]

    @system_tz_ams()
    def test_step(self):
        result = generate_date_range("2025-05-01", "2025-05-06", step=2)
        assert [i.day for i in result] == [1, 3, 5]

    @system_tz_ams()
    def test_months_roll_over(self):
        result = generate_date_range("2025-01-31", "2025-05-01", unit="month")
        assert result == [
            create_date(2025, 0, 31),
            create_date(2025, 2, 3),
            create_date(2025, 3, 3),
        ]

    @system_tz_ams()
    def test_hours(self):
        result = generate_date_range(
            "2025-05-01T00:00", "2025-05-01T03:00", unit="hour"
        )
        assert [i.hour for i in result] == [0, 1, 2, 3]

    def test_single(self):
        assert generate_date_range(BASE, BASE) == [Instant.from_timestamp_millis(BASE)]
        assert generate_date_range(BASE, BASE, inclusive=False) == []

    def test_start_after_end(self):
        with pytest.raises(
            DateError, match="Start date must be before or equal to end date"
        ):
            generate_date_range("2025-05-03", "2025-05-01")

    @pytest.mark.parametrize("step", [0, -1, 1.5, "1", None])
    def test_invalid_step(self, step):
        with pytest.raises(DateError, match="Step must be a positive"):
            generate_date_range("2025-05-01", "2025-05-03", step=step)

    def test_invalid_unit(self):
        with pytest.raises(DateError, match="Invalid time unit"):
            generate_date_range("2025-05-01", "2025-05-03", unit="eon")  # type: ignore[arg-type]

    @given(
        integers(0, 2_000_000_000_000),
        integers(0, 20 * DAY),
        sampled_from(["hour", "day", "week", "month"]),
        integers(1, 10),
    )
    def test_properties(self, start, length, unit, step):
        with system_tz_ams():
            result = generate_date_range(
                start, start + length, unit=unit, step=step
            )
            assert result[0] == Instant.from_timestamp_millis(start)
            assert result[-1].timestamp_millis() <= start + length
            assert all(a < b for a, b in zip(result, result[1:]))


class TestFormatDuration:

    @pytest.mark.parametrize(
        "ms, expect",
        [
            (0, "0 milliseconds"),
            (1, "1 millisecond"),
            (2, "2 milliseconds"),
            (90_061_000, "1 day, 1 hour, 1 minute"),
            (3_600_001, "1 hour, 1 millisecond"),
            (-3_600_000, "1 hour"),
            (31_536_000_000 + 2 * 2_592_000_000, "1 year, 2 months"),
            (1_500.5, "1 second, 500 milliseconds"),
        ],
    )
    def test_long(self, ms, expect):
        assert format_duration(ms) == expect

    @pytest.mark.parametrize(
        "ms, expect",
        [
            (0, "0ms"),
            (90_061_000, "1d 1h 1m"),
            (31_536_000_000 + 2_592_000_000 + 1, "1y 1mo 1ms"),
        ],
    )
    def test_short(self, ms, expect):
        assert format_duration(ms, long_format=False) == expect

    def test_max_units(self):
        assert format_duration(90_061_000, max_units=1) == "1 day"
        assert (
            format_duration(90_061_000, long_format=False, max_units=4)
            == "1d 1h 1m 1s"
        )

    @pytest.mark.parametrize(
        "value", [float("nan"), float("inf"), "1000", None, True]
    )
    def test_invalid(self, value):
        with pytest.raises(DateError, match="Invalid duration"):
            format_duration(value)

    @pytest.mark.parametrize("max_units", [0, -1, 1.5])
    def test_invalid_max_units(self, max_units):
        with pytest.raises(DateError, match="max_units"):
            format_duration(1_000, max_units=max_units)

    @given(
        floats(-1e15, 1e15, allow_nan=False),
        integers(1, 7),
        sampled_from([True, False]),
    )
    def test_part_count(self, ms, max_units, long_format):
        out = format_duration(ms, long_format=long_format, max_units=max_units)
        sep = ", " if long_format else " "
        assert 1 <= len(out.split(sep)) <= max_units


class TestQuarter:

    @system_tz_ams()
    @pytest.mark.parametrize(
        "value, expect",
        [
            ("2025-01-01", 1),
            ("2025-03-31", 1),
            ("2025-04-01", 2),
            ("2025-09-30", 3),
            ("2025-12-31", 4),
        ],
    )
    def test_quarter(self, value, expect):
        assert quarter(value) == expect

    @system_tz_ams()
    @pytest.mark.parametrize(
        "value, start, end",
        [
            ("2025-05-07", (2025, 3, 1), (2025, 5, 30)),
            ("2025-01-01", (2025, 0, 1), (2025, 2, 31)),
            ("2025-11-15", (2025, 9, 1), (2025, 11, 31)),
            ("2024-02-29", (2024, 0, 1), (2024, 2, 31)),
        ],
    )
    def test_quarter_date(self, value, start, end):
        assert quarter_date(value, "start") == create_date(*start)
        assert quarter_date(value, "end") == create_date(*end)

    def test_invalid_which(self):
        with pytest.raises(DateError, match="Expected 'start' or 'end'"):
            quarter_date("2025-05-07", "middle")  # type: ignore[arg-type]


class TestBusinessDays:

    @system_tz_ams()
    def test_with_holiday(self):
        assert business_days("2025-05-01", "2025-05-07", ["2025-05-05"]) == 4

    @system_tz_ams()
    def test_without_holidays(self):
        assert business_days("2025-05-01", "2025-05-07") == 5

    @system_tz_ams()
    def test_holidays_of_any_date_like(self):
        holidays = [py_date(2025, 5, 5), "May 6, 2025", create_date(2025, 4, 7, 15)]
        assert business_days("2025-05-01", "2025-05-07", holidays) == 2

    @system_tz_ams()
    def test_weekend_holidays_dont_count_twice(self):
        assert business_days("2025-05-01", "2025-05-07", ["2025-05-03"]) == 5

    @system_tz_ams()
    def test_start_counts_from_its_date(self):
        assert business_days("2025-05-03T15:00", "2025-05-05T09:00") == 1
        assert business_days("2025-05-02T15:00", "2025-05-02T16:00") == 1

    @system_tz_ams()
    def test_across_dst(self):
        assert business_days("2025-03-28", "2025-04-01") == 3
        assert business_days("2025-10-24", "2025-10-28") == 3

    def test_end_before_start(self):
        assert business_days("2025-05-07", "2025-05-01") == 0

    def test_holidays_string(self):
        with pytest.raises(DateError, match="iterable of dates"):
            business_days("2025-05-01", "2025-05-07", "2025-05-05")  # type: ignore[arg-type]

    def test_invalid_holiday(self):
        with pytest.raises(DateError, match="Unable to parse date"):
            business_days("2025-05-01", "2025-05-07", ["2025-02-30"])

    @given(integers(0, 2_000), integers(0, 100))
    def test_at_most_five_per_week(self, offset, length):
        with system_tz_ams():
            start = add_time(create_date(2020, 0, 1), offset, "day")
            end = add_time(start, length, "day")
            count = business_days(start, end)
            assert count <= length + 1
            assert count <= 5 * ((length + 1) // 7 + 1)


class TestCalculateAge:

    @pytest.mark.parametrize(
        "birth, reference, expect",
        [
            ("2000-05-01", "2025-05-07", 25),
            ("2000-05-07", "2025-05-07", 25),
            ("2000-05-08", "2025-05-07", 24),
            ("2000-12-31", "2025-05-07", 24),
            ("2004-02-29", "2025-02-28", 20),
            ("2004-02-29", "2025-03-01", 21),
            ("2025-05-07", "2025-05-07", 0),
        ],
    )
    def test_years(self, birth, reference, expect):
        with system_tz_ams():
            assert calculate_age(birth, reference=reference) == expect
            assert calculate_age(birth, reference=reference, units=["year"]) == expect
            assert calculate_age(birth, reference=reference, units="year") == expect  # type: ignore[arg-type]

    @system_tz_ams()
    @pytest.mark.parametrize(
        "birth, reference, expect",
        [
            ("1990-06-15", "2025-05-07", Age(34, 10, 22)),
            ("2000-05-01", "2025-05-07", Age(25, 0, 6)),
            ("2025-01-15", "2025-03-10", Age(0, 1, 23)),
            ("2024-12-20", "2025-01-05", Age(0, 0, 16)),
        ],
    )
    def test_detailed(self, birth, reference, expect):
        result = calculate_age(
            birth, reference=reference, units=["year", "month", "day"]
        )
        assert result == expect
        assert (result.years, result.months, result.days) == tuple(expect)

    @system_tz_ams()
    def test_any_non_year_unit_is_detailed(self):
        assert calculate_age(
            "2000-05-01", reference="2025-05-07", units=["month"]
        ) == Age(25, 0, 6)

    def test_birth_in_future(self):
        with pytest.raises(
            DateError, match="Birth date cannot be in the future"
        ):
            calculate_age("2025-05-08", reference="2025-05-07")

    def test_invalid_units(self):
        with pytest.raises(DateError, match="Invalid units"):
            calculate_age("2000-05-01", reference="2025-05-07", units=["week"])  # type: ignore[list-item]

    def test_invalid_date(self):
        with pytest.raises(DateError, match="Unable to parse date"):
            calculate_age("nope", reference="2025-05-07")
        with pytest.raises(DateError, match="Unable to parse date"):
            calculate_age("2000-05-01", reference="nope")

    @given(integers(0, 60 * 365), integers(0, 60 * 365))
    def test_consistent_with_detailed(self, born, lived):
        with system_tz_ams():
            birth = add_time(create_date(1950, 0, 1), born, "day")
            reference = add_time(birth, lived, "day")
            years = calculate_age(birth, reference=reference)
            detailed = calculate_age(
                birth, reference=reference, units=["year", "month", "day"]
            )
            assert years == detailed.years
            assert 0 <= detailed.months < 12
            assert years >= 0


def test_parse_then_age():
    birth = parse_date("15/06/1990", raise_on_invalid=True)
    assert calculate_age(birth, reference="2025-06-14") == 34
