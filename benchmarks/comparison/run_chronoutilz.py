# Run with: python benchmarks/comparison/run_chronoutilz.py -o chronoutilz.json
import pyperf

runner = pyperf.Runner()

runner.timeit(
    "various operations",
    "d = parse_date('2020-04-05 22:04:00-04:00');"
    "date_diff(d, Instant.now(), 'millisecond');"
    "format_date(add_time(d, 270, 'minute'), 'YYYY-MM-DD HH:mm:ss')",
    setup="from chronoutilz import parse_date, date_diff, add_time, format_date, Instant",
)

runner.timeit(
    "new date",
    "CalendarDate(2020, 2, 29)",
    "from chronoutilz import CalendarDate",
)

runner.timeit(
    "date add",
    "d.add(59, 'month')",
    setup="from chronoutilz import CalendarDate; d = CalendarDate(1987, 3, 31)",
)

runner.timeit(
    "date diff",
    "date_diff(d1, d2, 'month')",
    setup="from chronoutilz import create_date, date_diff;"
    "d1 = create_date(2020, 1, 29); d2 = create_date(2025, 1, 28)",
)

runner.timeit(
    "parse date",
    "f('2020-02-29')",
    setup="from chronoutilz import parse_date as f",
)

runner.timeit(
    "parse ambiguous date",
    "f('29/02/2020')",
    setup="from chronoutilz import parse_date as f",
)
