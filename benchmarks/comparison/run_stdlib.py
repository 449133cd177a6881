# Run with: python benchmarks/comparison/run_stdlib.py -o stdlib.json
import pyperf

runner = pyperf.Runner()

runner.timeit(
    "various operations",
    "d = datetime.fromisoformat('2020-04-05 22:04:00-04:00')"
    ".astimezone();"
    "d - datetime.now(UTC);"
    "(d + timedelta(minutes=270)).astimezone().strftime('%Y-%m-%d %H:%M:%S')",
    setup="from datetime import datetime, timedelta, UTC",
)

runner.timeit(
    "new date",
    "date(2020, 2, 29)",
    "from datetime import date",
)

runner.timeit(
    "date add",
    "date(d.year + (d.month + 58) // 12, (d.month + 58) % 12 + 1, 1)"
    " + timedelta(days=d.day - 1)",
    setup="from datetime import date, timedelta; d = date(1987, 3, 31)",
)

runner.timeit(
    "date diff",
    "(d1.year - d2.year) * 12 + d1.month - d2.month",
    setup="from datetime import date; d1 = date(2020, 2, 29); d2 = date(2025, 2, 28)",
)

runner.timeit(
    "parse date",
    "f('2020-02-29')",
    setup="from datetime import date; f = date.fromisoformat",
)

runner.timeit(
    "parse ambiguous date",
    "f('29/02/2020', '%m/%d/%Y')",
    setup="from datetime import datetime; f = datetime.strptime",
)
