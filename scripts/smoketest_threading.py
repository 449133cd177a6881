"""
Stress tests for thread-safety of the system timezone cache.

Note this isn't a unit test, because it relies on a clean cache
"""

import sys
import time
from os import environ
from threading import Thread

from chronoutilz import (
    add_time,
    format_date,
    parse_date,
    reset_system_tz,
    start_of,
)

if not hasattr(sys, "_is_gil_enabled") or sys._is_gil_enabled():
    # Running with GIL enabled can still be useful to compare performance,
    # but be sure to warn that threading hasn't been stress tested.
    print("WARNING: Running with GIL enabled. Threading not stress tested.")


NUM_THREADS = 16
NUM_ITERATIONS = 500
TIMEZONE_SAMPLE = [
    "UTC",
    "America/Guyana",
    "Etc/GMT-11",
    "Europe/Vienna",
    "America/Rainy_River",
    "Asia/Ulaanbaatar",
    "US/Alaska",
    "America/Rankin_Inlet",
    "Arctic/Longyearbyen",
    "Pacific/Bougainville",
    "Africa/Monrovia",
    "Europe/Copenhagen",
    "America/Hermosillo",
    "Africa/Brazzaville",
    "Asia/Tashkent",
    "Pacific/Saipan",
    "Europe/Tallinn",
    "Europe/Uzhgorod",
    "Africa/Nairobi",
    "America/Argentina/Ushuaia",
    "Brazil/Acre",
]
assert (
    len(TIMEZONE_SAMPLE) % NUM_THREADS
), "Timezone sample should not be evenly divisible by number of threads"
TZS = TIMEZONE_SAMPLE * (NUM_THREADS * NUM_ITERATIONS)


def parse_and_format(tzs):
    """Local-time parsing and formatting under a fixed system timezone"""
    for _ in tzs:
        i = parse_date("06/15/2024", raise_on_invalid=True)
        s = format_date(add_time(i, 1, "month"), "YYYY-MM-DD HH:mm:ss")
        del s


def set_system_tz(tzs):
    """Parsing and calendar math while the system timezone keeps changing"""
    for tz in tzs:
        environ["TZ"] = tz
        reset_system_tz()
        i = parse_date("2024-06-15T12:00:00Z", raise_on_invalid=True)
        s = format_date(start_of(i, "day"), "YYYY-MM-DD HH:mm:ss")
        del s


def main(func):
    print(f"Starting test: {func.__name__}")
    threads = []

    start_time = time.time()

    for n in range(NUM_THREADS):
        thread = Thread(target=func, args=(TZS[n::NUM_THREADS],))
        threads.append(thread)
        thread.start()

    for thread in threads:
        thread.join()

    end_time = time.time()
    print(f"Execution time: {end_time - start_time:.2f} seconds")


if __name__ == "__main__":
    main(parse_and_format)
    main(set_system_tz)
