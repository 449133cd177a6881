from __future__ import annotations

from ._chronoutilz import *
from ._chronoutilz import (  # for the docs
    __all__,
    _patch_time_frozen,
    _patch_time_keep_ticking,
    _unpatch_time,
    _unpkl_date,
    _unpkl_inst,
)

from contextlib import contextmanager as _contextmanager
from dataclasses import dataclass as _dataclass
from typing import Iterator as _Iterator, Optional as _Optional

from . import _tz
from ._chronoutilz import __version__

__all__ = [
    *__all__,
    "patch_current_time",
    "reset_system_tz",
    "system_timezone_name",
]


@_dataclass
class _TimePatch:
    _pin: Instant
    _keep_ticking: bool

    def shift(self, amount: int, unit: TimeUnit) -> None:
        """Move the patched time by the given amount, using :func:`add_time`"""
        if self._keep_ticking:
            self._pin = new = add_time(Instant.now(), amount, unit)
            _patch_time_keep_ticking(new)
        else:
            self._pin = new = add_time(self._pin, amount, unit)
            _patch_time_frozen(new)


@_contextmanager
def patch_current_time(
    dt: DateLike, /, *, keep_ticking: bool
) -> _Iterator[_TimePatch]:
    """Patch the current time to a fixed value (for testing purposes).
    Behaves as a context manager or decorator, with similar semantics to
    ``unittest.mock.patch``.

    Important
    ---------

    * This function should be used only for testing purposes. It is not
      thread-safe or part of the stable API.
    * This function only affects chronoutilz's notion of "now": the default
      of :func:`relative_time`, :func:`calculate_age`, :func:`utc_now`, etc.
      It does not affect the standard library's time functions or any other
      libraries. Use the ``time_machine`` package if you also want to patch
      other libraries.
    * It doesn't affect the system timezone.
      If you need to patch the system timezone, set the ``TZ`` environment
      variable and call :func:`reset_system_tz`. Be aware that this only
      works on Unix-like systems.

    Example
    -------

    >>> from chronoutilz import parse_date, patch_current_time, relative_time
    >>> i = parse_date("1980-03-02T02:00:00Z")
    >>> with patch_current_time(i, keep_ticking=False) as p:
    ...     assert relative_time("1980-03-01T02:00:00Z") == "1 day ago"
    ...     p.shift(4, "hour")
    ...     assert Instant.now() == add_time(i, 4, "hour")
    ...
    """
    instant = parse_date(dt, raise_on_invalid=True)
    if keep_ticking:
        _patch_time_keep_ticking(instant)
    else:
        _patch_time_frozen(instant)

    try:
        yield _TimePatch(instant, keep_ticking)
    finally:
        _unpatch_time()


def reset_system_tz() -> None:
    """Resets the system timezone to the current value of the ``TZ``
    environment variable, or the system default if ``TZ`` is not set.

    Affects the calendar fields of all :class:`Instant` objects created
    afterwards. Existing instances keep the fields they were created with.

    Note
    ----
    This only has an effect on Unix-like systems. On Windows,
    the system timezone is read from the OS settings.
    """
    _tz.reset_system_tz()


def system_timezone_name() -> _Optional[str]:
    """The IANA identifier of the system timezone (e.g. ``Europe/Amsterdam``),
    or ``None`` if it can't be determined.

    Only used for display: calendar fields always follow the timezone
    rules the C library uses for local time.
    """
    return _tz.timezone_name()
