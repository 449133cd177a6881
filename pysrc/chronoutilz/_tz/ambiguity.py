from __future__ import annotations

import sys
from datetime import datetime as _datetime

from .._common import UTC

# CPython before 3.13 resolves skipped local times with the opposite fold
# when going through the system timezone (cpython/issues/83861).
_FLIP_FOLD_IN_GAP = sys.version_info < (3, 13)


def resolve_local(dt: _datetime) -> _datetime:
    """Attach the system timezone's offset to a naive wall-clock datetime.

    Local times skipped by a DST transition are shifted forward
    by the size of the gap. Repeated local times resolve to the earlier
    of the two offsets.

    Raises OverflowError, ValueError or OSError if the platform
    can't express the result.
    """
    assert dt.tzinfo is None, "dt must be naive"
    dt = dt.replace(fold=0)
    norm = dt.astimezone(UTC).astimezone()  # going through UTC resolves gaps
    # Non-existent times: they don't survive a UTC roundtrip
    if norm.replace(tzinfo=None) != dt:
        if _FLIP_FOLD_IN_GAP:
            dt = dt.replace(fold=1)
        # perform the normalisation, shifting away from non-existent times
        norm = dt.astimezone(UTC).astimezone()
    return norm


def to_local(dt: _datetime) -> _datetime:
    """Express an aware datetime in the system timezone"""
    assert dt.tzinfo is not None, "dt must be aware"
    return dt.astimezone()
