import os
import os.path
import platform
import time
from typing import Optional

ZONEINFO = "zoneinfo"
SYSTEM = platform.system()
LOCALTIME = "/etc/localtime"

# Getting the system timezone key depends on the platform.
# On unix-like systems it's relatively straightforward.
# On other platforms, we use the tzlocal package.
# This keeps dependencies minimal for linux.
if SYSTEM in ("Linux", "Darwin"):  # pragma: no cover

    def _key_from_platform() -> Optional[str]:
        tzif_path = os.path.realpath(LOCALTIME)
        if tzif_path == LOCALTIME:
            # If the file is not a symlink, we can't determine the tzid
            return None  # pragma: no cover
        return _tzid_from_path(tzif_path)

else:  # pragma: no cover
    import tzlocal

    def _key_from_platform() -> Optional[str]:
        return tzlocal.get_localzone_name()


def _tzid_from_path(path: str) -> Optional[str]:
    """Find the IANA timezone ID from a path to a zoneinfo file.
    Returns None if the path is not in a zoneinfo directory.
    """
    # Find the path segment containing 'zoneinfo',
    # e.g. `zoneinfo/` or `zoneinfo.default/`
    if (index := path.find("/", path.rfind(ZONEINFO))) == -1:
        return None
    return path[index + 1 :]


def timezone_name() -> Optional[str]:
    """The IANA key of the system timezone, or None if it can't be determined.

    The ``TZ`` environment variable takes precedence over the platform
    configuration, in line with how the C library resolves local time.
    """
    try:
        tz_env = os.environ["TZ"]
    except KeyError:  # pragma: no cover
        return _key_from_platform()

    if tz_env.startswith(":"):
        tz_env = tz_env[1:]  # strip leading colon

    if os.path.isabs(tz_env):
        return _tzid_from_path(os.path.realpath(tz_env))
    # If there's a digit, it's most likely a posix TZ string (e.g. EST5EDT),
    # which has no IANA key. Theoretically a zoneinfo key could contain a digit too.
    elif any(c.isdigit() for c in tz_env) and not tz_env.startswith("Etc/"):
        return None
    return tz_env or None


def reset() -> None:
    """Make the process pick up a changed ``TZ`` environment variable"""
    # Windows has no tzset(); local time follows the OS settings there.
    if hasattr(time, "tzset"):
        time.tzset()
