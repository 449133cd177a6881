from .ambiguity import resolve_local, to_local
from .system import reset as reset_system_tz, timezone_name

__all__ = ["resolve_local", "to_local", "reset_system_tz", "timezone_name"]
