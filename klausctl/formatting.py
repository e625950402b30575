"""Human-readable formatting of container uptimes."""

from __future__ import annotations

from datetime import timedelta

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR


def format_duration(seconds: float | timedelta) -> str:
    """Format a duration compactly, e.g. ``30s``, ``2m30s``, ``1h30m`` or ``1d1h``.

    Only the two most significant units are shown and smaller parts are
    truncated, not rounded.
    """
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()

    if seconds < _MINUTE:
        return f"{int(seconds)}s"

    whole_seconds = int(seconds)
    if seconds < _HOUR:
        return f"{whole_seconds // _MINUTE}m{whole_seconds % _MINUTE}s"

    whole_minutes = whole_seconds // _MINUTE
    if seconds < _DAY:
        return f"{whole_seconds // _HOUR}h{whole_minutes % 60}m"

    whole_hours = whole_seconds // _HOUR
    return f"{whole_hours // 24}d{whole_hours % 24}h"