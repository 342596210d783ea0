"""Playback progress and time display helpers."""

import math


def progress_percent(current_time: float, duration: float) -> float | None:
    """Normalized progress in [0, 100], or None when it can't be reported.

    Nothing is reported until the duration is known, or while the position is
    outside the media (negative or past the end).
    """
    if not _finite(current_time) or not _finite(duration):
        return None
    if duration <= 0 or current_time < 0 or current_time > duration:
        return None
    return min(current_time / duration, 1.0) * 100


def format_time(seconds: float) -> str:
    """Format seconds as m:ss. Minutes are not folded into hours."""
    if not _finite(seconds) or seconds < 0:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
