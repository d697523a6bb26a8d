import math

import config


def format_pace(pace: float) -> str:
    """Formats a pace in min/mile as M:SS."""
    if pace is None or not math.isfinite(pace) or pace <= 0:
        return "--:--"
    total_seconds = int(round(pace * config.SECONDS_PER_MINUTE))
    minutes, seconds = divmod(total_seconds, config.SECONDS_PER_MINUTE)
    return f"{minutes:d}:{seconds:02d}"


def format_minutes(minutes: float) -> str:
    """Formats minutes into H:MM:SS (or M:SS under an hour)."""
    if minutes is None or not math.isfinite(minutes):
        return "--:--"
    total_seconds = int(round(max(0.0, minutes) * config.SECONDS_PER_MINUTE))
    hours, remainder = divmod(total_seconds, config.MINUTES_PER_HOUR * config.SECONDS_PER_MINUTE)
    mins, secs = divmod(remainder, config.SECONDS_PER_MINUTE)
    if hours > 0:
        return f"{hours:d}:{mins:02d}:{secs:02d}"
    return f"{mins:d}:{secs:02d}"


def format_duration(minutes: float) -> str:
    """Formats minutes as e.g. '7h 30m' for bonk timers and stops."""
    if minutes is None:
        return "N/A"
    if minutes < config.MINUTES_PER_HOUR:
        return f"{round(minutes)} min"
    hours, mins = divmod(int(round(minutes)), config.MINUTES_PER_HOUR)
    return f"{hours}h {mins}m"
