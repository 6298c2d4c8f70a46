from datetime import datetime, timedelta, timezone
from typing import Optional


class InvalidTimeFormat(ValueError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_time_input(text: str, now: Optional[datetime] = None) -> int:
    """Convert the user's wall clock ("HH:MM") into an offset from UTC in minutes.

    The offset is folded into [-720, 720] so that a clock just past midnight is
    read as the next day rather than almost a day behind.
    """
    parts = text.strip().split(":")
    if len(parts) != 2:
        raise InvalidTimeFormat("invalid format")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        raise InvalidTimeFormat("invalid format")
    if not 0 <= hours <= 23:
        raise InvalidTimeFormat("invalid hours")
    if not 0 <= minutes <= 59:
        raise InvalidTimeFormat("invalid minutes")

    now = now or utcnow()
    offset = hours * 60 + minutes - (now.hour * 60 + now.minute)
    if offset > 720:
        offset -= 1440
    elif offset < -720:
        offset += 1440
    return offset


def format_duration(delta: timedelta) -> str:
    total = int(round(delta.total_seconds()))
    if total < 0:
        total = 0
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    if minutes > 0:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def format_elapsed(delta: timedelta) -> str:
    """Coarse duration used on the celebration screen."""
    days = delta.days
    if days == 0:
        hours = int(delta.total_seconds() // 3600)
        if hours == 0:
            return f"{int(delta.total_seconds() // 60)} minutes"
        return f"{hours} hours"
    if days == 1:
        return "1 day"
    return f"{days} days"
