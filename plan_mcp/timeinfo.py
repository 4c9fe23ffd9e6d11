"""Current time in the formats attached to tool responses."""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def right_now(now: datetime | None = None) -> dict:
    """Return the current time in the four core formats.

    Args:
        now: Aware datetime to format (defaults to the current time)
    """
    now = now or _now()
    local = now.astimezone()
    millis = (now - EPOCH) // timedelta(milliseconds=1)

    return {
        "utc_iso": now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "local_timezone": local.strftime("%a %b %d %Y %H:%M:%S GMT%z ") + f"({local.tzname()})",
        "timestamp_seconds": millis // 1000,
        "timestamp_milliseconds": millis,
    }


def right_now_extended(now: datetime | None = None) -> dict:
    """Return the core formats plus offset and human readable variants."""
    now = now or _now()
    local = now.astimezone()
    offset_minutes = int(local.utcoffset().total_seconds() // 60)
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)

    info = right_now(now)
    info["additional_formats"] = {
        "utc_string": format_datetime(now.astimezone(timezone.utc), usegmt=True),
        "local_date_string": local.strftime("%x, %X"),
        "iso_local": local.replace(tzinfo=None).isoformat(timespec="milliseconds"),
        "timezone_offset": f"UTC{sign}{hours:02d}:{minutes:02d}",
        "timezone_offset_minutes": offset_minutes,
    }
    return info
