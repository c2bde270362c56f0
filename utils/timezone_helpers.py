from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

JAKARTA_TZ = ZoneInfo("Asia/Jakarta")


def to_jakarta(value: Any) -> datetime | None:
    """Convert the provided value to a Western Indonesia (WIB) timezone-aware datetime."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(JAKARTA_TZ)


def format_jakarta(value: Any, fmt: str = "%d/%m/%Y %H:%M") -> str:
    """Return the provided datetime formatted in WIB on a 24-hour clock."""
    dt = to_jakarta(value)
    if dt:
        return dt.strftime(fmt)
    if isinstance(value, str):
        return value
    return ""


def jakarta_now() -> datetime:
    """Get the current time in the WIB timezone."""
    return datetime.now(JAKARTA_TZ)


def file_timestamp(value: datetime | None = None) -> str:
    """Timestamp safe for use inside backup filenames (no colons or dots)."""
    dt = value or jakarta_now()
    return dt.strftime("%Y-%m-%dT%H-%M-%S-%f")
