"""
Timezone validation and UTC offset labels.

Offsets follow the ``datetime`` convention: minutes *east* of UTC are
positive, so ``Asia/Tokyo`` is +540 and renders as ``UTC+9`` while
``America/New_York`` in winter is -300 and renders as ``UTC-5``. The label
keeps that sign as-is; no inversion is needed.

Besides IANA names, fixed offsets written as ``UTC+1`` or ``UTC-05:30`` are
accepted as zones.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timeyzoney.util.logger import get_logger

logger = get_logger("offset_calculator")

_FIXED_OFFSET_PATTERN = re.compile(r"^UTC([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)
_MAX_FIXED_OFFSET_HOURS = 18


class InvalidTimezoneError(ValueError):
    """Raised when an identifier does not name a known timezone."""

    def __init__(self, timezone_id: object) -> None:
        super().__init__(f"Invalid timezone: {timezone_id!r}")
        self.timezone_id = timezone_id


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _fixed_offset_zone(timezone_id: str) -> tzinfo | None:
    match = _FIXED_OFFSET_PATTERN.match(timezone_id)
    if match is None:
        return None
    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3) or 0)
    if hours > _MAX_FIXED_OFFSET_HOURS or minutes >= 60:
        return None
    delta = timedelta(hours=hours, minutes=minutes)
    return timezone(-delta if sign == "-" else delta)


def resolve_zone(timezone_id: object) -> tzinfo:
    """
    Return the tzinfo for ``timezone_id``.

    Raises:
        InvalidTimezoneError: For non-strings, empty strings and unknown names.
    """
    if not isinstance(timezone_id, str) or not timezone_id.strip():
        raise InvalidTimezoneError(timezone_id)

    fixed = _fixed_offset_zone(timezone_id.strip())
    if fixed is not None:
        return fixed

    try:
        return ZoneInfo(timezone_id)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezoneError(timezone_id) from exc


def is_valid_timezone(timezone_id: object) -> bool:
    """True if ``timezone_id`` resolves to a timezone; never raises."""
    try:
        resolve_zone(timezone_id)
    except InvalidTimezoneError:
        return False
    return True


def utc_offset_minutes(timezone_id: str, instant: datetime | None = None) -> int:
    """
    Offset of ``timezone_id`` from UTC, in minutes east, at ``instant``.

    ``instant`` defaults to now. Naive datetimes are taken as UTC. An aware
    datetime already expressed in the same zone keeps its wall-clock time.
    """
    zone = resolve_zone(timezone_id)
    if instant is None:
        instant = utc_now()
    elif instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)

    offset = instant.astimezone(zone).utcoffset()
    if offset is None:
        raise InvalidTimezoneError(timezone_id)
    return int(offset.total_seconds() // 60)


def format_offset_label(offset_minutes: int) -> str:
    """Render an offset as ``UTC+0``, ``UTC-5``, ``UTC+5.5`` or ``UTC+5.75``."""
    if offset_minutes == 0:
        return "UTC+0"

    sign = "+" if offset_minutes > 0 else "-"
    hours = abs(offset_minutes) / 60
    if hours.is_integer():
        return f"UTC{sign}{int(hours)}"
    return f"UTC{sign}{hours}"


def current_offset(timezone_id: str, instant: datetime | None = None) -> str:
    """
    Offset label for ``timezone_id`` at ``instant`` (default: now).

    Raises:
        InvalidTimezoneError: If the identifier cannot be resolved.
    """
    return format_offset_label(utc_offset_minutes(timezone_id, instant))
