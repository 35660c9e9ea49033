"""
Daylight saving transition detection.

A zone is only examined during its local 5 AM hour. At that point its
current offset is compared with the offset at the same wall-clock time on
the previous day; a difference means the zone crossed a DST boundary within
the last 24 hours. With an hourly check every zone is examined exactly once
per local day, late enough that any transition (which happens in the small
hours) is already in effect.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from timeyzoney.datatypes.sync_datatypes import TransitionSnapshot
from timeyzoney.timezone.offset_calculator import resolve_zone, utc_now, utc_offset_minutes
from timeyzoney.util.logger import get_logger

logger = get_logger("transition_detector")

TRANSITION_CHECK_HOUR = 5


def check_transition(timezone_id: str, now: datetime | None = None) -> TransitionSnapshot | None:
    """
    Compare ``timezone_id``'s offset now and 24 hours earlier.

    Returns None outside the local check hour, in which case no offset is
    computed. Raises InvalidTimezoneError for unknown zones.
    """
    zone = resolve_zone(timezone_id)
    local_now = (now or utc_now()).astimezone(zone)
    if local_now.hour != TRANSITION_CHECK_HOUR:
        return None

    # Same tzinfo: subtracting a day keeps the wall-clock hour and the
    # offset is re-evaluated for that date.
    local_yesterday = local_now - timedelta(days=1)
    return TransitionSnapshot(
        timezone_id=timezone_id,
        checked_at=local_now,
        offset_minutes=utc_offset_minutes(timezone_id, local_now),
        previous_offset_minutes=utc_offset_minutes(timezone_id, local_yesterday),
    )


def has_just_transitioned(timezone_id: str, now: datetime | None = None) -> bool:
    """
    True if ``timezone_id`` is at local 5 AM and its offset differs from yesterday's.

    Any error is logged and treated as "no transition" for this zone only.
    """
    try:
        snapshot = check_transition(timezone_id, now)
    except Exception as exc:
        logger.error("[DST DETECTOR] Error checking %s for a DST change: %s", timezone_id, exc)
        return False

    if snapshot is None or not snapshot.transitioned:
        return False

    logger.info(
        "[DST DETECTOR] DST change detected in %s: %dmin -> %dmin",
        timezone_id, snapshot.previous_offset_minutes, snapshot.offset_minutes,
    )
    return True
