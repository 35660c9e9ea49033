"""
Nickname text rules shared by the DST fan-out and the drift-correction listener.

A managed nickname is ``"<base name> (<offset label>)"`` and never exceeds
Discord's 32 character limit; when it would, the base name is cut from the
right and the annotation is kept whole.
"""

from __future__ import annotations

import re
from datetime import datetime

from timeyzoney.timezone.offset_calculator import InvalidTimezoneError, current_offset
from timeyzoney.util.logger import get_logger

logger = get_logger("nickname_formatter")

MAX_NICKNAME_LENGTH = 32

# Long-standing exception: this account always shows "(UTC+Del)".
PINNED_SUBJECT_ID = "461232602188349470"
PINNED_LABEL = "UTC+Del"

_ANNOTATION = r"\(UTC(?:[+-][\d.]+|\+Del)\)$"
_STRIP_PATTERN = re.compile(r"\s*" + _ANNOTATION, re.IGNORECASE)
_HAS_PATTERN = re.compile(_ANNOTATION, re.IGNORECASE)


def strip_annotation(nickname: str | None) -> str:
    """Remove a trailing ``(UTC±N)`` annotation and surrounding whitespace."""
    if not nickname:
        return ""
    return _STRIP_PATTERN.sub("", nickname).strip()


def has_annotation(nickname: str | None) -> bool:
    """True if ``nickname`` ends with a ``(UTC±N)`` annotation."""
    if not nickname:
        return False
    return _HAS_PATTERN.search(nickname) is not None


def compose_nickname(base_name: str, label: str) -> str:
    nickname = f"{base_name} ({label})"
    if len(nickname) > MAX_NICKNAME_LENGTH:
        max_base_length = MAX_NICKNAME_LENGTH - len(label) - 3  # " (" + ")"
        nickname = f"{base_name[:max_base_length].rstrip()} ({label})"
    return nickname


def format_nickname(
    current_nickname: str | None,
    timezone_id: str,
    username: str,
    user_id: str | int | None = None,
    *,
    at: datetime | None = None,
) -> str | None:
    """
    Build the annotated nickname for a member.

    Args:
        current_nickname: The member's nickname, annotated or not, or None.
        timezone_id: Timezone to derive the offset label from.
        username: Account name used when the nickname is empty.
        user_id: Member id, checked against the pinned exception.
        at: Instant to evaluate the offset at; defaults to now.

    Returns:
        The new nickname, or None if the timezone cannot be resolved. Callers
        must leave the nickname untouched on None.
    """
    if user_id is not None and str(user_id) == PINNED_SUBJECT_ID:
        label = PINNED_LABEL
    else:
        try:
            label = current_offset(timezone_id, at)
        except InvalidTimezoneError as exc:
            logger.warning("[NICKNAME] Cannot format nickname: %s", exc)
            return None

    base_name = strip_annotation(current_nickname) or strip_annotation(username)
    return compose_nickname(base_name, label)
