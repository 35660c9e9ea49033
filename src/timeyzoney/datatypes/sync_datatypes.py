"""
Data structures exchanged by the DST scheduler, the fan-out updater and the
shard workers.

User and guild identifiers are Discord snowflakes kept as strings, the way
they are stored in the database; they are converted to ``int`` only at the
Discord API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Tuple


class UpdateOutcome(str, Enum):
    """Result of applying a nickname change to one guild."""

    UPDATED = "updated"
    SKIPPED_OWNER = "skipped_owner"
    SKIPPED_PERMISSIONS = "skipped_permissions"
    NO_CHANGE = "no_change"
    ERROR = "error"


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TimezoneAssignment:
    """A user's active timezone (one row of the ``users`` table)."""
    user_id: str
    timezone_id: str
    assigned_at: str | None = None


@dataclass(frozen=True)
class PartitionMembership:
    """A user observed in a guild (one row of the ``user_servers`` table)."""
    user_id: str
    guild_id: str
    joined_at: str | None = None


@dataclass
class MemberSnapshot:
    """
    What a shard knows about a member when deciding whether to rename them.

    Attributes:
        nickname (str | None): Guild nickname, None when unset.
        username (str): Account username, used when no nickname is set.
        is_owner (bool): Member owns the guild; Discord forbids renaming owners.
        is_manageable (bool): Bot outranks the member and may edit nicknames.
        handle (Any): Opaque library object the gateway needs to apply an edit.
    """
    nickname: str | None
    username: str
    is_owner: bool = False
    is_manageable: bool = True
    handle: Any = field(default=None, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        return self.nickname or self.username


@dataclass
class ShardUpdateResult:
    """Outcome of one guild for one user; consumed by logging/audit and dropped."""
    guild_id: str
    guild_name: str
    outcome: UpdateOutcome
    old_nickname: str | None = None
    new_nickname: str | None = None
    message: str = ""


@dataclass(frozen=True)
class NicknameUpdateRequest:
    """Message broadcast to every shard for one user's timezone change."""
    user_id: str
    guild_ids: Tuple[str, ...]
    timezone_id: str


@dataclass
class ShardUpdateResponse:
    """One shard's answer to a :class:`NicknameUpdateRequest`."""
    shard_id: int
    updated_count: int = 0
    results: List[ShardUpdateResult] = field(default_factory=list)
    timed_out: bool = False
    failed: bool = False


@dataclass(frozen=True)
class TransitionSnapshot:
    """Offsets of a timezone now and at the same wall-clock time one day earlier."""
    timezone_id: str
    checked_at: datetime
    offset_minutes: int
    previous_offset_minutes: int

    @property
    def transitioned(self) -> bool:
        return self.offset_minutes != self.previous_offset_minutes


@dataclass
class TimezoneUpdateSummary:
    timezone_id: str
    users_found: int = 0
    nicknames_updated: int = 0


@dataclass
class SweepReport:
    """Aggregate of one hourly sweep."""
    started_at: datetime
    timezones_checked: int = 0
    transitioned: List[str] = field(default_factory=list)
    nicknames_updated: int = 0
    failed: bool = False


@dataclass(frozen=True)
class SchedulerStatus:
    running: bool
    state: SchedulerState
    next_check: str
