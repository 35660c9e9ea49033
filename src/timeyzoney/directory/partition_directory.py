"""
Read-only query surface over the timezone store.

The DST sweep and the drift-correction listener only ever read: which
timezones are in use, who is in a timezone, which guilds a user is in, and
a user's current assignment. Database failures are wrapped in
:class:`DirectoryUnavailableError` so callers can isolate them.
"""

from __future__ import annotations

import sqlite3
from typing import List

from timeyzoney.database.db_connection import ConnectionManager
from timeyzoney.datatypes.sync_datatypes import TimezoneAssignment
from timeyzoney.repositories.membership_repo import membership_storage
from timeyzoney.repositories.timezone_repo import timezone_storage
from timeyzoney.util.logger import get_logger

logger = get_logger("partition_directory")


class DirectoryUnavailableError(RuntimeError):
    """The store could not answer a directory query."""


class PartitionDirectory:
    """Directory queries backed by a :class:`ConnectionManager`."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection

    async def list_in_use_timezones(self) -> List[str]:
        try:
            async with self._connection.read() as conn:
                return await timezone_storage.distinct_timezones(conn)
        except (sqlite3.Error, RuntimeError) as exc:
            raise DirectoryUnavailableError(f"Could not list timezones in use: {exc}") from exc

    async def list_users_in_timezone(self, timezone_id: str) -> List[str]:
        try:
            async with self._connection.read() as conn:
                return await timezone_storage.users_in_timezone(conn, timezone_id)
        except (sqlite3.Error, RuntimeError) as exc:
            raise DirectoryUnavailableError(f"Could not list users in {timezone_id}: {exc}") from exc

    async def list_user_partitions(self, user_id: str) -> List[str]:
        try:
            async with self._connection.read() as conn:
                memberships = await membership_storage.memberships_for_user(conn, str(user_id))
            return [membership.guild_id for membership in memberships]
        except (sqlite3.Error, RuntimeError) as exc:
            raise DirectoryUnavailableError(f"Could not list guilds of user {user_id}: {exc}") from exc

    async def get_assignment(self, user_id: str) -> TimezoneAssignment | None:
        try:
            async with self._connection.read() as conn:
                return await timezone_storage.get(conn, str(user_id))
        except (sqlite3.Error, RuntimeError) as exc:
            raise DirectoryUnavailableError(f"Could not read timezone of user {user_id}: {exc}") from exc
