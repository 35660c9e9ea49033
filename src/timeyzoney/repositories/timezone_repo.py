"""
Persistent storage for user timezone assignments (``users`` table).

One row per user: setting a new timezone replaces the old one while the
original ``created_at`` is kept.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from timeyzoney.datatypes.sync_datatypes import TimezoneAssignment


class TimezoneRepo:
    """Low-level CRUD for the ``users`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, user_id: str, timezone_id: str) -> None:
        await conn.execute(
            """
            INSERT INTO users (user_id, timezone_identifier)
            VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                timezone_identifier = excluded.timezone_identifier
            """,
            (str(user_id), timezone_id),
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, user_id: str) -> None:
        """Remove the assignment; ``user_servers`` rows go with it (cascade)."""
        await conn.execute("DELETE FROM user_servers WHERE user_id = ?", (str(user_id),))
        await conn.execute("DELETE FROM users WHERE user_id = ?", (str(user_id),))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, user_id: str) -> TimezoneAssignment | None:
        cursor = await conn.execute(
            "SELECT user_id, timezone_identifier, created_at FROM users WHERE user_id = ?",
            (str(user_id),),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return TimezoneAssignment(user_id=str(row[0]), timezone_id=row[1], assigned_at=row[2])

    @staticmethod
    async def distinct_timezones(conn: aiosqlite.Connection) -> List[str]:
        """Every timezone assigned to at least one user, in a stable order."""
        cursor = await conn.execute(
            "SELECT DISTINCT timezone_identifier FROM users ORDER BY timezone_identifier"
        )
        return [row[0] for row in await cursor.fetchall()]

    @staticmethod
    async def users_in_timezone(conn: aiosqlite.Connection, timezone_id: str) -> List[str]:
        cursor = await conn.execute(
            "SELECT user_id FROM users WHERE timezone_identifier = ? ORDER BY user_id",
            (timezone_id,),
        )
        return [str(row[0]) for row in await cursor.fetchall()]


# Module-level singleton
timezone_storage = TimezoneRepo()
