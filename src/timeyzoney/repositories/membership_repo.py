"""
Persistent storage for the guilds each user has been seen in (``user_servers``).
"""

from __future__ import annotations

from typing import List

import aiosqlite

from timeyzoney.datatypes.sync_datatypes import PartitionMembership


class MembershipRepo:
    """Low-level CRUD for the ``user_servers`` table."""

    @staticmethod
    async def add(conn: aiosqlite.Connection, user_id: str, guild_id: str) -> None:
        """Record the membership; an existing row keeps its ``joined_at``."""
        await conn.execute(
            "INSERT OR IGNORE INTO user_servers (user_id, server_id) VALUES (?, ?)",
            (str(user_id), str(guild_id)),
        )

    @staticmethod
    async def memberships_for_user(conn: aiosqlite.Connection, user_id: str) -> List[PartitionMembership]:
        """Guilds ``user_id`` was seen in, oldest first."""
        cursor = await conn.execute(
            "SELECT user_id, server_id, joined_at FROM user_servers WHERE user_id = ? ORDER BY joined_at, server_id",
            (str(user_id),),
        )
        return [
            PartitionMembership(user_id=str(row[0]), guild_id=str(row[1]), joined_at=row[2])
            for row in await cursor.fetchall()
        ]


# Module-level singleton
membership_storage = MembershipRepo()
