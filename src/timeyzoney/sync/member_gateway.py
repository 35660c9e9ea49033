"""
Per-shard guild member access.

A :class:`DiscordMemberGateway` only sees the guilds of one shard; a guild
hosted elsewhere is reported as not present so the shard skips it.
"""

from __future__ import annotations

from typing import Protocol

import discord

from timeyzoney.datatypes.sync_datatypes import MemberSnapshot
from timeyzoney.util.logger import get_logger

logger = get_logger("member_gateway")

NICKNAME_EDIT_REASON = "Timezone offset update"


class MemberGateway(Protocol):
    """The member-management capability a shard worker needs."""

    def hosts_guild(self, guild_id: str) -> bool: ...

    def guild_name(self, guild_id: str) -> str: ...

    async def fetch_member(self, guild_id: str, user_id: str) -> MemberSnapshot | None: ...

    async def set_nickname(self, member: MemberSnapshot, nickname: str) -> None: ...


def can_manage_member(guild: discord.Guild, member: discord.Member) -> bool:
    """
    True if the bot may change ``member``'s nickname in ``guild``.

    Requires Manage Nicknames (or Administrator) and a top role strictly above
    the member's. The owner is never manageable.
    """
    if guild.owner_id == member.id:
        return False
    me = guild.me
    if me is None:
        return False
    permissions = me.guild_permissions
    if not (permissions.manage_nicknames or permissions.administrator):
        return False
    return me.top_role > member.top_role


def snapshot_member(guild: discord.Guild, member: discord.Member) -> MemberSnapshot:
    return MemberSnapshot(
        nickname=member.nick,
        username=member.name,
        is_owner=guild.owner_id == member.id,
        is_manageable=can_manage_member(guild, member),
        handle=member,
    )


class DiscordMemberGateway:
    """
    :class:`MemberGateway` over a py-cord client for a single shard.

    Args:
        bot: The connected client.
        shard_id: Shard whose guilds this gateway may touch; None means all.
    """

    def __init__(self, bot: discord.Client, shard_id: int | None = None) -> None:
        self.bot = bot
        self.shard_id = shard_id

    def _guild(self, guild_id: str) -> discord.Guild | None:
        try:
            guild = self.bot.get_guild(int(guild_id))
        except (TypeError, ValueError):
            return None
        if guild is None:
            return None
        if self.shard_id is not None and guild.shard_id != self.shard_id:
            return None
        return guild

    def hosts_guild(self, guild_id: str) -> bool:
        return self._guild(guild_id) is not None

    def guild_name(self, guild_id: str) -> str:
        guild = self._guild(guild_id)
        return guild.name if guild is not None else "Unknown"

    async def fetch_member(self, guild_id: str, user_id: str) -> MemberSnapshot | None:
        guild = self._guild(guild_id)
        if guild is None:
            return None

        member = guild.get_member(int(user_id))
        if member is None:
            try:
                member = await guild.fetch_member(int(user_id))
            except (discord.NotFound, discord.Forbidden):
                return None
            except discord.HTTPException as exc:
                logger.debug("[MEMBER GATEWAY] Could not fetch %s in guild %s: %s", user_id, guild_id, exc)
                return None

        return snapshot_member(guild, member)

    async def set_nickname(self, member: MemberSnapshot, nickname: str) -> None:
        """Apply ``nickname``; Discord errors propagate to the caller."""
        await member.handle.edit(nick=nickname, reason=NICKNAME_EDIT_REASON)
