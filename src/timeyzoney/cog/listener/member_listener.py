"""
Nickname drift correction.

When a member edits their nickname and drops the offset annotation, the
annotation for their assigned timezone is put back. Only the guild where
the edit happened is touched; the fan-out updater handles the rest.
"""

from __future__ import annotations

from typing import Protocol

import discord
from discord.ext import commands

from timeyzoney.audit.audit_log import AuditLog
from timeyzoney.datatypes.sync_datatypes import TimezoneAssignment, UpdateOutcome
from timeyzoney.sync.member_gateway import DiscordMemberGateway, snapshot_member
from timeyzoney.sync.shard_worker import ShardWorker
from timeyzoney.timezone.nickname_formatter import has_annotation
from timeyzoney.util.logger import get_logger

logger = get_logger("member_listener")


class AssignmentDirectory(Protocol):
    async def get_assignment(self, user_id: str) -> TimezoneAssignment | None: ...


class MemberListenerCog(commands.Cog):
    """Re-applies the offset annotation when a member's nickname drifts."""

    def __init__(self, bot: discord.Bot, directory: AssignmentDirectory, audit: AuditLog) -> None:
        self.bot = bot
        self.directory = directory
        self.audit = audit

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if before.nick == after.nick:
            return

        user_id = str(after.id)
        try:
            assignment = await self.directory.get_assignment(user_id)
        except Exception as exc:
            logger.error("[MEMBER LISTENER] Could not read timezone of %s: %s", user_id, exc)
            return
        if assignment is None:
            return

        current_name = after.nick or after.name
        if has_annotation(current_name):
            return

        guild = after.guild
        member = snapshot_member(guild, after)
        if member.is_owner:
            logger.info("[MEMBER LISTENER] Skipping server owner %s in %s", after, guild.name)
            return
        if not member.is_manageable:
            logger.info("[MEMBER LISTENER] Cannot manage %s in %s, skipping", after, guild.name)
            return

        worker = ShardWorker(guild.shard_id, DiscordMemberGateway(self.bot, guild.shard_id))
        result = await worker.apply_to_member(
            str(guild.id), guild.name, user_id, member, assignment.timezone_id
        )

        if result.outcome is UpdateOutcome.UPDATED:
            logger.info(
                "[MEMBER LISTENER] Restored offset for %s in %s: %r -> %r",
                after, guild.name, result.old_nickname, result.new_nickname,
            )
            await self.audit.log_nickname_update(user_id, str(guild.id), result.old_nickname, result.new_nickname)
        elif result.outcome is UpdateOutcome.ERROR:
            logger.warning(
                "[MEMBER LISTENER] Failed to restore offset for %s in %s: %s", after, guild.name, result.message
            )


def setup(bot: discord.Bot, directory: AssignmentDirectory, audit: AuditLog) -> None:
    bot.add_cog(MemberListenerCog(bot, directory, audit))
