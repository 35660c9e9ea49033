"""
Pushes a user's timezone change to every guild they share with the bot.

The directory says which guilds to visit; the transport carries one request
to every shard and each shard handles the guilds it hosts. Results from all
shards are merged here: updated nicknames are counted and audited, skips
are logged.
"""

from __future__ import annotations

from typing import Protocol

from timeyzoney.audit.audit_log import AuditLog
from timeyzoney.datatypes.sync_datatypes import (
    NicknameUpdateRequest,
    ShardUpdateResult,
    TimezoneUpdateSummary,
    UpdateOutcome,
)
from timeyzoney.sync.shard_transport import ShardTransport
from timeyzoney.util.logger import get_logger

logger = get_logger("fanout_updater")


class MembershipDirectory(Protocol):
    async def list_users_in_timezone(self, timezone_id: str) -> list[str]: ...

    async def list_user_partitions(self, user_id: str) -> list[str]: ...


class FanoutUpdater:
    """
    Applies nickname changes across all shards.

    Args:
        directory: Source of users and guild memberships.
        transport: Delivers requests to the shards.
        audit: Receives one event per updated nickname.
    """

    def __init__(self, directory: MembershipDirectory, transport: ShardTransport, audit: AuditLog) -> None:
        self.directory = directory
        self.transport = transport
        self.audit = audit

    async def apply_timezone_change(self, user_id: str, timezone_id: str) -> int:
        """
        Re-derive ``user_id``'s nickname from ``timezone_id`` in every guild.

        Returns:
            int: Number of guilds where the nickname was changed.
        """
        guild_ids = await self.directory.list_user_partitions(str(user_id))
        if not guild_ids:
            return 0

        logger.debug("[FANOUT] Updating user %s across %d guilds", user_id, len(guild_ids))
        request = NicknameUpdateRequest(user_id=str(user_id), guild_ids=tuple(guild_ids), timezone_id=timezone_id)
        responses = await self.transport.broadcast(request)

        total_updated = 0
        for response in responses:
            for result in response.results:
                self._log_result(response.shard_id, request.user_id, result)
                if result.outcome is UpdateOutcome.UPDATED:
                    total_updated += 1
                    await self._audit_update(request.user_id, result)

        if total_updated:
            logger.info("[FANOUT] Updated user %s in %d guild(s)", user_id, total_updated)
        return total_updated

    async def update_timezone(self, timezone_id: str) -> TimezoneUpdateSummary:
        """Run :meth:`apply_timezone_change` for every user in ``timezone_id``, one at a time."""
        summary = TimezoneUpdateSummary(timezone_id=timezone_id)
        user_ids = await self.directory.list_users_in_timezone(timezone_id)
        summary.users_found = len(user_ids)
        logger.info("[FANOUT] Found %d users in %s", summary.users_found, timezone_id)

        for user_id in user_ids:
            try:
                summary.nicknames_updated += await self.apply_timezone_change(user_id, timezone_id)
            except Exception as exc:
                logger.error("[FANOUT] Error updating user %s for %s: %s", user_id, timezone_id, exc)

        return summary

    async def _audit_update(self, user_id: str, result: ShardUpdateResult) -> None:
        try:
            await self.audit.log_nickname_update(user_id, result.guild_id, result.old_nickname, result.new_nickname)
        except Exception as exc:
            logger.warning("[FANOUT] Audit event for user %s in guild %s was lost: %s", user_id, result.guild_id, exc)

    @staticmethod
    def _log_result(shard_id: int, user_id: str, result: ShardUpdateResult) -> None:
        if result.outcome is UpdateOutcome.UPDATED:
            logger.info(
                "[FANOUT] Shard %d: %s in %s: %r -> %r",
                shard_id, user_id, result.guild_name, result.old_nickname, result.new_nickname,
            )
        elif result.outcome is UpdateOutcome.SKIPPED_OWNER:
            logger.info("[FANOUT] Shard %d: skipped server owner %s in %s", shard_id, user_id, result.guild_name)
        elif result.outcome is UpdateOutcome.SKIPPED_PERMISSIONS:
            logger.info("[FANOUT] Shard %d: cannot manage %s in %s", shard_id, user_id, result.guild_name)
        elif result.outcome is UpdateOutcome.ERROR:
            logger.warning(
                "[FANOUT] Shard %d: failed to update %s in guild %s: %s",
                shard_id, user_id, result.guild_id, result.message,
            )
