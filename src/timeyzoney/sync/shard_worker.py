"""
Applies a user's timezone to their nickname in the guilds one shard hosts.

Per guild, in order:
    1. guild not on this shard      -> skipped, no result
    2. member not in the guild      -> skipped, no result
    3. member owns the guild        -> ``skipped_owner``
    4. bot cannot manage the member -> ``skipped_permissions``
    5. nickname already correct     -> ``no_change``; otherwise the edit is
       applied -> ``updated``, or ``error`` if Discord rejects it.

A failure in one guild never stops the loop over the others.
"""

from __future__ import annotations

from typing import Callable, Optional

from timeyzoney.datatypes.sync_datatypes import (
    MemberSnapshot,
    NicknameUpdateRequest,
    ShardUpdateResponse,
    ShardUpdateResult,
    UpdateOutcome,
)
from timeyzoney.sync.member_gateway import MemberGateway
from timeyzoney.timezone.nickname_formatter import format_nickname
from timeyzoney.util.logger import get_logger

logger = get_logger("shard_worker")

NicknameFormatter = Callable[..., Optional[str]]


class ShardWorker:
    """Nickname update logic for a single shard."""

    def __init__(
        self,
        shard_id: int,
        gateway: MemberGateway,
        formatter: NicknameFormatter = format_nickname,
    ) -> None:
        self.shard_id = shard_id
        self.gateway = gateway
        self._format = formatter

    async def handle(self, request: NicknameUpdateRequest) -> ShardUpdateResponse:
        """Process every guild of ``request`` hosted on this shard."""
        response = ShardUpdateResponse(shard_id=self.shard_id)

        for guild_id in request.guild_ids:
            try:
                result = await self.apply_to_guild(guild_id, request.user_id, request.timezone_id)
            except Exception as exc:
                logger.warning(
                    "[SHARD %d] Unexpected error in guild %s for user %s: %s",
                    self.shard_id, guild_id, request.user_id, exc,
                )
                result = ShardUpdateResult(
                    guild_id=guild_id,
                    guild_name="Unknown",
                    outcome=UpdateOutcome.ERROR,
                    message=str(exc),
                )

            if result is None:
                continue
            response.results.append(result)
            if result.outcome is UpdateOutcome.UPDATED:
                response.updated_count += 1

        return response

    async def apply_to_guild(self, guild_id: str, user_id: str, timezone_id: str) -> ShardUpdateResult | None:
        """Steps 1-5 for one guild. Returns None when the guild or member is not here."""
        if not self.gateway.hosts_guild(guild_id):
            return None

        member = await self.gateway.fetch_member(guild_id, user_id)
        if member is None:
            return None

        return await self.apply_to_member(
            guild_id, self.gateway.guild_name(guild_id), user_id, member, timezone_id
        )

    async def apply_to_member(
        self,
        guild_id: str,
        guild_name: str,
        user_id: str,
        member: MemberSnapshot,
        timezone_id: str,
    ) -> ShardUpdateResult:
        """Steps 3-5 for a member already in hand (also used by drift correction)."""
        if member.is_owner:
            return ShardUpdateResult(
                guild_id=guild_id,
                guild_name=guild_name,
                outcome=UpdateOutcome.SKIPPED_OWNER,
                message="Server owner - Discord limitation",
            )

        if not member.is_manageable:
            return ShardUpdateResult(
                guild_id=guild_id,
                guild_name=guild_name,
                outcome=UpdateOutcome.SKIPPED_PERMISSIONS,
                message="Cannot manage member",
            )

        current = member.display_name
        new_nickname = self._format(member.nickname, timezone_id, member.username, user_id)
        if new_nickname is None:
            return ShardUpdateResult(
                guild_id=guild_id,
                guild_name=guild_name,
                outcome=UpdateOutcome.ERROR,
                old_nickname=current,
                message=f"Could not format a nickname for timezone {timezone_id}",
            )

        if new_nickname == current:
            return ShardUpdateResult(
                guild_id=guild_id,
                guild_name=guild_name,
                outcome=UpdateOutcome.NO_CHANGE,
                old_nickname=current,
                new_nickname=new_nickname,
                message="Nickname already correct",
            )

        try:
            await self.gateway.set_nickname(member, new_nickname)
        except Exception as exc:
            return ShardUpdateResult(
                guild_id=guild_id,
                guild_name=guild_name,
                outcome=UpdateOutcome.ERROR,
                old_nickname=current,
                new_nickname=new_nickname,
                message=str(exc),
            )

        return ShardUpdateResult(
            guild_id=guild_id,
            guild_name=guild_name,
            outcome=UpdateOutcome.UPDATED,
            old_nickname=current,
            new_nickname=new_nickname,
        )
