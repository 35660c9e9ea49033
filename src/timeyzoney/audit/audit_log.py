"""
Audit trail posted to the bot's log channels.

Events go to the configured log (or error) channel through the gateway; if
no client or channel is available they fall back to a webhook. Delivery is
best-effort: every public method returns a bool and never raises, and each
delivery is abandoned after ``timeout`` seconds, so a Discord outage can
neither fail nor stall a DST sweep.
"""

from __future__ import annotations

import asyncio

import aiohttp
import discord

from timeyzoney.util.logger import get_logger

logger = get_logger("audit_log")

MAX_MESSAGE_LENGTH = 2000
DELIVERY_TIMEOUT_SECONDS = 10.0


def format_event(category: str, **fields: object) -> str:
    """``format_event("DST Change", timezone="X")`` -> ``**DST Change** | **Timezone:** X``"""
    parts = [f"**{category}**"]
    for key, value in fields.items():
        label = key.replace("_", " ").title()
        parts.append(f"**{label}:** {value}")
    return " | ".join(parts)


class AuditLog:
    """
    Sink for human-readable audit events.

    Args:
        bot: Client used to reach the channels; may be attached later with
            :meth:`set_bot`.
        log_channel_id: Channel for regular events.
        error_channel_id: Channel for error events (defaults to the log channel).
        webhook_url: Fallback destination when no channel can be reached.
        timeout: Seconds one delivery may take before it is given up.
    """

    def __init__(
        self,
        bot: discord.Client | None = None,
        *,
        log_channel_id: int | None = None,
        error_channel_id: int | None = None,
        webhook_url: str | None = None,
        timeout: float = DELIVERY_TIMEOUT_SECONDS,
    ) -> None:
        self.bot = bot
        self.log_channel_id = log_channel_id
        self.error_channel_id = error_channel_id or log_channel_id
        self.webhook_url = webhook_url
        self.timeout = timeout

    def set_bot(self, bot: discord.Client | None) -> None:
        self.bot = bot

    # ------------------------------------------------------------------
    # Generic events
    # ------------------------------------------------------------------

    async def log(self, content: str) -> bool:
        logger.debug("[AUDIT] %s", content)
        return await self._send(content, self.log_channel_id)

    async def error(self, content: str) -> bool:
        logger.debug("[AUDIT ERROR] %s", content)
        return await self._send(content, self.error_channel_id)

    async def event(self, category: str, **fields: object) -> bool:
        return await self.log(format_event(category, **fields))

    # ------------------------------------------------------------------
    # Domain events
    # ------------------------------------------------------------------

    async def log_nickname_update(self, user_id: str, guild_id: str, old_nickname: str | None, new_nickname: str | None) -> bool:
        return await self.log(
            f"**Nickname Update** | **User:** <@{user_id}> (`{user_id}`) | **Server:** `{guild_id}` "
            f"- Changed from `{old_nickname}` to `{new_nickname}`"
        )

    async def log_dst_detected(self, timezone_id: str, new_offset: str) -> bool:
        return await self.event("DST Change Detected", timezone=f"`{timezone_id}`", new_offset=new_offset)

    async def log_dst_change(self, timezone_id: str, affected_users: int, new_offset: str) -> bool:
        return await self.event(
            "DST Change", timezone=f"`{timezone_id}`", affected_users=affected_users, new_offset=new_offset
        )

    async def log_sweep_complete(self, users_updated: int, timezones: list[str]) -> bool:
        return await self.event("DST Update Complete", users_updated=users_updated, timezones=", ".join(timezones))

    async def log_sweep_error(self, exc: BaseException) -> bool:
        return await self.error(format_event("DST Check Error", error=exc))

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _send(self, content: str, channel_id: int | None) -> bool:
        content = content[:MAX_MESSAGE_LENGTH]
        try:
            return await asyncio.wait_for(self._deliver(content, channel_id), self.timeout)
        except TimeoutError:
            logger.warning("[AUDIT] Audit event not delivered within %.1fs, dropping it", self.timeout)
            return False
        except Exception as exc:
            logger.warning("[AUDIT] Failed to deliver audit event: %s", exc)
            return False

    async def _deliver(self, content: str, channel_id: int | None) -> bool:
        if await self._send_to_channel(content, channel_id):
            return True
        return await self._send_webhook(content)

    async def _send_to_channel(self, content: str, channel_id: int | None) -> bool:
        if self.bot is None or channel_id is None:
            return False
        channel = self.bot.get_channel(channel_id)
        if channel is None or not hasattr(channel, "send"):
            return False
        await channel.send(content)
        return True

    async def _send_webhook(self, content: str) -> bool:
        if not self.webhook_url:
            return False
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            webhook = discord.Webhook.from_url(self.webhook_url, session=session)
            await webhook.send(content)
        return True
