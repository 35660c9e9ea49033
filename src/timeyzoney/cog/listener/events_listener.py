"""Event listener cog for bot lifecycle events.

Sets the presence once the gateway is ready and posts a single startup
event to the audit log. With several shards only shard 0 announces.
"""

import discord
from discord.ext import commands

from timeyzoney.audit.audit_log import AuditLog
from timeyzoney.util.logger import get_logger

logger = get_logger("events_listener")

ANNOUNCING_SHARD_ID = 0


def shard_total(bot: discord.Client) -> int:
    shards = getattr(bot, "shards", None)
    if shards:
        return len(shards)
    return bot.shard_count or 1


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle events."""

    def __init__(self, bot: discord.Bot, audit: AuditLog) -> None:
        self.bot = bot
        self.audit = audit
        self._announced = False
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Set bot presence and announce the startup."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        shards = shard_total(self.bot)
        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=f"timezones | {shards} shard(s)",
            ),
        )
        logger.info("Bot connected as %s (ID: %s) with %d shard(s)", self.bot.user, self.bot.user.id, shards)
        await self.announce_startup(ANNOUNCING_SHARD_ID)

    @commands.Cog.listener(name="on_shard_ready")
    async def on_shard_ready(self, shard_id: int) -> None:
        logger.info("[EVENTS LISTENER] Shard %d ready", shard_id)

    async def announce_startup(self, shard_id: int) -> bool:
        """Post the startup event once per process, and only from the announcing shard."""
        if self._announced or shard_id != ANNOUNCING_SHARD_ID:
            return False
        self._announced = True
        guilds = len(self.bot.guilds)
        return await self.audit.event(
            "Bot Started",
            user=f"{self.bot.user}",
            shards=shard_total(self.bot),
            servers=guilds,
        )


def setup(bot: discord.Bot, audit: AuditLog) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, audit))
