"""Cog tying the DST scheduler to the bot's lifecycle."""

from __future__ import annotations

import discord
from discord.ext import commands

from timeyzoney.scheduler.dst_scheduler import DSTScheduler
from timeyzoney.util.logger import get_logger

logger = get_logger("scheduler_cog")


class DSTSchedulerCog(commands.Cog):
    """
    Arms the hourly DST sweep once the gateway is ready and disarms it when
    the cog is unloaded. ``on_ready`` fires again after reconnects, so the
    scheduler is only started when it is not already running.
    """

    def __init__(self, bot: discord.Bot, scheduler: DSTScheduler) -> None:
        self.bot = bot
        self.scheduler = scheduler

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.scheduler.is_running:
            return
        if self.scheduler.start():
            logger.info("[DST SCHEDULER COG] %s", self.scheduler.get_status().next_check)

    def cog_unload(self) -> None:
        self.scheduler.stop()
        logger.info("[DST SCHEDULER COG] Stopped")


def setup(bot: discord.Bot, scheduler: DSTScheduler) -> None:
    bot.add_cog(DSTSchedulerCog(bot, scheduler))
