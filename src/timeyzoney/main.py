"""
Timey Zoney
===========

A Discord bot that keeps each user's UTC offset in their nickname, across
every server it shares with them, and re-applies it when daylight saving
time moves the offset.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. TIMEYZONEY_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the repository root.
    """
    if env_home := os.getenv("TIMEYZONEY_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from timeyzoney.audit.audit_log import AuditLog
from timeyzoney.configuration.app_configuration import AppConfig, app_config
from timeyzoney.database.db_connection import ConnectionManager, db_connection
from timeyzoney.database.db_schema import SchemaManager
from timeyzoney.directory.partition_directory import PartitionDirectory
from timeyzoney.scheduler.dst_scheduler import DSTScheduler
from timeyzoney.sync.fanout_updater import FanoutUpdater
from timeyzoney.sync.shard_transport import InProcessShardTransport
from timeyzoney.util.logger import get_logger, handle_exception

logger = get_logger("main")


@dataclass
class BotServices:
    """The sync core wired to one bot instance."""

    audit: AuditLog
    directory: PartitionDirectory
    fanout: FanoutUpdater
    scheduler: DSTScheduler | None


def load_environment() -> str:
    """Load ``.env`` and return the Discord bot token.

    Raises
    ------
    SystemExit
        If ``DISCORD_TOKEN`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        logger.critical("'DISCORD_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild and member events; member updates drive drift correction."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def create_bot(config: AppConfig = app_config) -> discord.AutoShardedBot:
    """Instantiate the sharded bot. Without a configured count Discord picks one."""
    kwargs = {}
    if config.shard_count is not None:
        kwargs["shard_count"] = config.shard_count
    return discord.AutoShardedBot(intents=build_intents(), **kwargs)


def build_services(
    bot: discord.Client,
    config: AppConfig = app_config,
    connection: ConnectionManager = db_connection,
) -> BotServices:
    """Wire directory, audit sink, transport, fan-out and scheduler together."""
    audit = AuditLog(
        bot,
        log_channel_id=config.log_channel_id,
        error_channel_id=config.error_channel_id,
        webhook_url=config.logger_webhook_url,
    )
    directory = PartitionDirectory(connection)
    transport = InProcessShardTransport(bot, config.shard_timeout_seconds)
    fanout = FanoutUpdater(directory, transport, audit)

    scheduler = None
    if config.dst_scheduler_enabled:
        scheduler = DSTScheduler(directory, fanout, audit, allow_overlap=config.allow_overlapping_sweeps)
    else:
        logger.info("DST scheduler disabled in configuration; this process will not run sweeps.")

    return BotServices(audit=audit, directory=directory, fanout=fanout, scheduler=scheduler)


def load_cogs(bot: discord.Bot, services: BotServices) -> None:
    """Register all cogs with the bot."""
    from timeyzoney.cog.listener import events_listener, member_listener, scheduler_cog

    events_listener.setup(bot, services.audit)
    member_listener.setup(bot, services.directory, services.audit)
    if services.scheduler is not None:
        scheduler_cog.setup(bot, services.scheduler)

    logger.info("All cogs loaded successfully.")


async def initialize_database(connection: ConnectionManager, path: Path) -> None:
    await connection.open(path)
    await SchemaManager.initialize_schema(connection.connection)


async def start_bot(bot: discord.Client, token: str) -> None:
    """Connect to Discord and run until the connection ends."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(
    bot: discord.Client | None,
    services: BotServices | None,
    connection: ConnectionManager = db_connection,
) -> None:
    """Stop the scheduler, close the bot and the database."""
    if services is not None and services.scheduler is not None:
        try:
            await services.scheduler.shutdown()
        except Exception as exc:
            logger.exception("Error during DST scheduler shutdown: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await connection.close()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap database, bot and services, returning an exit code."""
    token = load_environment()

    try:
        logger.info("Initializing database at %s...", app_config.database_path)
        await initialize_database(db_connection, app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        bot = create_bot()
        services = build_services(bot)
        load_cogs(bot, services)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(None, None)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, services)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    logger.info("Starting Timey Zoney…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
