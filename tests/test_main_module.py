from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import timeyzoney.main as main_module
from timeyzoney.database.db_connection import ConnectionManager
from timeyzoney.scheduler.dst_scheduler import DSTScheduler


def make_config(**overrides):
    values = dict(
        log_channel_id=10,
        error_channel_id=20,
        logger_webhook_url=None,
        shard_timeout_seconds=5.0,
        dst_scheduler_enabled=True,
        allow_overlapping_sweeps=False,
        shard_count=None,
        database_path=Path("/tmp/timeyzoney-test.db"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def run_raising(exc):
    def _run(coro):
        coro.close()
        raise exc
    return _run


def test_resolve_base_dir_prefers_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TIMEYZONEY_HOME", str(tmp_path))
    assert main_module.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_defaults_to_repository_root(monkeypatch):
    monkeypatch.delenv("TIMEYZONEY_HOME", raising=False)
    assert (main_module.resolve_base_dir() / "setup.py").exists()


def test_load_environment_requires_token(monkeypatch):
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    with patch("timeyzoney.main.load_dotenv"), pytest.raises(SystemExit):
        main_module.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "secret")
    with patch("timeyzoney.main.load_dotenv"):
        assert main_module.load_environment() == "secret"


def test_build_intents_enables_members():
    intents = main_module.build_intents()
    assert intents.members is True
    assert intents.guilds is True


def test_create_bot_uses_configured_shard_count():
    with patch("timeyzoney.main.discord.AutoShardedBot") as bot_cls:
        main_module.create_bot(make_config(shard_count=4))
        main_module.create_bot(make_config())

    assert bot_cls.call_args_list[0].kwargs["shard_count"] == 4
    assert "shard_count" not in bot_cls.call_args_list[1].kwargs


def test_build_services_wires_scheduler():
    services = main_module.build_services(SimpleNamespace(), make_config(allow_overlapping_sweeps=True), ConnectionManager())

    assert isinstance(services.scheduler, DSTScheduler)
    assert services.scheduler.allow_overlap is True
    assert services.scheduler.updater is services.fanout
    assert services.fanout.directory is services.directory
    assert services.fanout.transport.timeout == 5.0
    assert services.audit.error_channel_id == 20


def test_build_services_without_scheduler():
    services = main_module.build_services(SimpleNamespace(), make_config(dst_scheduler_enabled=False), ConnectionManager())

    assert services.scheduler is None


def test_load_cogs_registers_listeners():
    services = main_module.build_services(SimpleNamespace(), make_config(), ConnectionManager())
    bot = MagicMock()

    main_module.load_cogs(bot, services)

    names = sorted(type(call.args[0]).__name__ for call in bot.add_cog.call_args_list)
    assert names == ["DSTSchedulerCog", "EventsListenerCog", "MemberListenerCog"]


def test_load_cogs_skips_scheduler_when_disabled():
    services = main_module.build_services(SimpleNamespace(), make_config(dst_scheduler_enabled=False), ConnectionManager())
    bot = MagicMock()

    main_module.load_cogs(bot, services)

    assert bot.add_cog.call_count == 2


@pytest.mark.asyncio
async def test_initialize_database_creates_schema(tmp_path):
    connection = ConnectionManager()
    await main_module.initialize_database(connection, tmp_path / "timezone.db")
    try:
        async with connection.read() as conn:
            cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row[0] for row in await cursor.fetchall()}
        assert {"users", "user_servers", "schema_version"} <= tables
    finally:
        await connection.close()


@pytest.mark.asyncio
async def test_shutdown_runtime_stops_everything():
    scheduler = SimpleNamespace(shutdown=AsyncMock())
    services = SimpleNamespace(scheduler=scheduler)
    bot = SimpleNamespace(is_closed=MagicMock(return_value=False), close=AsyncMock())
    connection = SimpleNamespace(close=AsyncMock())

    await main_module.shutdown_runtime(bot, services, connection)

    scheduler.shutdown.assert_awaited_once()
    bot.close.assert_awaited_once()
    connection.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_runtime_continues_after_errors():
    scheduler = SimpleNamespace(shutdown=AsyncMock(side_effect=RuntimeError("stuck")))
    bot = SimpleNamespace(is_closed=MagicMock(return_value=False), close=AsyncMock(side_effect=RuntimeError("gone")))
    connection = SimpleNamespace(close=AsyncMock())

    await main_module.shutdown_runtime(bot, SimpleNamespace(scheduler=scheduler), connection)

    connection.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_fails_when_database_cannot_open():
    with patch("timeyzoney.main.load_environment", return_value="token"), \
        patch("timeyzoney.main.initialize_database", AsyncMock(side_effect=OSError("read-only"))):
        assert await main_module.async_main() == 1


def test_main_handles_keyboard_interrupt():
    with patch("timeyzoney.main.asyncio.run", side_effect=run_raising(KeyboardInterrupt())):
        assert main_module.main() == 0


def test_main_propagates_system_exit_code():
    with patch("timeyzoney.main.asyncio.run", side_effect=run_raising(SystemExit(3))):
        assert main_module.main() == 3


def test_main_reports_unexpected_errors():
    with patch("timeyzoney.main.asyncio.run", side_effect=run_raising(RuntimeError("boom"))):
        assert main_module.main() == 1
