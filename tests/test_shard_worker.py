from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeGateway
from timeyzoney.datatypes.sync_datatypes import MemberSnapshot, NicknameUpdateRequest, UpdateOutcome
from timeyzoney.sync.shard_worker import ShardWorker


def request(*guild_ids, timezone_id="UTC+1"):
    return NicknameUpdateRequest(user_id="u1", guild_ids=tuple(guild_ids), timezone_id=timezone_id)


@pytest.mark.asyncio
async def test_guilds_on_other_shards_are_skipped_silently():
    worker = ShardWorker(0, FakeGateway({"p1": MemberSnapshot("Alice", "alice")}))

    response = await worker.handle(request("p9"))

    assert response.shard_id == 0
    assert response.results == []
    assert response.updated_count == 0


@pytest.mark.asyncio
async def test_member_not_in_guild_is_skipped_silently():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice")})
    gateway.fetch_member = AsyncMock(return_value=None)

    response = await ShardWorker(0, gateway).handle(request("p1"))

    assert response.results == []


@pytest.mark.asyncio
async def test_owner_is_skipped():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice", is_owner=True)})

    response = await ShardWorker(0, gateway).handle(request("p1"))

    assert [r.outcome for r in response.results] == [UpdateOutcome.SKIPPED_OWNER]
    assert gateway.renamed == []


@pytest.mark.asyncio
async def test_unmanageable_member_is_skipped():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice", is_manageable=False)})

    response = await ShardWorker(0, gateway).handle(request("p1"))

    assert [r.outcome for r in response.results] == [UpdateOutcome.SKIPPED_PERMISSIONS]
    assert gateway.renamed == []


@pytest.mark.asyncio
async def test_correct_nickname_is_left_alone():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice (UTC+1)", "alice")})

    response = await ShardWorker(0, gateway).handle(request("p1"))

    assert [r.outcome for r in response.results] == [UpdateOutcome.NO_CHANGE]
    assert gateway.renamed == []


@pytest.mark.asyncio
async def test_nickname_is_updated():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice (UTC+3)", "alice")})

    response = await ShardWorker(0, gateway).handle(request("p1"))

    result = response.results[0]
    assert result.outcome is UpdateOutcome.UPDATED
    assert result.guild_name == "Guild p1"
    assert result.old_nickname == "Alice (UTC+3)"
    assert result.new_nickname == "Alice (UTC+1)"
    assert response.updated_count == 1
    assert gateway.renamed == [("alice", "Alice (UTC+1)")]


@pytest.mark.asyncio
async def test_username_is_used_without_nickname():
    gateway = FakeGateway({"p1": MemberSnapshot(None, "alice")})

    response = await ShardWorker(0, gateway).handle(request("p1"))

    assert response.results[0].old_nickname == "alice"
    assert gateway.renamed == [("alice", "alice (UTC+1)")]


@pytest.mark.asyncio
async def test_rejected_edit_does_not_stop_other_guilds():
    gateway = FakeGateway(
        {
            "p1": MemberSnapshot("Alice", "alice"),
            "p2": MemberSnapshot("Bob", "bob"),
        },
        fail_on={"alice"},
    )

    response = await ShardWorker(0, gateway).handle(request("p1", "p2"))

    outcomes = {r.guild_id: r.outcome for r in response.results}
    assert outcomes == {"p1": UpdateOutcome.ERROR, "p2": UpdateOutcome.UPDATED}
    assert response.updated_count == 1
    assert "Missing Permissions" in response.results[0].message


@pytest.mark.asyncio
async def test_unexpected_error_becomes_error_result():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice")})
    gateway.fetch_member = AsyncMock(side_effect=RuntimeError("gateway down"))

    response = await ShardWorker(0, gateway).handle(request("p1"))

    result = response.results[0]
    assert result.outcome is UpdateOutcome.ERROR
    assert result.guild_name == "Unknown"
    assert result.message == "gateway down"


@pytest.mark.asyncio
async def test_unresolvable_timezone_leaves_nickname_untouched():
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice")})

    response = await ShardWorker(0, gateway).handle(request("p1", timezone_id="Nowhere/Land"))

    assert response.results[0].outcome is UpdateOutcome.ERROR
    assert gateway.renamed == []


@pytest.mark.asyncio
async def test_formatter_receives_member_details():
    formatter = MagicMock(return_value="Alice (UTC+Del)")
    gateway = FakeGateway({"p1": MemberSnapshot("Alice", "alice")})

    await ShardWorker(0, gateway, formatter=formatter).handle(request("p1"))

    formatter.assert_called_once_with("Alice", "UTC+1", "alice", "u1")
