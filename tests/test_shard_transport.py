import asyncio
from types import SimpleNamespace

import pytest

from fakes import FakeGateway
from timeyzoney.datatypes.sync_datatypes import (
    MemberSnapshot,
    NicknameUpdateRequest,
    ShardUpdateResponse,
    UpdateOutcome,
)
from timeyzoney.sync.shard_transport import InProcessShardTransport, local_shard_ids
from timeyzoney.sync.shard_worker import ShardWorker

REQUEST = NicknameUpdateRequest(user_id="u1", guild_ids=("p1", "p2"), timezone_id="UTC+1")


class StuckWorker:
    async def handle(self, request):
        await asyncio.sleep(10)


class CrashingWorker:
    async def handle(self, request):
        raise RuntimeError("shard offline")


def test_local_shard_ids():
    assert local_shard_ids(SimpleNamespace(shards={2: object(), 0: object(), 1: object()})) == [0, 1, 2]
    assert local_shard_ids(SimpleNamespace(shards={})) == [0]
    assert local_shard_ids(SimpleNamespace()) == [0]


@pytest.mark.asyncio
async def test_broadcast_reaches_every_shard():
    gateways = {
        0: FakeGateway({"p1": MemberSnapshot("Alice", "alice", is_owner=True)}),
        1: FakeGateway({"p2": MemberSnapshot("Alice", "alice")}),
    }
    bot = SimpleNamespace(shards={0: object(), 1: object()})
    transport = InProcessShardTransport(bot, 1.0, worker_factory=lambda sid: ShardWorker(sid, gateways[sid]))

    responses = await transport.broadcast(REQUEST)

    assert [r.shard_id for r in responses] == [0, 1]
    assert responses[0].results[0].outcome is UpdateOutcome.SKIPPED_OWNER
    assert responses[1].results[0].outcome is UpdateOutcome.UPDATED
    assert gateways[1].renamed == [("alice", "Alice (UTC+1)")]


@pytest.mark.asyncio
async def test_stuck_shard_times_out_with_empty_response():
    workers = {0: ShardWorker(0, FakeGateway({"p1": MemberSnapshot("Alice", "alice")})), 1: StuckWorker()}
    transport = InProcessShardTransport(
        SimpleNamespace(), 0.05, worker_factory=workers.__getitem__, shard_ids=lambda: [0, 1]
    )

    responses = await transport.broadcast(REQUEST)

    assert responses[0].updated_count == 1
    assert responses[1] == ShardUpdateResponse(shard_id=1, timed_out=True)


@pytest.mark.asyncio
async def test_crashing_shard_reports_failure():
    transport = InProcessShardTransport(
        SimpleNamespace(), 1.0, worker_factory=lambda sid: CrashingWorker(), shard_ids=lambda: [0]
    )

    responses = await transport.broadcast(REQUEST)

    assert responses == [ShardUpdateResponse(shard_id=0, failed=True)]
