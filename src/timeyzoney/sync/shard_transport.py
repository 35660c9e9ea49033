"""
Delivery of nickname update requests to every shard.

:class:`InProcessShardTransport` serves an ``AutoShardedBot`` whose shards
all live in this process: one :class:`ShardWorker` per shard id runs
concurrently, each with its own deadline. A shard that misses the deadline
or fails outright answers with an empty response, so one stuck shard only
costs the guilds it hosts.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Protocol, Sequence

import discord

from timeyzoney.datatypes.sync_datatypes import NicknameUpdateRequest, ShardUpdateResponse
from timeyzoney.sync.member_gateway import DiscordMemberGateway
from timeyzoney.sync.shard_worker import ShardWorker
from timeyzoney.util.logger import get_logger

logger = get_logger("shard_transport")


class ShardTransport(Protocol):
    """Broadcast a request to all shards and return one response per shard."""

    async def broadcast(self, request: NicknameUpdateRequest) -> List[ShardUpdateResponse]: ...


def local_shard_ids(bot: discord.Client) -> List[int]:
    """Shard ids hosted by ``bot``; ``[0]`` for an unsharded client."""
    shards = getattr(bot, "shards", None)
    if shards:
        return sorted(shards)
    return [0]


class InProcessShardTransport:
    """
    :class:`ShardTransport` for shards running inside this process.

    Args:
        bot: The connected client.
        timeout: Seconds each shard gets to answer.
        worker_factory: Builds the worker for a shard id (tests inject fakes).
        shard_ids: Returns the shard ids to address; defaults to the bot's.
    """

    def __init__(
        self,
        bot: discord.Client,
        timeout: float,
        *,
        worker_factory: Callable[[int], ShardWorker] | None = None,
        shard_ids: Callable[[], Sequence[int]] | None = None,
    ) -> None:
        self.bot = bot
        self.timeout = timeout
        self._worker_factory = worker_factory or (lambda shard_id: ShardWorker(shard_id, DiscordMemberGateway(bot, shard_id)))
        self._shard_ids = shard_ids or (lambda: local_shard_ids(bot))

    async def broadcast(self, request: NicknameUpdateRequest) -> List[ShardUpdateResponse]:
        shard_ids = list(self._shard_ids())
        return list(await asyncio.gather(*(self._dispatch(shard_id, request) for shard_id in shard_ids)))

    async def _dispatch(self, shard_id: int, request: NicknameUpdateRequest) -> ShardUpdateResponse:
        worker = self._worker_factory(shard_id)
        try:
            return await asyncio.wait_for(worker.handle(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[SHARD TRANSPORT] Shard %d did not answer within %.1fs for user %s; treating as empty",
                shard_id, self.timeout, request.user_id,
            )
            return ShardUpdateResponse(shard_id=shard_id, timed_out=True)
        except Exception as exc:
            logger.error("[SHARD TRANSPORT] Shard %d failed for user %s: %s", shard_id, request.user_id, exc)
            return ShardUpdateResponse(shard_id=shard_id, failed=True)
