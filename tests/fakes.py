"""Shared in-memory stand-ins for the member gateway and the audit sink."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

from timeyzoney.datatypes.sync_datatypes import MemberSnapshot


class FakeGateway:
    """Member gateway over a ``{guild_id: MemberSnapshot}`` mapping."""

    def __init__(self, members: dict[str, MemberSnapshot], *, fail_on: set[str] | None = None) -> None:
        self.members = members
        self.fail_on = fail_on or set()
        self.renamed: list[tuple[str, str]] = []

    def hosts_guild(self, guild_id: str) -> bool:
        return guild_id in self.members

    def guild_name(self, guild_id: str) -> str:
        return f"Guild {guild_id}"

    async def fetch_member(self, guild_id: str, user_id: str) -> MemberSnapshot | None:
        return self.members.get(guild_id)

    async def set_nickname(self, member: MemberSnapshot, nickname: str) -> None:
        if member.username in self.fail_on:
            raise RuntimeError("Missing Permissions")
        self.renamed.append((member.username, nickname))
        member.nickname = nickname


def make_audit() -> SimpleNamespace:
    return SimpleNamespace(log_nickname_update=AsyncMock(return_value=True))
