from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from timeyzoney.sync.member_gateway import (
    NICKNAME_EDIT_REASON,
    DiscordMemberGateway,
    can_manage_member,
    snapshot_member,
)


def make_guild(*, guild_id=100, shard_id=1, owner_id=1, manage_nicknames=True, administrator=False, bot_role=10):
    me = SimpleNamespace(
        guild_permissions=SimpleNamespace(manage_nicknames=manage_nicknames, administrator=administrator),
        top_role=bot_role,
    )
    return SimpleNamespace(
        id=guild_id,
        name="Timey HQ",
        shard_id=shard_id,
        owner_id=owner_id,
        me=me,
        get_member=MagicMock(return_value=None),
        fetch_member=AsyncMock(),
    )


def make_member(member_id=5, *, nick="Bob", name="bob", top_role=3):
    return SimpleNamespace(id=member_id, nick=nick, name=name, top_role=top_role, edit=AsyncMock())


def test_can_manage_member_with_permission_and_higher_role():
    assert can_manage_member(make_guild(), make_member()) is True


def test_administrator_is_enough():
    assert can_manage_member(make_guild(manage_nicknames=False, administrator=True), make_member()) is True


@pytest.mark.parametrize(
    "guild, member",
    [
        (make_guild(owner_id=5), make_member(5)),
        (make_guild(manage_nicknames=False), make_member()),
        (make_guild(bot_role=3), make_member(top_role=3)),
        (make_guild(bot_role=2), make_member(top_role=3)),
    ],
)
def test_cannot_manage_member(guild, member):
    assert can_manage_member(guild, member) is False


def test_cannot_manage_without_bot_member():
    guild = make_guild()
    guild.me = None
    assert can_manage_member(guild, make_member()) is False


def test_snapshot_member():
    member = make_member(nick=None)
    snapshot = snapshot_member(make_guild(), member)
    assert snapshot.nickname is None
    assert snapshot.username == "bob"
    assert snapshot.display_name == "bob"
    assert snapshot.is_owner is False
    assert snapshot.is_manageable is True
    assert snapshot.handle is member


def test_gateway_only_sees_its_own_shard():
    guild = make_guild(shard_id=1)
    bot = SimpleNamespace(get_guild=lambda gid: guild if gid == 100 else None)

    assert DiscordMemberGateway(bot, shard_id=1).hosts_guild("100") is True
    assert DiscordMemberGateway(bot, shard_id=0).hosts_guild("100") is False
    assert DiscordMemberGateway(bot).hosts_guild("100") is True
    assert DiscordMemberGateway(bot, shard_id=1).hosts_guild("200") is False
    assert DiscordMemberGateway(bot, shard_id=1).hosts_guild("not-a-snowflake") is False
    assert DiscordMemberGateway(bot, shard_id=1).guild_name("100") == "Timey HQ"
    assert DiscordMemberGateway(bot, shard_id=0).guild_name("100") == "Unknown"


@pytest.mark.asyncio
async def test_fetch_member_prefers_cache():
    guild = make_guild()
    member = make_member()
    guild.get_member.return_value = member
    gateway = DiscordMemberGateway(SimpleNamespace(get_guild=lambda gid: guild), shard_id=1)

    snapshot = await gateway.fetch_member("100", "5")

    assert snapshot.handle is member
    guild.get_member.assert_called_once_with(5)
    guild.fetch_member.assert_not_awaited()


@pytest.mark.asyncio
async def test_fetch_member_falls_back_to_api():
    guild = make_guild()
    member = make_member()
    guild.fetch_member.return_value = member
    gateway = DiscordMemberGateway(SimpleNamespace(get_guild=lambda gid: guild), shard_id=1)

    snapshot = await gateway.fetch_member("100", "5")

    assert snapshot.nickname == "Bob"
    guild.fetch_member.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_fetch_member_not_in_guild():
    guild = make_guild()
    guild.fetch_member.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member")
    gateway = DiscordMemberGateway(SimpleNamespace(get_guild=lambda gid: guild), shard_id=1)

    assert await gateway.fetch_member("100", "5") is None


@pytest.mark.asyncio
async def test_fetch_member_on_other_shard():
    guild = make_guild(shard_id=3)
    gateway = DiscordMemberGateway(SimpleNamespace(get_guild=lambda gid: guild), shard_id=1)

    assert await gateway.fetch_member("100", "5") is None
    guild.get_member.assert_not_called()


@pytest.mark.asyncio
async def test_set_nickname_edits_member():
    member = make_member()
    guild = make_guild()
    gateway = DiscordMemberGateway(SimpleNamespace(get_guild=lambda gid: guild), shard_id=1)

    await gateway.set_nickname(snapshot_member(guild, member), "Bob (UTC+1)")

    member.edit.assert_awaited_once_with(nick="Bob (UTC+1)", reason=NICKNAME_EDIT_REASON)
