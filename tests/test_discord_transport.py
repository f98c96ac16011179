"""Tests for the py-cord transport and review command cog."""

import asyncio
import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from group_inspector.cogs.review_commands import ReviewCommandsCog, add_review_cog
from group_inspector.datatypes.request_datatypes import InboundMessage
from group_inspector.errors import DeliveryError, TransportError
from group_inspector.transport.discord_transport import DiscordTransport


class _DummyChannel:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        self.sent.append(text)


@pytest.mark.asyncio
async def test_send_message_to_text_channel():
    channel = _DummyChannel()
    bot = MagicMock()
    bot.get_channel.return_value = channel

    with patch("group_inspector.transport.discord_transport.discord.TextChannel", _DummyChannel):
        await DiscordTransport(bot).send_message("111", "hello")

    bot.get_channel.assert_called_once_with(111)
    assert channel.sent == ["hello"]


@pytest.mark.asyncio
async def test_send_message_rejects_non_text_channel():
    bot = MagicMock()
    bot.get_channel.return_value = object()

    with pytest.raises(DeliveryError):
        await DiscordTransport(bot).send_message("111", "hello")


@pytest.mark.asyncio
async def test_send_message_wraps_http_errors():
    bot = MagicMock()
    bot.get_channel.return_value = None

    class DummyHTTPException(Exception):
        pass

    bot.fetch_channel = AsyncMock(side_effect=DummyHTTPException("gone"))
    with patch("group_inspector.transport.discord_transport.discord.HTTPException", DummyHTTPException):
        with pytest.raises(DeliveryError):
            await DiscordTransport(bot).send_message("111", "hello")


@pytest.mark.asyncio
async def test_send_direct_message():
    user = AsyncMock()
    bot = MagicMock()
    bot.fetch_user = AsyncMock(return_value=user)

    await DiscordTransport(bot).send_direct_message("42", "psst")

    bot.fetch_user.assert_awaited_once_with(42)
    user.send.assert_awaited_once_with("psst")


@pytest.mark.asyncio
async def test_iter_members_yields_ids():
    guild = SimpleNamespace(members=[SimpleNamespace(id=1), SimpleNamespace(id=2)])
    bot = MagicMock()
    bot.get_guild.return_value = guild

    members = [m async for m in DiscordTransport(bot).iter_members("9")]

    assert members == ["1", "2"]


@pytest.mark.asyncio
async def test_iter_members_unknown_guild():
    bot = MagicMock()
    bot.get_guild.return_value = None

    with pytest.raises(TransportError):
        async for _ in DiscordTransport(bot).iter_members("9"):
            pass


@pytest.mark.asyncio
async def test_reputation_is_account_age_in_days():
    created = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(days=30)
    bot = MagicMock()
    bot.fetch_user = AsyncMock(return_value=SimpleNamespace(created_at=created))

    reputation = await DiscordTransport(bot).get_reputation("42")

    assert 29.9 < reputation < 30.1


def _message(content, *, bot_author=False, guild=True):
    message = MagicMock(spec=discord.Message)
    message.content = content
    message.author = SimpleNamespace(id=7, bot=bot_author)
    message.channel = SimpleNamespace(id=111)
    message.guild = SimpleNamespace(id=1) if guild else None
    return message


@pytest.mark.asyncio
async def test_cog_forwards_channel_messages():
    inspector = MagicMock()
    inspector.on_message = AsyncMock(return_value=1)
    cog = ReviewCommandsCog(MagicMock(), inspector)

    await cog.on_message(_message("y1"))

    inspector.on_message.assert_awaited_once_with(InboundMessage("y1", "7", "111"))


@pytest.mark.asyncio
async def test_cog_reports_dms_without_origin():
    inspector = MagicMock()
    inspector.on_message = AsyncMock(return_value=1)
    cog = ReviewCommandsCog(MagicMock(), inspector)

    await cog.on_message(_message("ya", guild=False))

    inspector.on_message.assert_awaited_once_with(InboundMessage("ya", "7", None))


@pytest.mark.asyncio
async def test_cog_ignores_bots():
    inspector = MagicMock()
    inspector.on_message = AsyncMock()
    cog = ReviewCommandsCog(MagicMock(), inspector)

    await cog.on_message(_message("y1", bot_author=True))

    inspector.on_message.assert_not_awaited()


def test_add_review_cog_registers_with_bot():
    bot = MagicMock()
    inspector = MagicMock()

    cog = add_review_cog(bot, inspector)

    bot.add_cog.assert_called_once_with(cog)
    assert cog.inspector is inspector


@pytest.mark.asyncio
async def test_cog_unload_keeps_shutdown_task():
    bot = MagicMock()
    bot.loop = asyncio.get_running_loop()
    inspector = MagicMock()
    inspector.shutdown = AsyncMock()
    cog = ReviewCommandsCog(bot, inspector)

    cog.cog_unload()
    await cog.shutdown_task

    inspector.shutdown.assert_awaited_once()
    assert cog.shutdown_task.done()
