"""
py-cord bindings for the messaging half of the platform contract.

``guild:<id>`` notify targets address a text channel (or thread) by ID;
``private:<id>`` targets a user's DMs. Member iteration walks a guild's cached
members, and reputation is the account age in days, the closest thing Discord
exposes to a level.
"""

from __future__ import annotations

import datetime
from typing import AsyncIterator

import discord

from group_inspector.errors import DeliveryError, TransportError
from group_inspector.util.logger import get_logger

logger = get_logger("discord_transport")


class DiscordTransport:
    """MessageTransport plus member/reputation lookups backed by a ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def send_message(self, target_id: str, text: str) -> None:
        channel = self.bot.get_channel(int(target_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(target_id))
            except discord.HTTPException as exc:
                raise DeliveryError(f"Channel {target_id} unavailable: {exc}") from exc
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise DeliveryError(f"Channel {target_id} cannot receive text messages")
        try:
            await channel.send(text)
        except discord.HTTPException as exc:
            raise DeliveryError(f"Failed to send to channel {target_id}: {exc}") from exc

    async def send_direct_message(self, user_id: str, text: str) -> None:
        try:
            user = await self.bot.fetch_user(int(user_id))
            await user.send(text)
        except discord.HTTPException as exc:
            raise DeliveryError(f"Failed to DM user {user_id}: {exc}") from exc

    async def iter_members(self, group_id: str) -> AsyncIterator[str]:
        guild = self.bot.get_guild(int(group_id))
        if guild is None:
            raise TransportError(f"Guild {group_id} is not available to the bot")
        for member in guild.members:
            yield str(member.id)

    async def get_reputation(self, user_id: str) -> float:
        try:
            user = await self.bot.fetch_user(int(user_id))
        except discord.HTTPException as exc:
            raise TransportError(f"Failed to fetch user {user_id}: {exc}") from exc
        age = datetime.datetime.now(datetime.timezone.utc) - user.created_at
        return age.total_seconds() / 86400.0
