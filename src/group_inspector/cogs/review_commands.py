"""py-cord Cog forwarding reviewer messages to the inspector.

Messages from guild text channels are reported with the channel ID as their
origin, matching ``guild:<channel id>`` notify targets; DMs have no origin.
"""

import discord
from discord.ext import commands

from group_inspector.datatypes.request_datatypes import InboundMessage
from group_inspector.inspector import GroupInspector
from group_inspector.util.logger import get_logger

logger = get_logger("review_commands")


class ReviewCommandsCog(commands.Cog):
    """Listens for approval commands (``y1``, ``n2 reason``, ``ya``, ``na``)."""

    def __init__(self, discord_bot_instance, inspector: GroupInspector):
        self.bot = discord_bot_instance
        self.inspector = inspector
        self.shutdown_task = None
        logger.info("[REVIEW COMMANDS] Review commands cog loaded")

    @staticmethod
    def to_inbound(message: discord.Message) -> InboundMessage:
        origin = None if message.guild is None else str(message.channel.id)
        return InboundMessage(text=message.content or "", sender_id=str(message.author.id), origin_group_id=origin)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        if message.author.bot or not message.content:
            return
        await self.inspector.on_message(self.to_inbound(message))

    def cog_unload(self):
        self.shutdown_task = self.bot.loop.create_task(self.inspector.shutdown())
        self.shutdown_task.add_done_callback(self._log_shutdown_failure)

    @staticmethod
    def _log_shutdown_failure(task):
        if not task.cancelled() and task.exception() is not None:
            logger.error("[REVIEW COMMANDS] Inspector shutdown failed: %s", task.exception())


def add_review_cog(discord_bot_instance, inspector: GroupInspector):
    """Attach the review cog to ``discord_bot_instance``; called by the host bot with its inspector."""
    cog = ReviewCommandsCog(discord_bot_instance, inspector)
    discord_bot_instance.add_cog(cog)
    return cog
