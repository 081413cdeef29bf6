"""
Radio Commands - Slash and text commands for radio control
Both input paths share the same handlers and differ only in how replies are delivered.
"""

import discord
from discord.ext import commands
from discord import app_commands
import logging

from config import ERROR_MESSAGES
from responders import InteractionResponder, MessageResponder, Responder, deliver
from utils import get_voice_channel

logger = logging.getLogger(__name__)

class RadioCommands(commands.Cog):
    """Discord commands for starting and stopping the radio."""

    def __init__(self, bot):
        self.bot = bot

    async def cog_load(self):
        """Called when the cog is loaded."""
        logger.info("Radio commands cog loaded")

    @property
    def supervisor(self):
        return self.bot.supervisor

    async def handle_start(self, member, responder: Responder):
        """Start the radio in the member's voice channel."""
        channel = get_voice_channel(member)
        if channel is None:
            return await deliver(responder, ERROR_MESSAGES['not_in_voice'])

        await self.supervisor.start(channel, responder)

    async def handle_stop(self, guild_id: int, responder: Responder):
        """Stop the radio in a guild."""
        await self.supervisor.stop(guild_id, responder)

    @app_commands.command(name="radio", description="Start playing the radio in your voice channel")
    @app_commands.guild_only()
    async def radio_slash(self, interaction: discord.Interaction):
        """Start radio (slash)."""
        # The "started" notice arrives once audio flows, often after the 3s reply window
        await interaction.response.defer(thinking=True)
        await self.handle_start(interaction.user, InteractionResponder(interaction))

    @app_commands.command(name="stop", description="Stop the radio and leave the voice channel")
    @app_commands.guild_only()
    async def stop_slash(self, interaction: discord.Interaction):
        """Stop radio (slash)."""
        await self.handle_stop(interaction.guild_id, InteractionResponder(interaction))

    @commands.command(name="radio")
    @commands.guild_only()
    async def radio_text(self, ctx: commands.Context):
        """Start radio (!radio)."""
        await self.handle_start(ctx.author, MessageResponder(ctx.message))

    @commands.command(name="stop")
    @commands.guild_only()
    async def stop_text(self, ctx: commands.Context):
        """Stop radio (!stop)."""
        await self.handle_stop(ctx.guild.id, MessageResponder(ctx.message))
