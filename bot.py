"""
Discord Radio Bot - Main Bot Class
Handles bot initialization, events, command registration and shutdown.
"""

import discord
from discord.ext import commands
import logging
from typing import Optional

from config import BOT_CONFIG, ERROR_MESSAGES, HEARTBEAT_CONFIG, STREAM_CONFIG
from heartbeat import HeartbeatServer
from radio_commands import RadioCommands
from supervisor import StreamSupervisor
from utils import create_error_embed

logger = logging.getLogger(__name__)

class RadioBot(commands.Bot):
    """Discord bot that relays one internet radio stream into voice channels."""

    def __init__(self, stream_url: Optional[str] = None, heartbeat_port: Optional[int] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.voice_states = True
        intents.guilds = True

        super().__init__(
            command_prefix=BOT_CONFIG['prefix'],
            intents=intents,
            description=BOT_CONFIG['description'],
            case_insensitive=True,
            help_command=None
        )

        # One supervisor owns every guild's radio session
        self.supervisor = StreamSupervisor(stream_url or STREAM_CONFIG['url'])
        self.heartbeat = HeartbeatServer(
            heartbeat_port if heartbeat_port is not None else HEARTBEAT_CONFIG['port'],
            host=HEARTBEAT_CONFIG['host']
        )

    async def setup_hook(self):
        """Called when the bot is starting up."""
        logger.info("Setting up bot...")

        await self.heartbeat.start()

        # Add radio commands cog
        await self.add_cog(RadioCommands(self))

        # Sync slash commands
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} command(s)")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync commands: {e}")

    async def on_ready(self):
        """Called when the bot is ready and connected to Discord."""
        logger.info(f"{self.user} has connected to Discord!")
        logger.info(f"Bot is in {len(self.guilds)} guild(s)")

        activity = discord.Activity(
            type=discord.ActivityType.listening,
            name=BOT_CONFIG['activity_name']
        )
        await self.change_presence(activity=activity)

    async def on_guild_remove(self, guild):
        """Called when the bot leaves a guild."""
        logger.info(f"Left guild: {guild.name} (ID: {guild.id})")
        await self.supervisor.discard(guild.id)

    async def on_voice_state_update(self, member, before, after):
        """Drop the session when someone else disconnects the bot from voice."""
        if self.user is None or member.id != self.user.id:
            return

        if before.channel is not None and after.channel is None:
            if await self.supervisor.discard(member.guild.id):
                logger.info(f"Disconnected from voice in guild {member.guild.id}, session removed")

    async def on_command_error(self, ctx, error):
        """Global error handler for text commands."""
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, commands.NoPrivateMessage):
            await ctx.send(ERROR_MESSAGES['guild_only'])
            return

        logger.error(f"Command error in {ctx.command}: {error}")

        embed = create_error_embed(
            "Error",
            ERROR_MESSAGES['command_failed'].format(error=error)
        )
        try:
            await ctx.send(embed=embed)
        except discord.HTTPException:
            logger.error("Failed to send error message to user")

    async def close(self):
        """Clean up every radio session before disconnecting from Discord."""
        logger.info("Shutting down...")
        await self.supervisor.shutdown()
        await self.heartbeat.stop()
        await super().close()
