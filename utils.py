"""
Utility Functions - Helper functions for the radio bot
"""

import discord
import logging
from typing import Optional

def get_voice_channel(member) -> Optional[discord.abc.Connectable]:
    """Return the voice channel a member is sitting in, if any."""
    voice = getattr(member, 'voice', None)
    if voice is None:
        return None
    return voice.channel

def create_error_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized error embed."""
    embed = discord.Embed(
        title=f"❌ {title}",
        description=description,
        color=discord.Color.red()
    )
    return embed

class Logger:
    """Custom logger wrapper with bot-specific formatting."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _format(self, message: str, guild_id: Optional[int]) -> str:
        if guild_id:
            return f"[Guild {guild_id}] {message}"
        return message

    def info(self, message: str, guild_id: Optional[int] = None):
        """Log info message with optional guild context."""
        self.logger.info(self._format(message, guild_id))

    def error(self, message: str, guild_id: Optional[int] = None):
        """Log error message with optional guild context."""
        self.logger.error(self._format(message, guild_id))

    def warning(self, message: str, guild_id: Optional[int] = None):
        """Log warning message with optional guild context."""
        self.logger.warning(self._format(message, guild_id))

    def debug(self, message: str, guild_id: Optional[int] = None):
        """Log debug message with optional guild context."""
        self.logger.debug(self._format(message, guild_id))
