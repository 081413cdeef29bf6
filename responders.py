"""
Responders - Deliver text replies to whoever issued a radio command
"""

import logging
from abc import ABC, abstractmethod

import discord

logger = logging.getLogger(__name__)

class Responder(ABC):
    """Delivers a text response to the requester of a command."""

    @abstractmethod
    async def send(self, text: str):
        ...

class MessageResponder(Responder):
    """Replies to a plain-text command message."""

    def __init__(self, message: discord.Message):
        self.message = message

    async def send(self, text: str):
        try:
            await self.message.reply(text, mention_author=False)
        except discord.HTTPException as e:
            # Original message may have been deleted
            logger.warning(f"Failed to reply to message {self.message.id}: {e}")
            await self.message.channel.send(text)

class InteractionResponder(Responder):
    """Answers a slash command, switching to followups once the interaction is acknowledged."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def send(self, text: str):
        try:
            if self.interaction.response.is_done():
                await self.interaction.followup.send(text)
            else:
                await self.interaction.response.send_message(text)
        except discord.HTTPException as e:
            # Interaction tokens expire after 15 minutes
            if self.interaction.channel is None:
                raise
            logger.warning(f"Interaction reply failed, sending to channel instead: {e}")
            await self.interaction.channel.send(text)

async def deliver(responder: Responder, text: str):
    """Send a reply, logging instead of raising when Discord rejects it."""
    try:
        await responder.send(text)
    except discord.HTTPException as e:
        logger.error(f"Failed to deliver reply: {e}")
