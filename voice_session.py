"""
Voice Session - Voice connection and audio player for a single guild
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

import discord

from config import AUDIO_CONFIG

logger = logging.getLogger(__name__)

PLAYER_EVENTS = ('playing', 'error')

class MonitoredSource(discord.PCMVolumeTransformer):
    """Volume-controlled PCM source that reports the first frame it hands out."""

    def __init__(self, original: discord.AudioSource, *, volume: float,
                 on_first_frame: Callable[[], None]):
        super().__init__(original, volume=volume)
        self._on_first_frame = on_first_frame
        self._started = False

    def read(self) -> bytes:
        data = super().read()
        if data and not self._started:
            self._started = True
            self._on_first_frame()
        return data

class RadioPlayer:
    """Plays a PCM source on a voice connection and emits `playing` / `error` events."""

    def __init__(self, voice_client: discord.VoiceClient, source: discord.AudioSource,
                 volume: float = 1.0):
        self.voice_client = voice_client
        self.source = MonitoredSource(source, volume=volume, on_first_frame=self._first_frame)
        self.stopped = False

        self._loop = asyncio.get_running_loop()
        self._listeners: Dict[str, List[Callable]] = {event: [] for event in PLAYER_EVENTS}

    def on(self, event: str, callback: Callable):
        """Register a listener for `playing` or `error`."""
        if event not in self._listeners:
            raise ValueError(f"Unknown player event: {event}")
        self._listeners[event].append(callback)

    def play(self):
        """Start sending audio. discord.py keeps playing with nobody listening."""
        if self.voice_client.is_playing() or self.voice_client.is_paused():
            self.voice_client.stop()
        self.voice_client.play(self.source, after=self._after)

    def stop(self):
        """Stop playback and silence further events. Safe to call repeatedly."""
        if self.stopped:
            return
        self.stopped = True

        try:
            if self.voice_client.is_playing() or self.voice_client.is_paused():
                self.voice_client.stop()
        except Exception:
            logger.debug("Ignoring error while stopping player", exc_info=True)

    def _first_frame(self):
        self._schedule('playing')

    def _after(self, error: Optional[Exception]):
        # Runs on the voice player thread once playback finishes
        if error is not None:
            self._schedule('error', error)

    def _schedule(self, event: str, *args):
        if self._loop.is_closed():
            return
        try:
            self._loop.call_soon_threadsafe(self._emit, event, *args)
        except RuntimeError:
            pass

    def _emit(self, event: str, *args):
        if self.stopped:
            return
        for callback in list(self._listeners[event]):
            callback(*args)

class VoiceSession:
    """Owns a guild's voice connection and the player attached to it."""

    def __init__(self, guild: discord.Guild, *, volume: Optional[float] = None,
                 connect_timeout: Optional[float] = None):
        self.guild = guild
        self.volume = AUDIO_CONFIG['volume'] if volume is None else volume
        self.connect_timeout = connect_timeout or AUDIO_CONFIG['connect_timeout']
        self.voice_client: Optional[discord.VoiceClient] = None
        self.player: Optional[RadioPlayer] = None

    async def join(self, channel: discord.VoiceChannel) -> discord.VoiceClient:
        """Connect to a voice channel, reusing an existing connection for this guild.

        Raises asyncio.TimeoutError or discord.ClientException when the
        connection cannot be established.
        """
        voice_client = self.guild.voice_client
        if voice_client and voice_client.is_connected():
            if voice_client.channel != channel:
                await voice_client.move_to(channel)
            self.voice_client = voice_client
            return voice_client

        self.voice_client = await asyncio.wait_for(
            channel.connect(timeout=self.connect_timeout, self_deaf=True),
            timeout=self.connect_timeout + 5
        )
        logger.info(f"Connected to voice channel: {channel.name}")
        return self.voice_client

    def attach_player(self, source: discord.AudioSource) -> RadioPlayer:
        """Start playing `source` on the current connection."""
        if self.voice_client is None:
            raise discord.ClientException("Not connected to voice.")

        if self.player is not None:
            self.player.stop()

        player = RadioPlayer(self.voice_client, source, volume=self.volume)
        player.play()
        self.player = player
        return player

    async def destroy(self):
        """Stop playback and leave the voice channel. Never raises."""
        if self.player is not None:
            self.player.stop()
            self.player = None

        voice_client = self.voice_client
        self.voice_client = None
        if voice_client is None:
            return

        try:
            await voice_client.disconnect(force=True)
        except Exception:
            logger.debug("Ignoring error while disconnecting from voice", exc_info=True)
