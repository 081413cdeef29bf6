"""
Pytest configuration and shared fixtures for all tests
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import discord

from responders import Responder
from supervisor import StreamSupervisor

STREAM_URL = "http://radio.test/stream"

class FakePlayer:
    """Stands in for RadioPlayer; events are fired by the test."""

    def __init__(self, source):
        self.source = source
        self.stopped = False
        self._listeners = {'playing': [], 'error': []}

    def on(self, event, callback):
        self._listeners[event].append(callback)

    def emit(self, event, *args):
        for callback in list(self._listeners[event]):
            callback(*args)

    def stop(self):
        self.stopped = True

class FakeDecoder:
    """Stands in for DecoderProcess without spawning FFmpeg."""

    def __init__(self, source_url, fail=False):
        self.source_url = source_url
        self.fail = fail
        self.started = False
        self.stopped = False
        self.source = object()
        self._error_callbacks = []
        self._end_callbacks = []

    def on_error(self, callback):
        self._error_callbacks.append(callback)

    def on_end(self, callback):
        self._end_callbacks.append(callback)

    def start(self):
        self.started = True
        if self.fail:
            self.stopped = True
            for callback in list(self._error_callbacks):
                callback(discord.ClientException("ffmpeg was not found."))
            return None
        return self.source

    def stop(self):
        self.stopped = True

    def end(self):
        for callback in list(self._end_callbacks):
            callback()

class FakeVoice:
    """Stands in for VoiceSession."""

    def __init__(self, guild, join_error=None):
        self.guild = guild
        self.join = AsyncMock(side_effect=join_error)
        self.destroy = AsyncMock()
        self.players = []

    @property
    def player(self):
        return self.players[-1] if self.players else None

    def attach_player(self, source):
        player = FakePlayer(source)
        self.players.append(player)
        return player

class DecoderFactory:
    def __init__(self):
        self.created = []
        self.fail = False

    def __call__(self, source_url):
        decoder = FakeDecoder(source_url, fail=self.fail)
        self.created.append(decoder)
        return decoder

class VoiceFactory:
    def __init__(self):
        self.created = []
        self.join_error = None

    def __call__(self, guild):
        voice = FakeVoice(guild, join_error=self.join_error)
        self.created.append(voice)
        return voice

def make_channel(guild_id=1, name="Lounge"):
    """Create a mock voice channel belonging to a guild."""
    channel = MagicMock()
    channel.name = name
    channel.guild.id = guild_id
    return channel

def make_responder():
    return AsyncMock(spec=Responder)

def http_error(status=404, message="Unknown Message"):
    """Build a discord.HTTPException without a real HTTP response."""
    response = MagicMock(status=status, reason="Error")
    return discord.HTTPException(response, message)

async def drain(supervisor):
    """Run the supervisor's background tasks until none are left."""
    while supervisor._tasks:
        await asyncio.gather(*list(supervisor._tasks))

@pytest.fixture
def decoders():
    return DecoderFactory()

@pytest.fixture
def voices():
    return VoiceFactory()

@pytest.fixture
def sleep_calls():
    return []

@pytest.fixture
def supervisor(decoders, voices, sleep_calls):
    """Supervisor wired to fakes, with an instant restart delay that records its argument."""
    async def fake_sleep(delay):
        sleep_calls.append(delay)

    return StreamSupervisor(
        STREAM_URL,
        restart_delay=5.0,
        decoder_factory=decoders,
        voice_factory=voices,
        sleep=fake_sleep,
    )

@pytest.fixture
def channel():
    return make_channel()

@pytest.fixture
def responder():
    return make_responder()
