"""
Stream Supervisor - Per-guild radio lifecycle
Starts, stops and restarts the radio stream, keeping at most one session per guild.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, Iterator, Optional, Set

import discord

from config import AUDIO_CONFIG, ERROR_MESSAGES, SUCCESS_MESSAGES
from decoder import DecoderProcess
from responders import Responder, deliver
from utils import Logger
from voice_session import RadioPlayer, VoiceSession

logger = logging.getLogger(__name__)
log = Logger(__name__)

class StreamState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    PLAYING = "playing"
    RESTARTING = "restarting"

class SessionExistsError(Exception):
    """Raised when registering a second session for a guild."""

class GuildAudioSession:
    """Everything the radio owns in one guild while it is playing or recovering."""

    def __init__(self, guild_id: int, channel: discord.VoiceChannel, responder: Responder,
                 voice: VoiceSession):
        self.guild_id = guild_id
        self.channel = channel
        self.responder = responder
        self.voice = voice
        self.decoder: Optional[DecoderProcess] = None
        self.player: Optional[RadioPlayer] = None
        self.is_restarting = False
        self.restart_generation = 0
        self.state = StreamState.STARTING

class SessionRegistry:
    """Active sessions keyed by guild id."""

    def __init__(self):
        self._sessions: Dict[int, GuildAudioSession] = {}

    def get(self, guild_id: int) -> Optional[GuildAudioSession]:
        return self._sessions.get(guild_id)

    def add(self, session: GuildAudioSession):
        existing = self._sessions.get(session.guild_id)
        if existing is not None and existing is not session:
            raise SessionExistsError(f"Guild {session.guild_id} already has a radio session")
        self._sessions[session.guild_id] = session

    def remove(self, session: GuildAudioSession) -> bool:
        if self._sessions.get(session.guild_id) is not session:
            return False
        del self._sessions[session.guild_id]
        return True

    def is_current(self, session: GuildAudioSession) -> bool:
        return self._sessions.get(session.guild_id) is session

    def state_of(self, guild_id: int) -> StreamState:
        session = self._sessions.get(guild_id)
        return session.state if session else StreamState.IDLE

    def __contains__(self, guild_id: int) -> bool:
        return guild_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[GuildAudioSession]:
        return iter(list(self._sessions.values()))

class StreamSupervisor:
    """Coordinates decoder, voice session and restarts for every guild.

    All methods run on the event loop thread. Failure signals coming from the
    voice player thread are delivered here through the loop, so a session is
    never mutated from two places at once.
    """

    def __init__(self, source_url: str, *, restart_delay: Optional[float] = None,
                 decoder_factory: Callable[[str], DecoderProcess] = DecoderProcess,
                 voice_factory: Callable[[discord.Guild], VoiceSession] = VoiceSession,
                 sleep=asyncio.sleep):
        self.source_url = source_url
        self.restart_delay = AUDIO_CONFIG['restart_delay'] if restart_delay is None else restart_delay
        self.registry = SessionRegistry()

        self._decoder_factory = decoder_factory
        self._voice_factory = voice_factory
        self._sleep = sleep
        self._tasks: Set[asyncio.Task] = set()

    def state_of(self, guild_id: int) -> StreamState:
        return self.registry.state_of(guild_id)

    async def start(self, channel: discord.VoiceChannel, responder: Responder) -> bool:
        """Start the radio in `channel`. Returns False if the request was rejected or failed."""
        guild_id = channel.guild.id
        session = self.registry.get(guild_id)

        if session is not None and not session.is_restarting:
            await deliver(responder, ERROR_MESSAGES['already_playing'])
            return False

        if session is None:
            # Registered before the first await so a concurrent start is rejected
            session = GuildAudioSession(guild_id, channel, responder, self._voice_factory(channel.guild))
            self.registry.add(session)
        else:
            session.channel = channel
            session.responder = responder

        return await self._start_session(session, requested=True)

    async def stop(self, guild_id: int, responder: Responder) -> bool:
        """Stop the radio and leave voice. Returns False if nothing was playing."""
        session = self.registry.get(guild_id)
        if session is None:
            await deliver(responder, ERROR_MESSAGES['nothing_playing'])
            return False

        log.info("Stopping radio", guild_id)
        await self._teardown(session)
        await deliver(responder, SUCCESS_MESSAGES['radio_stopped'])
        return True

    async def discard(self, guild_id: int) -> bool:
        """Fully clean up a guild's session without telling anyone."""
        session = self.registry.get(guild_id)
        if session is None:
            return False

        log.info("Discarding radio session", guild_id)
        await self._teardown(session)
        return True

    async def shutdown(self):
        """Clean up every active session."""
        sessions = list(self.registry)
        if not sessions:
            return

        logger.info(f"Cleaning up {len(sessions)} radio session(s)...")
        await asyncio.gather(*(self._teardown(session) for session in sessions))

    async def _start_session(self, session: GuildAudioSession, requested: bool) -> bool:
        guild_id = session.guild_id
        channel = session.channel

        session.is_restarting = False
        session.state = StreamState.STARTING
        log.info(f"Connecting to {channel.name}", guild_id)

        try:
            await session.voice.join(channel)
        except (asyncio.TimeoutError, discord.ClientException) as e:
            log.error(f"Voice connection to {channel.name} failed: {e!r}", guild_id)
            if requested:
                await self._teardown(session)
                await deliver(session.responder, ERROR_MESSAGES['connection_failed'])
            else:
                self._request_restart(session, "Voice connection failed")
            return False

        if not self.registry.is_current(session):
            log.info("Radio was stopped while connecting, leaving voice", guild_id)
            if guild_id not in self.registry:
                await session.voice.destroy()
            return False

        decoder = self._decoder_factory(self.source_url)
        decoder.on_error(lambda error: self._decoder_failed(session, decoder, error))
        decoder.on_end(lambda: self._stream_failed(session, decoder, "Stream ended"))
        session.decoder = decoder

        source = decoder.start()
        if source is None:
            return False

        try:
            player = session.voice.attach_player(source)
        except discord.ClientException as e:
            log.error(f"Could not start playback: {e}", guild_id)
            self._request_restart(session, "Playback could not start")
            return False

        session.player = player
        player.on('playing', lambda: self._stream_playing(session, player))
        player.on('error', lambda error: self._stream_failed(session, player, f"Player error: {error!r}"))
        return True

    def _stream_playing(self, session: GuildAudioSession, player: RadioPlayer):
        if session.player is not player or not self.registry.is_current(session):
            return

        session.state = StreamState.PLAYING
        log.info(f"Radio playing in {session.channel.name}", session.guild_id)
        self._spawn(deliver(
            session.responder,
            SUCCESS_MESSAGES['radio_started'].format(channel=session.channel.name)
        ))

    def _stream_failed(self, session: GuildAudioSession, origin, reason: str):
        if origin is not session.decoder and origin is not session.player:
            return
        self._request_restart(session, reason)

    def _decoder_failed(self, session: GuildAudioSession, decoder: DecoderProcess, error: Exception):
        if session.decoder is not decoder or not self.registry.is_current(session):
            return

        log.error(f"FFmpeg could not be started: {error}", session.guild_id)
        self._detach(session)
        self._spawn(self._finish_abort(session))

    async def _finish_abort(self, session: GuildAudioSession):
        await session.voice.destroy()
        await deliver(session.responder, ERROR_MESSAGES['decoder_failed'])

    def _request_restart(self, session: GuildAudioSession, reason: str):
        if not self.registry.is_current(session) or session.is_restarting:
            return

        session.is_restarting = True
        session.restart_generation += 1
        session.state = StreamState.RESTARTING
        log.warning(f"{reason}, restarting in {self.restart_delay:g}s", session.guild_id)

        # Voice connection stays up so the bot remains in the channel
        self._release_stream(session)
        self._spawn(self._restart_after_delay(session, session.restart_generation))

    async def _restart_after_delay(self, session: GuildAudioSession, generation: int):
        await self._sleep(self.restart_delay)

        # A later failure owns its own timer
        if (not self.registry.is_current(session) or not session.is_restarting
                or session.restart_generation != generation):
            log.debug("Restart no longer needed", session.guild_id)
            return

        log.info("Restarting radio...", session.guild_id)
        await self._start_session(session, requested=False)

    def _release_stream(self, session: GuildAudioSession):
        player, session.player = session.player, None
        decoder, session.decoder = session.decoder, None

        if player is not None:
            player.stop()
        if decoder is not None:
            decoder.stop()

    def _detach(self, session: GuildAudioSession):
        self.registry.remove(session)
        self._release_stream(session)
        session.is_restarting = False
        session.state = StreamState.IDLE

    async def _teardown(self, session: GuildAudioSession):
        self._detach(session)
        await session.voice.destroy()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Radio background task failed", exc_info=error)
