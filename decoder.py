"""
Decoder Process - FFmpeg wrapper that turns the radio stream into raw PCM
Spawns one FFmpeg process per session and reports startup errors and end of stream.
"""

import asyncio
import logging
from typing import Callable, List, Optional

import discord

from config import FFMPEG_CONFIG

logger = logging.getLogger(__name__)

class DecoderSource(discord.FFmpegPCMAudio):
    """FFmpeg PCM source (s16le, 48kHz, stereo) that reports when its output runs dry."""

    def __init__(self, source_url: str, *, on_exhausted: Callable[[], None], **kwargs):
        super().__init__(source_url, **kwargs)
        self._on_exhausted = on_exhausted
        self._exhausted = False

    def read(self) -> bytes:
        # Called from the voice player thread
        data = super().read()
        if not data and not self._exhausted:
            self._exhausted = True
            self._on_exhausted()
        return data

class DecoderProcess:
    """Owns the FFmpeg process decoding a single stream URL."""

    def __init__(self, source_url: str, executable: Optional[str] = None):
        self.source_url = source_url
        self.executable = executable or FFMPEG_CONFIG['executable']
        self.source: Optional[DecoderSource] = None
        self.stopped = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._error_callbacks: List[Callable[[Exception], None]] = []
        self._end_callbacks: List[Callable[[], None]] = []
        self._ended = False

    def on_error(self, callback: Callable[[Exception], None]):
        """Register a callback for spawn failures."""
        self._error_callbacks.append(callback)

    def on_end(self, callback: Callable[[], None]):
        """Register a callback for the output stream closing."""
        self._end_callbacks.append(callback)

    def start(self) -> Optional[DecoderSource]:
        """Spawn FFmpeg.

        Returns the PCM source to play, or None when the process could not be
        spawned. Spawn failures are reported to the error callbacks instead of
        being raised.
        """
        self._loop = asyncio.get_running_loop()

        try:
            self.source = DecoderSource(
                self.source_url,
                on_exhausted=self._stream_exhausted,
                executable=self.executable,
                before_options=FFMPEG_CONFIG['before_options'],
                options=FFMPEG_CONFIG['options'],
            )
        except discord.ClientException as e:
            logger.error(f"Failed to start FFmpeg: {e}")
            self.stopped = True
            for callback in list(self._error_callbacks):
                callback(e)
            return None

        logger.debug(f"FFmpeg started for {self.source_url}")
        return self.source

    def stop(self):
        """Kill the process. Safe to call any number of times."""
        if self.stopped:
            return
        self.stopped = True

        if self.source is None:
            return

        try:
            self.source.cleanup()
        except Exception:
            logger.debug("Ignoring error while killing FFmpeg", exc_info=True)

    def _stream_exhausted(self):
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._dispatch_end)
        except RuntimeError:
            # Loop closed between the check and the call
            pass

    def _dispatch_end(self):
        if self.stopped or self._ended:
            return
        self._ended = True

        logger.warning(f"Stream ended: {self.source_url}")
        for callback in list(self._end_callbacks):
            callback()
