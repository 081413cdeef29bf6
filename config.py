"""
Configuration - Bot configuration and settings
"""

import os
import shutil

from dotenv import load_dotenv

load_dotenv()

# Bot Configuration
BOT_CONFIG = {
    'prefix': '!',  # Prefix for the text triggers (!radio, !stop)
    'description': 'Discord bot that relays a live internet radio stream into voice channels',
    'activity_name': 'the radio | /radio',
}

# Stream Configuration
STREAM_CONFIG = {
    'url': os.getenv('STREAM_URL') or 'https://cast.sw.arm.fm/stream',
}

# Audio Configuration
AUDIO_CONFIG = {
    'volume': 1.0,
    'restart_delay': 5.0,  # seconds between a stream failure and the next attempt
    'connect_timeout': 15.0,  # seconds
}

# FFMPEG Configuration
FFMPEG_CONFIG = {
    'executable': os.getenv('FFMPEG_EXE', 'ffmpeg'),
    'before_options': (
        '-reconnect 1 '
        '-reconnect_streamed 1 '
        '-reconnect_delay_max 5 '
        '-analyzeduration 0'
    ),
    'options': (
        '-vn '
        '-loglevel quiet'
    ),
}

# Discord Configuration
DISCORD_CONFIG = {
    'token': os.getenv('DISCORD_TOKEN', ''),
}

# Heartbeat Configuration
HEARTBEAT_CONFIG = {
    'host': '0.0.0.0',
    'port': os.getenv('PORT', '3000'),
}

# Logging Configuration
LOGGING_CONFIG = {
    'level': os.getenv('LOG_LEVEL', 'INFO'),
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'file': 'bot.log',
    'max_file_size': 10 * 1024 * 1024,  # 10MB
    'backup_count': 5,
}

# Error Messages
ERROR_MESSAGES = {
    'not_in_voice': "❌ Join a voice channel first!",
    'already_playing': "❌ The radio is already playing in this server!",
    'nothing_playing': "❌ Nothing is playing right now!",
    'connection_failed': "❌ Failed to connect to the voice channel!",
    'decoder_failed': "⚠️ Failed to start FFmpeg.",
    'guild_only': "❌ This command can only be used in a server!",
    'command_failed': "An error occurred: {error}",
}

# Success Messages
SUCCESS_MESSAGES = {
    'radio_started': "▶️ Radio started in **{channel}**",
    'radio_stopped': "⏹️ Radio stopped, left the voice channel.",
}

def validate_config():
    """Validate configuration values and environment variables.

    Returns a ``(errors, warnings)`` pair. Any error is fatal at startup.
    """
    errors = []
    warnings = []

    # Check required environment variables
    if not DISCORD_CONFIG['token']:
        errors.append("DISCORD_TOKEN environment variable is required!")

    # FFmpeg has to be reachable before any guild asks for the radio
    if not shutil.which(FFMPEG_CONFIG['executable']):
        errors.append(
            f"FFmpeg executable '{FFMPEG_CONFIG['executable']}' was not found. "
            "Install it or add it to PATH."
        )

    try:
        port = int(HEARTBEAT_CONFIG['port'])
    except (TypeError, ValueError):
        errors.append(f"PORT must be an integer, got {HEARTBEAT_CONFIG['port']!r}")
    else:
        if not 0 < port < 65536:
            errors.append(f"PORT must be between 1 and 65535, got {port}")
        HEARTBEAT_CONFIG['port'] = port

    if not os.getenv('STREAM_URL'):
        warnings.append(f"STREAM_URL not set, using default stream {STREAM_CONFIG['url']}")

    if not 0 <= AUDIO_CONFIG['volume'] <= 2:
        warnings.append("Invalid volume, using 1.0")
        AUDIO_CONFIG['volume'] = 1.0

    return errors, warnings
