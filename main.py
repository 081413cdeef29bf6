"""
Discord Radio Bot - Main Entry Point
Relays a live internet radio stream into Discord voice channels through FFmpeg.
"""

import asyncio
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler

import discord

from config import DISCORD_CONFIG, LOGGING_CONFIG, validate_config
from bot import RadioBot

logger = logging.getLogger(__name__)

def setup_logging():
    """Configure logging to the console and a rotating log file."""
    logging.basicConfig(
        level=LOGGING_CONFIG['level'],
        format=LOGGING_CONFIG['format'],
        handlers=[
            RotatingFileHandler(
                LOGGING_CONFIG['file'],
                maxBytes=LOGGING_CONFIG['max_file_size'],
                backupCount=LOGGING_CONFIG['backup_count'],
                encoding='utf-8'
            ),
            logging.StreamHandler()
        ]
    )

def install_signal_handlers(bot: RadioBot):
    """Close the bot (and every radio session) on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    closing = []

    def request_shutdown(sig):
        logger.info(f"Received {sig.name}, shutting down...")
        if not closing:
            closing.append(loop.create_task(bot.close()))

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig)
        except (NotImplementedError, RuntimeError):
            # Windows: KeyboardInterrupt handling in main() takes over
            pass

async def main() -> int:
    """Main function to start the Discord radio bot."""
    errors, warnings = validate_config()
    for warning in warnings:
        logger.warning(warning)
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    bot = RadioBot()
    install_signal_handlers(bot)

    try:
        async with bot:
            logger.info("Starting Discord Radio Bot...")
            await bot.start(DISCORD_CONFIG['token'])
    except (discord.LoginFailure, discord.PrivilegedIntentsRequired, OSError) as e:
        logger.error(f"Fatal error starting bot: {e}")
        return 1
    finally:
        logger.info("Bot shutdown complete")

    return 0

def run():
    setup_logging()
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Program interrupted by user")
        exit_code = 0
    sys.exit(exit_code)

if __name__ == "__main__":
    run()
