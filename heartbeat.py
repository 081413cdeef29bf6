"""
Heartbeat - Minimal HTTP endpoint so process monitors can tell the bot is alive
"""

import logging
from typing import Optional

from aiohttp import web

logger = logging.getLogger(__name__)

async def handle_ping(request: web.Request) -> web.Response:
    return web.Response(text="OK")

def create_app() -> web.Application:
    """Build the heartbeat app; every path and method answers `OK`."""
    app = web.Application()
    app.router.add_route('*', '/{tail:.*}', handle_ping)
    return app

class HeartbeatServer:
    """Runs the heartbeat app alongside the bot on the same event loop."""

    def __init__(self, port: int, host: str = '0.0.0.0'):
        self.host = host
        self.port = int(port)
        self._runner: Optional[web.AppRunner] = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self):
        if self._runner is not None:
            return

        runner = web.AppRunner(create_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        logger.info(f"Heartbeat server on port {self.port}")

    async def stop(self):
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            logger.info("Heartbeat server stopped")
