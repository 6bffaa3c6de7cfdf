import logging
import threading
import time

import uvicorn
from fastapi import FastAPI

from . import __version__
from .errors import HTTPServerError

logger = logging.getLogger(__name__)

STARTUP_WAIT = 5.0


def create_app(*routers) -> FastAPI:
    app = FastAPI(title="musicbot", version=__version__)
    for router in routers:
        app.include_router(router)
    return app


class HTTPServer:
    """Runs uvicorn on a daemon thread next to the Discord event loop."""

    def __init__(self, app, port, host="0.0.0.0"):
        self.port = port
        self.server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_config=None)
        )
        self._thread = None

    def start(self, wait=STARTUP_WAIT):
        logger.info("Starting server port=%s", self.port)
        self._thread = threading.Thread(target=self.server.run, name="http-server", daemon=True)
        self._thread.start()
        deadline = time.monotonic() + wait
        while not self.server.started and time.monotonic() < deadline:
            if not self._thread.is_alive():
                raise HTTPServerError(f"HTTP server failed to start on port {self.port}")
            time.sleep(0.05)
        if not self.server.started:
            logger.warning("HTTP server not confirmed up after %.1fs", wait)

    def stop(self, timeout=5.0):
        if self._thread is None:
            return
        self.server.should_exit = True
        self._thread.join(timeout)
        self._thread = None
        logger.info("Server stopped")
