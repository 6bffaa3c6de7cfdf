import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from . import config

logger = logging.getLogger(__name__)


class DebugClient:
    """Health and smoke-test endpoints."""

    def __init__(self):
        self.router = APIRouter()
        self.router.add_api_route("/", self.home, methods=["GET"], response_class=PlainTextResponse)
        self.router.add_api_route("/health", self.health, methods=["GET"], response_class=PlainTextResponse)
        self.router.add_api_route("/test", self.test_endpoint, methods=["GET"], response_class=PlainTextResponse)

    def __str__(self):
        return "Debug Client"

    async def start(self):
        logger.info("Debug endpoints ready")

    async def stop(self):
        return None

    def home(self):
        logger.info("Hello, World! path=/")
        return "Hello, World!"

    def health(self):
        logger.info("Health check")
        return "OK"

    def test_endpoint(self):
        return f"Test endpoint - DISCORD_APP_ID: {config.app_id()}"
