import asyncio
import logging

from .actions import build_channel_actions
from .auth import AuthCoordinator
from .debug import DebugClient
from .errors import BridgeError
from .gateway import GatewayClient
from .interactions import InteractionDispatcher
from .messages import MessageDispatcher
from .server import HTTPServer, create_app
from .spotify_client import MusicClient
from .token_store import TokenStore

logger = logging.getLogger(__name__)


class Bridge:
    """Builds the component graph and runs it until shutdown.

    Clients start in order (debug, Spotify, Discord) and stop in reverse.
    """

    def __init__(self, config, store=None, auth=None, music=None, gateway=None, server=None):
        self.config = config
        # one store for both sides: spotipy writes through it, MusicClient reads it
        self.store = store if store is not None else TokenStore()
        self.debug = DebugClient()
        self.auth = auth or AuthCoordinator(config.spotify, store=self.store)
        self.music = music or MusicClient(self.auth, store=self.store)
        self.channel_actions = build_channel_actions(config.discord.channel_ids)
        self.messages = MessageDispatcher(self.channel_actions, music=self.music)
        self.interactions = InteractionDispatcher(config.discord.user_replies)
        self.gateway = gateway or GatewayClient(
            config.discord,
            handlers=[self.messages, self.interactions],
            on_lost=self.shutdown,
        )
        self.app = create_app(self.debug.router, self.auth.router)
        self.server = server or HTTPServer(self.app, config.port)
        # created by run() so it belongs to the running loop
        self._shutdown = None
        self._error = None

    @property
    def clients(self):
        return [self.debug, self.music, self.gateway]

    def shutdown(self, error=None):
        """Ask run() to stop. With ``error``, run() raises it once stopped."""
        if error is not None and self._error is None:
            self._error = error
        if self._shutdown is not None:
            self._shutdown.set()

    async def run(self):
        self._shutdown = asyncio.Event()
        self._error = None
        # the callback route must be reachable before the Spotify login starts
        await asyncio.to_thread(self.server.start)
        started = []
        try:
            for client in self.clients:
                logger.info("Starting client=%s", client)
                await client.start()
                started.append(client)
            logger.info("Bot is running")
            await self._shutdown.wait()
            if self._error is not None:
                raise self._error
        finally:
            for client in reversed(started):
                try:
                    await client.stop()
                except BridgeError:
                    logger.exception("Failed to stop client=%s", client)
            await asyncio.to_thread(self.server.stop)
