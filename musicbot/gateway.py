import asyncio
import logging

import aiohttp
import discord

from .errors import GatewayError

logger = logging.getLogger(__name__)


def default_intents():
    intents = discord.Intents.default()
    intents.message_content = True
    return intents


class GatewayClient:
    """Owns the Discord gateway session and wires handlers onto it.

    A handler exposes ``event`` (the discord.py event name, e.g. ``on_message``)
    and an async ``handle`` callback.

    ``on_lost`` is called with a :class:`GatewayError` when the connection
    ends after startup without :meth:`stop` having been called.
    """

    def __init__(self, config, handlers=(), session=None, on_lost=None):
        self.config = config
        self.session = session if session is not None else discord.Client(intents=default_intents())
        self.on_lost = on_lost
        self.handlers = []
        self._task = None
        self._closing = False
        for handler in handlers:
            self.add(handler)

    def __str__(self):
        return "Discord Client"

    def add(self, handler):
        if handler is None:
            logger.warning("nil handler provided")
            return
        logger.info("Adding handler handler=%s", handler)
        # discord.py looks up ``on_<event>`` attributes when dispatching
        setattr(self.session, handler.event, handler.handle)
        self.handlers.append(handler)

    async def start(self):
        """Log in and return once the gateway reports ready.

        Raises GatewayError when the connection ends before that, e.g. when a
        privileged intent is not enabled for the application.
        """
        try:
            await self.session.login(self.config.token)
        except (discord.DiscordException, aiohttp.ClientError) as exc:
            raise GatewayError(f"failed to open discord session: {exc}") from exc

        self._closing = False
        self._task = asyncio.create_task(self.session.connect(), name="discord-gateway")
        ready = asyncio.create_task(self.session.wait_until_ready())
        try:
            await asyncio.wait({self._task, ready}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self._task.cancel()
            raise
        finally:
            ready.cancel()

        if self._task.done():
            exc = None if self._task.cancelled() else self._task.exception()
            await self._close_after_failed_start()
            raise GatewayError(f"discord connection closed before ready: {exc}") from exc
        self._task.add_done_callback(self._connection_closed)
        logger.info("Discord session opened")

    async def _close_after_failed_start(self):
        try:
            await self.session.close()
        except discord.DiscordException:
            logger.exception("Failed to close discord session")

    def _connection_closed(self, task):
        if self._closing:
            return
        exc = None if task.cancelled() else task.exception()
        if exc is not None:
            logger.error("Discord connection ended with error: %s", exc)
        else:
            logger.error("Discord connection ended")
        if self.on_lost is not None:
            self.on_lost(GatewayError(f"discord connection lost: {exc}"))

    async def stop(self):
        self._closing = True
        try:
            await self.session.close()
        except discord.DiscordException as exc:
            raise GatewayError(f"failed to close discord session: {exc}") from exc
        finally:
            if self._task is not None and not self._task.done():
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
        logger.info("Discord session closed")
