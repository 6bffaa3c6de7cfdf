import logging

import discord

from . import logs

logger = logging.getLogger(__name__)

TEST_COMMAND = "test"
CHALLENGE_COMMAND = "challenge"

DEFAULT_TEST_MESSAGE = "Test message"
CHALLENGE_TAIL = "Challenge me once you're worthy."


def title_case(text):
    """Upper-case the first letter of each space separated word."""
    chars = []
    for i, char in enumerate(text):
        if i == 0 or text[i - 1] == " ":
            chars.append(char.upper())
        else:
            chars.append(char)
    return "".join(chars)


def challenge_message(choice=None):
    if not choice:
        return CHALLENGE_TAIL
    return (
        f"{title_case(choice)}? Really? You think you can defeat me with "
        f"{choice.upper()}? {CHALLENGE_TAIL}"
    )


def _command_data(interaction):
    return getattr(interaction, "data", None) or {}


def _first_option(interaction):
    options = _command_data(interaction).get("options") or []
    if not options:
        return None
    value = options[0].get("value")
    return str(value) if value is not None else None


class InteractionDispatcher:
    """Answers pings and the slash commands the bot knows."""

    event = "on_interaction"

    def __init__(self, user_replies=None):
        self.user_replies = dict(user_replies or {})
        self.commands = {
            TEST_COMMAND: self.test_command,
            CHALLENGE_COMMAND: self.challenge_command,
        }

    def __str__(self):
        return "Interaction Handler"

    async def handle(self, interaction):
        if interaction is None:
            logger.error("interaction is None")
            return
        itype = getattr(interaction, "type", None)
        log = logs.get_logger(
            __name__,
            **{logs.TYPE: getattr(itype, "name", str(itype)), logs.ID: getattr(interaction, "id", None)},
        )
        log.info("Received interaction")

        if itype == discord.InteractionType.ping:
            await self.ping(interaction, log)
        elif itype == discord.InteractionType.application_command:
            await self.slash_command(interaction, log)
        else:
            log.error("No responder for interaction type")

    async def ping(self, interaction, log):
        log.info("Handling ping interaction")
        try:
            await interaction.response.pong()
        except discord.DiscordException:
            log.exception("Failed to respond to ping")

    async def slash_command(self, interaction, log):
        name = _command_data(interaction).get("name")
        log = log.with_fields(**{logs.COMMAND: name})
        responder = self.commands.get(name)
        if responder is None:
            log.error("Unknown slash command")
            return
        log.info("Handling slash command")
        await self._respond(interaction, responder(interaction), log)

    def test_command(self, interaction):
        user = getattr(interaction, "user", None)
        user_id = str(user.id) if user is not None else ""
        return self.user_replies.get(user_id, DEFAULT_TEST_MESSAGE)

    def challenge_command(self, interaction):
        return challenge_message(_first_option(interaction))

    async def _respond(self, interaction, content, log):
        try:
            await interaction.response.send_message(content)
        except discord.DiscordException:
            log.exception("Failed to respond to command")
