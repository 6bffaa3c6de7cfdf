import logging

from . import logs
from .actions import ActionContext, create_action
from .errors import InvalidEvent

logger = logging.getLogger(__name__)


def validate_message(message):
    if message is None:
        raise InvalidEvent("message is None")
    content = getattr(message, "content", None)
    if content is None:
        raise InvalidEvent("message has no content")
    if content == "":
        raise InvalidEvent("message content is empty")
    if getattr(message, "author", None) is None:
        raise InvalidEvent("message author is None")
    if getattr(message, "channel", None) is None:
        raise InvalidEvent("message channel is None")


class MessageDispatcher:
    """Runs the registered actions of a channel for every new message."""

    event = "on_message"

    def __init__(self, channel_actions, music=None, action_factory=create_action):
        self.channel_actions = channel_actions
        self.music = music
        self.action_factory = action_factory

    def __str__(self):
        return "Message Handler"

    async def handle(self, message):
        log = logs.get_logger(
            __name__,
            **{
                logs.TYPE: "message",
                logs.ID: getattr(message, "id", None),
                logs.CHANNEL_ID: _channel_id(message),
            },
        )
        log.info("Handling message")
        try:
            validate_message(message)
        except InvalidEvent as exc:
            log.error("Invalid message: %s", exc)
            return

        author = message.author
        log = log.with_fields(
            **{logs.USER: getattr(author, "name", None), logs.USER_ID: getattr(author, "id", None)}
        )
        if logs.verbose_logs_enabled(log):
            log.with_fields(**{logs.CONTENT: message.content}).info("Full message data")

        if getattr(author, "bot", False):
            log.debug("Ignoring bot message")
            return

        channel_id = _channel_id(message)
        kinds = self.channel_actions.get(channel_id)
        if not kinds:
            log.debug("No actions registered for channel")
            return

        ctx = ActionContext(message=message, log=log)
        for kind in kinds:
            action = self.action_factory(kind, ctx, self.music)
            action_log = log.with_fields(**{logs.ACTION: str(kind)})
            try:
                await action.execute()
            except Exception:
                # one failed action must not stop the ones after it
                action_log.exception("Action failed")
            else:
                action_log.debug("Action done")


def _channel_id(message):
    channel = getattr(message, "channel", None)
    channel_id = getattr(channel, "id", None)
    return str(channel_id) if channel_id is not None else None
