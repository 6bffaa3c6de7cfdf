import logging
import os

# Field keys used across log lines
ACTION = "action"
CHANNEL_ID = "channel_id"
CHANNEL_TYPE = "channel_type"
COMMAND = "command"
CONTENT = "content"
COUNT = "count"
ID = "id"
PLAYLIST_ID = "playlist_id"
PLAYLIST_OWNER_ID = "playlist_owner_id"
REPLY = "reply"
SCOPES = "scopes"
TRACK_IDS = "track_ids"
TRACK_URLS = "track_urls"
TYPE = "type"
USER = "user"
USER_ID = "user_id"

VERBOSE_LOGS_ENABLED = "VERBOSE_LOGS_ENABLED"

_TRUE = {"1", "t", "true", "y", "yes", "on"}
_FALSE = {"0", "f", "false", "n", "no", "off"}

logger = logging.getLogger(__name__)


class FieldLogger(logging.LoggerAdapter):
    """Logger adapter that appends bound ``key=value`` fields to each message."""

    def __init__(self, logger, fields=None):
        super().__init__(logger, dict(fields or {}))

    @property
    def fields(self):
        return dict(self.extra)

    def with_fields(self, **fields):
        merged = dict(self.extra)
        merged.update(fields)
        return FieldLogger(self.logger, merged)

    def process(self, msg, kwargs):
        if self.extra:
            rendered = " ".join(f"{key}={value!r}" for key, value in self.extra.items())
            msg = f"{msg} [{rendered}]"
        return msg, kwargs


def get_logger(name, **fields):
    return FieldLogger(logging.getLogger(name), fields)


def parse_bool(value):
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


def verbose_logs_enabled(log=None):
    """Return True when ``VERBOSE_LOGS_ENABLED`` is set to a truthy value.

    An unset variable counts as False. Anything unparsable is logged and also
    counts as False.
    """
    raw = os.environ.get(VERBOSE_LOGS_ENABLED, "")
    if not raw.strip():
        return False
    try:
        return parse_bool(raw)
    except ValueError as exc:
        (log or logger).warning("Failed to parse verbose logs enabled: %s", exc)
        return False


def configure_logging():
    level = logging.DEBUG if verbose_logs_enabled() else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
