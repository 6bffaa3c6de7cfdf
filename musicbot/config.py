import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ----- Environment variable names -----

PORT = "PORT"

DISCORD_APP_ID = "DISCORD_APP_ID"
DISCORD_TOKEN = "DISCORD_TOKEN"
DISCORD_AUTH_CHANNEL_ID = "DISCORD_AUTH_CHANNEL_ID"
DISCORD_DEBUG_CHANNEL_ID = "DISCORD_DEBUG_CHANNEL_ID"
DISCORD_SONGS_CHANNEL_ID = "DISCORD_SONGS_CHANNEL_ID"
DISCORD_USER_REPLIES = "DISCORD_USER_REPLIES"

SPOTIFY_APP_ID = "SPOTIFY_APP_ID"
SPOTIFY_SECRET = "SPOTIFY_SECRET"
SPOTIFY_REDIRECT_URI = "SPOTIFY_REDIRECT_URI"
SPOTIFY_PLAYLIST_ID = "SPOTIFY_PLAYLIST_ID"

DEFAULT_PORT = 8080


class ChannelType(str, Enum):
    AUTH = "Authentication"  # where login links would be posted
    DEBUG = "Debug"
    SONGS = "Songs"

    def __str__(self):
        return self.value


CHANNEL_ENV = {
    ChannelType.AUTH: DISCORD_AUTH_CHANNEL_ID,
    ChannelType.DEBUG: DISCORD_DEBUG_CHANNEL_ID,
    ChannelType.SONGS: DISCORD_SONGS_CHANNEL_ID,
}


def parse_user_replies(raw):
    """Parse ``id:reply,id:reply`` into a dict; malformed pairs are skipped."""
    replies = {}
    for pair in (raw or "").split(","):
        user_id, sep, reply = pair.partition(":")
        if not sep or not user_id.strip() or not reply.strip():
            if pair.strip():
                logger.warning("Ignoring malformed user reply %r", pair)
            continue
        replies[user_id.strip()] = reply.strip()
    return replies


@dataclass
class DiscordConfig:
    token: str = ""
    app_id: str = ""
    channel_ids: Dict[str, str] = field(default_factory=dict)
    user_replies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides):
        config = cls(
            token=os.environ.get(DISCORD_TOKEN, ""),
            app_id=os.environ.get(DISCORD_APP_ID, ""),
            channel_ids={
                channel_type.value: os.environ.get(env_name, "")
                for channel_type, env_name in CHANNEL_ENV.items()
            },
            user_replies=parse_user_replies(os.environ.get(DISCORD_USER_REPLIES)),
        )
        config = replace(config, **overrides)
        config.validate()
        return config

    def validate(self):
        if not self.token:
            raise ConfigError(f"{DISCORD_TOKEN} environment variable is not set")
        if self.channel_ids is None:
            self.channel_ids = {}
        if not self.channel_ids.get(ChannelType.AUTH.value):
            logger.warning("Authentication channel ID is not set")


@dataclass
class SpotifyConfig:
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = ""

    @classmethod
    def from_env(cls, **overrides):
        config = cls(
            client_id=os.environ.get(SPOTIFY_APP_ID, ""),
            client_secret=os.environ.get(SPOTIFY_SECRET, ""),
            redirect_uri=os.environ.get(SPOTIFY_REDIRECT_URI, ""),
        )
        config = replace(config, **overrides)
        config.validate()
        return config

    def validate(self):
        missing = []
        if not self.client_id:
            missing.append(SPOTIFY_APP_ID)
        if not self.client_secret:
            missing.append(SPOTIFY_SECRET)
        if not self.redirect_uri:
            missing.append(SPOTIFY_REDIRECT_URI)
        if missing:
            raise ConfigError(f"missing env vars: {', '.join(missing)}")


@dataclass
class BridgeConfig:
    discord: DiscordConfig
    spotify: SpotifyConfig
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls):
        return cls(
            discord=DiscordConfig.from_env(),
            spotify=SpotifyConfig.from_env(),
            port=http_port(),
        )


def http_port():
    raw = os.environ.get(PORT, "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{PORT} must be a number, got {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{PORT} out of range: {port}")
    return port


def playlist_id() -> str:
    value = os.environ.get(SPOTIFY_PLAYLIST_ID, "").strip()
    if not value:
        raise ConfigError(f"{SPOTIFY_PLAYLIST_ID} environment variable is not set")
    return value


def app_id() -> str:
    return os.environ.get(DISCORD_APP_ID, "")
