"""Exceptions raised by the bot's components."""


class BridgeError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(BridgeError):
    """A required setting is missing or malformed."""


class TokenIOError(BridgeError):
    """The token file exists but could not be read, decoded or written."""


class AuthTimeout(BridgeError):
    """Nobody completed the browser login in time."""


class AuthFailed(BridgeError):
    """Spotify rejected the current credentials."""


class NotAuthenticated(BridgeError):
    """No token is available to talk to Spotify."""


class RefreshFailed(BridgeError):
    """The refresh-token exchange failed."""


class PlaylistAccessError(BridgeError):
    """The playlist or its items could not be read."""


class PlaylistMutationError(BridgeError):
    """Spotify refused to add tracks to the playlist."""


class GatewayError(BridgeError):
    """The Discord session could not be opened or closed."""


class HTTPServerError(BridgeError):
    """The HTTP listener could not be started."""


class InvalidEvent(BridgeError):
    """An incoming message event is missing required data."""
