"""Discord to Spotify playlist bot."""

__version__ = "0.1.0"
