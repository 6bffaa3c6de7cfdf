import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from spotipy.cache_handler import CacheHandler, MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from .errors import TokenIOError

logger = logging.getLogger(__name__)

TOKEN_DIR = ".discordbot"
TOKEN_FILE = "spotify_token.json"
DIR_MODE = 0o755
FILE_MODE = 0o644

_KNOWN_KEYS = ("access_token", "refresh_token", "expires_at", "token_type")


@dataclass
class Token:
    """OAuth2 credentials in the shape spotipy hands out as ``token_info``."""

    access_token: str
    refresh_token: str = ""
    expires_at: int = 0
    token_type: str = "Bearer"
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_token_info(cls, info: Dict[str, Any]) -> "Token":
        if not isinstance(info, dict) or not info.get("access_token"):
            raise ValueError("token info has no access_token")
        return cls(
            access_token=info["access_token"],
            refresh_token=info.get("refresh_token") or "",
            expires_at=int(info.get("expires_at") or 0),
            token_type=info.get("token_type") or "Bearer",
            extra={k: v for k, v in info.items() if k not in _KNOWN_KEYS},
        )

    def to_token_info(self) -> Dict[str, Any]:
        info = dict(self.extra)
        info.update(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
            token_type=self.token_type,
        )
        return info

    @property
    def scopes(self):
        return (self.extra.get("scope") or "").split()


def is_valid(token: Optional[Token]) -> bool:
    """True when the token has an access string and is not about to expire."""
    if token is None or not token.access_token:
        return False
    return not SpotifyOAuth.is_token_expired(token.to_token_info())


def default_token_path() -> Path:
    return Path.home() / TOKEN_DIR / TOKEN_FILE


class TokenStore(CacheHandler):
    """Keeps the Spotify token in a JSON file under the user's home directory.

    Doubles as the spotipy cache handler, so tokens spotipy obtains or
    refreshes land in the same file. The last saved token is also kept in
    memory. Only one process is expected to write the file.
    """

    def __init__(self, path=None):
        self.path = Path(path) if path else default_token_path()
        self._lock = threading.Lock()
        self._token_info = None

    def _write(self, token_info):
        data = json.dumps(token_info)
        with self._lock:
            self._token_info = dict(token_info)
            try:
                self.path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
                fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
            except OSError as exc:
                raise TokenIOError(f"failed to write token file {self.path}: {exc}") from exc
        logger.info("Token saved to file path=%s", self.path)

    def get_cached_token(self):
        with self._lock:
            if self._token_info is not None:
                return dict(self._token_info)
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No existing token file found path=%s", self.path)
            return None
        except OSError as exc:
            raise TokenIOError(f"failed to read token file {self.path}: {exc}") from exc
        try:
            info = json.loads(raw)
        except ValueError as exc:
            raise TokenIOError(f"failed to decode token file {self.path}: {exc}") from exc
        logger.info("Token loaded from file path=%s", self.path)
        return info

    def save_token_to_cache(self, token_info):
        # called by spotipy after a code exchange or refresh
        try:
            self._write(token_info)
        except TokenIOError:
            logger.exception("Failed to save token")

    def save(self, token: Token) -> None:
        if token is None:
            raise TokenIOError("no token to save")
        self._write(token.to_token_info())

    def load(self) -> Optional[Token]:
        info = self.get_cached_token()
        if info is None:
            return None
        try:
            return Token.from_token_info(info)
        except ValueError as exc:
            raise TokenIOError(f"failed to decode token file {self.path}: {exc}") from exc


class MemoryTokenStore(MemoryCacheHandler):
    """Process-local token store, mostly for tests."""

    def __init__(self, token: Optional[Token] = None):
        super().__init__(token.to_token_info() if token is not None else None)
        self._lock = threading.Lock()
        self.saves = 0

    def get_cached_token(self):
        with self._lock:
            return dict(self.token_info) if self.token_info is not None else None

    def save_token_to_cache(self, token_info):
        with self._lock:
            self.token_info = dict(token_info)
            self.saves += 1

    def save(self, token: Token) -> None:
        if token is None:
            raise TokenIOError("no token to save")
        self.save_token_to_cache(token.to_token_info())

    def load(self) -> Optional[Token]:
        info = self.get_cached_token()
        return Token.from_token_info(info) if info is not None else None
