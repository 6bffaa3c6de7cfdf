import os
import stat
import tempfile
import time
import unittest
from pathlib import Path
from unittest.mock import patch

from spotipy.cache_handler import CacheHandler

from musicbot import token_store
from musicbot.errors import TokenIOError
from musicbot.token_store import MemoryTokenStore, Token, TokenStore, is_valid


def _token(**overrides) -> Token:
    values = dict(
        access_token="access",
        refresh_token="refresh",
        expires_at=int(time.time()) + 3600,
        token_type="Bearer",
        extra={"scope": "playlist-modify-public playlist-modify-private", "expires_in": 3600},
    )
    values.update(overrides)
    return Token(**values)


class TokenTests(unittest.TestCase):
    def test_from_token_info_keeps_extras(self) -> None:
        token = Token.from_token_info(
            {
                "access_token": "a",
                "refresh_token": "r",
                "expires_at": 10,
                "token_type": "Bearer",
                "scope": "playlist-modify-public",
            }
        )
        self.assertEqual(token.extra, {"scope": "playlist-modify-public"})
        self.assertEqual(token.scopes, ["playlist-modify-public"])
        self.assertEqual(token.to_token_info()["scope"], "playlist-modify-public")

    def test_from_token_info_requires_access_token(self) -> None:
        with self.assertRaises(ValueError):
            Token.from_token_info({"refresh_token": "r"})

    def test_validity(self) -> None:
        self.assertTrue(is_valid(_token()))
        self.assertFalse(is_valid(None))
        self.assertFalse(is_valid(_token(access_token="")))
        self.assertFalse(is_valid(_token(expires_at=int(time.time()) - 10)))


class TokenStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / ".discordbot" / "spotify_token.json"
        self.store = TokenStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_save_then_load_returns_same_token(self) -> None:
        token = _token()
        self.store.save(token)
        self.assertEqual(self.store.load(), token)

    def test_file_and_directory_modes(self) -> None:
        old_umask = os.umask(0o022)
        try:
            self.store.save(_token())
        finally:
            os.umask(old_umask)
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o644)
        self.assertEqual(stat.S_IMODE(self.path.parent.stat().st_mode), 0o755)

    def test_load_missing_file_is_not_an_error(self) -> None:
        self.assertIsNone(self.store.load())

    def test_load_garbage_raises(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(TokenIOError):
            self.store.load()

    def test_load_wrong_shape_raises(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("[1, 2]", encoding="utf-8")
        with self.assertRaises(TokenIOError):
            self.store.load()

    def test_save_none_raises(self) -> None:
        with self.assertRaises(TokenIOError):
            self.store.save(None)

    def test_spotipy_cache_protocol_writes_the_same_file(self) -> None:
        self.store.save_token_to_cache(_token(access_token="from-spotipy").to_token_info())
        self.assertEqual(TokenStore(self.path).load().access_token, "from-spotipy")
        self.assertEqual(self.store.get_cached_token()["access_token"], "from-spotipy")

    def test_cache_write_failure_is_logged_and_kept_in_memory(self) -> None:
        self.path.parent.mkdir(parents=True)
        # a directory where the file should go makes the open fail
        self.path.mkdir()
        token = _token()
        with self.assertLogs("musicbot.token_store", level="ERROR"):
            self.store.save_token_to_cache(token.to_token_info())
        self.assertEqual(self.store.load(), token)

    def test_explicit_save_failure_raises(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.mkdir()
        with self.assertRaises(TokenIOError):
            self.store.save(_token())

    def test_is_a_spotipy_cache_handler(self) -> None:
        self.assertIsInstance(self.store, CacheHandler)
        self.assertIsInstance(MemoryTokenStore(), CacheHandler)

    def test_default_path_under_home(self) -> None:
        with patch.object(token_store.Path, "home", return_value=Path("/home/someone")):
            self.assertEqual(
                TokenStore().path,
                Path("/home/someone/.discordbot/spotify_token.json"),
            )


class MemoryTokenStoreTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        store = MemoryTokenStore()
        self.assertIsNone(store.load())
        token = _token()
        store.save(token)
        self.assertEqual(store.load(), token)
        self.assertEqual(store.saves, 1)
        self.assertEqual(store.get_cached_token()["access_token"], "access")
