import asyncio
import logging
import threading

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from . import logs, tracks
from .errors import (
    AuthFailed,
    NotAuthenticated,
    PlaylistAccessError,
    PlaylistMutationError,
    RefreshFailed,
)
from .token_store import TokenStore, is_valid

logger = logging.getLogger(__name__)

# Spotify accepts up to 100 items per add call
MAX_ITEMS_PER_REQUEST = 100
REQUESTS_TIMEOUT = 10

_API_ERRORS = (SpotifyException, requests.RequestException)


def _chunked(seq, size=MAX_ITEMS_PER_REQUEST):
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class MusicClient:
    """Spotify operations used by the bot, on top of a spotipy client.

    The spotipy client is rebuilt whenever the token changes. Token swaps are
    guarded by a lock since callers run on worker threads. Persisting tokens is
    left to the auth side, which shares ``store`` with spotipy.
    """

    def __init__(self, auth, store=None, session=None, spotify_factory=None):
        self.auth = auth
        self.store = store if store is not None else TokenStore()
        self.session = session or requests.Session()
        self._spotify_factory = spotify_factory or self._default_spotify
        self._lock = threading.Lock()
        self.token = None
        self.api = None

    def __str__(self):
        return "Spotify Client"

    def _default_spotify(self, token):
        return spotipy.Spotify(
            auth=token.access_token,
            requests_session=self.session,
            requests_timeout=REQUESTS_TIMEOUT,
        )

    def _set_token(self, token):
        with self._lock:
            self.token = token
            self.api = self._spotify_factory(token) if token is not None else None

    # ----- Lifecycle -----

    async def start(self):
        await asyncio.to_thread(self.authorize)

    async def stop(self):
        self.session.close()

    def authorize(self):
        """Load the cached token, or run the browser login when there is none."""
        token = self.store.load()
        if token is None:
            # the callback already wrote it through the shared store
            token = self.auth.authenticate()
        self._set_token(token)
        if not is_valid(token):
            # refreshed lazily by the first playlist operation
            logger.info("Cached token is stale, will refresh on next use")
            return
        try:
            user = self.current_user()
        except AuthFailed:
            logger.warning("Spotify token rejected on startup", exc_info=True)
            return
        logger.info(
            "Spotify authenticated [%s=%r %s=%r]",
            logs.USER, user.get("display_name"), logs.USER_ID, user.get("id"),
        )

    def refresh_token(self):
        """Make sure a fresh token is loaded, refreshing it when it went stale."""
        if is_valid(self.token):
            return
        logger.info("Token expired or missing, attempting refresh")
        token = self.token
        if token is None:
            token = self.store.load()
            if token is None:
                raise NotAuthenticated("no Spotify token available")
        if not is_valid(token):
            try:
                token = self.auth.refresh(token)
            except RefreshFailed:
                self._set_token(None)
                raise
        self._set_token(token)

    # ----- Single SDK calls -----

    def _require_api(self):
        api = self.api
        if api is None:
            raise NotAuthenticated("spotify client not initialized")
        return api

    def current_user(self):
        api = self._require_api()
        try:
            return api.current_user()
        except _API_ERRORS as exc:
            raise AuthFailed(f"spotify authentication failed: {exc}") from exc

    def playlist(self, playlist_id):
        """Playlist metadata. Does not include the tracks, see playlist_items."""
        api = self._require_api()
        if not playlist_id:
            raise PlaylistAccessError("no playlist ID provided")
        try:
            return api.playlist(playlist_id)
        except _API_ERRORS as exc:
            raise PlaylistAccessError(f"cannot access playlist {playlist_id}: {exc}") from exc

    def playlist_items(self, playlist_id):
        # TODO: follow the "next" link for playlists longer than one page
        api = self._require_api()
        if not playlist_id:
            raise PlaylistAccessError("no playlist ID provided")
        try:
            return api.playlist_items(playlist_id)
        except _API_ERRORS as exc:
            raise PlaylistAccessError(
                f"cannot access playlist tracks {playlist_id}: {exc}"
            ) from exc

    def add_items(self, playlist_id, track_ids):
        """Append the IDs in order and return the last snapshot id."""
        api = self._require_api()
        snapshot_id = ""
        for chunk in _chunked(list(track_ids)):
            try:
                result = api.playlist_add_items(playlist_id, chunk)
            except _API_ERRORS as exc:
                raise PlaylistMutationError(f"spotify API error: {exc}") from exc
            snapshot_id = (result or {}).get("snapshot_id", "")
        return snapshot_id

    def log_playlist_info(self, playlist_id, log):
        try:
            playlist = self.playlist(playlist_id)
        except PlaylistAccessError as exc:
            log.error("Cannot access playlist: %s", exc)
            return
        log.with_fields(
            **{logs.PLAYLIST_OWNER_ID: (playlist.get("owner") or {}).get("id")}
        ).info("Playlist access verified name=%r", playlist.get("name"))

    # ----- Pipeline -----

    def add_tracks_to_playlist(self, playlist_id, track_urls, log=None):
        """Add the tracks behind ``track_urls`` that the playlist lacks.

        Returns the snapshot id of the mutation, or None when nothing was added.
        """
        log = (log or logs.get_logger(__name__)).with_fields(
            **{logs.PLAYLIST_ID: playlist_id, logs.TRACK_URLS: list(track_urls)}
        )
        try:
            self.refresh_token()
        except NotAuthenticated as exc:
            log.error("Spotify client is not authenticated: %s", exc)
            raise
        except RefreshFailed as exc:
            log.error("Failed to refresh token: %s", exc)
            raise
        token = self.token
        if token is not None:
            log = log.with_fields(**{logs.SCOPES: token.scopes})

        try:
            user = self.current_user()
        except AuthFailed as exc:
            log.error("Spotify authentication test failed: %s", exc)
            raise
        log = log.with_fields(
            **{logs.USER: user.get("display_name"), logs.USER_ID: user.get("id")}
        )

        verbose = logs.verbose_logs_enabled(log)
        if verbose:
            self.log_playlist_info(playlist_id, log)

        track_ids = tracks.to_track_ids(track_urls)
        log = log.with_fields(**{logs.TRACK_IDS: track_ids})
        if not track_ids:
            log.info("No track IDs in links")
            return None

        try:
            page = self.playlist_items(playlist_id)
        except PlaylistAccessError as exc:
            log.error("Cannot access playlist tracks: %s", exc)
            raise
        new_ids = tracks.filter_tracks(page, track_ids)
        if not new_ids:
            log.info("No new tracks to add")
            return None
        if verbose:
            log.info("Filtered track IDs %r", new_ids)

        try:
            snapshot_id = self.add_items(playlist_id, new_ids)
        except PlaylistMutationError as exc:
            log.error("Spotify API error: %s", exc)
            raise
        log.info("Added %d track(s) to playlist snapshot_id=%s", len(new_ids), snapshot_id)
        return snapshot_id
