import logging
import queue

import requests
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from . import logs
from .errors import AuthTimeout, RefreshFailed, TokenIOError
from .token_store import Token, TokenStore

logger = logging.getLogger(__name__)

# TODO: generate a random state per login attempt instead of a constant
STATE = "discord-bot-state"
SCOPES = ("playlist-modify-public", "playlist-modify-private")
CALLBACK_PATH = "/spotify/callback"
AUTH_TIMEOUT = 5 * 60

SUCCESS_PAGE = (
    "<html><body><p>Spotify authentication successful! "
    "You can close this window.</p></body></html>"
)

_EXCHANGE_ERRORS = (
    SpotifyOauthError,
    SpotifyException,
    requests.RequestException,
    TokenIOError,
    ValueError,
)


def build_oauth(config, store=None, session=None) -> SpotifyOAuth:
    return SpotifyOAuth(
        client_id=config.client_id,
        client_secret=config.client_secret,
        redirect_uri=config.redirect_uri,
        scope=" ".join(SCOPES),
        state=STATE,
        # spotipy writes exchanged and refreshed tokens through the store
        cache_handler=store if store is not None else TokenStore(),
        open_browser=False,
        requests_session=session or requests.Session(),
    )


class AuthCoordinator:
    """Runs the authorization-code login and hands the token to whoever waits.

    The callback route and :meth:`authenticate` meet on a single-slot queue:
    the first token delivered wins, later ones are dropped. Exchanged and
    refreshed tokens are persisted by spotipy through the cache handler
    (normally the shared TokenStore).
    """

    def __init__(self, config=None, store=None, oauth=None, timeout=AUTH_TIMEOUT, session=None):
        if oauth is None:
            oauth = build_oauth(config, store=store, session=session)
        self.oauth = oauth
        self.timeout = timeout
        self._tokens = queue.Queue(maxsize=1)
        self.router = APIRouter()
        self.router.add_api_route(CALLBACK_PATH, self.callback, methods=["GET"])

    def __str__(self):
        return "Spotify Auth"

    def auth_url(self) -> str:
        return self.oauth.get_authorize_url(state=STATE)

    def authenticate(self) -> Token:
        """Print the login link and block until the callback delivers a token."""
        url = self.auth_url()
        print("Open this URL in your browser to authenticate:")
        print(url)
        logger.info("Waiting for Spotify login timeout=%ss", self.timeout)
        try:
            token = self._tokens.get(timeout=self.timeout)
        except queue.Empty:
            raise AuthTimeout(f"no Spotify login within {self.timeout} seconds") from None
        logger.info("Token received by auth flow [%s=%r]", logs.SCOPES, token.scopes)
        return token

    def deliver(self, token: Token) -> bool:
        try:
            self._tokens.put_nowait(token)
        except queue.Full:
            # nobody is waiting for this one anymore
            logger.info("Dropping token from duplicate callback")
            return False
        return True

    def callback(self, request: Request):
        params = request.query_params
        if params.get("state") != STATE:
            logger.warning("Spotify callback with mismatched state")
            return PlainTextResponse("State mismatch", status_code=403)

        code = params.get("code")
        if not code:
            logger.error("Spotify callback without code error=%s", params.get("error"))
            return PlainTextResponse("Couldn't get token", status_code=403)
        try:
            self.oauth.get_access_token(code, as_dict=False, check_cache=False)
            token = Token.from_token_info(self.oauth.cache_handler.get_cached_token())
        except _EXCHANGE_ERRORS as exc:
            logger.error("Token exchange failed: %s", exc)
            return PlainTextResponse("Couldn't get token", status_code=403)

        logger.info("Callback received token [%s=%r]", logs.SCOPES, token.scopes)
        self.deliver(token)
        return HTMLResponse(SUCCESS_PAGE)

    def refresh(self, token: Token) -> Token:
        if token is None or not token.refresh_token:
            raise RefreshFailed("token has no refresh string")
        try:
            info = self.oauth.refresh_access_token(token.refresh_token)
            fresh = Token.from_token_info(info)
        except _EXCHANGE_ERRORS as exc:
            raise RefreshFailed(f"failed to refresh token: {exc}") from exc
        if not fresh.refresh_token:
            fresh.refresh_token = token.refresh_token
        return fresh
