"""
GitHub OAuth login for GitClock.

Opens the authorize page in a browser, waits for the single redirect on a
short-lived local HTTP listener, exchanges the code for an access token and
hands the token back to the caller.
"""

from __future__ import annotations

import logging
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from .config import OAuthConfig
from .session import AuthError

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_PORT = 5000


def build_authorize_url(oauth: OAuthConfig) -> str:
    """Authorize URL; client_id/redirect_uri are added if AUTH_URL lacks them."""
    if not oauth.auth_url:
        raise AuthError("OAuth is not configured: set AUTH_URL (or oauth.auth_url)")

    parsed = urlparse(oauth.auth_url)
    query = parse_qs(parsed.query)
    extra = {}
    if "client_id" not in query and oauth.client_id:
        extra["client_id"] = oauth.client_id
    if "redirect_uri" not in query and oauth.redirect_uri:
        extra["redirect_uri"] = oauth.redirect_uri
    if not extra:
        return oauth.auth_url

    separator = "&" if parsed.query else "?"
    return f"{oauth.auth_url}{separator}{urlencode(extra)}"


def exchange_code(oauth: OAuthConfig, code: str) -> str:
    """
    Exchange an authorization code for an access token.

    Raises:
        AuthError: the token endpoint failed or returned no token
    """
    try:
        response = requests.post(
            oauth.token_url,
            json={
                "client_id": oauth.client_id,
                "client_secret": oauth.client_secret,
                "code": code,
                "redirect_uri": oauth.redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        raise AuthError(f"Error exchanging code for token: {e}") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        raise AuthError("Failed to obtain access token.")
    return token


class CallbackHandler(BaseHTTPRequestHandler):
    """Handles the OAuth redirect; stores the code on the server."""

    callback_path = "/oauthCallback"

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != self.callback_path:
            self._reply(404, "Not Found")
            return

        code = parse_qs(parsed.query).get("code", [None])[0]
        if not code:
            self._reply(400, "Error: No code received.")
            return

        self.server.oauth_code = code  # type: ignore[attr-defined]
        self._reply(200, "You can close this window and return to your terminal.")

    def _reply(self, status: int, text: str) -> None:
        body = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logger.debug("callback: " + format, *args)


def wait_for_code(redirect_uri: str) -> str:
    """Serve the redirect URI until a request carrying a code arrives."""
    parsed = urlparse(redirect_uri)
    host = parsed.hostname or "localhost"
    port = parsed.port or DEFAULT_CALLBACK_PORT

    handler = type(
        "GitClockCallbackHandler",
        (CallbackHandler,),
        {"callback_path": parsed.path or CallbackHandler.callback_path},
    )
    server = HTTPServer((host, port), handler)
    server.oauth_code = None  # type: ignore[attr-defined]
    logger.debug("Waiting for OAuth callback on %s:%s", host, port)
    try:
        while server.oauth_code is None:  # type: ignore[attr-defined]
            server.handle_request()
    finally:
        server.server_close()
    return server.oauth_code  # type: ignore[attr-defined]


def login_with_browser(
    oauth: OAuthConfig,
    open_browser: Callable[[str], object] = webbrowser.open,
) -> str:
    """Run the browser login and return the access token."""
    url = build_authorize_url(oauth)
    open_browser(url)
    code = wait_for_code(oauth.redirect_uri)
    return exchange_code(oauth, code)
