"""
Spotify accounts service client (OAuth 2.0 Authorization Code flow).

Builds the authorize URL the user is redirected to, exchanges the one-time
authorization code for tokens and renews access tokens with a refresh token.
Both token requests authenticate with HTTP Basic auth (client id + secret).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from .config import SpotifyConfig
from .errors import ConfigurationError, TokenExchangeError

logger = logging.getLogger(__name__)


SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

SCOPES = (
    "user-read-private",
    "playlist-modify-public",
    "playlist-modify-private",
)


@dataclass
class TokenGrant:
    access_token: str
    expires_in: int = 3600
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


class SpotifyOAuthClient:
    def __init__(self, cfg: SpotifyConfig, *, http: Optional[httpx.Client] = None) -> None:
        self._cfg = cfg
        self._http = http or httpx.Client()

    def authorize_url(self, redirect_uri: str) -> str:
        """
        Spotify authorize page URL for the configured client.

        ``show_dialog=true`` forces the consent screen and account picker
        every time, so a logged-out user can switch accounts.
        """
        if not self._cfg.client_id:
            logger.error("OAuth login failed: MOODIFY_SPOTIFY_CLIENT_ID not set")
            raise ConfigurationError("Missing SPOTIFY_CLIENT_ID")

        params = {
            "response_type": "code",
            "client_id": self._cfg.client_id,
            "scope": " ".join(SCOPES),
            "redirect_uri": redirect_uri,
            "show_dialog": "true",
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> TokenGrant:
        logger.info("Exchanging authorization code for tokens")
        return self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """
        Renew the access token. The returned grant's ``refresh_token`` is None
        when Spotify did not rotate it; callers keep the previous one.
        """
        logger.info("Refreshing Spotify access token")
        return self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )

    def _request_token(self, data: Dict[str, str]) -> TokenGrant:
        if not self._cfg.client_id or not self._cfg.client_secret:
            logger.error("Spotify credentials missing: client_id or client_secret not set")
            raise TokenExchangeError("Missing SPOTIFY_CLIENT_ID or SPOTIFY_CLIENT_SECRET")

        try:
            resp = self._http.post(
                SPOTIFY_TOKEN_URL,
                data=data,
                auth=(self._cfg.client_id, self._cfg.client_secret),
            )
        except httpx.HTTPError as exc:
            logger.error(f"Failed to contact Spotify token endpoint: {exc}")
            raise TokenExchangeError(f"Failed to contact Spotify token endpoint: {exc}") from exc

        if not resp.is_success:
            body = _response_body(resp)
            logger.error(f"Spotify token request ({data['grant_type']}) failed: {resp.status_code} {resp.text}")
            message = None
            if isinstance(body, dict):
                message = body.get("error_description") or body.get("error")
            raise TokenExchangeError(message, status=resp.status_code, details=body)

        payload = _response_body(resp)
        if not isinstance(payload, dict):
            logger.error(f"Spotify token response is not a JSON object: {resp.text!r}")
            raise TokenExchangeError("Malformed Spotify token response", details=payload)

        access_token = payload.get("access_token")
        if not access_token:
            logger.error("Spotify token response missing access_token")
            raise TokenExchangeError("Spotify token response missing access_token", details=payload)

        try:
            expires_in = int(payload.get("expires_in", 3600))
        except (TypeError, ValueError) as exc:
            logger.error(f"Spotify token response has invalid expires_in: {payload.get('expires_in')!r}")
            raise TokenExchangeError("Invalid expires_in in Spotify token response", details=payload) from exc

        grant = TokenGrant(
            access_token=access_token,
            expires_in=expires_in,
            refresh_token=payload.get("refresh_token") or None,
            scope=payload.get("scope"),
            token_type=payload.get("token_type"),
        )
        logger.info(f"Spotify access token obtained (expires in {grant.expires_in}s)")
        return grant

    def close(self) -> None:
        logger.debug("Closing SpotifyOAuthClient HTTP connection")
        self._http.close()


__all__ = ["SCOPES", "SpotifyOAuthClient", "TokenGrant"]
