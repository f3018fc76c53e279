"""
Cookie-backed token store.

The server keeps no copy of a user's tokens between requests: the access
token, refresh token and expiry timestamp (epoch milliseconds) live in three
HttpOnly cookies on the client. An access token is treated as usable only
while ``now < expires_at - 5s``; past that it is renewed with the refresh
token before any authorized Spotify call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import time
from typing import Optional

from starlette.requests import HTTPConnection
from starlette.responses import Response

from .config import CookieConfig
from .errors import SpotifyError
from .oauth import SpotifyOAuthClient, TokenGrant

logger = logging.getLogger(__name__)


ACCESS_TOKEN_COOKIE = "spotify_access_token"
REFRESH_TOKEN_COOKIE = "spotify_refresh_token"
EXPIRES_AT_COOKIE = "spotify_expires_at"
AUTH_COOKIES = (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, EXPIRES_AT_COOKIE)

EXPIRY_MARGIN_MS = 5000
REFRESH_TOKEN_MAX_AGE = 30 * 24 * 60 * 60  # 30 days, in seconds


def now_ms() -> int:
    return int(time() * 1000)


@dataclass
class TokenRecord:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: int = 0

    def is_fresh(self, now: int) -> bool:
        return bool(self.access_token) and now < self.expires_at - EXPIRY_MARGIN_MS


def read_tokens(request: HTTPConnection) -> TokenRecord:
    cookies = request.cookies
    try:
        expires_at = int(cookies.get(EXPIRES_AT_COOKIE) or 0)
    except ValueError:
        expires_at = 0
    return TokenRecord(
        access_token=cookies.get(ACCESS_TOKEN_COOKIE) or None,
        refresh_token=cookies.get(REFRESH_TOKEN_COOKIE) or None,
        expires_at=expires_at,
    )


def _set_cookie(response: Response, key: str, value: str, max_age: int, policy: CookieConfig) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max(0, max_age),
        path="/",
        secure=policy.secure,
        httponly=True,
        samesite=policy.same_site,
    )


def set_auth_cookies(
    response: Response,
    grant: TokenGrant,
    policy: CookieConfig,
    *,
    now: Optional[int] = None,
) -> int:
    """
    Write the grant's tokens to the response. Returns the new expiry (ms).

    The refresh token cookie is only (re)written when the grant carries one.
    """
    now = now_ms() if now is None else now
    expires_at = now + grant.expires_in * 1000

    _set_cookie(response, ACCESS_TOKEN_COOKIE, grant.access_token, grant.expires_in, policy)
    _set_cookie(response, EXPIRES_AT_COOKIE, str(expires_at), grant.expires_in, policy)
    if grant.refresh_token:
        _set_cookie(response, REFRESH_TOKEN_COOKIE, grant.refresh_token, REFRESH_TOKEN_MAX_AGE, policy)
    return expires_at


def clear_auth_cookies(response: Response, policy: CookieConfig) -> None:
    for key in AUTH_COOKIES:
        response.delete_cookie(
            key,
            path="/",
            secure=policy.secure,
            httponly=True,
            samesite=policy.same_site,
        )


def get_valid_access_token(
    request: HTTPConnection,
    response: Response,
    oauth: SpotifyOAuthClient,
    policy: CookieConfig,
    *,
    now: Optional[int] = None,
) -> Optional[str]:
    """
    Return a usable access token for this request, refreshing if needed.

    Returns None when the user is not authenticated. A failed refresh clears
    all auth cookies, so an invalid or revoked refresh token logs the user
    out instead of surfacing an error.
    """
    now = now_ms() if now is None else now
    tokens = read_tokens(request)

    if tokens.is_fresh(now):
        logger.debug("Using access token from cookies")
        return tokens.access_token

    if not tokens.refresh_token:
        logger.debug("No refresh token cookie; request is not authenticated")
        return None

    try:
        refreshed = oauth.refresh_access_token(tokens.refresh_token)
    except SpotifyError as exc:
        logger.warning(f"Spotify token refresh failed, clearing auth cookies: {exc}")
        clear_auth_cookies(response, policy)
        return None

    if not refreshed.refresh_token:
        refreshed.refresh_token = tokens.refresh_token
    set_auth_cookies(response, refreshed, policy, now=now)
    logger.info("Access token refreshed and written to cookies")
    return refreshed.access_token


__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "EXPIRES_AT_COOKIE",
    "EXPIRY_MARGIN_MS",
    "TokenRecord",
    "read_tokens",
    "set_auth_cookies",
    "clear_auth_cookies",
    "get_valid_access_token",
]
