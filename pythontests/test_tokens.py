"""
Tests for the cookie-backed token store: reuse, refresh, and recovery.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from starlette.responses import Response

from moodify.config import CookieConfig
from moodify.errors import TokenExchangeError
from moodify.oauth import TokenGrant
from moodify.tokens import (
    ACCESS_TOKEN_COOKIE,
    EXPIRES_AT_COOKIE,
    REFRESH_TOKEN_COOKIE,
    clear_auth_cookies,
    get_valid_access_token,
    read_tokens,
    set_auth_cookies,
)

NOW = 1_700_000_000_000
POLICY = CookieConfig(secure=False, same_site="lax")


class _StubOAuth:
    """Records refresh calls; returns a canned grant or raises."""

    def __init__(self, grant: Optional[TokenGrant] = None, error: Optional[Exception] = None) -> None:
        self.grant = grant
        self.error = error
        self.refresh_calls: List[str] = []

    def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.error is not None:
            raise self.error
        return self.grant


def _request(**cookies: str) -> SimpleNamespace:
    return SimpleNamespace(cookies=cookies)


def _set_cookies(response: Response) -> Dict[str, str]:
    return {h.split("=", 1)[0]: h for h in response.headers.getlist("set-cookie")}


def test_read_tokens_defaults_when_cookies_missing() -> None:
    tokens = read_tokens(_request())

    assert tokens.access_token is None
    assert tokens.refresh_token is None
    assert tokens.expires_at == 0


def test_read_tokens_ignores_garbage_expiry() -> None:
    tokens = read_tokens(_request(spotify_access_token="a", spotify_expires_at="soon"))

    assert tokens.access_token == "a"
    assert tokens.expires_at == 0


def test_fresh_access_token_is_reused_without_refresh() -> None:
    oauth = _StubOAuth()
    response = Response()
    request = _request(
        spotify_access_token="still-good",
        spotify_refresh_token="refresh",
        spotify_expires_at=str(NOW + 5001),
    )

    token = get_valid_access_token(request, response, oauth, POLICY, now=NOW)

    assert token == "still-good"
    assert oauth.refresh_calls == []
    assert _set_cookies(response) == {}


def test_fresh_access_token_is_reused_even_without_refresh_token() -> None:
    oauth = _StubOAuth()
    request = _request(spotify_access_token="still-good", spotify_expires_at=str(NOW + 60_000))

    assert get_valid_access_token(request, Response(), oauth, POLICY, now=NOW) == "still-good"
    assert oauth.refresh_calls == []


def test_token_inside_safety_margin_triggers_refresh() -> None:
    oauth = _StubOAuth(grant=TokenGrant(access_token="renewed", expires_in=3600))
    request = _request(
        spotify_access_token="about-to-expire",
        spotify_refresh_token="refresh",
        spotify_expires_at=str(NOW + 4999),
    )

    assert get_valid_access_token(request, Response(), oauth, POLICY, now=NOW) == "renewed"
    assert oauth.refresh_calls == ["refresh"]


def test_token_exactly_at_safety_margin_triggers_refresh() -> None:
    oauth = _StubOAuth(grant=TokenGrant(access_token="renewed", expires_in=3600))
    request = _request(
        spotify_access_token="at-the-margin",
        spotify_refresh_token="refresh",
        spotify_expires_at=str(NOW + 5000),
    )

    assert get_valid_access_token(request, Response(), oauth, POLICY, now=NOW) == "renewed"
    assert oauth.refresh_calls == ["refresh"]


def test_no_refresh_token_means_not_authenticated() -> None:
    oauth = _StubOAuth()
    request = _request(spotify_access_token="expired", spotify_expires_at=str(NOW - 1))

    assert get_valid_access_token(request, Response(), oauth, POLICY, now=NOW) is None
    assert oauth.refresh_calls == []


def test_expired_token_refreshes_exactly_once_and_sets_cookies() -> None:
    oauth = _StubOAuth(
        grant=TokenGrant(access_token="renewed", expires_in=3600, refresh_token="rotated")
    )
    response = Response()
    request = _request(
        spotify_access_token="expired",
        spotify_refresh_token="refresh",
        spotify_expires_at=str(NOW - 1000),
    )

    token = get_valid_access_token(request, response, oauth, POLICY, now=NOW)

    assert token == "renewed"
    assert oauth.refresh_calls == ["refresh"]
    cookies = _set_cookies(response)
    assert cookies[ACCESS_TOKEN_COOKIE].startswith("spotify_access_token=renewed;")
    assert cookies[REFRESH_TOKEN_COOKIE].startswith("spotify_refresh_token=rotated;")
    assert cookies[EXPIRES_AT_COOKIE].startswith(f"spotify_expires_at={NOW + 3_600_000};")


def test_refresh_keeps_previous_refresh_token_when_not_rotated() -> None:
    oauth = _StubOAuth(grant=TokenGrant(access_token="renewed", expires_in=3600))
    response = Response()
    request = _request(spotify_refresh_token="original-refresh")

    assert get_valid_access_token(request, response, oauth, POLICY, now=NOW) == "renewed"
    cookies = _set_cookies(response)
    assert cookies[REFRESH_TOKEN_COOKIE].startswith("spotify_refresh_token=original-refresh;")


def test_refresh_failure_clears_cookies_and_returns_none() -> None:
    oauth = _StubOAuth(error=TokenExchangeError("invalid_grant", status=400))
    response = Response()
    request = _request(
        spotify_access_token="expired",
        spotify_refresh_token="revoked",
        spotify_expires_at=str(NOW - 1000),
    )

    assert get_valid_access_token(request, response, oauth, POLICY, now=NOW) is None
    assert oauth.refresh_calls == ["revoked"]
    cookies = _set_cookies(response)
    assert set(cookies) == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, EXPIRES_AT_COOKIE}
    for header in cookies.values():
        assert "Max-Age=0" in header


def test_set_auth_cookies_attributes_in_development() -> None:
    response = Response()
    expires_at = set_auth_cookies(
        response,
        TokenGrant(access_token="a", expires_in=3600, refresh_token="r"),
        POLICY,
        now=NOW,
    )

    assert expires_at == NOW + 3_600_000
    cookies = _set_cookies(response)
    for header in cookies.values():
        lowered = header.lower()
        assert "httponly" in lowered
        assert "path=/" in lowered
        assert "samesite=lax" in lowered
        assert "secure" not in lowered
    assert "Max-Age=3600" in cookies[ACCESS_TOKEN_COOKIE]
    assert "Max-Age=2592000" in cookies[REFRESH_TOKEN_COOKIE]


def test_set_auth_cookies_attributes_in_production() -> None:
    response = Response()
    set_auth_cookies(
        response,
        TokenGrant(access_token="a", expires_in=3600),
        CookieConfig(secure=True, same_site="none"),
        now=NOW,
    )

    cookies = _set_cookies(response)
    assert REFRESH_TOKEN_COOKIE not in cookies
    for header in cookies.values():
        lowered = header.lower()
        assert "secure" in lowered
        assert "samesite=none" in lowered


@pytest.mark.parametrize("policy", [POLICY, CookieConfig(secure=True, same_site="none")])
def test_clear_auth_cookies_zeroes_all_three(policy) -> None:
    response = Response()
    clear_auth_cookies(response, policy)

    cookies = _set_cookies(response)
    assert set(cookies) == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, EXPIRES_AT_COOKIE}
    for name, header in cookies.items():
        assert header.startswith(f'{name}="";')
        assert "Max-Age=0" in header
        assert "HttpOnly" in header
