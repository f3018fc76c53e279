"""
Shared fixtures: a fake Spotify (accounts service + Web API) served through
httpx.MockTransport, so the real client code runs without network access.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from moodify.api import create_app, limiter
from moodify.config import AppConfig, CookieConfig, SpotifyConfig
from moodify.oauth import SpotifyOAuthClient
from moodify.spotify import SpotifyClient


class FakeSpotify:
    """Canned Spotify responses keyed by endpoint, plus a log of every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, Tuple[int, Any]] = {
            "token": (
                200,
                {
                    "access_token": "new-access-token",
                    "refresh_token": "new-refresh-token",
                    "expires_in": 3600,
                    "token_type": "Bearer",
                    "scope": "playlist-modify-private",
                },
            ),
            "me": (200, {"id": "user-123", "display_name": "Test User"}),
            "recommendations": (
                200,
                {"tracks": [{"id": f"t{i}", "uri": f"spotify:track:t{i}"} for i in range(20)]},
            ),
            "create_playlist": (
                201,
                {
                    "id": "playlist-123",
                    "name": "Happy Mood Mix",
                    "external_urls": {"spotify": "https://open.spotify.com/playlist/playlist-123"},
                },
            ),
            "add_tracks": (201, {"snapshot_id": "snapshot-1"}),
        }

    def _route(self, request: httpx.Request) -> str:
        path = request.url.path
        if request.url.host == "accounts.spotify.com":
            return "token"
        if path == "/v1/me":
            return "me"
        if path == "/v1/recommendations":
            return "recommendations"
        if path.startswith("/v1/users/") and path.endswith("/playlists"):
            return "create_playlist"
        if path.startswith("/v1/playlists/") and path.endswith("/tracks"):
            return "add_tracks"
        return "unknown"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.get(self._route(request), (404, {"error": "not_found"}))
        return httpx.Response(status, json=body)

    def calls(self, route: str) -> List[httpx.Request]:
        return [r for r in self.requests if self._route(r) == route]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
def http_client(fake_spotify: FakeSpotify) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(fake_spotify.handler))


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        spotify=SpotifyConfig(client_id="test-client-id", client_secret="test-client-secret"),
        cookies=CookieConfig(secure=False, same_site="lax"),
        frontend_url="http://localhost:5173",
    )


@pytest.fixture
def oauth_client(app_config: AppConfig, http_client: httpx.Client) -> SpotifyOAuthClient:
    return SpotifyOAuthClient(app_config.spotify, http=http_client)


@pytest.fixture
def spotify_client(http_client: httpx.Client) -> SpotifyClient:
    return SpotifyClient(http=http_client)


@pytest.fixture
def client(
    app_config: AppConfig,
    oauth_client: SpotifyOAuthClient,
    spotify_client: SpotifyClient,
) -> TestClient:
    app = create_app(app_config, oauth=oauth_client, spotify=spotify_client)
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset rate limiter state between tests."""
    limiter.reset()
    yield
    limiter.reset()
