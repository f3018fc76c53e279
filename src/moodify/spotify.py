"""
Spotify Web API client.

A thin authenticated wrapper: every call takes the user's access token and
sends it as a Bearer header. Non-success responses become ProviderApiError
carrying the HTTP status and the parsed error body. Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from .errors import ProviderApiError

logger = logging.getLogger(__name__)


SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"

# Spotify accepts at most 100 URIs per add-items request.
MAX_URIS_PER_REQUEST = 100


def _parse_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class SpotifyClient:
    def __init__(
        self,
        *,
        http: Optional[httpx.Client] = None,
        base_url: str = SPOTIFY_API_BASE_URL,
    ) -> None:
        self._http = http or httpx.Client()
        self._base_url = base_url.rstrip("/")

    # --------------------------------------------------------------------- #
    # Low-level request helpers
    # --------------------------------------------------------------------- #
    def request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        query = None
        if params:
            query = {key: str(value) for key, value in params.items() if value is not None}

        logger.debug(f"Spotify API request: {method} {path}")
        try:
            resp = self._http.request(
                method,
                url,
                params=query,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.error(f"HTTP error calling Spotify API {path}: {exc}")
            raise ProviderApiError(f"Error calling Spotify API: {exc}") from exc

        body = _parse_body(resp)
        if not resp.is_success:
            logger.error(f"Spotify API error {resp.status_code} on {path}: {resp.text}")
            message = None
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                message = body["error"].get("message")
            raise ProviderApiError(message, status=resp.status_code, details=body)

        logger.debug(f"Spotify API request successful: {method} {path} -> {resp.status_code}")
        return body

    def get(self, path: str, token: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.request("GET", path, token, params=params)

    def post(self, path: str, token: str, json: Any = None) -> Any:
        return self.request("POST", path, token, json=json)

    # --------------------------------------------------------------------- #
    # Endpoints used by the mood playlist flow
    # --------------------------------------------------------------------- #
    def get_current_user(self, token: str) -> Dict[str, Any]:
        return self.get("/me", token) or {}

    def get_recommendations(
        self,
        token: str,
        params: Mapping[str, Any],
        *,
        limit: int = 20,
    ) -> List[dict]:
        logger.info(f"Requesting {limit} recommendations: {dict(params)}")
        data = self.get("/recommendations", token, {**params, "limit": limit}) or {}
        tracks = data.get("tracks") or []
        logger.debug(f"Spotify recommendations returned {len(tracks)} tracks")
        return tracks

    def create_playlist(
        self,
        token: str,
        user_id: str,
        *,
        name: str,
        description: str = "",
        public: bool = False,
    ) -> Dict[str, Any]:
        logger.info(f"Creating playlist {name!r} for user {user_id} (public={public})")
        return self.post(
            f"/users/{user_id}/playlists",
            token,
            {"name": name, "description": description, "public": public},
        ) or {}

    def add_tracks(self, token: str, playlist_id: str, uris: Sequence[str]) -> Optional[str]:
        """
        Append track URIs to a playlist. Returns the last snapshot id.
        """
        snapshot_id = None
        for i in range(0, len(uris), MAX_URIS_PER_REQUEST):
            chunk = list(uris[i : i + MAX_URIS_PER_REQUEST])
            data = self.post(f"/playlists/{playlist_id}/tracks", token, {"uris": chunk}) or {}
            snapshot_id = data.get("snapshot_id", snapshot_id)
        logger.info(f"Added {len(uris)} tracks to playlist {playlist_id}")
        return snapshot_id

    def close(self) -> None:
        logger.debug("Closing SpotifyClient HTTP connection")
        self._http.close()


__all__ = ["SPOTIFY_API_BASE_URL", "SpotifyClient"]
