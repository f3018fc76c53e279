"""
Mood playlist builder.

Steps (strictly sequential, each call awaited before the next):
1) Fetch the current user's profile.
2) Ask Spotify for 20 recommendations using the mood's target features.
3) Create a private playlist named after the mood and today's date.
4) Append the recommended tracks.

There is no rollback: if step 4 fails the empty playlist stays in the
user's library.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from .errors import NoTracksFound, ProviderApiError
from .moods import MoodProfile
from .spotify import SpotifyClient

logger = logging.getLogger(__name__)


RECOMMENDATION_LIMIT = 20


@dataclass
class PlaylistResult:
    id: str
    name: str
    url: Optional[str]
    tracks_added: int


def format_playlist_date(day: date) -> str:
    # US short form, e.g. "Oct 19, 2026".
    return f"{day:%b} {day.day}, {day.year}"


def playlist_name(mood: MoodProfile, day: date) -> str:
    return f"{mood.label} Mood Mix ({format_playlist_date(day)})"


def create_mood_playlist(
    spotify: SpotifyClient,
    token: str,
    mood: MoodProfile,
    *,
    today: Optional[date] = None,
) -> PlaylistResult:
    logger.info(f"Building mood playlist: mood={mood.key!r}")
    me = spotify.get_current_user(token)
    user_id = me.get("id")
    if not user_id:
        logger.error("Spotify /me response missing user id")
        raise ProviderApiError("Spotify /me response missing user id", details=me)

    tracks = spotify.get_recommendations(token, mood.to_query_params(), limit=RECOMMENDATION_LIMIT)
    uris: List[str] = [t.get("uri") for t in tracks if t and t.get("uri")]
    if not uris:
        logger.warning(f"No recommended tracks for mood {mood.key!r}")
        raise NoTracksFound()

    name = playlist_name(mood, today or date.today())
    playlist = spotify.create_playlist(
        token,
        user_id,
        name=name,
        description=f"Auto-generated by Moodify for a {mood.key} vibe",
        public=False,
    )
    playlist_id = playlist.get("id")
    if not playlist_id:
        logger.error("Spotify create-playlist response missing id")
        raise ProviderApiError("Spotify create-playlist response missing id", details=playlist)

    spotify.add_tracks(token, playlist_id, uris)

    result = PlaylistResult(
        id=playlist_id,
        name=playlist.get("name") or name,
        url=(playlist.get("external_urls") or {}).get("spotify"),
        tracks_added=len(uris),
    )
    logger.info(f"Mood playlist ready: {result.id} ({result.tracks_added} tracks)")
    return result


__all__ = ["PlaylistResult", "RECOMMENDATION_LIMIT", "create_mood_playlist", "playlist_name"]
