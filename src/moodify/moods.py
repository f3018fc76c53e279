"""
Mood catalog.

Each supported mood is a fixed point in Spotify's audio-feature space. The
values below are passed as-is to the ``/recommendations`` endpoint:

- valence: musical positivity (0.0 = sad, 1.0 = cheerful)
- energy: intensity and activity (0.0 = calm, 1.0 = energetic)
- danceability / instrumentalness: optional extra targets
- seed_genres: genre seeds, taken from Spotify's available-genre-seeds list
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .errors import UnsupportedMood

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodProfile:
    key: str
    seed_genres: Tuple[str, ...]
    target_valence: float
    target_energy: float
    target_danceability: Optional[float] = None
    target_instrumentalness: Optional[float] = None

    @property
    def label(self) -> str:
        return self.key.capitalize()

    def to_query_params(self) -> Dict[str, Union[str, float]]:
        """Recommendation query parameters for this mood (unset targets omitted)."""
        params: Dict[str, Union[str, float]] = {
            "seed_genres": ",".join(self.seed_genres),
            "target_valence": self.target_valence,
            "target_energy": self.target_energy,
        }
        if self.target_danceability is not None:
            params["target_danceability"] = self.target_danceability
        if self.target_instrumentalness is not None:
            params["target_instrumentalness"] = self.target_instrumentalness
        return params


_MOODS: Tuple[MoodProfile, ...] = (
    MoodProfile(
        key="happy",
        seed_genres=("pop", "dance", "party"),
        target_valence=0.88,
        target_energy=0.78,
        target_danceability=0.8,
    ),
    MoodProfile(
        key="chill",
        seed_genres=("chill", "ambient", "lo-fi"),
        target_valence=0.55,
        target_energy=0.35,
        target_danceability=0.45,
    ),
    MoodProfile(
        key="energetic",
        seed_genres=("edm", "work-out", "rock"),
        target_valence=0.72,
        target_energy=0.94,
        target_danceability=0.7,
    ),
    MoodProfile(
        key="focused",
        seed_genres=("classical", "study", "piano"),
        target_valence=0.48,
        target_energy=0.4,
        target_instrumentalness=0.82,
    ),
    MoodProfile(
        key="melancholic",
        seed_genres=("acoustic", "sad", "indie"),
        target_valence=0.22,
        target_energy=0.32,
        target_danceability=0.3,
    ),
)

MOOD_CATALOG: Dict[str, MoodProfile] = {mood.key: mood for mood in _MOODS}


def list_moods() -> List[MoodProfile]:
    return list(_MOODS)


def get_mood(key: Optional[str]) -> MoodProfile:
    """
    Look up a mood by key, ignoring case and surrounding whitespace.

    Raises UnsupportedMood for empty or unknown keys.
    """
    normalized = str(key or "").strip().lower()
    mood = MOOD_CATALOG.get(normalized)
    if mood is None:
        logger.info(f"Rejected unsupported mood: {key!r}")
        raise UnsupportedMood(key)
    return mood


__all__ = ["MoodProfile", "MOOD_CATALOG", "get_mood", "list_moods"]
