"""
Error taxonomy for Moodify.

Every error knows the HTTP status it maps to and how to render itself as the
JSON body the frontend expects (``{"error": "...", "details": ...}``).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MoodifyError(Exception):
    """Base exception for all Moodify errors."""

    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class UnsupportedMood(MoodifyError):
    status_code = 400
    message = "Unsupported mood"

    def __init__(self, mood: Optional[str] = None) -> None:
        super().__init__()
        self.mood = mood


class NotAuthenticated(MoodifyError):
    status_code = 401
    message = "Not authenticated with Spotify"


class NoTracksFound(MoodifyError):
    status_code = 404
    message = "No recommended tracks for this mood"


class MethodNotAllowed(MoodifyError):
    status_code = 405
    message = "Method not allowed"


class ConfigurationError(MoodifyError):
    """Missing or invalid server configuration (e.g. Spotify client ID)."""

    message = "Server configuration error"


class SpotifyError(MoodifyError):
    """Base exception for Spotify-related issues."""

    message = "Spotify request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status = status


class TokenExchangeError(SpotifyError):
    """The accounts service refused (or never answered) a token request."""

    message = "Spotify token request failed"


class ProviderApiError(SpotifyError):
    """Non-success response from the Spotify Web API."""

    message = "Spotify API request failed"


__all__ = [
    "MoodifyError",
    "UnsupportedMood",
    "NotAuthenticated",
    "NoTracksFound",
    "MethodNotAllowed",
    "ConfigurationError",
    "SpotifyError",
    "TokenExchangeError",
    "ProviderApiError",
]
