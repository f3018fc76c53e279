"""
Configuration loading for Moodify.

Everything is read once at startup from environment variables (optionally via
a .env file) and handed to the app as an explicit AppConfig.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir
from dotenv import load_dotenv
import os
import logging
from logging.handlers import RotatingFileHandler


APP_NAME = "moodify"
APP_AUTHOR = "Moodify"

SAME_SITE_VALUES = {"lax", "strict", "none"}
DEFAULT_COOKIE_SECRET = "moodify"
DEFAULT_PLAYLIST_RATE_LIMIT = "10/minute"

logger = logging.getLogger(__name__)


@dataclass
class SpotifyConfig:
    client_id: str
    client_secret: str
    redirect_uri: Optional[str] = None  # Optional: derived from the request when unset.


@dataclass
class CookieConfig:
    secure: bool = False
    same_site: str = "lax"
    secret: str = DEFAULT_COOKIE_SECRET


@dataclass
class AppConfig:
    spotify: SpotifyConfig
    cookies: CookieConfig = field(default_factory=CookieConfig)
    frontend_url: Optional[str] = None  # Optional: derived from the request when unset.
    production: bool = False
    playlist_rate_limit: str = DEFAULT_PLAYLIST_RATE_LIMIT


def get_default_config_dir() -> Path:
    """
    Returns the platform-appropriate directory for persistent Moodify files.
    """
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


def load_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.

    Missing Spotify credentials are only logged here; the auth routes fail
    lazily when they are first used.
    """
    load_dotenv()

    client_id = os.getenv("MOODIFY_SPOTIFY_CLIENT_ID", "")
    client_secret = os.getenv("MOODIFY_SPOTIFY_CLIENT_SECRET", "")
    redirect_uri = os.getenv("MOODIFY_SPOTIFY_REDIRECT_URI") or None
    frontend_url = os.getenv("MOODIFY_FRONTEND_URL") or None
    production = os.getenv("MOODIFY_ENV", "development").strip().lower() == "production"

    if not client_id or not client_secret:
        logger.warning(
            "Missing Spotify credentials. Set MOODIFY_SPOTIFY_CLIENT_ID and "
            "MOODIFY_SPOTIFY_CLIENT_SECRET before running the auth flow."
        )

    secure = _env_flag("MOODIFY_COOKIE_SECURE")
    if secure is None:
        secure = production

    default_same_site = "none" if production else "lax"
    same_site = (os.getenv("MOODIFY_COOKIE_SAME_SITE") or default_same_site).strip().lower()
    if same_site not in SAME_SITE_VALUES:
        logger.warning(f"Ignoring invalid MOODIFY_COOKIE_SAME_SITE={same_site!r}, using {default_same_site!r}")
        same_site = default_same_site

    secret = os.getenv("MOODIFY_COOKIE_SECRET") or DEFAULT_COOKIE_SECRET
    if production and secret == DEFAULT_COOKIE_SECRET:
        logger.warning("MOODIFY_COOKIE_SECRET is not set; using the built-in default in production")

    return AppConfig(
        spotify=SpotifyConfig(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
        ),
        cookies=CookieConfig(secure=secure, same_site=same_site, secret=secret),
        frontend_url=frontend_url.rstrip("/") if frontend_url else None,
        production=production,
        playlist_rate_limit=os.getenv("MOODIFY_PLAYLIST_RATE_LIMIT") or DEFAULT_PLAYLIST_RATE_LIMIT,
    )


def setup_logging() -> None:
    """
    Configure centralized logging for Moodify.

    - Logs to <user config dir>/logs/moodify.log (10MB x 5 rotating files)
    - Logs to the console as well
    - Default level: INFO (override with MOODIFY_LOG_LEVEL)
    """
    log_level_str = os.getenv("MOODIFY_LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_dir = get_default_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    file_handler = RotatingFileHandler(
        str(log_dir / "moodify.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(console_handler)


setup_logging()

__all__ = [
    "AppConfig",
    "CookieConfig",
    "DEFAULT_PLAYLIST_RATE_LIMIT",
    "SpotifyConfig",
    "get_default_config_dir",
    "load_config",
    "setup_logging",
]
