"""
FastAPI service for Moodify.

Routes (auth routes are served under both /auth and /api/auth so the same app
works as a standalone server and behind a proxy that only forwards /api/*):

- GET  /auth/login                 -> 302 to Spotify's authorize page
- GET  /auth/callback              -> 302 to the frontend with ?auth=<outcome>
- POST /auth/logout                -> {"ok": true}
- GET  /api/auth/status            -> {"connected": bool, "profile"?: {...}}
- GET  /api/moods                  -> supported moods and their targets
- POST /api/playlists/from-mood
  Request body:
    {"mood": "happy"}
  Response body:
    {
      "ok": true,
      "playlist": {"id": "...", "name": "Happy Mood Mix (Oct 19, 2026)", "url": "..."},
      "tracksAdded": 20
    }
  Errors are returned as {"error": "...", "details"?: ...}.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import DEFAULT_PLAYLIST_RATE_LIMIT, AppConfig, load_config
from .errors import (
    MethodNotAllowed,
    MoodifyError,
    NotAuthenticated,
    SpotifyError,
    UnsupportedMood,
)
from .moods import get_mood, list_moods
from .oauth import SpotifyOAuthClient
from .playlists import create_mood_playlist
from .spotify import SpotifyClient
from .tokens import clear_auth_cookies, get_valid_access_token, set_auth_cookies

logger = logging.getLogger(__name__)

DEV_FRONTEND_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]

# Per-client limiter for the routes that create things in the user's library.
limiter = Limiter(key_func=get_remote_address)

# Set from AppConfig by create_app; slowapi reads it on every request.
_rate_limits = {"playlist": DEFAULT_PLAYLIST_RATE_LIMIT}


def playlist_rate_limit() -> str:
    return _rate_limits["playlist"]


class MoodPlaylistRequest(BaseModel):
    mood: Optional[str] = None


class MoodOut(BaseModel):
    key: str
    label: str
    seed_genres: List[str]
    target_valence: float
    target_energy: float
    target_danceability: Optional[float] = None
    target_instrumentalness: Optional[float] = None


class LogoutOut(BaseModel):
    ok: bool


# ------------------------------------------------------------------------- #
# Dependencies
# ------------------------------------------------------------------------- #
def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_oauth(request: Request) -> SpotifyOAuthClient:
    return request.app.state.oauth


def get_spotify(request: Request) -> SpotifyClient:
    return request.app.state.spotify


def _request_origin(request: Request) -> str:
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"


def _frontend_origin(request: Request, cfg: AppConfig) -> str:
    return cfg.frontend_url or _request_origin(request)


def _redirect_uri(request: Request, cfg: AppConfig) -> str:
    """
    The OAuth redirect URI: configured explicitly, or the callback route under
    the same prefix (/auth or /api/auth) the current request came through.
    """
    if cfg.spotify.redirect_uri:
        return cfg.spotify.redirect_uri
    prefix = request.url.path.rsplit("/", 1)[0]
    return f"{_request_origin(request)}{prefix}/callback"


def _frontend_redirect(request: Request, cfg: AppConfig, outcome: str) -> RedirectResponse:
    return RedirectResponse(f"{_frontend_origin(request, cfg)}/?auth={outcome}", status_code=302)


def _error(response: Response, exc: MoodifyError) -> Dict[str, Any]:
    # Keep the injected response (and any cookies a token refresh wrote to it).
    response.status_code = exc.status_code
    return exc.to_payload()


# ------------------------------------------------------------------------- #
# Routes
# ------------------------------------------------------------------------- #
system_router = APIRouter(tags=["system"])
auth_router = APIRouter(tags=["auth"])
api_router = APIRouter(prefix="/api")


@system_router.get("/")
def root() -> dict:
    return {"ok": True, "service": "moodify-backend"}


@system_router.get("/health")
def health() -> dict:
    logger.debug("Health check endpoint called")
    return {"status": "ok"}


@auth_router.get("/login")
def auth_login(
    request: Request,
    cfg: AppConfig = Depends(get_config),
    oauth: SpotifyOAuthClient = Depends(get_oauth),
) -> RedirectResponse:
    """
    Redirect the user to Spotify's authorize page to connect their account.
    """
    logger.info("OAuth login initiated")
    url = oauth.authorize_url(_redirect_uri(request, cfg))
    return RedirectResponse(url, status_code=302)


@auth_router.get("/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    cfg: AppConfig = Depends(get_config),
    oauth: SpotifyOAuthClient = Depends(get_oauth),
) -> RedirectResponse:
    """
    Spotify redirects here after the user approves or denies access.

    Always ends in a redirect back to the frontend with ?auth=success|error|
    missing_code|token_error.
    """
    if error:
        logger.warning(f"OAuth callback: user denied access - {error}")
        return _frontend_redirect(request, cfg, "error")

    if not code:
        logger.warning("OAuth callback: no authorization code received")
        return _frontend_redirect(request, cfg, "missing_code")

    try:
        grant = oauth.exchange_code_for_token(code, _redirect_uri(request, cfg))
    except SpotifyError as exc:
        logger.error(f"OAuth callback: token exchange failed: {exc}")
        response = _frontend_redirect(request, cfg, "token_error")
        clear_auth_cookies(response, cfg.cookies)
        return response

    response = _frontend_redirect(request, cfg, "success")
    set_auth_cookies(response, grant, cfg.cookies)
    logger.info("OAuth callback successful, auth cookies set")
    return response


@auth_router.post("/logout", response_model=LogoutOut)
def auth_logout(response: Response, cfg: AppConfig = Depends(get_config)) -> LogoutOut:
    logger.info("Logging out: clearing auth cookies")
    clear_auth_cookies(response, cfg.cookies)
    return LogoutOut(ok=True)


@api_router.get("/auth/status", tags=["auth"])
def auth_status(
    request: Request,
    response: Response,
    cfg: AppConfig = Depends(get_config),
    oauth: SpotifyOAuthClient = Depends(get_oauth),
    spotify: SpotifyClient = Depends(get_spotify),
) -> dict:
    token = get_valid_access_token(request, response, oauth, cfg.cookies)
    if not token:
        return {"connected": False}

    try:
        me = spotify.get_current_user(token)
    except SpotifyError as exc:
        logger.warning(f"Status check could not fetch the Spotify profile: {exc}")
        return {"connected": False}

    if not me.get("id"):
        logger.warning("Status check got a Spotify profile without an id")
        return {"connected": False}

    return {"connected": True, "profile": {"id": me.get("id"), "name": me.get("display_name")}}


@api_router.get("/moods", response_model=List[MoodOut], tags=["moods"])
def moods() -> List[MoodOut]:
    return [
        MoodOut(
            key=m.key,
            label=m.label,
            seed_genres=list(m.seed_genres),
            target_valence=m.target_valence,
            target_energy=m.target_energy,
            target_danceability=m.target_danceability,
            target_instrumentalness=m.target_instrumentalness,
        )
        for m in list_moods()
    ]


@api_router.post("/playlists/from-mood", tags=["playlists"])
@limiter.limit(playlist_rate_limit)
def playlist_from_mood(
    request: Request,
    response: Response,
    body: Optional[MoodPlaylistRequest] = None,
    cfg: AppConfig = Depends(get_config),
    oauth: SpotifyOAuthClient = Depends(get_oauth),
    spotify: SpotifyClient = Depends(get_spotify),
) -> dict:
    """
    Create a private playlist in the connected user's account for a mood.
    """
    requested = body.mood if body else None
    logger.info(f"Playlist from mood requested: mood={requested!r}")
    try:
        mood = get_mood(requested)
    except UnsupportedMood as exc:
        return _error(response, exc)

    token = get_valid_access_token(request, response, oauth, cfg.cookies)
    if not token:
        return _error(response, NotAuthenticated())

    try:
        result = create_mood_playlist(spotify, token, mood)
    except SpotifyError as exc:
        logger.error(f"Failed to create playlist for mood {mood.key!r}: {exc}")
        response.status_code = 500
        return {
            "error": "Failed to create playlist",
            "details": exc.details if exc.details is not None else str(exc),
        }
    except MoodifyError as exc:
        return _error(response, exc)

    return {
        "ok": True,
        "playlist": {"id": result.id, "name": result.name, "url": result.url},
        "tracksAdded": result.tracks_added,
    }


# ------------------------------------------------------------------------- #
# Error handlers
# ------------------------------------------------------------------------- #
def _moodify_error_handler(request: Request, exc: MoodifyError) -> JSONResponse:
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        payload = MethodNotAllowed().to_payload()
    else:
        payload = {"error": exc.detail}
    return JSONResponse(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Invalid request body on {request.url.path}")
    return JSONResponse(
        {"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    app.state.oauth.close()
    app.state.spotify.close()


def create_app(
    cfg: Optional[AppConfig] = None,
    *,
    oauth: Optional[SpotifyOAuthClient] = None,
    spotify: Optional[SpotifyClient] = None,
) -> FastAPI:
    if cfg is None:
        cfg = load_config()

    app = FastAPI(
        title="Moodify API",
        description="Moodify – turn a mood into a private Spotify playlist.",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.config = cfg
    app.state.oauth = oauth or SpotifyOAuthClient(cfg.spotify)
    app.state.spotify = spotify or SpotifyClient()

    _rate_limits["playlist"] = cfg.playlist_rate_limit
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(MoodifyError, _moodify_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Credentials enabled for the auth cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cfg.frontend_url] if cfg.frontend_url else DEV_FRONTEND_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system_router)
    app.include_router(auth_router, prefix="/auth")
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app", "limiter", "playlist_rate_limit"]
