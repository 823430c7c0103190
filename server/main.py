# server/main.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from store.repository import RowNotFoundError, StoreError, TableStore
from tracker.duration import duration_hours, human_duration
from tracker.episode import Episode
from tracker.episode_service import EpisodeService
from tracker.errors import DataIntegrityError, NotAuthenticatedError, ValidationFailed
from tracker.feedback_service import FeedbackService
from tracker.query_cache import QueryCache

logger = logging.getLogger(__name__)


# --- Configuration helpers ---
def _parse_cors_origins(env_val: str | None):
    """
    Parse comma-separated origins. If env is None or '*', return ['*'] (dev).
    Otherwise, return a cleaned list like ['https://app.example.com', 'https://example.com'].
    """
    if not env_val or env_val.strip() == "*":
        return ["*"]
    parts = [p.strip() for p in env_val.split(",")]
    return [p for p in parts if p] or ["*"]


def _parse_tokens(env_val: str | None) -> Dict[str, str]:
    """
    Parse ``token:account_id`` pairs separated by commas into a lookup table.

    Malformed pairs are skipped with a warning.
    """
    tokens: Dict[str, str] = {}
    if not env_val:
        return tokens
    for pair in env_val.split(","):
        token, sep, account = pair.strip().partition(":")
        if not sep or not token or not account:
            if pair.strip():
                logger.warning("Ignoring malformed API_TOKENS entry")
            continue
        tokens[token] = account
    return tokens


# --- Identity ---
security = HTTPBearer(auto_error=False)


def current_user(
    request: Request, creds: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """
    Resolve the bearer token to an account id.

    Returns None when the header is missing or the token is unknown; the
    services then refuse to run, which surfaces as 401.
    """
    if creds is None or creds.scheme.lower() != "bearer":
        return None
    return request.app.state.tokens.get(creds.credentials)


def episode_service(request: Request, user_id: Optional[str] = Depends(current_user)) -> EpisodeService:
    cache = request.app.state.caches.get(user_id) if user_id else None
    return EpisodeService(request.app.state.store, user_id, cache=cache)


def feedback_service(request: Request, user_id: Optional[str] = Depends(current_user)) -> FeedbackService:
    return FeedbackService(request.app.state.store, user_id)


# --- Serialisation ---
def _episode_json(episode: Episode) -> Dict[str, Any]:
    data = episode.model_dump(mode="json")
    hours = duration_hours(episode)
    data["duration_hours"] = None if episode.is_ongoing else hours
    data["duration"] = human_duration(hours)
    return data


# --- Routes ---
router = APIRouter()


@router.get("/health")
def health():
    """
    Indicate whether the service is healthy.

    Returns:
        dict: A JSON-serializable mapping with key `"ok"` set to `True` when the service is healthy.
    """
    return {"ok": True}


@router.get("/episodes")
def list_episodes(service: EpisodeService = Depends(episode_service)):
    """List the caller's episodes, most recent start first."""
    return [_episode_json(ep) for ep in service.list_episodes()]


@router.get("/episodes/stats")
def episode_stats(
    top_n: int = Query(default=5, ge=1, le=13, description="How many triggers/symptoms to rank"),
    service: EpisodeService = Depends(episode_service),
):
    """Totals, averages and the most common triggers and symptoms."""
    return service.get_stats(top_n=top_n).model_dump(mode="json")


@router.post("/episodes", status_code=status.HTTP_201_CREATED)
def create_episode(candidate: Any = Body(...), service: EpisodeService = Depends(episode_service)):
    """
    Record an episode from form input.

    The body uses form shapes: ISO 8601 strings for timestamps, tag lists as
    strings, medications with a ``time_taken`` string.
    """
    return _episode_json(service.create_from_form(candidate))


@router.get("/episodes/{episode_id}")
def get_episode(episode_id: str, service: EpisodeService = Depends(episode_service)):
    return _episode_json(service.get_episode(episode_id))


@router.patch("/episodes/{episode_id}")
def update_episode(
    episode_id: str,
    changes: Any = Body(...),
    service: EpisodeService = Depends(episode_service),
):
    """
    Apply a partial update. Omitted keys are left alone; ``null`` clears
    ``end_time``, ``notes`` or ``contributing_factors``.
    """
    return _episode_json(service.update_episode(episode_id, changes))


@router.delete("/episodes/{episode_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_episode(episode_id: str, service: EpisodeService = Depends(episode_service)):
    service.delete_episode(episode_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/feedback")
def list_feedback(service: FeedbackService = Depends(feedback_service)):
    return [fb.model_dump(mode="json") for fb in service.list_feedback()]


@router.post("/feedback", status_code=status.HTTP_201_CREATED)
def create_feedback(candidate: Any = Body(...), service: FeedbackService = Depends(feedback_service)):
    return service.create_feedback(candidate).model_dump(mode="json")


@router.get("/feedback/{feedback_id}")
def get_feedback(feedback_id: str, service: FeedbackService = Depends(feedback_service)):
    return service.get_feedback(feedback_id).model_dump(mode="json")


@router.patch("/feedback/{feedback_id}")
def update_feedback(
    feedback_id: str,
    changes: Any = Body(...),
    service: FeedbackService = Depends(feedback_service),
):
    return service.update_feedback(feedback_id, changes).model_dump(mode="json")


@router.delete("/feedback/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feedback(feedback_id: str, service: FeedbackService = Depends(feedback_service)):
    service.delete_feedback(feedback_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Error mapping ---
def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed):
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation failed", "issues": exc.to_dict()},
        )

    @app.exception_handler(NotAuthenticatedError)
    async def _not_authenticated(request: Request, exc: NotAuthenticatedError):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(RowNotFoundError)
    async def _not_found(request: Request, exc: RowNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(DataIntegrityError)
    async def _data_integrity(request: Request, exc: DataIntegrityError):
        logger.error(
            "Stored data unreadable on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Stored data could not be read"},
        )


def create_app(
    store: TableStore | None = None,
    tokens: Mapping[str, str] | None = None,
) -> FastAPI:
    """
    Build the API around an explicitly supplied store and token table.

    Both default to the environment (``MIGRAINE_DB_PATH``, ``API_TOKENS``).
    Run with ``uvicorn server.main:create_app --factory``.

    Each configured account gets one :class:`QueryCache`, created here and
    kept for the life of the app. It holds that account's episode list and
    the episodes read since the last write that touched them.
    """
    app = FastAPI(title="Migraine Tracker API", version="0.1.0")
    app.state.store = store if store is not None else TableStore.from_env()
    app.state.tokens = dict(tokens) if tokens is not None else _parse_tokens(os.getenv("API_TOKENS"))
    app.state.caches = {account: QueryCache() for account in set(app.state.tokens.values())}

    cors_origins = _parse_cors_origins(os.getenv("CORS_ORIGINS"))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False,   # using Bearer token; no cookies needed
        allow_methods=["*"],
        allow_headers=["*"],       # includes 'Authorization'
    )
    if cors_origins == ["*"]:
        logger.warning("CORS is permissive ('*'). This is fine for dev but restrict in production via CORS_ORIGINS.")
    else:
        logger.info("CORS allowed origins: %s", cors_origins)
    if not app.state.tokens:
        logger.warning("No API_TOKENS configured; every request will be rejected as unauthenticated.")

    _install_error_handlers(app)
    app.include_router(router)
    return app
