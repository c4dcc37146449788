from typing import Optional

from fastapi import Depends, Request

from .auth.sessions import SessionStore
from .config import Settings
from .errors import UnauthorizedError
from .metrics import RequestMetrics
from .models import Session
from .rate_limit import RateLimiter
from .storage import StorageAdapter
from .thumbnails import ThumbnailService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageAdapter:
    return request.app.state.storage


def get_thumbnails(request: Request) -> ThumbnailService:
    return request.app.state.thumbnails


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_metrics(request: Request) -> RequestMetrics:
    return request.app.state.metrics


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings(request).session.cookie_name) or None


def session_from_request(request: Request) -> Optional[Session]:
    """Resolve the session referenced by the request cookie, if still live."""
    session_id = get_session_id(request)
    if session_id is None:
        return None
    return get_session_store(request).get(session_id)


def get_current_session(
    request: Request, sessions: SessionStore = Depends(get_session_store)
) -> Session:
    """
    HTTP authentication dependency.

    Reuses the session resolved by the access policy middleware for protected
    routes, otherwise reads the session cookie.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        session_id = get_session_id(request)
        if session_id is None:
            raise UnauthorizedError("No session")
        session = sessions.get(session_id)
    if session is None:
        raise UnauthorizedError("Invalid session")
    return session
