import secrets
from typing import Optional

from asyncer import asyncify
from fastapi import APIRouter, Depends, Request, Response

from ..auth.passwords import verify_password
from ..auth.sessions import SessionStore
from ..config import Settings
from ..dependencies import (
    get_current_session,
    get_session_id,
    get_session_store,
    get_settings,
)
from ..errors import BadRequestError, UnauthorizedError
from ..logger import logger
from ..models import LoginRequest, Session, UserResponse

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


def set_session_cookie(response: Response, settings: Settings, session_id: str):
    response.set_cookie(
        key=settings.session.cookie_name,
        value=session_id,
        max_age=settings.session.expiry_seconds,
        path="/",
        secure=True,
        httponly=True,
        samesite="strict",
    )


@router.post("/login")
async def login(
    response: Response,
    credentials: Optional[LoginRequest] = None,
    settings: Settings = Depends(get_settings),
    sessions: SessionStore = Depends(get_session_store),
):
    if credentials is None or not credentials.username or not credentials.password:
        raise BadRequestError("Username and password required")

    username_ok = secrets.compare_digest(
        credentials.username.encode(), settings.admin.username.encode()
    )
    # argon2 verification is CPU bound
    password_ok = await asyncify(verify_password)(
        credentials.password, settings.admin.password_hash
    )
    if not (username_ok and password_ok):
        logger.warning(f"Failed login attempt for user {credentials.username!r}")
        raise UnauthorizedError("Invalid credentials")

    session_id = sessions.create(credentials.username)
    set_session_cookie(response, settings, session_id)
    logger.info(f"User {credentials.username} logged in")
    return {"success": True, "username": credentials.username}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    sessions: SessionStore = Depends(get_session_store),
):
    session_id = get_session_id(request)
    if session_id is not None:
        sessions.destroy(session_id)

    response.delete_cookie(
        key=settings.session.cookie_name,
        path="/",
        secure=True,
        httponly=True,
        samesite="strict",
    )
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def read_current_user(session: Session = Depends(get_current_session)):
    return UserResponse(username=session.username)
