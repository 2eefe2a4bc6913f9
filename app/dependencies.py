"""Session dependency and auth cookie helpers for FastAPI routes."""

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session, load_only

from app.config import get_settings
from app.database import get_db
from app.errors import ApiError, TokenError, TokenExpired, UnauthenticatedError
from app.models.user import User
from app.services.auth import get_auth_service
from app.services.tokens import SessionPair, get_token_service

logger = logging.getLogger("tasktrack")

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"


@dataclass
class CurrentUser:
    """Authenticated user context. Never carries the password hash or refresh token."""

    id: int
    name: str
    email: str
    profile_image_url: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "CurrentUser":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            profile_image_url=user.profile_image_url,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


def _extract_access_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None


def _load_user(db: Session, user_id: int) -> User | None:
    return (
        db.query(User)
        .options(
            load_only(User.id, User.name, User.email, User.profile_image_url, User.created_at, User.updated_at)
        )
        .filter(User.id == user_id)
        .first()
    )


def require_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> CurrentUser:
    """Authenticate the request from its cookies. Raises 401 if that fails.

    No access token but a refresh token: silently refresh and write new cookies.
    Access token present: verify it. A bad or expired token is rejected without
    falling back to the refresh token.
    """
    access_token = _extract_access_token(request)

    if not access_token:
        refresh_token = request.cookies.get(REFRESH_COOKIE_NAME)
        if not refresh_token:
            raise UnauthenticatedError("Unauthorized request")
        try:
            user, pair = get_auth_service().refresh_session(db, refresh_token)
        except ApiError as e:
            logger.info("Silent refresh rejected: %s", e.message)
            raise UnauthenticatedError("Session expired, please sign in again") from None
        set_auth_cookies(response, pair)
        # The exception handlers re-apply this pair to error responses.
        request.state.session_pair = pair
        current = CurrentUser.from_model(user)
    else:
        try:
            user_id = get_token_service().verify_access_token(access_token)
        except TokenExpired:
            raise UnauthenticatedError("Access token expired") from None
        except TokenError:
            raise UnauthenticatedError("Invalid access token") from None

        user = _load_user(db, user_id)
        if not user:
            raise UnauthenticatedError("Invalid access token")
        current = CurrentUser.from_model(user)

    request.state.user = current
    return current


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": get_settings().is_production,
        "samesite": "strict",
        "path": "/",
    }


def set_auth_cookies(response: Response, pair: SessionPair) -> None:
    """Set both session cookies. Each expires with its token."""
    tokens = get_token_service()
    options = _cookie_options()
    response.set_cookie(
        key=ACCESS_COOKIE_NAME, value=pair.access_token, max_age=tokens.access_max_age, **options
    )
    response.set_cookie(
        key=REFRESH_COOKIE_NAME, value=pair.refresh_token, max_age=tokens.refresh_max_age, **options
    )


def apply_rotated_session(request: Request, response: Response) -> Response:
    """Copy cookies from a silent refresh earlier in this request onto `response`."""
    pair = getattr(request.state, "session_pair", None)
    if pair is not None:
        set_auth_cookies(response, pair)
    return response


def clear_auth_cookies(response: Response) -> None:
    """Clear both session cookies with the attributes they were set with."""
    options = _cookie_options()
    response.delete_cookie(key=ACCESS_COOKIE_NAME, **options)
    response.delete_cookie(key=REFRESH_COOKIE_NAME, **options)
