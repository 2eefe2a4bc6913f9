"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import REFRESH_COOKIE_NAME, clear_auth_cookies, set_auth_cookies
from app.errors import ApiError
from app.rate_limit import limiter
from app.schemas.auth import SigninRequest, SignupRequest, UserResponse
from app.schemas.common import ApiResponse
from app.services.auth import get_auth_service
from app.services.profile_image import get_profile_image_service
from app.services.tokens import get_token_service

logger = logging.getLogger("tasktrack")

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/signup", status_code=201)
@limiter.limit("5/minute")
def signup(
    request: Request,
    response: Response,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    profile: UploadFile | None = File(None),
    db: Session = Depends(get_db),
) -> dict:
    """Register a new account, optionally with a profile picture, and start a session."""
    try:
        body = SignupRequest(name=name, email=email, password=password)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from None

    auth_service = get_auth_service()
    auth_service.ensure_identity_available(db, body.name, body.email)

    images = get_profile_image_service()
    profile_image_url = images.store(profile) if profile and profile.filename else None

    try:
        user = auth_service.register(db, body.name, body.email, body.password, profile_image_url)
    except ApiError:
        images.delete(profile_image_url)
        raise

    pair = get_token_service().issue_session_pair(db, user)
    set_auth_cookies(response, pair)

    return ApiResponse.build(201, UserResponse.model_validate(user).dump(), "User registered successfully")


@router.post("/signin")
@limiter.limit("10/minute")
def signin(request: Request, response: Response, body: SigninRequest, db: Session = Depends(get_db)) -> dict:
    """Sign in with email and password. Replaces any other active session."""
    auth_service = get_auth_service()
    user = auth_service.authenticate(db, body.email, body.password)

    pair = get_token_service().issue_session_pair(db, user)
    set_auth_cookies(response, pair)
    logger.info("User %d signed in", user.id)

    return ApiResponse.build(200, UserResponse.model_validate(user).dump(), "Login successful")


@router.post("/refresh")
@limiter.limit("30/minute")
def refresh(request: Request, response: Response, db: Session = Depends(get_db)) -> dict:
    """Rotate the session using the refresh token cookie."""
    _, pair = get_auth_service().refresh_session(db, request.cookies.get(REFRESH_COOKIE_NAME))
    set_auth_cookies(response, pair)
    return ApiResponse.build(200, None, "Access token refreshed successfully")


@router.post("/signout")
def signout(request: Request, response: Response, db: Session = Depends(get_db)) -> dict:
    """Forget the stored refresh token and clear both cookies. Always succeeds."""
    try:
        get_auth_service().logout(db, request.cookies.get(REFRESH_COOKIE_NAME))
    except Exception:
        db.rollback()
        logger.exception("Could not clear stored refresh token during sign-out")

    clear_auth_cookies(response)
    return ApiResponse.build(200, None, "Logged out successfully")
