"""User profile API endpoints."""

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, require_session, set_auth_cookies
from app.errors import ApiError, UnauthenticatedError
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, ProfileUpdateRequest, UserResponse
from app.schemas.common import ApiResponse
from app.services.auth import get_auth_service
from app.services.profile_image import get_profile_image_service
from app.services.tokens import get_token_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _get_user_record(db: Session, current: CurrentUser) -> User:
    user = db.get(User, current.id)
    if not user:
        raise UnauthenticatedError("User not found")
    return user


@router.get("/profile")
def get_profile(user: CurrentUser = Depends(require_session)) -> dict:
    """Return the signed-in user's profile."""
    return ApiResponse.build(200, {"user": UserResponse.model_validate(user).dump()}, "Profile fetched successfully")


@router.patch("/profile")
def update_profile(
    name: str | None = Form(None),
    profile: UploadFile | None = File(None),
    current: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Change display name and/or profile picture."""
    try:
        body = ProfileUpdateRequest(name=name or None)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from None

    user = _get_user_record(db, current)
    images = get_profile_image_service()
    old_image_url = user.profile_image_url
    new_image_url = images.store(profile) if profile and profile.filename else None

    try:
        user = get_auth_service().update_profile(db, user, name=body.name, profile_image_url=new_image_url)
    except ApiError:
        images.delete(new_image_url)
        raise

    if new_image_url and old_image_url != new_image_url:
        images.delete(old_image_url)

    return ApiResponse.build(200, {"user": UserResponse.model_validate(user).dump()}, "Profile updated successfully")


@router.patch("/password")
def change_password(
    body: ChangePasswordRequest,
    response: Response,
    current: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Change password and start a fresh session, ending any other."""
    user = _get_user_record(db, current)
    get_auth_service().change_password(db, user, body.current_password, body.new_password)

    pair = get_token_service().issue_session_pair(db, user)
    set_auth_cookies(response, pair)
    return ApiResponse.build(200, None, "Password updated successfully")
