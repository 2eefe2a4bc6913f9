"""Pydantic schemas for authentication and profile endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel


class SignupRequest(CamelModel):
    name: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SigninRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=3, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=72)


class UserResponse(CamelModel):
    """Sanitized user: no password hash, no refresh token."""

    id: int
    name: str
    email: str
    profile_image_url: str | None = None
    created_at: datetime
    updated_at: datetime
