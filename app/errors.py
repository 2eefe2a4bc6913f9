"""Error types shared by services, dependencies and routers."""

from typing import Any

from fastapi import HTTPException


class ConfigurationError(RuntimeError):
    """Signing secrets or expiry settings are missing. Fatal at startup."""


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalid(TokenError):
    """Signature, structure or token type is wrong."""


class TokenExpired(TokenError):
    """Token is well-formed but past its expiry."""


class ApiError(HTTPException):
    """HTTP exception rendered as the standard response envelope."""

    status_code_default = 500

    def __init__(self, message: str, *, data: Any = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(status_code=self.status_code_default, detail=message, headers=headers)
        self.data = data

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(ApiError):
    status_code_default = 400

    def __init__(self, message: str = "Validation failed", *, errors: list[dict[str, str]] | None = None) -> None:
        super().__init__(message, data={"errors": errors} if errors else None)


class ConflictError(ApiError):
    status_code_default = 400


class UnauthenticatedError(ApiError):
    status_code_default = 401


class ForbiddenError(ApiError):
    status_code_default = 403


class NotFoundError(ApiError):
    status_code_default = 404
