"""Access and refresh token service."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import TokenExpired, TokenInvalid
from app.models.user import User

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class SessionPair:
    """Freshly issued access/refresh tokens for one user."""

    access_token: str
    refresh_token: str


class TokenService:
    """Mints and verifies the two token types.

    Access tokens are stateless: signature and expiry decide validity.
    Refresh tokens are signed with a separate secret and are additionally
    compared against ``User.refresh_token`` by the refresh flow.
    """

    def __init__(self, settings: Settings) -> None:
        settings.validate()
        self.access_secret = settings.ACCESS_TOKEN_SECRET
        self.refresh_secret = settings.REFRESH_TOKEN_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    @property
    def access_max_age(self) -> int:
        return int(self.access_ttl.total_seconds())

    @property
    def refresh_max_age(self) -> int:
        return int(self.refresh_ttl.total_seconds())

    def issue_access_token(self, user_id: int, expires_delta: timedelta | None = None) -> str:
        """Create a short-lived access token for the given user."""
        return self._encode(user_id, ACCESS_TOKEN_TYPE, self.access_secret, expires_delta or self.access_ttl)

    def issue_refresh_token(self, user_id: int, expires_delta: timedelta | None = None) -> str:
        """Create a long-lived refresh token for the given user."""
        return self._encode(user_id, REFRESH_TOKEN_TYPE, self.refresh_secret, expires_delta or self.refresh_ttl)

    def issue_session_pair(self, db: Session, user: User) -> SessionPair:
        """Issue both tokens and store the refresh token on the user, replacing any previous one."""
        pair = SessionPair(
            access_token=self.issue_access_token(user.id),
            refresh_token=self.issue_refresh_token(user.id),
        )
        user.refresh_token = pair.refresh_token
        db.commit()
        return pair

    def verify_access_token(self, token: str) -> int:
        """Return the user id carried by a valid access token."""
        return self._decode(token, ACCESS_TOKEN_TYPE, self.access_secret)

    def verify_refresh_token(self, token: str) -> int:
        """Return the user id carried by a valid refresh token."""
        return self._decode(token, REFRESH_TOKEN_TYPE, self.refresh_secret)

    def read_subject_unverified(self, token: str) -> int | None:
        """Read the user id without checking signature or expiry. None if undecodable."""
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return None
        return _parse_subject(claims)

    def _encode(self, user_id: int, token_type: str, secret: str, expires_delta: timedelta) -> str:
        now = datetime.utcnow()
        payload = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + expires_delta,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def _decode(self, token: str, expected_type: str, secret: str) -> int:
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        except JWTError as e:
            raise TokenInvalid("Token is invalid") from e

        if claims.get("type") != expected_type:
            raise TokenInvalid("Unexpected token type")
        user_id = _parse_subject(claims)
        if user_id is None:
            raise TokenInvalid("Token subject is invalid")
        return user_id


def _parse_subject(claims: dict[str, Any]) -> int | None:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get singleton token service instance."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService(get_settings())
    return _token_service
