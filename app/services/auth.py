"""Authentication service."""

import hmac
import logging

import bcrypt
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TokenError,
    UnauthenticatedError,
    ValidationError,
)
from app.models.user import User
from app.services.tokens import SessionPair, TokenService, get_token_service

logger = logging.getLogger("tasktrack")

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its stored bcrypt hash."""
    password_bytes = password.encode("utf-8")
    if not password_hash or len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))


class AuthService:
    """Handles registration, sign-in, session refresh and sign-out."""

    def __init__(self, token_service: TokenService) -> None:
        self.tokens = token_service

    def ensure_identity_available(self, db: Session, name: str, email: str) -> None:
        """Raise ConflictError if the name or email is already taken."""
        existing = db.query(User).filter(or_(User.email == email.lower(), User.name == name)).first()
        if existing:
            raise ConflictError("User with email or username already exists")

    def register(
        self, db: Session, name: str, email: str, password: str, profile_image_url: str | None = None
    ) -> User:
        """Create a user with a hashed password."""
        self.ensure_identity_available(db, name, email)

        user = User(
            name=name,
            email=email.lower(),
            password_hash=hash_password(password),
            profile_image_url=profile_image_url,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("User with email or username already exists") from None
        db.refresh(user)

        logger.info("User %d registered", user.id)
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        """Look up a user by email and check the password."""
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            raise NotFoundError("User not found")

        if not verify_password(password, user.password_hash):
            logger.info("Failed sign-in for user %d", user.id)
            raise UnauthenticatedError("Invalid credentials")

        return user

    def refresh_session(self, db: Session, refresh_token: str | None) -> tuple[User, SessionPair]:
        """Exchange a refresh token for a new session pair, rotating the stored token.

        Used by both the refresh endpoint and the session dependency's silent refresh.
        """
        if not refresh_token:
            raise UnauthenticatedError("Unauthorized: No token provided")

        try:
            user_id = self.tokens.verify_refresh_token(refresh_token)
        except TokenError:
            raise UnauthenticatedError("Invalid or expired refresh token") from None

        user = db.get(User, user_id)
        if not user:
            raise UnauthenticatedError("Invalid token user")

        if not user.refresh_token or not hmac.compare_digest(user.refresh_token, refresh_token):
            logger.warning("Refresh token mismatch for user %d, possible reuse of a rotated token", user.id)
            raise ForbiddenError("Token mismatch or expired")

        pair = self.tokens.issue_session_pair(db, user)
        logger.info("Rotated session for user %d", user.id)
        return user, pair

    def logout(self, db: Session, refresh_token: str | None) -> None:
        """Forget the stored refresh token of whoever the cookie names.

        The token is decoded, not verified, so expired sessions can still be cleaned up.
        """
        if not refresh_token:
            return

        user_id = self.tokens.read_subject_unverified(refresh_token)
        if user_id is None:
            return

        user = db.get(User, user_id)
        if user and user.refresh_token is not None:
            user.refresh_token = None
            db.commit()
            logger.info("User %d signed out", user.id)

    def change_password(self, db: Session, user: User, current_password: str, new_password: str) -> None:
        """Replace the password hash after checking the current password."""
        if not verify_password(current_password, user.password_hash):
            raise UnauthenticatedError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        db.commit()
        logger.info("User %d changed password", user.id)

    def update_profile(
        self, db: Session, user: User, name: str | None = None, profile_image_url: str | None = None
    ) -> User:
        """Update display name and/or profile image URL."""
        if name and name != user.name:
            taken = db.query(User).filter(User.name == name, User.id != user.id).first()
            if taken:
                raise ConflictError("Username is already taken")
            user.name = name
        if profile_image_url:
            user.profile_image_url = profile_image_url
        db.commit()
        db.refresh(user)
        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(get_token_service())
    return _auth_service
