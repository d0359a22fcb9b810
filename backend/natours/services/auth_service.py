"""
Signup, login, route protection and password rotation.

All functions are blocking (bcrypt, database I/O). FastAPI runs the sync
handlers and dependencies that call them on its threadpool.
"""
from datetime import timezone
from typing import Iterable, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from natours.core.config import Settings
from natours.core.errors import AppError, ErrorKind
from natours.core.security import (
    INVALID_TOKEN_MESSAGE,
    changed_password_after,
    create_password_reset_token,
    decode_token,
    digest_reset_token,
    hash_password,
    sign_token,
    verify_password,
)
from natours.models import User, UserRole, utcnow
from natours.schemas import (
    LoginPayload,
    ResetPasswordPayload,
    SignupPayload,
    UpdatePasswordPayload,
)

logger = logging.getLogger(__name__)


def _find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def _set_password(user: User, password: str, settings: Settings) -> None:
    user.password_hash = hash_password(password, settings)
    user.password_changed_at = utcnow()


def _sign_after_password_change(user: User, settings: Settings) -> str:
    # signed at the change itself, the earliest instant that is not stale
    return sign_token(user.id, settings, now=user.password_changed_at.replace(tzinfo=timezone.utc))


def signup(db: Session, settings: Settings, payload: SignupPayload) -> Tuple[User, str]:
    if _find_by_email(db, payload.email) is not None:
        raise AppError.validation("Email address is already registered")

    # password_confirm is validated by the payload and never stored
    user = User(
        name=payload.name,
        email=payload.email,
        role=UserRole.USER,
        password_hash=hash_password(payload.password, settings),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"New user signed up: {user.id}")
    return user, sign_token(user.id, settings)


def login(db: Session, settings: Settings, payload: LoginPayload) -> str:
    user = _find_by_email(db, payload.email)
    hashed = user.password_hash if user is not None else None

    if not verify_password(payload.password, hashed, settings):
        raise AppError.authentication("Incorrect email or password")

    return sign_token(user.id, settings)


def authenticate_token(db: Session, settings: Settings, token: Optional[str]) -> User:
    """Resolves a bearer token to a live user or raises an authentication error."""
    # 1) Token present
    if not token:
        raise AppError.authentication("You are not logged in! Please log in to get access.")

    # 2) Signature and expiry
    data = decode_token(token, settings)

    # 3) User still exists
    user = db.get(User, data.id)
    if user is None:
        logger.info(f"Rejected bearer token: user {data.id} no longer exists")
        raise AppError.authentication(INVALID_TOKEN_MESSAGE)

    # 4) Password not rotated since the token was issued
    if changed_password_after(user.password_changed_at, data.iat_ms):
        logger.info(f"Rejected bearer token: user {user.id} changed password after issue")
        raise AppError.authentication(INVALID_TOKEN_MESSAGE)

    return user


def check_role(user: User, roles: Iterable[UserRole]) -> None:
    allowed = {UserRole(role) for role in roles}
    if UserRole(user.role) not in allowed:
        logger.warning(f"User {user.id} with role '{UserRole(user.role).value}' denied")
        raise AppError.authorization("You do not have permission to perform this action")


def forgot_password(db: Session, settings: Settings, email: str) -> Tuple[User, str]:
    """Stores the digest of a fresh reset token and returns the plaintext for delivery."""
    user = _find_by_email(db, email)
    if user is None:
        raise AppError.not_found("There is no user with that email address.")

    token, digest, expires_at = create_password_reset_token(settings)
    user.password_reset_token = digest
    user.password_reset_expires = expires_at
    db.commit()

    return user, token


def clear_password_reset(db: Session, user: User) -> None:
    user.password_reset_token = None
    user.password_reset_expires = None
    db.commit()


def reset_password(
    db: Session, settings: Settings, token: str, payload: ResetPasswordPayload
) -> Tuple[User, str]:
    digest = digest_reset_token(token, settings)
    user = (
        db.query(User)
        .filter(User.password_reset_token == digest)
        .filter(User.password_reset_expires > utcnow())
        .first()
    )
    if user is None:
        raise AppError.validation("Token is invalid or has expired")

    _set_password(user, payload.password, settings)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.commit()

    logger.info(f"Password reset for user {user.id}")
    return user, _sign_after_password_change(user, settings)


def update_password(
    db: Session, settings: Settings, user: User, payload: UpdatePasswordPayload
) -> str:
    if not verify_password(payload.password_current, user.password_hash, settings):
        raise AppError(ErrorKind.AUTHENTICATION, "Your current password is wrong.")

    _set_password(user, payload.password, settings)
    db.commit()

    logger.info(f"Password updated for user {user.id}")
    return _sign_after_password_change(user, settings)
