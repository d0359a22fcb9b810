"""
Password hashing, bearer tokens and password-reset secrets
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple
import hashlib
import hmac
import logging
import secrets

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from natours.core.config import Settings
from natours.core.errors import AppError
from natours.models.base import utcnow

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token. Please log in again."

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TokenData(BaseModel):
    id: str
    iat: int
    iat_ms: int
    exp: int


@lru_cache(maxsize=4)
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, settings: Settings) -> str:
    return _pwd_context(settings.BCRYPT_ROUNDS).hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str], settings: Settings) -> bool:
    context = _pwd_context(settings.BCRYPT_ROUNDS)
    if not hashed_password:
        # burn the same time as a real check so unknown emails are not observable
        context.dummy_verify()
        return False
    return context.verify(plain_password, hashed_password)


def epoch_ms(moment: datetime) -> int:
    """Whole milliseconds since the epoch. Naive datetimes are read as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def sign_token(user_id: str, settings: Settings, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "id": str(user_id),
        "iat": int(now.timestamp()),
        # compared against password_changed_at
        "iat_ms": epoch_ms(now),
        "exp": int((now + timedelta(days=settings.JWT_EXPIRES_IN_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, settings: Settings) -> TokenData:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["id", "iat", "iat_ms", "exp"]},
        )
        return TokenData(**payload)
    except jwt.ExpiredSignatureError:
        logger.info("Rejected bearer token: expired")
        raise AppError.authentication(INVALID_TOKEN_MESSAGE)
    except (jwt.InvalidTokenError, ValidationError) as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AppError.authentication(INVALID_TOKEN_MESSAGE)


def changed_password_after(password_changed_at: Optional[datetime], issued_at_ms: int) -> bool:
    """True when a token signed at ``issued_at_ms`` predates the last password change."""
    if password_changed_at is None:
        return False
    return issued_at_ms < epoch_ms(password_changed_at)


def digest_reset_token(token: str, settings: Settings) -> str:
    return hmac.new(settings.SECRET_KEY.encode(), token.encode(), hashlib.sha256).hexdigest()


def create_password_reset_token(settings: Settings) -> Tuple[str, str, datetime]:
    """Returns ``(plaintext, digest, expires_at)``. Only the digest may be stored."""
    token = secrets.token_urlsafe(32)
    expires_at = utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRES_MINUTES)
    return token, digest_reset_token(token, settings), expires_at
