"""
Structured application errors.

Every failure raised on purpose by the service is an ``AppError`` tagged with
an ``ErrorKind``. The HTTP layer maps the kind to a status code; anything that
is not an ``AppError`` is treated as an unexpected (programming) error.
"""
import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    OUT_OF_RANGE = "out_of_range"
    CONFLICT = "conflict"
    INTERNAL = "internal"


_DEFAULT_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OUT_OF_RANGE: 404,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """Operational error with a message that is safe to show to the client."""

    is_operational = True

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code or _DEFAULT_STATUS[kind]

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

    def __repr__(self):
        return f"<AppError(kind={self.kind.value}, status_code={self.status_code}, message={self.message!r})>"

    @classmethod
    def validation(cls, message: str) -> "AppError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def authentication(cls, message: str) -> "AppError":
        return cls(ErrorKind.AUTHENTICATION, message)

    @classmethod
    def authorization(cls, message: str) -> "AppError":
        return cls(ErrorKind.AUTHORIZATION, message)

    @classmethod
    def not_found(cls, message: str) -> "AppError":
        return cls(ErrorKind.NOT_FOUND, message)
