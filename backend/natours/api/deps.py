"""
FastAPI dependencies: settings, database sessions, authentication
"""
from typing import Callable, Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from natours.core.config import Settings
from natours.models import User, UserRole
from natours.services import auth_service

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Verifies the bearer token and attaches the user to ``request.state.user``."""
    token = credentials.credentials if credentials else None
    user = auth_service.authenticate_token(db, settings, token)
    request.state.user = user
    return user


def restrict_to(*roles: UserRole) -> Callable[..., User]:
    def dependency(user: User = Depends(get_current_user)) -> User:
        auth_service.check_role(user, roles)
        return user

    return dependency
