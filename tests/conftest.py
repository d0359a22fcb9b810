from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from natours.core.config import Settings
from natours.core.database import build_engine, build_session_factory, init_db
from natours.core.security import hash_password, sign_token
from natours.main import create_app
from natours.models import Tour, TourDifficulty, User, UserRole, utcnow

TEST_PASSWORD = "password123"


def make_settings(**overrides) -> Settings:
    values = dict(
        APP_ENV="development",
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret-key-that-is-long-enough-for-hs256",
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


def tour_fields(name: str, **overrides) -> dict:
    fields = dict(
        name=name,
        slug=name.lower().replace(" ", "-"),
        duration=5,
        max_group_size=10,
        difficulty=TourDifficulty.EASY,
        ratings_average=4.5,
        ratings_quantity=0,
        price=500.0,
        summary="A tour used in tests",
        image_cover="cover.jpg",
        images=[],
        start_dates=[],
        secret_tour=False,
    )
    fields.update(overrides)
    return fields


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# Direct database access (service-level tests)
# ---------------------------------------------------------------------------

@pytest.fixture
def db_session(settings):
    engine = build_engine(settings)
    init_db(engine)
    session = build_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def add_tour(db_session):
    def _add(name: str, **overrides) -> Tour:
        tour = Tour(**tour_fields(name, **overrides))
        db_session.add(tour)
        db_session.commit()
        return tour

    return _add


@pytest.fixture
def add_user(db_session, settings):
    def _add(
        email: str = "user@example.com",
        role: UserRole = UserRole.USER,
        password: str = TEST_PASSWORD,
        password_changed_at: Optional[datetime] = None,
    ) -> User:
        user = User(
            name=email.split("@")[0],
            email=email,
            role=role,
            password_hash=hash_password(password, settings),
            password_changed_at=password_changed_at,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _add


# ---------------------------------------------------------------------------
# HTTP (API-level tests)
# ---------------------------------------------------------------------------

@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(app, client):
    """Creates rows through a short-lived session and hands back their ids."""

    class Store:
        def __init__(self, session_factory, settings):
            self.session_factory = session_factory
            self.settings = settings

        def tour(self, name: str, **overrides) -> str:
            db = self.session_factory()
            try:
                tour = Tour(**tour_fields(name, **overrides))
                db.add(tour)
                db.commit()
                return tour.id
            finally:
                db.close()

        def user(self, email: str, role: UserRole = UserRole.USER, password: str = TEST_PASSWORD) -> str:
            db = self.session_factory()
            try:
                user = User(
                    name=email.split("@")[0],
                    email=email,
                    role=role,
                    password_hash=hash_password(password, self.settings),
                )
                db.add(user)
                db.commit()
                return user.id
            finally:
                db.close()

        def token_for(self, email: str, role: UserRole = UserRole.USER) -> str:
            return sign_token(self.user(email, role), self.settings)

        def count_users(self) -> int:
            db = self.session_factory()
            try:
                return db.query(User).count()
            finally:
                db.close()

        def get_user(self, user_id: str) -> User:
            db = self.session_factory()
            try:
                user = db.get(User, user_id)
                db.expunge(user)
                return user
            finally:
                db.close()

    return Store(app.state.session_factory, app.state.settings)


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)
