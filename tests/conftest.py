"""Shared fixtures: in-memory database, fixed clock and API client."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from callbridge.config import Config, get_config
from callbridge.database import Base, build_engine, create_tables, get_db
from callbridge.server import app, get_reservation_manager
from callbridge.services import ReservationManager


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Clock fixed at 2025-01-10 12:00 UTC."""
    return FakeClock(datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def manager(db_session, clock):
    return ReservationManager(db_session, clock=clock, timezone="UTC")


@pytest.fixture
def config():
    """Configuration with a verified caller ID and no .env influence."""
    return Config(
        _env_file=None,
        twilio_caller_id="+15005550006",
        server_url="https://calls.example.com",
    )


@pytest.fixture
def client(engine, clock, config):
    """API client wired to the in-memory database and fixed clock."""
    testing_session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    def override_get_manager():
        session = testing_session()
        try:
            yield ReservationManager(session, clock=clock, timezone="UTC")
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_reservation_manager] = override_get_manager

    yield TestClient(app)

    app.dependency_overrides.clear()
