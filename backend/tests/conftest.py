"""Pytest fixtures for the Modular Health backend tests."""

from collections.abc import Generator
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.models import Base, Routine, RoutineVariable, Variable
from app.services.routines import RoutineBinding, RoutineTime

# Use SQLite in-memory for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_USER_ID = "user-1"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """Create a fresh test database for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )

    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        app.dependency_overrides.clear()


@pytest.fixture
def client(test_db: Session) -> TestClient:
    """Create a test client with test database."""
    limiter.reset()
    return TestClient(app)


@pytest.fixture
def auth_token() -> str:
    """Token for the default test user."""
    return create_access_token(data={"sub": TEST_USER_ID})


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def other_user_headers() -> dict:
    token = create_access_token(data={"sub": "user-2"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def variables(test_db: Session) -> dict[str, Variable]:
    """A few tracked variables."""
    created = {
        "creatine": Variable(slug="creatine", label="Creatine", unit="g"),
        "water": Variable(slug="water", label="Water", unit="ml"),
        "meditation": Variable(slug="meditation", label="Meditation", unit="min"),
    }
    test_db.add_all(created.values())
    test_db.commit()
    return created


@pytest.fixture
def morning_routine(test_db: Session, variables: dict[str, Variable]) -> Routine:
    """Weekday morning routine: creatine at 07:30, water at 07:30 and 12:00."""
    routine = Routine(
        user_id=TEST_USER_ID,
        routine_name="Morning",
        notes="Morning stack",
        weekdays=[1, 2, 3, 4, 5],
    )
    routine.variables = [
        RoutineVariable(
            variable_id=variables["creatine"].id,
            default_value="5",
            default_unit="g",
            weekdays=[1, 2, 3, 4, 5],
            times=[{"time": "07:30", "name": "Breakfast"}],
            display_order=0,
        ),
        RoutineVariable(
            variable_id=variables["water"].id,
            default_value="500",
            default_unit="ml",
            weekdays=[1, 2, 3, 4, 5, 6, 7],
            times=[{"time": "07:30"}, {"time": "12:00:00", "name": "Lunch"}],
            display_order=1,
        ),
    ]
    test_db.add(routine)
    test_db.commit()
    test_db.refresh(routine)
    return routine


@pytest.fixture
def make_binding():
    """Factory for in-memory bindings."""

    def _make(variable_id="v1", weekdays=(1, 2, 3, 4, 5, 6, 7), times=("07:30",), **kwargs):
        return RoutineBinding(
            id=kwargs.pop("id", f"rv-{variable_id}"),
            variable_id=variable_id,
            variable_name=kwargs.pop("variable_name", str(variable_id)),
            weekdays=frozenset(weekdays),
            times=tuple(RoutineTime(time=t) for t in times),
            **kwargs,
        )

    return _make


class FakeClock:
    """Settable wall-clock for the auto-logger."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args) -> None:
        self.now = datetime(*args)


@pytest.fixture
def clock() -> FakeClock:
    # Wednesday
    return FakeClock(datetime(2024, 1, 3, 7, 30, 30))
