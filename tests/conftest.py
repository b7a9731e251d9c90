"""
Pytest configuration and fixtures for training events tests.

Provides database session fixtures, in-memory directories and sample data.
"""

import os

# Keep the application engine in memory when src.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from src.database import create_app_engine
from src.integrations.base import Activity, Address, Directories, LessonPlan, Role, User
from src.integrations.directory.local import (
    InMemoryAddressDirectory,
    InMemoryLessonPlanDirectory,
    InMemoryUserDirectory,
)
from src.models.base import Base
from src.models.events import Event, EventType
import src.models  # noqa: F401


# Reference time used by service tests that pass `now` explicitly
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a clean database session for each test.

    Uses an in-memory SQLite database configured like the application
    engine (foreign keys on, nested SAVEPOINTs) and torn down after each test.

    Yields:
        Session: SQLAlchemy session for database operations
    """
    engine = create_app_engine("sqlite://")

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def now() -> datetime:
    return NOW


# =============================================================================
# Directories
# =============================================================================


@pytest.fixture
def admin() -> User:
    return User(id=uuid.uuid4(), username="admin", display_name="Alex Admin", role=Role.ADMIN)


@pytest.fixture
def instructor() -> User:
    return User(id=uuid.uuid4(), username="ivy", display_name="Ivy Instructor", role=Role.INSTRUCTOR)


@pytest.fixture
def second_instructor() -> User:
    return User(id=uuid.uuid4(), username="ian", display_name="Ian Instructor", role=Role.INSTRUCTOR)


@pytest.fixture
def student() -> User:
    return User(id=uuid.uuid4(), username="sam", display_name="Sam Student", role=Role.STUDENT)


@pytest.fixture
def other_student() -> User:
    return User(id=uuid.uuid4(), username="sky", display_name="Sky Student", role=Role.STUDENT)


@pytest.fixture
def lesson_plan_ids() -> list[uuid.UUID]:
    """Three presentable plan IDs in ascending order."""
    return sorted(uuid.uuid4() for _ in range(3))


@pytest.fixture
def hidden_plan_id() -> uuid.UUID:
    """A plan that exists but is not presentable."""
    return uuid.uuid4()


@pytest.fixture
def address() -> Address:
    return Address(
        id=uuid.uuid4(),
        name="Hangar 3",
        street="1 Airport Rd",
        city="Springfield",
        state="IL",
        postal_code="62701",
    )


@pytest.fixture
def directories(
    admin: User,
    instructor: User,
    second_instructor: User,
    student: User,
    other_student: User,
    lesson_plan_ids: list[uuid.UUID],
    hidden_plan_id: uuid.UUID,
    address: Address,
) -> Directories:
    """In-memory directories populated with the sample users, plans and address."""
    plans = [
        LessonPlan(
            id=plan_id,
            title=f"Plan {i}",
            presentable=True,
            activities=(
                Activity(type="lesson", title=f"Lesson {i}"),
                Activity(type="quiz", title=f"Quiz {i}"),
            ),
        )
        for i, plan_id in enumerate(lesson_plan_ids, start=1)
    ]
    plans.append(LessonPlan(id=hidden_plan_id, title="Draft plan", presentable=False))

    return Directories(
        users=InMemoryUserDirectory([admin, instructor, second_instructor, student, other_student]),
        lesson_plans=InMemoryLessonPlanDirectory(plans),
        addresses=InMemoryAddressDirectory([address]),
    )


# =============================================================================
# Events
# =============================================================================


@pytest.fixture
def make_event(db_session: Session, instructor: User) -> Callable[..., Event]:
    """
    Factory persisting events directly (bypassing conflict validation).

    Usage:
        event = make_event(start_time=NOW + timedelta(days=2), private=True)
    """

    def _make_event(**overrides) -> Event:
        fields = {
            "title": "Ground School",
            "start_time": NOW + timedelta(days=7),
            "lead_id": instructor.id,
            "event_type": EventType.GROUND_SCHOOL,
        }
        fields.update(overrides)
        event = Event(**fields)
        db_session.add(event)
        db_session.flush()
        return event

    return _make_event
