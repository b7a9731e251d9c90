"""
Concurrency control helpers.

Database-level locking that keeps read-modify-write sequences from racing:
- Row locks via SELECT ... FOR UPDATE (PostgreSQL; SQLite serializes writers
  on its own and ignores FOR UPDATE)
- A transaction-scoped advisory lock around schedule validation
"""

import uuid
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from src.models.events import Event, EventParticipant
from src.models.votes import Vote


# Arbitrary constant identifying the "event schedule" advisory lock
SCHEDULE_LOCK_KEY = 0x7E57_0001


def acquire_schedule_lock(session: Session) -> None:
    """
    Serialize schedule changes for the rest of the current transaction.

    Conflict validation is check-then-insert; holding this lock from the check
    until commit stops two overlapping events from both passing validation.
    PostgreSQL releases the lock on commit/rollback.
    """
    if session.get_bind().dialect.name == "postgresql":
        session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": SCHEDULE_LOCK_KEY},
        )


def lock_event(session: Session, event_id: uuid.UUID) -> Optional[Event]:
    """
    Load an event with a row lock held until the transaction ends.

    Returns:
        Event or None if not found
    """
    stmt = (
        select(Event)
        .where(Event.id == event_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.scalar(stmt)


def lock_participant(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Optional[EventParticipant]:
    """
    Load the (event, user) participation row with a row lock.

    Returns:
        EventParticipant or None if the user never interacted with the event
    """
    stmt = (
        select(EventParticipant)
        .where(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.scalar(stmt)


def lock_vote(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Optional[Vote]:
    """
    Load the (event, user) vote with a row lock.

    Returns:
        Vote or None if the user has not voted
    """
    stmt = (
        select(Vote)
        .where(Vote.event_id == event_id, Vote.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return session.scalar(stmt)
