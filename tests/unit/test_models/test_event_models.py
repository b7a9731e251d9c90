"""
Unit tests for Event, EventParticipant and Vote models.

Tests:
- Event defaults and timezone handling
- Lifecycle and check-in code check constraints
- One participation record and one vote per (event, user)
- Cascading deletes from events
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.events import Event, EventParticipant, EventType
from src.models.votes import Vote


class TestEvent:
    """Test Event model functionality."""

    def test_create_event_defaults(self, db_session: Session):
        """A new event is not started, not completed, public and has no code."""
        event = Event(
            title="Night Flying Seminar",
            start_time=datetime(2026, 4, 1, 18, 0, tzinfo=timezone.utc),
            lead_id=uuid.uuid4(),
        )
        db_session.add(event)
        db_session.commit()

        assert event.id is not None
        assert event.started is False
        assert event.completed is False
        assert event.private is False
        assert event.checkin_code is None
        assert event.checkin_code_required is False
        assert event.event_type == EventType.OTHER
        assert event.lesson_plan_id is None
        assert event.created_at is not None

    def test_start_time_loaded_as_utc(self, db_session: Session):
        """Times are returned timezone-aware in UTC even on SQLite."""
        eastern = timezone(timedelta(hours=-5))
        event = Event(
            title="Fly-in",
            start_time=datetime(2026, 5, 1, 9, 0, tzinfo=eastern),
            lead_id=uuid.uuid4(),
            event_type=EventType.FLY_IN,
        )
        db_session.add(event)
        db_session.commit()
        db_session.expire_all()

        loaded = db_session.get(Event, event.id)
        assert loaded.start_time.tzinfo is not None
        assert loaded.start_time == datetime(2026, 5, 1, 14, 0, tzinfo=timezone.utc)

    def test_event_type_stored_as_value(self, db_session: Session, make_event):
        """Event type is persisted as its string value."""
        event = make_event(event_type=EventType.FLIGHT_TRAINING)
        db_session.commit()

        stored = db_session.execute(
            text("SELECT event_type FROM events WHERE id = :id"),
            {"id": event.id.hex},
        ).scalar_one()
        assert stored == "flight_training"

    def test_completed_requires_started(self, db_session: Session, make_event):
        """An event cannot be completed without having started."""
        with pytest.raises(IntegrityError):
            make_event(completed=True, started=False)
        db_session.rollback()

    def test_checkin_code_length(self, db_session: Session, make_event):
        """Check-in codes are exactly four characters."""
        with pytest.raises(IntegrityError):
            make_event(checkin_code="ABC")
        db_session.rollback()

        event = make_event(started=True, checkin_code="A1B2")
        assert event.checkin_code == "A1B2"


class TestEventParticipant:
    """Test EventParticipant model functionality."""

    def test_flags_default_to_null(self, db_session: Session, make_event):
        """All participation flags start out unset."""
        event = make_event()
        participant = EventParticipant(event_id=event.id, user_id=uuid.uuid4())
        db_session.add(participant)
        db_session.commit()

        assert participant.confirmed is None
        assert participant.declined is None
        assert participant.checked_in is None
        assert participant.member is None
        assert participant.is_live is True

    def test_declined_is_not_live(self, db_session: Session, make_event):
        event = make_event()
        participant = EventParticipant(
            event_id=event.id,
            user_id=uuid.uuid4(),
            confirmed=False,
            declined=True,
        )
        db_session.add(participant)
        db_session.flush()

        assert participant.is_live is False

    def test_one_record_per_event_user(self, db_session: Session, make_event):
        """A second record for the same pair violates the unique constraint."""
        event = make_event()
        user_id = uuid.uuid4()
        db_session.add(EventParticipant(event_id=event.id, user_id=user_id))
        db_session.flush()

        db_session.add(EventParticipant(event_id=event.id, user_id=user_id))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

    def test_confirmed_and_declined_exclusive(self, db_session: Session, make_event):
        """A record cannot be both confirmed and declined."""
        event = make_event()
        db_session.add(EventParticipant(
            event_id=event.id,
            user_id=uuid.uuid4(),
            confirmed=True,
            declined=True,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()


class TestVote:
    """Test Vote model functionality."""

    def test_one_vote_per_event_user(self, db_session: Session, make_event):
        event = make_event()
        user_id = uuid.uuid4()
        db_session.add(Vote(event_id=event.id, user_id=user_id, lesson_plan_id=uuid.uuid4()))
        db_session.flush()

        db_session.add(Vote(event_id=event.id, user_id=user_id, lesson_plan_id=uuid.uuid4()))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()


class TestEventDeletion:
    """Deleting an event removes its participants and votes."""

    def test_delete_cascades(self, db_session: Session, make_event):
        event = make_event()
        db_session.add(EventParticipant(event_id=event.id, user_id=uuid.uuid4()))
        db_session.add(Vote(event_id=event.id, user_id=uuid.uuid4(), lesson_plan_id=uuid.uuid4()))
        db_session.commit()

        db_session.delete(event)
        db_session.commit()

        assert db_session.scalars(select(EventParticipant)).all() == []
        assert db_session.scalars(select(Vote)).all() == []
