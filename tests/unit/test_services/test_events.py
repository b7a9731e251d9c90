"""
Unit tests for the event lifecycle service.

Tests create/update validation, listings, start/complete transitions and
the composed read views.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.events import Event, EventParticipant, EventType
from src.services import events, participants
from src.services.events import EventDraft, MAX_UPCOMING_COUNT, generate_checkin_code
from src.services.exceptions import ConflictError, InvalidPayloadError, ResourceNotFoundError
from tests.conftest import NOW


def draft(lead_id, start_time=NOW + timedelta(days=3), **kwargs) -> EventDraft:
    fields = {"title": "Weather Briefing", "event_type": EventType.SEMINAR}
    fields.update(kwargs)
    return EventDraft(start_time=start_time, lead_id=lead_id, **fields)


class TestCreateEvent:
    """Test create_event()."""

    def test_create_event(self, db_session: Session, directories, instructor):
        event = events.create_event(db_session, directories.lesson_plans, draft(instructor.id), now=NOW)

        assert event.id is not None
        assert event.title == "Weather Briefing"
        assert event.started is False
        assert event.lead_id == instructor.id
        assert db_session.get(Event, event.id) is event

    def test_naive_start_time_is_utc(self, db_session: Session, directories, instructor):
        naive = datetime(2026, 3, 9, 18, 0)

        event = events.create_event(
            db_session, directories.lesson_plans, draft(instructor.id, start_time=naive), now=NOW
        )

        assert event.start_time == naive.replace(tzinfo=timezone.utc)

    def test_conflicting_create_rejected(self, db_session: Session, directories, instructor, make_event):
        existing = make_event(start_time=NOW + timedelta(days=3))

        with pytest.raises(ConflictError) as exc_info:
            events.create_event(
                db_session,
                directories.lesson_plans,
                draft(instructor.id, start_time=existing.start_time + timedelta(minutes=29)),
                now=NOW,
            )

        assert exc_info.value.conflicting_event_ids == [existing.id]
        assert len(db_session.scalars(select(Event)).all()) == 1

    def test_missing_draft(self, db_session: Session, directories):
        with pytest.raises(InvalidPayloadError):
            events.create_event(db_session, directories.lesson_plans, None, now=NOW)

    def test_missing_start_time(self, db_session: Session, directories, instructor):
        with pytest.raises(InvalidPayloadError):
            events.create_event(
                db_session, directories.lesson_plans, draft(instructor.id, start_time=None), now=NOW
            )

    def test_initial_lesson_plan_must_exist(self, db_session: Session, directories, instructor):
        with pytest.raises(ResourceNotFoundError):
            events.create_event(
                db_session,
                directories.lesson_plans,
                draft(instructor.id, lesson_plan_id=uuid.uuid4()),
                now=NOW,
            )

    def test_initial_lesson_plan_kept(self, db_session: Session, directories, instructor, lesson_plan_ids):
        event = events.create_event(
            db_session,
            directories.lesson_plans,
            draft(instructor.id, lesson_plan_id=lesson_plan_ids[0]),
            now=NOW,
        )

        assert event.lesson_plan_id == lesson_plan_ids[0]


class TestUpdateEvent:
    """Test update_event()."""

    def test_update_fields(self, db_session: Session, instructor, second_instructor, make_event):
        event = make_event()

        updated = events.update_event(
            db_session,
            event.id,
            draft(second_instructor.id, title="Renamed", private=True),
            now=NOW,
        )

        assert updated.title == "Renamed"
        assert updated.private is True
        assert updated.lead_id == second_instructor.id

    def test_update_does_not_conflict_with_itself(self, db_session: Session, instructor, make_event):
        event = make_event(start_time=NOW + timedelta(days=3))

        events.update_event(
            db_session,
            event.id,
            draft(instructor.id, start_time=event.start_time + timedelta(minutes=10)),
            now=NOW,
        )

    def test_update_into_conflict_rejected(self, db_session: Session, instructor, make_event):
        other = make_event(start_time=NOW + timedelta(days=3))
        event = make_event(start_time=NOW + timedelta(days=5))

        with pytest.raises(ConflictError):
            events.update_event(
                db_session,
                event.id,
                draft(instructor.id, start_time=other.start_time + timedelta(minutes=5)),
                now=NOW,
            )

    def test_update_keeps_assigned_lesson_plan(self, db_session: Session, instructor, make_event, lesson_plan_ids):
        event = make_event(lesson_plan_id=lesson_plan_ids[0])

        events.update_event(
            db_session,
            event.id,
            draft(instructor.id, lesson_plan_id=lesson_plan_ids[1]),
            now=NOW,
        )

        assert event.lesson_plan_id == lesson_plan_ids[0]

    def test_update_unknown_event(self, db_session: Session, instructor):
        with pytest.raises(ResourceNotFoundError):
            events.update_event(db_session, uuid.uuid4(), draft(instructor.id), now=NOW)

    def test_update_without_draft(self, db_session: Session, make_event):
        event = make_event()

        with pytest.raises(InvalidPayloadError):
            events.update_event(db_session, event.id, None, now=NOW)


class TestDeleteAndGet:
    """Test delete_event(), get_event() and find_event()."""

    def test_delete_event(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        events.delete_event(db_session, event.id)

        assert events.find_event(db_session, event.id) is None
        assert db_session.scalars(select(EventParticipant)).all() == []

    def test_get_unknown_event(self, db_session: Session):
        assert events.find_event(db_session, uuid.uuid4()) is None
        with pytest.raises(ResourceNotFoundError):
            events.get_event(db_session, uuid.uuid4())

    def test_delete_unknown_event(self, db_session: Session):
        with pytest.raises(ResourceNotFoundError):
            events.delete_event(db_session, uuid.uuid4())


class TestListings:
    """Test list_events() and get_upcoming_events()."""

    def test_list_events_ordered_and_filtered(self, db_session: Session, make_event):
        late = make_event(start_time=NOW + timedelta(days=10))
        early = make_event(start_time=NOW + timedelta(days=1))
        middle = make_event(start_time=NOW + timedelta(days=5))

        assert [e.id for e in events.list_events(db_session)] == [early.id, middle.id, late.id]
        assert [
            e.id
            for e in events.list_events(
                db_session,
                start=NOW + timedelta(days=2),
                end=NOW + timedelta(days=6),
            )
        ] == [middle.id]

    def test_upcoming_filters(self, db_session: Session, make_event):
        """Upcoming lists future, public events of the requested type only."""
        wanted = make_event(start_time=NOW + timedelta(days=2), event_type=EventType.SEMINAR)
        make_event(start_time=NOW - timedelta(days=2), event_type=EventType.SEMINAR)
        make_event(start_time=NOW + timedelta(days=3), event_type=EventType.SEMINAR, private=True)
        make_event(start_time=NOW + timedelta(days=4), event_type=EventType.MEETING)

        upcoming = events.get_upcoming_events(db_session, EventType.SEMINAR, 5, now=NOW)

        assert [e.id for e in upcoming] == [wanted.id]

    def test_upcoming_capped_at_ten(self, db_session: Session, make_event):
        created = [
            make_event(start_time=NOW + timedelta(days=day), event_type=EventType.SEMINAR)
            for day in range(1, 13)
        ]

        upcoming = events.get_upcoming_events(db_session, EventType.SEMINAR, 50, now=NOW)

        assert len(upcoming) == MAX_UPCOMING_COUNT
        assert [e.id for e in upcoming] == [e.id for e in created[:MAX_UPCOMING_COUNT]]

    def test_upcoming_respects_smaller_count(self, db_session: Session, make_event):
        for day in range(1, 4):
            make_event(start_time=NOW + timedelta(days=day), event_type=EventType.SEMINAR)

        assert len(events.get_upcoming_events(db_session, EventType.SEMINAR, 2, now=NOW)) == 2
        assert events.get_upcoming_events(db_session, EventType.SEMINAR, 0, now=NOW) == []


class TestLifecycle:
    """Test start_event() and complete_event()."""

    def test_start_event(self, db_session: Session, make_event):
        event = make_event(start_time=NOW + timedelta(minutes=10))

        started = events.start_event(db_session, event.id, now=NOW)

        assert started.started is True
        assert started.start_time == NOW
        assert len(started.checkin_code) == 4
        assert started.checkin_code.isalnum()
        assert started.checkin_code == started.checkin_code.upper()

    def test_start_is_idempotent(self, db_session: Session, make_event):
        event = make_event()
        events.start_event(db_session, event.id, now=NOW)
        code = event.checkin_code

        events.start_event(db_session, event.id, now=NOW + timedelta(hours=1))

        assert event.start_time == NOW
        assert event.checkin_code == code

    def test_start_without_code(self, db_session: Session, make_event):
        event = make_event()

        events.start_event(db_session, event.id, now=NOW, generate_code=False)

        assert event.started is True
        assert event.checkin_code is None

    def test_complete_started_event(self, db_session: Session, make_event):
        event = make_event()
        events.start_event(db_session, event.id, now=NOW)

        done = NOW + timedelta(hours=2)
        events.complete_event(db_session, event.id, now=done)

        assert event.completed is True
        assert event.completed_time == done
        assert event.start_time == NOW
        assert event.checkin_code is None
        assert events.get_checkin_code(db_session, event.id) is None

    def test_complete_implicitly_starts(self, db_session: Session, make_event):
        event = make_event()

        events.complete_event(db_session, event.id, now=NOW)

        assert event.started is True
        assert event.completed is True
        assert event.start_time == NOW

    def test_lifecycle_unknown_event(self, db_session: Session):
        with pytest.raises(ResourceNotFoundError):
            events.start_event(db_session, uuid.uuid4(), now=NOW)
        with pytest.raises(ResourceNotFoundError):
            events.complete_event(db_session, uuid.uuid4(), now=NOW)

    def test_get_checkin_code(self, db_session: Session, make_event):
        event = make_event()
        assert events.get_checkin_code(db_session, event.id) is None

        events.start_event(db_session, event.id, now=NOW)

        assert events.get_checkin_code(db_session, event.id) == event.checkin_code
        assert events.get_checkin_code(db_session, uuid.uuid4()) is None

    def test_generate_checkin_code(self):
        codes = {generate_checkin_code() for _ in range(20)}
        assert all(len(code) == 4 for code in codes)


class TestComposedReads:
    """Test supporting instructors, detail and summary."""

    def test_supporting_instructors_exclude_lead_and_students(
        self, db_session: Session, directories, make_event, instructor, second_instructor, student
    ):
        event = make_event(lead_id=instructor.id)
        for user in (instructor, second_instructor, student):
            participants.register(db_session, directories.users, event.id, user.id, NOW)

        assert events.get_supporting_instructors(db_session, directories.users, event.id) == [
            second_instructor.id
        ]

    def test_supporting_instructors_exclude_declined(
        self, db_session: Session, directories, make_event, second_instructor
    ):
        event = make_event()
        participants.rsvp(db_session, directories.users, event.id, second_instructor.id, False, NOW)

        assert events.get_supporting_instructors(db_session, directories.users, event.id) == []

    def test_event_detail(self, db_session: Session, directories, make_event, student, address):
        event = make_event(address_id=address.id)
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        detail = events.get_event_detail(db_session, directories.addresses, event.id)

        assert detail.event is event
        assert detail.participant_ids == [student.id]
        assert detail.address == address

    def test_event_summary(
        self, db_session: Session, directories, make_event, instructor, student, other_student,
        lesson_plan_ids, address,
    ):
        event = make_event(lead_id=instructor.id, lesson_plan_id=lesson_plan_ids[1], address_id=address.id)
        participants.register(db_session, directories.users, event.id, student.id, NOW)
        participants.unregister(db_session, directories.users, event.id, other_student.id, NOW)

        summary = events.get_event_summary(
            db_session, directories.users, directories.lesson_plans, directories.addresses, event.id
        )

        assert summary.id == event.id
        assert summary.lead == "Ivy Instructor"
        assert summary.participant_count == 1
        assert summary.lessons == ["Lesson 2"]
        assert summary.address == address

    def test_event_summary_without_plan(self, db_session: Session, directories, make_event):
        event = make_event(lead_id=uuid.uuid4())

        summary = events.get_event_summary(
            db_session, directories.users, directories.lesson_plans, directories.addresses, event.id
        )

        assert summary.lead is None
        assert summary.lessons == []
        assert summary.address is None
