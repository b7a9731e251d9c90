"""
Unit tests for the participant state machine.

Tests registration (with 24-hour auto-confirm), unregistering, RSVP,
check-in codes, membership and the participant queries.
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.models.events import EventParticipant
from src.services import participants
from src.services.exceptions import ResourceNotFoundError
from tests.conftest import NOW


def count_rows(session: Session, event_id, user_id) -> int:
    return session.scalar(
        select(func.count())
        .select_from(EventParticipant)
        .where(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
    )


class TestRegister:
    """Test register()."""

    def test_register_far_from_start(self, db_session: Session, directories, make_event, student):
        """Registering more than 24 hours ahead leaves the RSVP open."""
        event = make_event(start_time=NOW + timedelta(days=5))

        participant = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participant.is_live
        assert participant.confirmed is None
        assert participant.declined is None
        assert participants.is_registered(db_session, event.id, student.id)
        assert not participants.did_rsvp(db_session, event.id, student.id)

    def test_register_within_24_hours_auto_confirms(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event(start_time=NOW + timedelta(hours=23))

        participant = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participant.confirmed is True
        assert participant.confirmation_time == NOW
        assert participants.did_rsvp(db_session, event.id, student.id)

    def test_register_exactly_24_hours_auto_confirms(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event(start_time=NOW + timedelta(hours=24))

        participant = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participant.confirmed is True

    def test_register_is_idempotent(self, db_session: Session, directories, make_event, student):
        """Registering twice keeps a single record and changes nothing."""
        event = make_event()

        first = participants.register(db_session, directories.users, event.id, student.id, NOW)
        second = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert first.id == second.id
        assert count_rows(db_session, event.id, student.id) == 1

    def test_register_revives_declined_record(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event()
        participants.unregister(db_session, directories.users, event.id, student.id, NOW)

        participant = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participant.is_live
        assert participant.declined is None
        assert participant.confirmed is None
        assert count_rows(db_session, event.id, student.id) == 1

    def test_register_unknown_event(self, db_session: Session, directories, student):
        with pytest.raises(ResourceNotFoundError):
            participants.register(db_session, directories.users, uuid.uuid4(), student.id, NOW)

    def test_register_unknown_user(self, db_session: Session, directories, make_event):
        event = make_event()

        with pytest.raises(ResourceNotFoundError):
            participants.register(db_session, directories.users, event.id, uuid.uuid4(), NOW)


class TestUnregister:
    """Test unregister()."""

    def test_unregister_declines(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        participant = participants.unregister(db_session, directories.users, event.id, student.id, NOW)

        assert participant.declined is True
        assert participant.confirmed is False
        assert not participants.is_registered(db_session, event.id, student.id)
        assert participants.count_registered(db_session, event.id) == 0

    def test_unregister_without_record_creates_declined(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event()

        participants.unregister(db_session, directories.users, event.id, student.id, NOW)

        assert count_rows(db_session, event.id, student.id) == 1
        assert participants.did_rsvp(db_session, event.id, student.id)

    def test_unregister_twice_keeps_first_time(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event()
        participants.unregister(db_session, directories.users, event.id, student.id, NOW)

        later = NOW + timedelta(hours=1)
        participant = participants.unregister(db_session, directories.users, event.id, student.id, later)

        assert participant.confirmation_time == NOW


class TestRsvp:
    """Test rsvp()."""

    def test_confirm_registers_first(self, db_session: Session, directories, make_event, student):
        event = make_event()

        participant = participants.rsvp(db_session, directories.users, event.id, student.id, True, NOW)

        assert participant.confirmed is True
        assert participant.declined is False
        assert participants.is_registered(db_session, event.id, student.id)

    def test_decline_after_confirm(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.rsvp(db_session, directories.users, event.id, student.id, True, NOW)

        participant = participants.rsvp(db_session, directories.users, event.id, student.id, False, NOW)

        assert participant.confirmed is False
        assert participant.declined is True
        assert not participants.is_registered(db_session, event.id, student.id)

    def test_confirm_after_decline(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.rsvp(db_session, directories.users, event.id, student.id, False, NOW)

        participant = participants.rsvp(db_session, directories.users, event.id, student.id, True, NOW)

        assert participant.confirmed is True
        assert participant.declined is False
        assert count_rows(db_session, event.id, student.id) == 1


class TestCheckin:
    """Test checkin()."""

    def test_checkin_without_code_requirement(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participants.checkin(db_session, event.id, student.id, None, NOW) is True
        assert participants.did_check_in(db_session, event.id, student.id)

    def test_checkin_code_is_case_insensitive(
        self, db_session: Session, directories, make_event, student
    ):
        event = make_event(started=True, checkin_code="AB12", checkin_code_required=True)
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participants.checkin(db_session, event.id, student.id, "ab12", NOW) is True

    def test_wrong_code_refused(self, db_session: Session, directories, make_event, student):
        event = make_event(started=True, checkin_code="AB12", checkin_code_required=True)
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participants.checkin(db_session, event.id, student.id, "ZZ99", NOW) is False
        assert participants.checkin(db_session, event.id, student.id, None, NOW) is False
        assert not participants.did_check_in(db_session, event.id, student.id)

    def test_required_code_not_issued_refused(
        self, db_session: Session, directories, make_event, student
    ):
        """A required code that was never issued cannot be matched."""
        event = make_event(checkin_code_required=True)
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participants.checkin(db_session, event.id, student.id, "AB12", NOW) is False

    def test_unregistered_user_refused(self, db_session: Session, make_event, student):
        event = make_event()

        assert participants.checkin(db_session, event.id, student.id, None, NOW) is False

    def test_declined_user_refused(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.rsvp(db_session, directories.users, event.id, student.id, False, NOW)

        assert participants.checkin(db_session, event.id, student.id, None, NOW) is False

    def test_second_checkin_refused(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)
        participants.checkin(db_session, event.id, student.id, None, NOW)

        assert participants.checkin(db_session, event.id, student.id, None, NOW) is False

    def test_unknown_event_refused(self, db_session: Session, student):
        assert participants.checkin(db_session, uuid.uuid4(), student.id, None, NOW) is False


class TestMembership:
    """Test set_membership() and get_membership()."""

    def test_membership_round_trip(self, db_session: Session, directories, make_event, student):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participants.get_membership(db_session, event.id, student.id) is None

        participants.set_membership(db_session, event.id, student.id, True)

        assert participants.get_membership(db_session, event.id, student.id) is True
        assert participants.is_registered(db_session, event.id, student.id)

    def test_membership_requires_record(self, db_session: Session, make_event, student):
        event = make_event()

        with pytest.raises(ResourceNotFoundError):
            participants.set_membership(db_session, event.id, student.id, True)
        with pytest.raises(ResourceNotFoundError):
            participants.get_membership(db_session, event.id, student.id)


class TestQueries:
    """Test the event-level participant queries."""

    def test_registered_excludes_declined(
        self, db_session: Session, directories, make_event, student, other_student, instructor
    ):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)
        participants.register(db_session, directories.users, event.id, instructor.id, NOW)
        participants.unregister(db_session, directories.users, event.id, other_student.id, NOW)

        assert set(participants.list_registered_user_ids(db_session, event.id)) == {
            student.id,
            instructor.id,
        }
        assert participants.count_registered(db_session, event.id) == 2
        assert len(participants.list_participants(db_session, event.id)) == 3

    def test_rsvp_filters(
        self, db_session: Session, directories, make_event, student, other_student, instructor
    ):
        event = make_event()
        participants.rsvp(db_session, directories.users, event.id, student.id, True, NOW)
        participants.rsvp(db_session, directories.users, event.id, other_student.id, False, NOW)
        participants.register(db_session, directories.users, event.id, instructor.id, NOW)

        assert set(participants.list_rsvped_user_ids(db_session, event.id)) == {
            student.id,
            other_student.id,
        }
        assert participants.list_rsvped_user_ids(db_session, event.id, confirmed=True) == [student.id]
        assert participants.list_rsvped_user_ids(db_session, event.id, confirmed=False) == [
            other_student.id
        ]

    def test_checked_in_list(
        self, db_session: Session, directories, make_event, student, other_student
    ):
        event = make_event()
        participants.register(db_session, directories.users, event.id, student.id, NOW)
        participants.register(db_session, directories.users, event.id, other_student.id, NOW)
        participants.checkin(db_session, event.id, other_student.id, None, NOW)

        assert participants.list_checked_in_user_ids(db_session, event.id) == [other_student.id]


def lose_first_lookup(real_lookup):
    """Wrap a row-lock lookup so its first call misses a row another transaction already inserted."""
    calls = {"count": 0}

    def lookup(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_lookup(*args, **kwargs)

    return lookup


class TestConcurrentRegistration:
    """The insert path when another transaction created the row first."""

    def test_register_reuses_winning_row(
        self, db_session: Session, directories, make_event, student, monkeypatch
    ):
        event = make_event(start_time=NOW + timedelta(days=5))
        winner = EventParticipant(event_id=event.id, user_id=student.id, member=True)
        db_session.add(winner)
        db_session.flush()
        monkeypatch.setattr(participants, "lock_participant", lose_first_lookup(participants.lock_participant))

        participant = participants.register(db_session, directories.users, event.id, student.id, NOW)

        assert participant.id == winner.id
        assert participant.member is True
        assert count_rows(db_session, event.id, student.id) == 1
        assert participants.is_registered(db_session, event.id, student.id)

    def test_rsvp_applies_to_winning_row(
        self, db_session: Session, directories, make_event, student, monkeypatch
    ):
        event = make_event(start_time=NOW + timedelta(days=5))
        winner = EventParticipant(event_id=event.id, user_id=student.id)
        db_session.add(winner)
        db_session.flush()
        monkeypatch.setattr(participants, "lock_participant", lose_first_lookup(participants.lock_participant))

        participant = participants.rsvp(db_session, directories.users, event.id, student.id, False, NOW)

        assert participant.id == winner.id
        assert participant.declined is True
        assert count_rows(db_session, event.id, student.id) == 1
