"""
Participant state machine.

States per (event, user) pair:

    Unregistered -> Registered -> {Confirmed, Declined} -> CheckedIn

- Unregistered: no EventParticipant row
- Registered: row exists, not declined
- Confirmed / Declined: RSVP given (exactly one of the two flags is true)
- CheckedIn: reachable only from a non-declined state
- Declined is reachable from any state (explicit decline or unregister)

Every transition reads the pair's row under a row lock; the first insert for
a pair runs in a SAVEPOINT so a concurrent insert surfaces as an
IntegrityError on the unique constraint and is resolved by re-reading the
winner's row. At most one row per pair ever exists.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.integrations.base import User, UserDirectory
from src.models.base import utcnow
from src.models.events import Event, EventParticipant
from src.services.exceptions import ResourceNotFoundError
from src.services.locks import lock_participant

logger = logging.getLogger(__name__)

# Registering this close to the start counts as an RSVP
AUTO_CONFIRM_WINDOW = timedelta(hours=24)


# =============================================================================
# Helpers
# =============================================================================


def require_event(session: Session, event_id: uuid.UUID) -> Event:
    """
    Get an event or fail.

    Raises:
        ResourceNotFoundError: If the event does not exist
    """
    event = session.get(Event, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")
    return event


def require_user(users: UserDirectory, user_id: uuid.UUID) -> User:
    """
    Get a user from the directory or fail.

    Raises:
        ResourceNotFoundError: If the user does not exist
    """
    user = users.get_user(user_id)
    if user is None:
        raise ResourceNotFoundError(f"User {user_id} not found")
    return user


def _live_condition():
    return or_(EventParticipant.declined.is_(None), EventParticipant.declined.is_(False))


def _get_or_create(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
) -> tuple[EventParticipant, bool]:
    """
    Lock the pair's row, inserting an empty one if none exists.

    Returns:
        (participant, created)
    """
    participant = lock_participant(session, event_id, user_id)
    if participant is not None:
        return participant, False

    participant = EventParticipant(event_id=event_id, user_id=user_id)
    try:
        with session.begin_nested():
            session.add(participant)
    except IntegrityError:
        # Lost the insert race; the other transaction's row is the record
        logger.info(f"Concurrent registration for event {event_id}, user {user_id}; reusing row")
        participant = lock_participant(session, event_id, user_id)
        if participant is None:
            raise
        return participant, False

    return participant, True


def _codes_match(expected: Optional[str], supplied: Optional[str]) -> bool:
    if expected is None or supplied is None:
        return False
    return expected.casefold() == supplied.casefold()


# =============================================================================
# Transitions
# =============================================================================


def register(
    session: Session,
    users: UserDirectory,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> EventParticipant:
    """
    Register a user for an event.

    No-op when the user is already registered. A declined record is revived
    in place. Registering within 24 hours of the start auto-confirms.

    Args:
        session: Database session
        users: User directory (existence check)
        event_id: Event ID
        user_id: User ID
        now: Reference time (default: now)

    Returns:
        The participation record

    Raises:
        ResourceNotFoundError: If the event or user does not exist
    """
    if now is None:
        now = utcnow()

    event = require_event(session, event_id)
    require_user(users, user_id)

    participant, created = _get_or_create(session, event_id, user_id)
    if not created and participant.is_live:
        return participant

    if not created:
        participant.confirmed = None
        participant.declined = None
        participant.confirmation_time = None

    if event.start_time - now <= AUTO_CONFIRM_WINDOW:
        participant.confirmed = True
        participant.confirmation_time = now

    session.flush()
    logger.info(
        f"Registered user {user_id} for event {event_id}"
        + (" (auto-confirmed)" if participant.confirmed else "")
    )
    return participant


def unregister(
    session: Session,
    users: UserDirectory,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> EventParticipant:
    """
    Unregister a user: move the record to declined.

    Creates a declined record if the user never interacted with the event.
    Unregistering a declined record leaves it untouched.

    Raises:
        ResourceNotFoundError: If the event or user does not exist
    """
    if now is None:
        now = utcnow()

    require_event(session, event_id)
    require_user(users, user_id)

    participant, created = _get_or_create(session, event_id, user_id)
    if not created and participant.declined and participant.confirmed is False:
        return participant

    participant.confirmed = False
    participant.declined = True
    participant.confirmation_time = now
    session.flush()

    logger.info(f"Unregistered user {user_id} from event {event_id}")
    return participant


def rsvp(
    session: Session,
    users: UserDirectory,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    confirm: bool,
    now: Optional[datetime] = None,
) -> EventParticipant:
    """
    Record an RSVP, registering the user first if needed.

    Afterwards exactly one of confirmed/declined is true.

    Raises:
        ResourceNotFoundError: If the event or user does not exist
    """
    if now is None:
        now = utcnow()

    participant = register(session, users, event_id, user_id, now)
    participant.confirmed = confirm
    participant.declined = not confirm
    participant.confirmation_time = now
    session.flush()

    logger.info(f"User {user_id} {'confirmed' if confirm else 'declined'} event {event_id}")
    return participant


def checkin(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    code: Optional[str],
    now: Optional[datetime] = None,
) -> bool:
    """
    Check a participant in.

    A refused check-in is an outcome, not an error. Refused when:
    - the user has no live participation record
    - the user is already checked in
    - the event requires a code and `code` does not match (case-insensitive)

    Returns:
        True if the participant was checked in by this call
    """
    if now is None:
        now = utcnow()

    event = session.get(Event, event_id)
    if event is None:
        logger.warning(f"Check-in refused: event {event_id} not found")
        return False

    participant = lock_participant(session, event_id, user_id)
    if participant is None or not participant.is_live:
        logger.warning(f"Check-in refused: user {user_id} not registered for event {event_id}")
        return False

    if participant.checked_in:
        logger.info(f"Check-in refused: user {user_id} already checked in to event {event_id}")
        return False

    if event.checkin_code_required and not _codes_match(event.checkin_code, code):
        logger.warning(f"Check-in refused: wrong code from user {user_id} for event {event_id}")
        return False

    participant.checked_in = True
    participant.checkin_time = now
    session.flush()

    logger.info(f"Checked in user {user_id} to event {event_id}")
    return True


def set_membership(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    member: bool,
) -> EventParticipant:
    """
    Set the membership flag on an existing participation record.

    Raises:
        ResourceNotFoundError: If the user has no record for the event
    """
    participant = lock_participant(session, event_id, user_id)
    if participant is None:
        raise ResourceNotFoundError(f"User {user_id} is not a participant of event {event_id}")

    participant.member = member
    session.flush()
    return participant


# =============================================================================
# Queries
# =============================================================================


def get_participant(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Optional[EventParticipant]:
    """Get the (event, user) participation record, if any."""
    stmt = select(EventParticipant).where(
        EventParticipant.event_id == event_id,
        EventParticipant.user_id == user_id,
    )
    return session.scalar(stmt)


def is_registered(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    """True iff a live (non-declined) record exists."""
    participant = get_participant(session, event_id, user_id)
    return participant is not None and participant.is_live


def did_check_in(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    participant = get_participant(session, event_id, user_id)
    return participant is not None and bool(participant.checked_in)


def did_rsvp(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    """True iff the user confirmed or declined."""
    participant = get_participant(session, event_id, user_id)
    return participant is not None and bool(participant.confirmed or participant.declined)


def get_membership(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> Optional[bool]:
    """
    Get the membership flag (None when never set).

    Raises:
        ResourceNotFoundError: If the user has no record for the event
    """
    participant = get_participant(session, event_id, user_id)
    if participant is None:
        raise ResourceNotFoundError(f"User {user_id} is not a participant of event {event_id}")
    return participant.member


def list_registered_user_ids(session: Session, event_id: uuid.UUID) -> list[uuid.UUID]:
    """Users with a live registration, in registration order."""
    stmt = (
        select(EventParticipant.user_id)
        .where(and_(EventParticipant.event_id == event_id, _live_condition()))
        .order_by(EventParticipant.created_at)
    )
    return list(session.scalars(stmt).all())


def count_registered(session: Session, event_id: uuid.UUID) -> int:
    stmt = (
        select(func.count())
        .select_from(EventParticipant)
        .where(and_(EventParticipant.event_id == event_id, _live_condition()))
    )
    return session.scalar(stmt) or 0


def list_checked_in_user_ids(session: Session, event_id: uuid.UUID) -> list[uuid.UUID]:
    """Users who checked in, in check-in order."""
    stmt = (
        select(EventParticipant.user_id)
        .where(
            EventParticipant.event_id == event_id,
            EventParticipant.checked_in.is_(True),
        )
        .order_by(EventParticipant.checkin_time)
    )
    return list(session.scalars(stmt).all())


def list_rsvped_user_ids(
    session: Session,
    event_id: uuid.UUID,
    confirmed: Optional[bool] = None,
) -> list[uuid.UUID]:
    """
    Users who answered the RSVP.

    Args:
        session: Database session
        event_id: Event ID
        confirmed: None for any answer, True for confirmed only, False for
            declined only

    Returns:
        User IDs ordered by answer time
    """
    if confirmed is None:
        answered = or_(
            EventParticipant.confirmed.is_(True),
            EventParticipant.declined.is_(True),
        )
    elif confirmed:
        answered = EventParticipant.confirmed.is_(True)
    else:
        answered = EventParticipant.declined.is_(True)

    stmt = (
        select(EventParticipant.user_id)
        .where(and_(EventParticipant.event_id == event_id, answered))
        .order_by(EventParticipant.confirmation_time)
    )
    return list(session.scalars(stmt).all())


def list_participants(session: Session, event_id: uuid.UUID) -> Sequence[EventParticipant]:
    """Every participation record of an event, declined included."""
    stmt = (
        select(EventParticipant)
        .where(EventParticipant.event_id == event_id)
        .order_by(EventParticipant.created_at)
    )
    return session.scalars(stmt).all()
