"""
Event lifecycle service.

Orchestrates the conflict validator, the participant queries and the
directories to implement:
- create / update / delete / get / list
- upcoming events for public listings
- start / complete transitions (check-in code issue and clearing)
- composed read views (detail, summary, supporting instructors)

Functions take the request-scoped session and flush; the caller commits.
"""

import logging
import secrets
import string
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from src.integrations.base import (
    Address,
    AddressDirectory,
    LessonPlanDirectory,
    Role,
    UserDirectory,
)
from src.models.base import utcnow
from src.models.events import CHECKIN_CODE_LENGTH, Event, EventType
from src.services.conflicts import validate_schedule
from src.services.exceptions import InvalidPayloadError, ResourceNotFoundError
from src.services.locks import acquire_schedule_lock, lock_event
from src.services.participants import count_registered, list_registered_user_ids

logger = logging.getLogger(__name__)

MAX_UPCOMING_COUNT = 10
CHECKIN_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class EventDraft:
    """
    Caller-supplied event fields for create and update.

    Lifecycle fields (started, completed, check-in code) and the assigned
    lesson plan are not part of a draft; the services own them.
    """

    title: str
    start_time: Optional[datetime]
    lead_id: uuid.UUID
    event_type: EventType = EventType.OTHER
    private: bool = False
    checkin_code_required: bool = False
    lesson_plan_id: Optional[uuid.UUID] = None
    address_id: Optional[uuid.UUID] = None
    calendar_url: Optional[str] = None


@dataclass(frozen=True)
class EventDetail:
    """An event with its registered participants and venue."""

    event: Event
    participant_ids: list[uuid.UUID] = field(default_factory=list)
    address: Optional[Address] = None


@dataclass(frozen=True)
class EventSummary:
    """Public-facing summary of an event."""

    id: uuid.UUID
    title: str
    start_time: datetime
    private: bool
    lead: Optional[str]
    participant_count: int
    lessons: list[str] = field(default_factory=list)
    address: Optional[Address] = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_checkin_code(length: int = CHECKIN_CODE_LENGTH) -> str:
    """Random code of uppercase letters and digits."""
    return "".join(secrets.choice(CHECKIN_CODE_ALPHABET) for _ in range(length))


# =============================================================================
# CRUD
# =============================================================================


def create_event(
    session: Session,
    lesson_plans: LessonPlanDirectory,
    draft: Optional[EventDraft],
    now: Optional[datetime] = None,
) -> Event:
    """
    Validate and persist a new event.

    Args:
        session: Database session
        lesson_plans: Lesson plan directory (checks an initial plan, if given)
        draft: Event fields
        now: Reference time for conflict checks (default: now)

    Returns:
        The created event (flushed, ID assigned)

    Raises:
        InvalidPayloadError: Draft or start time missing
        ConflictError: Another future event starts within 30 minutes
        ResourceNotFoundError: Initial lesson plan does not exist
    """
    acquire_schedule_lock(session)
    validate_schedule(session, draft, now=now)

    if draft.lesson_plan_id is not None and not lesson_plans.exists_lesson_plan(draft.lesson_plan_id):
        raise ResourceNotFoundError(f"Lesson plan {draft.lesson_plan_id} not found")

    event = Event(
        title=draft.title,
        start_time=_as_utc(draft.start_time),
        lead_id=draft.lead_id,
        event_type=draft.event_type,
        private=draft.private,
        checkin_code_required=draft.checkin_code_required,
        lesson_plan_id=draft.lesson_plan_id,
        address_id=draft.address_id,
        calendar_url=draft.calendar_url,
    )
    session.add(event)
    session.flush()

    logger.info(f"Created event {event.id} '{event.title}' at {event.start_time.isoformat()}")
    return event


def update_event(
    session: Session,
    event_id: uuid.UUID,
    draft: Optional[EventDraft],
    now: Optional[datetime] = None,
) -> Event:
    """
    Validate and apply new field values to an existing event.

    The event's own stored row is excluded from the conflict check.

    Raises:
        ResourceNotFoundError: Event does not exist
        InvalidPayloadError: Draft or start time missing
        ConflictError: Another future event starts within 30 minutes
    """
    if draft is None:
        raise InvalidPayloadError("No event information was provided")

    acquire_schedule_lock(session)
    event = lock_event(session, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")

    validate_schedule(session, draft, exclude_event_id=event_id, now=now)

    event.title = draft.title
    event.start_time = _as_utc(draft.start_time)
    event.lead_id = draft.lead_id
    event.event_type = draft.event_type
    event.private = draft.private
    event.checkin_code_required = draft.checkin_code_required
    event.address_id = draft.address_id
    event.calendar_url = draft.calendar_url
    session.flush()

    logger.info(f"Updated event {event_id}")
    return event


def delete_event(session: Session, event_id: uuid.UUID) -> None:
    """
    Delete an event with its participants and votes.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    event = get_event(session, event_id)
    session.delete(event)
    session.flush()
    logger.info(f"Deleted event {event_id}")


def find_event(session: Session, event_id: uuid.UUID) -> Optional[Event]:
    """Get an event by ID, or None."""
    return session.get(Event, event_id)


def get_event(session: Session, event_id: uuid.UUID) -> Event:
    """
    Get an event by ID.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    event = find_event(session, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")
    return event


def list_events(
    session: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Sequence[Event]:
    """
    List events ordered by start time.

    Args:
        session: Database session
        start: Only events starting at or after this time
        end: Only events starting at or before this time

    Returns:
        Events ordered by start time
    """
    conditions = []
    if start is not None:
        conditions.append(Event.start_time >= start)
    if end is not None:
        conditions.append(Event.start_time <= end)

    stmt = select(Event).where(and_(True, *conditions)).order_by(Event.start_time)
    return session.scalars(stmt).all()


def get_upcoming_events(
    session: Session,
    event_type: EventType,
    count: int,
    now: Optional[datetime] = None,
) -> Sequence[Event]:
    """
    Get the next public events of a type.

    Args:
        session: Database session
        event_type: Category to list
        count: Requested number of events (capped at 10)
        now: Reference time (default: now)

    Returns:
        Future, non-private events of the type, earliest first
    """
    if now is None:
        now = utcnow()

    limit = min(count, MAX_UPCOMING_COUNT)
    if limit <= 0:
        return []

    stmt = (
        select(Event)
        .where(
            and_(
                Event.start_time > now,
                Event.private.is_(False),
                Event.event_type == event_type,
            )
        )
        .order_by(Event.start_time)
        .limit(limit)
    )
    return session.scalars(stmt).all()


# =============================================================================
# Lifecycle
# =============================================================================


def start_event(
    session: Session,
    event_id: uuid.UUID,
    now: Optional[datetime] = None,
    generate_code: bool = True,
) -> Event:
    """
    Start an event: record the actual start time and issue a check-in code.

    No-op when the event is already started.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    if now is None:
        now = utcnow()

    event = lock_event(session, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")

    if event.started:
        return event

    event.started = True
    event.start_time = now
    if generate_code:
        event.checkin_code = generate_checkin_code()
    session.flush()

    logger.info(f"Started event {event_id}")
    return event


def complete_event(
    session: Session,
    event_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Event:
    """
    Complete an event, starting it first if needed, and clear its check-in code.

    No-op when the event is already completed.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    if now is None:
        now = utcnow()

    event = lock_event(session, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")

    if event.completed:
        return event

    if not event.started:
        event.started = True
        event.start_time = now
    event.completed = True
    event.completed_time = now
    event.checkin_code = None
    session.flush()

    logger.info(f"Completed event {event_id}")
    return event


def get_checkin_code(session: Session, event_id: uuid.UUID) -> Optional[str]:
    """Current check-in code; None when the event or code is absent."""
    event = find_event(session, event_id)
    return event.checkin_code if event is not None else None


# =============================================================================
# Composed reads
# =============================================================================


def get_supporting_instructors(
    session: Session,
    users: UserDirectory,
    event_id: uuid.UUID,
) -> list[uuid.UUID]:
    """
    Registered instructors other than the lead.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    event = get_event(session, event_id)

    instructors = []
    for user_id in list_registered_user_ids(session, event_id):
        if user_id == event.lead_id or user_id in instructors:
            continue
        user = users.get_user(user_id)
        if user is None:
            logger.warning(f"Participant {user_id} of event {event_id} missing from user directory")
            continue
        if user.role == Role.INSTRUCTOR:
            instructors.append(user_id)
    return instructors


def get_event_detail(
    session: Session,
    addresses: AddressDirectory,
    event_id: uuid.UUID,
) -> EventDetail:
    """
    Event with participant IDs and resolved address.

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    event = get_event(session, event_id)
    address = addresses.get_address(event.address_id) if event.address_id else None
    return EventDetail(
        event=event,
        participant_ids=list_registered_user_ids(session, event_id),
        address=address,
    )


def get_event_summary(
    session: Session,
    users: UserDirectory,
    lesson_plans: LessonPlanDirectory,
    addresses: AddressDirectory,
    event_id: uuid.UUID,
) -> EventSummary:
    """
    Compose the public summary of an event.

    - lead: the lead's display name (None if unknown to the directory)
    - participant_count: live registrations
    - lessons: titles of the assigned plan's lesson activities

    Raises:
        ResourceNotFoundError: Event does not exist
    """
    event = get_event(session, event_id)

    lead = users.get_user(event.lead_id)
    lessons: list[str] = []
    if event.lesson_plan_id is not None:
        plan = lesson_plans.get_lesson_plan(event.lesson_plan_id)
        if plan is not None:
            lessons = plan.lesson_titles
    address = addresses.get_address(event.address_id) if event.address_id else None

    return EventSummary(
        id=event.id,
        title=event.title,
        start_time=event.start_time,
        private=event.private,
        lead=lead.display_name if lead is not None else None,
        participant_count=count_registered(session, event_id),
        lessons=lessons,
        address=address,
    )
