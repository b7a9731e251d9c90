"""
Scheduling conflict validation.

Two future events may not start within 30 minutes of each other. The window
is exclusive: events exactly 30 minutes apart do not conflict.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from src.models.base import utcnow
from src.models.events import Event
from src.services.exceptions import ConflictError, InvalidPayloadError

logger = logging.getLogger(__name__)

CONFLICT_WINDOW = timedelta(minutes=30)


def find_conflicting_events(
    session: Session,
    start_time: datetime,
    exclude_event_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> Sequence[Event]:
    """
    Find future events starting strictly inside the window around a start time.

    Args:
        session: Database session
        start_time: Candidate start time
        exclude_event_id: Event to leave out (the candidate itself on update)
        now: Reference time for "future" (default: now)

    Returns:
        Conflicting events ordered by start time
    """
    if now is None:
        now = utcnow()

    conditions = [
        Event.start_time > now,
        Event.start_time > start_time - CONFLICT_WINDOW,
        Event.start_time < start_time + CONFLICT_WINDOW,
    ]
    if exclude_event_id is not None:
        conditions.append(Event.id != exclude_event_id)

    stmt = select(Event).where(and_(*conditions)).order_by(Event.start_time)
    return session.scalars(stmt).all()


def validate_schedule(
    session: Session,
    candidate: Any,
    exclude_event_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Validate a candidate event against the stored schedule.

    Args:
        session: Database session
        candidate: Anything with a `start_time` (request model or Event row);
            an `id` attribute, when present, is excluded from the comparison
        exclude_event_id: Stored event to exclude explicitly
        now: Reference time for "future" (default: now)

    Raises:
        InvalidPayloadError: Candidate or its start time is missing
        ConflictError: Another future event starts within the window
    """
    if candidate is None:
        msg = "No event information was provided"
        logger.warning(msg)
        raise InvalidPayloadError(msg)

    start_time = getattr(candidate, "start_time", None)
    if start_time is None:
        msg = "Event start time is required"
        logger.warning(msg)
        raise InvalidPayloadError(msg)

    if exclude_event_id is None:
        exclude_event_id = getattr(candidate, "id", None)

    conflicts = find_conflicting_events(session, start_time, exclude_event_id, now)
    if conflicts:
        minutes = int(CONFLICT_WINDOW.total_seconds() // 60)
        logger.warning(
            f"Rejecting event at {start_time.isoformat()}: "
            f"{len(conflicts)} event(s) within {minutes} minutes"
        )
        raise ConflictError(
            f"Another event is scheduled within {minutes} minutes of this event",
            conflicting_event_ids=[e.id for e in conflicts],
        )
