"""
Event API routes.

Event CRUD, public listings, lifecycle transitions and lesson plan
assignment. Participant and vote routes live in participant_routes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import ParserError, parse as parse_date
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_actor, get_app_settings, get_db_session, get_directories
from src.api.models import (
    AddressResponse,
    AssignmentOutcomeResponse,
    AssignmentRunResponse,
    CheckinCodeResponse,
    EventDetailResponse,
    EventListResponse,
    EventRequest,
    EventResponse,
    EventSummaryResponse,
    UserIdListResponse,
)
from src.config import Settings
from src.integrations.base import Address, Directories, User
from src.models.events import EventType
from src.services import (
    ADMIN_ONLY,
    ADMIN_OR_INSTRUCTOR,
    ANY_AUTHENTICATED,
    EventDraft,
    InvalidPayloadError,
    assign_lesson_plans,
    complete_event,
    create_event,
    delete_event,
    get_checkin_code,
    get_event_detail,
    get_event_summary,
    get_supporting_instructors,
    get_upcoming_events,
    list_events,
    require_access,
    start_event,
    update_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["Events"])


def _to_draft(request: EventRequest) -> EventDraft:
    return EventDraft(
        title=request.title,
        start_time=request.start_time,
        lead_id=request.lead_id,
        event_type=request.event_type,
        private=request.private,
        checkin_code_required=request.checkin_code_required,
        lesson_plan_id=request.lesson_plan_id,
        address_id=request.address_id,
        calendar_url=request.calendar_url,
    )


def _address_response(address: Optional[Address]) -> Optional[AddressResponse]:
    if address is None:
        return None
    return AddressResponse.model_validate(address)


def _parse_filter_date(value: Optional[str], name: str) -> Optional[datetime]:
    """Parse an ISO 8601 (or similar) date filter; naive values are UTC."""
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except (ParserError, ValueError, OverflowError) as e:
        raise InvalidPayloadError(f"Invalid {name}: {value}", original_error=e)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Collection
# =============================================================================


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
    responses={
        400: {"description": "Missing event information or start time"},
        403: {"description": "Caller is not an admin or instructor"},
        409: {"description": "Another event starts within 30 minutes"},
    },
)
def create_event_route(
    request: EventRequest,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> EventResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    event = create_event(db, directories.lesson_plans, _to_draft(request))
    return EventResponse.model_validate(event)


@router.get("", response_model=EventListResponse, summary="List events")
def list_events_route(
    start_date: Optional[str] = Query(None, description="Events starting on or after (ISO 8601)"),
    end_date: Optional[str] = Query(None, description="Events starting on or before (ISO 8601)"),
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> EventListResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    start = _parse_filter_date(start_date, "start_date")
    end = _parse_filter_date(end_date, "end_date")

    events = list_events(db, start=start, end=end)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=len(events),
    )


@router.get(
    "/upcoming/{event_type}/{count}",
    response_model=EventListResponse,
    summary="Upcoming public events of a type",
    description="At most 10 future, non-private events, earliest first.",
)
def upcoming_events_route(
    event_type: EventType,
    count: int,
    db: Session = Depends(get_db_session),
) -> EventListResponse:
    events = get_upcoming_events(db, event_type, count)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=len(events),
    )


@router.post(
    "/assignments",
    response_model=AssignmentRunResponse,
    summary="Assign lesson plans to all events",
)
def run_assignments_route(
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> AssignmentRunResponse:
    require_access(actor, ADMIN_ONLY)
    report = assign_lesson_plans(db, directories.lesson_plans)
    return AssignmentRunResponse(
        outcomes=[AssignmentOutcomeResponse.model_validate(o) for o in report.outcomes],
        failed=report.failed,
    )


# =============================================================================
# Single event
# =============================================================================


@router.get("/{event_id}", response_model=EventDetailResponse, summary="Get event")
def get_event_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> EventDetailResponse:
    require_access(actor, ANY_AUTHENTICATED)
    detail = get_event_detail(db, directories.addresses, event_id)
    return EventDetailResponse(
        event=EventResponse.model_validate(detail.event),
        participant_ids=detail.participant_ids,
        address=_address_response(detail.address),
    )


@router.put("/{event_id}", response_model=EventResponse, summary="Update event")
def update_event_route(
    event_id: uuid.UUID,
    request: EventRequest,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> EventResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    event = update_event(db, event_id, _to_draft(request))
    return EventResponse.model_validate(event)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete event",
)
def delete_event_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> Response:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    delete_event(db, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/summary", response_model=EventSummaryResponse, summary="Event summary")
def event_summary_route(
    event_id: uuid.UUID,
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> EventSummaryResponse:
    summary = get_event_summary(
        db,
        directories.users,
        directories.lesson_plans,
        directories.addresses,
        event_id,
    )
    return EventSummaryResponse(
        id=summary.id,
        title=summary.title,
        start_time=summary.start_time,
        private=summary.private,
        lead=summary.lead,
        participant_count=summary.participant_count,
        lessons=summary.lessons,
        address=_address_response(summary.address),
    )


@router.get(
    "/{event_id}/instructors",
    response_model=UserIdListResponse,
    summary="Supporting instructors",
)
def supporting_instructors_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> UserIdListResponse:
    require_access(actor, ANY_AUTHENTICATED)
    return UserIdListResponse(
        user_ids=get_supporting_instructors(db, directories.users, event_id)
    )


@router.get(
    "/{event_id}/checkincode",
    response_model=CheckinCodeResponse,
    summary="Current check-in code",
)
def checkin_code_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> CheckinCodeResponse:
    require_access(actor, ANY_AUTHENTICATED)
    return CheckinCodeResponse(code=get_checkin_code(db, event_id))


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/{event_id}/start", response_model=EventResponse, summary="Start event")
def start_event_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db_session),
) -> EventResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    event = start_event(db, event_id, generate_code=settings.generate_checkin_code)
    return EventResponse.model_validate(event)


@router.post("/{event_id}/complete", response_model=EventResponse, summary="Complete event")
def complete_event_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> EventResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    event = complete_event(db, event_id)
    return EventResponse.model_validate(event)
