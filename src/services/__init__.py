"""
Service layer for the training events service.

Provides business logic for:
- Schedule conflict validation
- Participant state machine (register, RSVP, check-in)
- Lesson plan votes and assignment
- Event lifecycle (create, update, start, complete)
- Access policy

Services take a SQLAlchemy session, flush, and leave commit to the caller.
"""

from src.services.exceptions import (
    TrainingEventsError,
    InvalidPayloadError,
    AccessDeniedError,
    ResourceNotFoundError,
    ConflictError,
)

from src.services.conflicts import (
    CONFLICT_WINDOW,
    find_conflicting_events,
    validate_schedule,
)

from src.services.participants import (
    AUTO_CONFIRM_WINDOW,
    register,
    unregister,
    rsvp,
    checkin,
    set_membership,
    get_participant,
    is_registered,
    did_check_in,
    did_rsvp,
    get_membership,
    list_registered_user_ids,
    count_registered,
    list_checked_in_user_ids,
    list_rsvped_user_ids,
    list_participants,
)

from src.services.votes import (
    cast_vote,
    withdraw_vote,
    get_vote,
    tally_votes,
)

from src.services.assignment import (
    AssignmentOutcome,
    AssignmentReport,
    assign_lesson_plan,
    assign_lesson_plans,
)

from src.services.events import (
    MAX_UPCOMING_COUNT,
    EventDraft,
    EventDetail,
    EventSummary,
    create_event,
    update_event,
    delete_event,
    find_event,
    get_event,
    list_events,
    get_upcoming_events,
    start_event,
    complete_event,
    get_checkin_code,
    get_supporting_instructors,
    get_event_detail,
    get_event_summary,
)

from src.services.access import (
    ADMIN_ONLY,
    ADMIN_OR_INSTRUCTOR,
    ANY_AUTHENTICATED,
    AccessDecision,
    check_access,
    require_access,
    is_admin_or_instructor,
)

__all__ = [
    # Exceptions
    "TrainingEventsError",
    "InvalidPayloadError",
    "AccessDeniedError",
    "ResourceNotFoundError",
    "ConflictError",
    # Conflicts
    "CONFLICT_WINDOW",
    "find_conflicting_events",
    "validate_schedule",
    # Participants
    "AUTO_CONFIRM_WINDOW",
    "register",
    "unregister",
    "rsvp",
    "checkin",
    "set_membership",
    "get_participant",
    "is_registered",
    "did_check_in",
    "did_rsvp",
    "get_membership",
    "list_registered_user_ids",
    "count_registered",
    "list_checked_in_user_ids",
    "list_rsvped_user_ids",
    "list_participants",
    # Votes
    "cast_vote",
    "withdraw_vote",
    "get_vote",
    "tally_votes",
    # Assignment
    "AssignmentOutcome",
    "AssignmentReport",
    "assign_lesson_plan",
    "assign_lesson_plans",
    # Events
    "MAX_UPCOMING_COUNT",
    "EventDraft",
    "EventDetail",
    "EventSummary",
    "create_event",
    "update_event",
    "delete_event",
    "find_event",
    "get_event",
    "list_events",
    "get_upcoming_events",
    "start_event",
    "complete_event",
    "get_checkin_code",
    "get_supporting_instructors",
    "get_event_detail",
    "get_event_summary",
    # Access
    "ADMIN_ONLY",
    "ADMIN_OR_INSTRUCTOR",
    "ANY_AUTHENTICATED",
    "AccessDecision",
    "check_access",
    "require_access",
    "is_admin_or_instructor",
]
