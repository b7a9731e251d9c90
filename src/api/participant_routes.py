"""
Participant and vote API routes.

Per-user operations accept the target user in the path; admins and
instructors may act on anyone, other users only on themselves.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_actor, get_db_session, get_directories
from src.api.models import (
    CheckinRequest,
    CheckinResponse,
    MembershipRequest,
    MembershipResponse,
    ParticipantResponse,
    RegistrationStatusResponse,
    RsvpRequest,
    UserIdListResponse,
    VoteRequest,
    VoteResponse,
    VoteTallyResponse,
    WithdrawVoteResponse,
)
from src.integrations.base import Directories, User
from src.services import (
    ADMIN_OR_INSTRUCTOR,
    cast_vote,
    checkin,
    did_check_in,
    did_rsvp,
    get_event,
    get_membership,
    is_registered,
    list_checked_in_user_ids,
    list_rsvped_user_ids,
    register,
    require_access,
    rsvp,
    set_membership,
    tally_votes,
    unregister,
    withdraw_vote,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["Participants"])


def _require_join_access(db: Session, actor: Optional[User], event_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """
    Check that the actor may add a user to an event's participants.

    Private events take no self-registration; only admins and instructors
    may add participants to them.
    """
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    if get_event(db, event_id).private:
        require_access(actor, ADMIN_OR_INSTRUCTOR)


# =============================================================================
# State machine
# =============================================================================


@router.post(
    "/{event_id}/register/{user_id}",
    response_model=ParticipantResponse,
    summary="Register a user",
    description="Registering within 24 hours of the start auto-confirms.",
)
def register_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> ParticipantResponse:
    _require_join_access(db, actor, event_id, user_id)
    participant = register(db, directories.users, event_id, user_id)
    return ParticipantResponse.model_validate(participant)


@router.post(
    "/{event_id}/unregister/{user_id}",
    response_model=ParticipantResponse,
    summary="Unregister a user",
)
def unregister_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> ParticipantResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    participant = unregister(db, directories.users, event_id, user_id)
    return ParticipantResponse.model_validate(participant)


@router.post(
    "/{event_id}/rsvp/{user_id}",
    response_model=ParticipantResponse,
    summary="RSVP for an event",
)
def rsvp_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    request: RsvpRequest,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> ParticipantResponse:
    _require_join_access(db, actor, event_id, user_id)
    participant = rsvp(db, directories.users, event_id, user_id, request.confirm)
    return ParticipantResponse.model_validate(participant)


@router.post(
    "/{event_id}/checkin/{user_id}",
    response_model=CheckinResponse,
    summary="Check in",
    description="A refused check-in returns checked_in=false, not an error.",
)
def checkin_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    request: CheckinRequest,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> CheckinResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    return CheckinResponse(checked_in=checkin(db, event_id, user_id, request.code))


@router.get(
    "/{event_id}/registered/{user_id}",
    response_model=RegistrationStatusResponse,
    summary="Registration status",
)
def registration_status_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> RegistrationStatusResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    return RegistrationStatusResponse(
        registered=is_registered(db, event_id, user_id),
        rsvped=did_rsvp(db, event_id, user_id),
        checked_in=did_check_in(db, event_id, user_id),
    )


@router.get(
    "/{event_id}/member/{user_id}",
    response_model=MembershipResponse,
    summary="Get membership flag",
)
def get_membership_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> MembershipResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    return MembershipResponse(member=get_membership(db, event_id, user_id))


@router.put(
    "/{event_id}/member/{user_id}",
    response_model=MembershipResponse,
    summary="Set membership flag",
)
def set_membership_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    request: MembershipRequest,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> MembershipResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    participant = set_membership(db, event_id, user_id, request.member)
    return MembershipResponse(member=participant.member)


# =============================================================================
# Event-level participant queries
# =============================================================================


@router.get(
    "/{event_id}/checkedin",
    response_model=UserIdListResponse,
    summary="Checked-in users",
)
def checked_in_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> UserIdListResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    get_event(db, event_id)
    return UserIdListResponse(user_ids=list_checked_in_user_ids(db, event_id))


@router.get(
    "/{event_id}/rsvp",
    response_model=UserIdListResponse,
    summary="Users who answered the RSVP",
)
def rsvped_route(
    event_id: uuid.UUID,
    confirmed: Optional[bool] = Query(
        None,
        description="true: confirmed only, false: declined only, omitted: both",
    ),
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> UserIdListResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    get_event(db, event_id)
    return UserIdListResponse(user_ids=list_rsvped_user_ids(db, event_id, confirmed))


# =============================================================================
# Votes
# =============================================================================


@router.post(
    "/{event_id}/vote/{user_id}",
    response_model=VoteResponse,
    summary="Cast or change a vote",
)
def cast_vote_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    request: VoteRequest,
    actor: Optional[User] = Depends(get_actor),
    directories: Directories = Depends(get_directories),
    db: Session = Depends(get_db_session),
) -> VoteResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    vote = cast_vote(
        db,
        directories.users,
        directories.lesson_plans,
        event_id,
        user_id,
        request.lesson_plan_id,
    )
    return VoteResponse.model_validate(vote)


@router.delete(
    "/{event_id}/vote/{user_id}",
    response_model=WithdrawVoteResponse,
    summary="Withdraw a vote",
)
def withdraw_vote_route(
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    lesson_plan_id: Optional[uuid.UUID] = Query(
        None,
        description="Only withdraw a vote for this lesson plan",
    ),
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> WithdrawVoteResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR, target_user_id=user_id)
    return WithdrawVoteResponse(withdrawn=withdraw_vote(db, event_id, user_id, lesson_plan_id))


@router.get("/{event_id}/votes", response_model=VoteTallyResponse, summary="Vote tally")
def vote_tally_route(
    event_id: uuid.UUID,
    actor: Optional[User] = Depends(get_actor),
    db: Session = Depends(get_db_session),
) -> VoteTallyResponse:
    require_access(actor, ADMIN_OR_INSTRUCTOR)
    get_event(db, event_id)
    return VoteTallyResponse(tally=tally_votes(db, event_id))
