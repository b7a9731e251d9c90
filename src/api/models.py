"""
Pydantic request and response models for the training events API.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.events import EventType


# =============================================================================
# Request Models
# =============================================================================


class EventRequest(BaseModel):
    """
    Event fields for create and update.

    start_time is optional here so that a missing value is reported as an
    invalid payload by the conflict validator rather than as a schema error.
    """

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    start_time: Optional[datetime] = Field(
        None,
        description="Scheduled start (ISO 8601; naive values are treated as UTC)",
    )
    lead_id: uuid.UUID = Field(..., description="Lead instructor's user ID")
    event_type: EventType = Field(default=EventType.OTHER, description="Event category")
    private: bool = Field(default=False, description="Hide from public listings")
    checkin_code_required: bool = Field(
        default=False,
        description="Require the event's check-in code to check in",
    )
    lesson_plan_id: Optional[uuid.UUID] = Field(
        None,
        description="Initial lesson plan (create only; assignment owns it afterwards)",
    )
    address_id: Optional[uuid.UUID] = Field(None, description="Venue address ID")
    calendar_url: Optional[str] = Field(None, max_length=255, description="Shared calendar link")

    @field_validator("title")
    @classmethod
    def validate_title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class RsvpRequest(BaseModel):
    """RSVP answer."""

    confirm: bool = Field(..., description="True to confirm, False to decline")


class CheckinRequest(BaseModel):
    """Check-in attempt."""

    code: Optional[str] = Field(None, max_length=16, description="Check-in code shown at the event")


class MembershipRequest(BaseModel):
    """Membership flag update."""

    member: bool = Field(..., description="Whether the participant is a member")


class VoteRequest(BaseModel):
    """Lesson plan vote."""

    lesson_plan_id: uuid.UUID = Field(..., description="Chosen lesson plan")


# =============================================================================
# Response Models
# =============================================================================


class AddressResponse(BaseModel):
    """Venue address."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None


class EventResponse(BaseModel):
    """Stored event. The check-in code is only served by its own endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    start_time: datetime
    lead_id: uuid.UUID
    event_type: EventType
    private: bool
    started: bool
    completed: bool
    completed_time: Optional[datetime] = None
    checkin_code_required: bool
    lesson_plan_id: Optional[uuid.UUID] = None
    address_id: Optional[uuid.UUID] = None
    calendar_url: Optional[str] = None


class EventDetailResponse(BaseModel):
    """Event with participants and venue."""

    event: EventResponse
    participant_ids: list[uuid.UUID] = Field(default_factory=list)
    address: Optional[AddressResponse] = None


class EventListResponse(BaseModel):
    """List of events."""

    events: list[EventResponse] = Field(default_factory=list)
    total: int = Field(..., description="Number of events returned")


class EventSummaryResponse(BaseModel):
    """Public event summary."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    start_time: datetime
    private: bool
    lead: Optional[str] = Field(None, description="Lead instructor's display name")
    participant_count: int
    lessons: list[str] = Field(default_factory=list, description="Lesson titles of the assigned plan")
    address: Optional[AddressResponse] = None


class ParticipantResponse(BaseModel):
    """Participation record."""

    model_config = ConfigDict(from_attributes=True)

    event_id: uuid.UUID
    user_id: uuid.UUID
    confirmed: Optional[bool] = None
    declined: Optional[bool] = None
    confirmation_time: Optional[datetime] = None
    checked_in: Optional[bool] = None
    checkin_time: Optional[datetime] = None
    member: Optional[bool] = None


class RegistrationStatusResponse(BaseModel):
    """Registration, RSVP and check-in status of one user."""

    registered: bool
    rsvped: bool
    checked_in: bool


class CheckinResponse(BaseModel):
    checked_in: bool


class CheckinCodeResponse(BaseModel):
    code: Optional[str] = None


class MembershipResponse(BaseModel):
    member: Optional[bool] = None


class UserIdListResponse(BaseModel):
    """User IDs for an event query."""

    user_ids: list[uuid.UUID] = Field(default_factory=list)


class VoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: uuid.UUID
    user_id: uuid.UUID
    lesson_plan_id: uuid.UUID


class WithdrawVoteResponse(BaseModel):
    withdrawn: bool


class VoteTallyResponse(BaseModel):
    """Votes per lesson plan."""

    tally: dict[uuid.UUID, int] = Field(default_factory=dict)


class AssignmentOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: uuid.UUID
    lesson_plan_id: Optional[uuid.UUID] = None
    method: str
    vote_count: int = 0


class AssignmentRunResponse(BaseModel):
    """Result of an assignment run."""

    outcomes: list[AssignmentOutcomeResponse] = Field(default_factory=list)
    failed: dict[uuid.UUID, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="healthy or unhealthy")
    version: str
    database_connected: bool
    directories_ready: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    error_type: str = Field(..., description="Machine-readable error category")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether retrying may succeed")
    conflicting_event_ids: Optional[list[uuid.UUID]] = None
