"""
Event and EventParticipant models.

Entities:
- Event: A scheduled training event
- EventParticipant: One user's registration/RSVP/check-in record for an event
"""

import enum
import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel, UTCDateTime

# Avoid circular imports for type hints
if TYPE_CHECKING:
    from src.models.votes import Vote


CHECKIN_CODE_LENGTH = 4


class EventType(str, enum.Enum):
    """Category of a training event."""

    GROUND_SCHOOL = "ground_school"
    SEMINAR = "seminar"
    FLIGHT_TRAINING = "flight_training"
    FLY_IN = "fly_in"
    MEETING = "meeting"
    OTHER = "other"


class Event(BaseModel):
    """
    A scheduled training event.

    Lifecycle:
    1. created: scheduled for a start time, conflict-checked
    2. started: start time reset to the actual start, check-in code issued
    3. completed: completion time recorded, check-in code cleared

    A lesson plan is attached later by the assignment engine (votes first,
    presentation history as fallback).
    """

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Event title"
    )

    # Timing
    start_time: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        doc="Scheduled (or actual, once started) start time (UTC)"
    )

    started: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether the event has started"
    )

    completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether the event has completed"
    )

    completed_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        doc="Timestamp when the event was completed"
    )

    # Visibility and category
    private: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Private events get no public notices and are hidden from upcoming lists"
    )

    event_type: Mapped[EventType] = mapped_column(
        Enum(
            EventType,
            native_enum=False,
            length=50,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=EventType.OTHER,
        doc="Event category"
    )

    # People and content (IDs into the external directories)
    lead_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        doc="User ID of the lead (primary) instructor"
    )

    lesson_plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        nullable=True,
        doc="Assigned lesson plan (NULL until assigned)"
    )

    address_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        nullable=True,
        doc="Venue address ID in the address directory"
    )

    calendar_url: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Shared calendar link for the event"
    )

    # Check-in
    checkin_code: Mapped[Optional[str]] = mapped_column(
        String(CHECKIN_CODE_LENGTH),
        nullable=True,
        doc="Code participants enter to check in (issued on start)"
    )

    checkin_code_required: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether check-in requires the code"
    )

    # Relationships
    participants: Mapped[list["EventParticipant"]] = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Participation records for this event"
    )

    votes: Mapped[list["Vote"]] = relationship(
        "Vote",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        doc="Lesson plan votes cast for this event"
    )

    __table_args__ = (
        CheckConstraint("NOT completed OR started", name="ck_event_completed_started"),
        CheckConstraint(
            f"checkin_code IS NULL OR length(checkin_code) = {CHECKIN_CODE_LENGTH}",
            name="ck_event_checkin_code_length",
        ),
        Index("idx_event_start_time", "start_time"),
        Index("idx_event_lesson_plan", "lesson_plan_id"),
        # Upcoming-events query: type + visibility + time
        Index("idx_event_type_private_start", "event_type", "private", "start_time"),
    )

    def __repr__(self) -> str:
        """String representation showing title and time."""
        return f"<Event(title='{self.title}', start='{self.start_time}', started={self.started})>"


class EventParticipant(BaseModel):
    """
    A user's participation in an event.

    All flags are tri-state (NULL means the user never acted on it):
    - confirmed / declined: RSVP outcome, never both true
    - checked_in: attendance
    - member: independent membership flag set by staff

    A declined record is how unregistering is represented; records are not
    deleted by normal flows.
    """

    __tablename__ = "event_participants"

    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        doc="Event ID"
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        doc="User ID in the user directory"
    )

    # RSVP
    confirmed: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        doc="User confirmed attendance"
    )

    declined: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        doc="User declined (or unregistered)"
    )

    confirmation_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        doc="Timestamp of the last confirm/decline"
    )

    # Attendance
    checked_in: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        doc="User checked in at the event"
    )

    checkin_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        doc="Timestamp of check-in"
    )

    member: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        doc="Membership flag, unrelated to registration status"
    )

    event: Mapped["Event"] = relationship(
        "Event",
        back_populates="participants",
        doc="Event this participation is for"
    )

    __table_args__ = (
        # One participation record per event-user pair
        UniqueConstraint("event_id", "user_id", name="uq_event_participant"),
        CheckConstraint("NOT (confirmed AND declined)", name="ck_participant_rsvp"),
        Index("idx_participant_event", "event_id"),
        Index("idx_participant_user", "user_id"),
    )

    @property
    def is_live(self) -> bool:
        """Registered and not declined."""
        return not self.declined

    def __repr__(self) -> str:
        """String representation showing event and user IDs."""
        return (
            f"<EventParticipant(event_id={self.event_id}, user_id={self.user_id}, "
            f"confirmed={self.confirmed}, declined={self.declined}, checked_in={self.checked_in})>"
        )
