"""
Vote model.

Entities:
- Vote: One user's lesson plan choice for an event
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel

if TYPE_CHECKING:
    from src.models.events import Event


class Vote(BaseModel):
    """
    A user's lesson plan vote for an event.

    Exactly one live vote per (event, user): voting again overwrites the
    chosen plan, withdrawing deletes the row.
    """

    __tablename__ = "votes"

    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        doc="Event being voted on"
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        doc="Voting user"
    )

    lesson_plan_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        doc="Chosen lesson plan"
    )

    event: Mapped["Event"] = relationship(
        "Event",
        back_populates="votes",
    )

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_vote_event_user"),
        Index("idx_vote_event", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Vote(event_id={self.event_id}, user_id={self.user_id}, lesson_plan_id={self.lesson_plan_id})>"
