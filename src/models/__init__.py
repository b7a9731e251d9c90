"""
SQLAlchemy models for Training Events.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

# Import base classes
from src.models.base import Base, BaseModel, GUID, UTCDateTime, utcnow

# Import all models (must be imported for Alembic autogenerate)
from src.models.events import CHECKIN_CODE_LENGTH, Event, EventParticipant, EventType
from src.models.votes import Vote

# Export all for easy importing
__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    "UTCDateTime",
    "utcnow",
    # Event models
    "CHECKIN_CODE_LENGTH",
    "Event",
    "EventParticipant",
    "EventType",
    # Vote model
    "Vote",
]
