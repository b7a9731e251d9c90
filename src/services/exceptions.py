"""
Domain exceptions for the event services.

Raised by the services and surfaced verbatim by the API layer, which maps
each type to an HTTP status.
"""

import uuid
from typing import Iterable, Optional


class TrainingEventsError(Exception):
    """Base exception for event service operations."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class InvalidPayloadError(TrainingEventsError):
    """
    Malformed or missing input.

    Causes:
    - No event information provided
    - Event start time missing
    """

    status_code = 400
    error_type = "invalid_payload"


class AccessDeniedError(TrainingEventsError):
    """Caller lacks the role required for the operation."""

    status_code = 403
    error_type = "access_denied"


class ResourceNotFoundError(TrainingEventsError):
    """
    Referenced entity does not exist.

    Causes:
    - Event ID not in the event store
    - User ID not in the user directory
    - Lesson plan ID not in the lesson plan directory
    - No participation record for the (event, user) pair
    """

    status_code = 404
    error_type = "not_found"


class ConflictError(TrainingEventsError):
    """Another future event starts too close to the candidate's start time."""

    status_code = 409
    error_type = "conflict"

    def __init__(
        self,
        message: str,
        conflicting_event_ids: Iterable[uuid.UUID] = (),
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        self.conflicting_event_ids = list(conflicting_event_ids)
