"""
External service integrations for Training Events.

Provides the abstraction layer over the user, lesson plan and address
directories.
"""

from src.integrations.base import (
    Activity,
    Address,
    AddressDirectory,
    Directories,
    LessonPlan,
    LessonPlanDirectory,
    Role,
    User,
    UserDirectory,
)

__all__ = [
    "Activity",
    "Address",
    "AddressDirectory",
    "Directories",
    "LessonPlan",
    "LessonPlanDirectory",
    "Role",
    "User",
    "UserDirectory",
]
