"""
Directory protocols and base types.

Defines the interfaces of the external directories the service consumes
(users, lesson plans, addresses). This service owns none of that data; it
only reads it through these contracts.
"""

import enum
import uuid
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Protocol


class Role(str, enum.Enum):
    """User role as reported by the user directory."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


@dataclass(frozen=True)
class User:
    """A user from the user directory."""

    id: uuid.UUID
    username: str
    display_name: str
    role: Role


@dataclass(frozen=True)
class Activity:
    """One entry of a lesson plan (lesson, quiz, reference material, ...)."""

    type: str
    title: str


@dataclass(frozen=True)
class LessonPlan:
    """A lesson plan from the lesson plan directory."""

    id: uuid.UUID
    title: str = ""
    presentable: bool = False
    activities: tuple[Activity, ...] = field(default_factory=tuple)

    @property
    def lesson_titles(self) -> list[str]:
        """Titles of the plan's lesson activities, in plan order."""
        return [a.title for a in self.activities if a.type.lower() == "lesson"]


@dataclass(frozen=True)
class Address:
    """A venue address from the address directory."""

    id: uuid.UUID
    name: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""


class UserDirectory(Protocol):
    """
    Protocol for user lookups.

    Implementations:
    - HttpUserDirectory: users service over HTTP
    - InMemoryUserDirectory: local seed (development, tests)
    """

    @abstractmethod
    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        """
        Get a user by ID.

        Returns:
            User or None if not found
        """
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        """
        Get a user by username.

        Returns:
            User or None if not found
        """
        ...


class LessonPlanDirectory(Protocol):
    """Protocol for lesson plan lookups."""

    @abstractmethod
    def exists_lesson_plan(self, lesson_plan_id: uuid.UUID) -> bool:
        """Check whether a lesson plan exists."""
        ...

    @abstractmethod
    def list_presentable_lesson_plans(self) -> list[uuid.UUID]:
        """IDs of every lesson plan eligible for assignment."""
        ...

    @abstractmethod
    def get_lesson_plan(self, lesson_plan_id: uuid.UUID) -> Optional[LessonPlan]:
        """
        Get a lesson plan with its activities.

        Returns:
            LessonPlan or None if not found
        """
        ...


class AddressDirectory(Protocol):
    """Protocol for address lookups."""

    @abstractmethod
    def get_address(self, address_id: uuid.UUID) -> Optional[Address]:
        """
        Get an address by ID.

        Returns:
            Address or None if not found
        """
        ...


@dataclass
class Directories:
    """The three directory collaborators, bundled for dependency injection."""

    users: UserDirectory
    lesson_plans: LessonPlanDirectory
    addresses: AddressDirectory
