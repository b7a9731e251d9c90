"""
In-memory directories.

Used when DIRECTORY_PROVIDER=local (development) and by the test suite.
Optionally seeded from a JSON file shaped like:

    {
      "users": [{"id": "...", "username": "ada", "display_name": "Ada", "role": "instructor"}],
      "lesson_plans": [{"id": "...", "title": "...", "presentable": true,
                        "activities": [{"type": "lesson", "title": "..."}]}],
      "addresses": [{"id": "...", "name": "Hangar 3", "city": "..."}]
    }
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Optional

from src.integrations.base import Activity, Address, Directories, LessonPlan, Role, User

logger = logging.getLogger(__name__)


class InMemoryUserDirectory:
    def __init__(self, users: Optional[list[User]] = None):
        self._users: dict[uuid.UUID, User] = {}
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None


class InMemoryLessonPlanDirectory:
    def __init__(self, lesson_plans: Optional[list[LessonPlan]] = None):
        self._plans: dict[uuid.UUID, LessonPlan] = {}
        for plan in lesson_plans or []:
            self.add_lesson_plan(plan)

    def add_lesson_plan(self, plan: LessonPlan) -> LessonPlan:
        self._plans[plan.id] = plan
        return plan

    def exists_lesson_plan(self, lesson_plan_id: uuid.UUID) -> bool:
        return lesson_plan_id in self._plans

    def list_presentable_lesson_plans(self) -> list[uuid.UUID]:
        return [plan.id for plan in self._plans.values() if plan.presentable]

    def get_lesson_plan(self, lesson_plan_id: uuid.UUID) -> Optional[LessonPlan]:
        return self._plans.get(lesson_plan_id)


class InMemoryAddressDirectory:
    def __init__(self, addresses: Optional[list[Address]] = None):
        self._addresses: dict[uuid.UUID, Address] = {}
        for address in addresses or []:
            self.add_address(address)

    def add_address(self, address: Address) -> Address:
        self._addresses[address.id] = address
        return address

    def get_address(self, address_id: uuid.UUID) -> Optional[Address]:
        return self._addresses.get(address_id)


def load_local_directories(seed_file: str = "") -> Directories:
    """
    Build in-memory directories, seeded from a JSON file when one is given.

    Args:
        seed_file: Path to the JSON seed (empty string for empty directories)

    Returns:
        Directories bundle
    """
    users = InMemoryUserDirectory()
    lesson_plans = InMemoryLessonPlanDirectory()
    addresses = InMemoryAddressDirectory()

    if seed_file:
        data = json.loads(Path(seed_file).read_text(encoding="utf-8"))

        for item in data.get("users", []):
            users.add_user(User(
                id=uuid.UUID(item["id"]),
                username=item["username"],
                display_name=item.get("display_name", item["username"]),
                role=Role(item["role"]),
            ))

        for item in data.get("lesson_plans", []):
            lesson_plans.add_lesson_plan(LessonPlan(
                id=uuid.UUID(item["id"]),
                title=item.get("title", ""),
                presentable=item.get("presentable", False),
                activities=tuple(
                    Activity(type=a["type"], title=a["title"])
                    for a in item.get("activities", [])
                ),
            ))

        for item in data.get("addresses", []):
            addresses.add_address(Address(
                id=uuid.UUID(item["id"]),
                name=item.get("name", ""),
                street=item.get("street", ""),
                city=item.get("city", ""),
                state=item.get("state", ""),
                postal_code=item.get("postal_code", ""),
            ))

        logger.info(
            f"Seeded local directories from {seed_file}: "
            f"{len(data.get('users', []))} users, "
            f"{len(data.get('lesson_plans', []))} lesson plans, "
            f"{len(data.get('addresses', []))} addresses"
        )

    return Directories(users=users, lesson_plans=lesson_plans, addresses=addresses)
