"""
Directory integrations (users, lesson plans, addresses).

Exports:
- HTTP implementations with retry and error mapping
- In-memory implementations for local development and tests
- build_directories(): factory selecting the implementation from settings
"""

from src.config import Settings
from src.integrations.base import Directories
from src.integrations.directory.client import (
    DirectoryClient,
    HttpAddressDirectory,
    HttpLessonPlanDirectory,
    HttpUserDirectory,
)
from src.integrations.directory.exceptions import (
    DirectoryError,
    DirectoryResponseError,
    DirectoryUnavailableError,
)
from src.integrations.directory.local import (
    InMemoryAddressDirectory,
    InMemoryLessonPlanDirectory,
    InMemoryUserDirectory,
    load_local_directories,
)


def build_directories(settings: Settings) -> Directories:
    """
    Create the directory collaborators for the configured provider.

    Args:
        settings: Application settings

    Returns:
        Directories bundle

    Raises:
        ValueError: If the HTTP provider is selected without its URLs
    """
    if not settings.uses_http_directories:
        return load_local_directories(settings.directory_seed_file)

    settings.validate_directory_config()

    def client(base_url: str) -> DirectoryClient:
        return DirectoryClient(
            base_url,
            timeout=settings.directory_timeout_seconds,
            max_attempts=settings.directory_max_attempts,
        )

    return Directories(
        users=HttpUserDirectory(client(settings.user_directory_url)),
        lesson_plans=HttpLessonPlanDirectory(client(settings.lesson_plan_directory_url)),
        addresses=HttpAddressDirectory(client(settings.address_directory_url)),
    )


__all__ = [
    "build_directories",
    "DirectoryClient",
    "HttpUserDirectory",
    "HttpLessonPlanDirectory",
    "HttpAddressDirectory",
    "DirectoryError",
    "DirectoryResponseError",
    "DirectoryUnavailableError",
    "InMemoryUserDirectory",
    "InMemoryLessonPlanDirectory",
    "InMemoryAddressDirectory",
    "load_local_directories",
]
