"""
HTTP clients for the user, lesson plan and address directories.

Provides:
- Automatic retry with exponential backoff on transient failures
- Consistent error handling (404 means "absent", not an error)
- Mapping of JSON payloads onto the directory base types
"""

import logging
import uuid
from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from src.integrations.base import Activity, Address, LessonPlan, Role, User
from src.integrations.directory.exceptions import (
    DirectoryError,
    DirectoryResponseError,
    DirectoryUnavailableError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exception, DirectoryError):
        return exception.retryable
    return False


def _raise_for_status(response: httpx.Response) -> None:
    """Convert a non-success response to the matching DirectoryError."""
    status = response.status_code
    if status in RETRYABLE_STATUS:
        raise DirectoryUnavailableError(
            f"Directory unavailable ({status}) for {response.request.url}"
        )
    if status >= 400:
        raise DirectoryResponseError(
            f"Directory error ({status}) for {response.request.url}"
        )


class DirectoryClient:
    """
    Thin JSON-over-HTTP wrapper shared by the directory implementations.

    Every GET is retried (stop after `max_attempts`, exponential wait) when the
    failure is transient.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Directory service root, e.g. https://users.example.com/api
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request, including the first
            backoff: Base wait in seconds between attempts (doubles per retry)
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._get = retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=backoff, min=backoff, max=5),
            retry=retry_if_exception(_is_retryable_error),
            reraise=True,
        )(self._get_once)

    def close(self) -> None:
        self._client.close()

    def get_json(self, path: str, params: Optional[dict] = None) -> Optional[Any]:
        """
        GET a JSON document.

        Returns:
            Decoded JSON, or None when the directory answers 404

        Raises:
            DirectoryUnavailableError: After retries are exhausted
            DirectoryResponseError: On other error statuses or invalid JSON
        """
        return self._get(path, params)

    def _get_once(self, path: str, params: Optional[dict]) -> Optional[Any]:
        try:
            response = self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"Directory request timed out: {path}")
            raise DirectoryUnavailableError(f"Timed out calling {path}", original_error=e)
        except httpx.RequestError as e:
            logger.warning(f"Directory request failed: {path}: {e}")
            raise DirectoryUnavailableError(f"Could not reach directory for {path}", original_error=e)

        if response.status_code == 404:
            return None
        _raise_for_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise DirectoryResponseError(f"Invalid JSON from {path}", original_error=e)


def _parse_user(data: dict) -> User:
    try:
        return User(
            id=uuid.UUID(str(data["id"])),
            username=data.get("username", ""),
            display_name=data.get("display_name") or data.get("displayName") or data.get("username", ""),
            role=Role(str(data["role"]).lower()),
        )
    except (KeyError, ValueError) as e:
        raise DirectoryResponseError(f"Malformed user payload: {data!r}", original_error=e)


def _parse_lesson_plan(data: dict) -> LessonPlan:
    try:
        return LessonPlan(
            id=uuid.UUID(str(data["id"])),
            title=data.get("title", ""),
            presentable=bool(data.get("presentable", False)),
            activities=tuple(
                Activity(type=str(a.get("type", "")), title=str(a.get("title", "")))
                for a in data.get("activities", [])
            ),
        )
    except (KeyError, ValueError) as e:
        raise DirectoryResponseError(f"Malformed lesson plan payload: {data!r}", original_error=e)


def _parse_address(data: dict) -> Address:
    try:
        return Address(
            id=uuid.UUID(str(data["id"])),
            name=data.get("name", ""),
            street=data.get("street", ""),
            city=data.get("city", ""),
            state=data.get("state", ""),
            postal_code=data.get("postal_code") or data.get("postalCode", ""),
        )
    except (KeyError, ValueError) as e:
        raise DirectoryResponseError(f"Malformed address payload: {data!r}", original_error=e)


class HttpUserDirectory:
    """User directory backed by the users service."""

    def __init__(self, client: DirectoryClient):
        self._client = client

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        data = self._client.get_json(f"/users/{user_id}")
        return _parse_user(data) if data else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        data = self._client.get_json("/users", params={"username": username})
        # The users service answers a search with a list
        if isinstance(data, list):
            data = data[0] if data else None
        return _parse_user(data) if data else None


class HttpLessonPlanDirectory:
    """Lesson plan directory backed by the lessons service."""

    def __init__(self, client: DirectoryClient):
        self._client = client

    def exists_lesson_plan(self, lesson_plan_id: uuid.UUID) -> bool:
        return self._client.get_json(f"/lessonplans/{lesson_plan_id}") is not None

    def list_presentable_lesson_plans(self) -> list[uuid.UUID]:
        data = self._client.get_json("/lessonplans", params={"presentable": "true"}) or []
        ids = []
        for item in data:
            raw = item.get("id") if isinstance(item, dict) else item
            try:
                ids.append(uuid.UUID(str(raw)))
            except ValueError as e:
                raise DirectoryResponseError(f"Malformed lesson plan ID: {raw!r}", original_error=e)
        return ids

    def get_lesson_plan(self, lesson_plan_id: uuid.UUID) -> Optional[LessonPlan]:
        data = self._client.get_json(f"/lessonplans/{lesson_plan_id}")
        return _parse_lesson_plan(data) if data else None


class HttpAddressDirectory:
    """Address directory backed by the addresses service."""

    def __init__(self, client: DirectoryClient):
        self._client = client

    def get_address(self, address_id: uuid.UUID) -> Optional[Address]:
        data = self._client.get_json(f"/addresses/{address_id}")
        return _parse_address(data) if data else None
