"""
FastAPI dependency injection providers.

Provides directories, database sessions, settings, and the calling user.
"""

from typing import Generator, Optional
import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import get_db
from src.integrations.base import Directories, User
from src.integrations.directory import build_directories

logger = logging.getLogger(__name__)

# Global directories bundle (initialized at startup)
_directories: Optional[Directories] = None


def init_directories(directories: Optional[Directories] = None) -> Directories:
    """
    Initialize directories at application startup.

    Args:
        directories: Prebuilt bundle (tests); built from settings when omitted
    """
    global _directories
    _directories = directories if directories is not None else build_directories(get_settings())
    logger.info("Directories initialized")
    return _directories


def reset_directories() -> None:
    global _directories
    _directories = None


def get_directories() -> Directories:
    """
    Dependency injection for the directory collaborators.

    Raises:
        HTTPException: If directories not initialized
    """
    if _directories is None:
        logger.error("Directories not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - directories not initialized",
        )
    return _directories


def get_db_session() -> Generator[Session, None, None]:
    """
    Dependency injection for database session.

    Commits when the request succeeds, rolls back otherwise.
    """
    yield from get_db()


def get_app_settings() -> Settings:
    return get_settings()


def get_actor(
    x_username: Optional[str] = Header(None, description="Calling user's username"),
    directories: Directories = Depends(get_directories),
) -> Optional[User]:
    """
    Resolve the calling user from the X-Username header.

    Returns:
        The user, or None when the header is absent or unknown
    """
    if not x_username:
        return None

    actor = directories.users.get_user_by_username(x_username)
    if actor is None:
        logger.warning(f"Unknown username in X-Username header: {x_username}")
    return actor
