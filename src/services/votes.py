"""
Lesson plan votes.

One live vote per (event, user): casting again overwrites the chosen plan,
withdrawing deletes it. The insert path uses the same savepoint pattern as
participant registration.
"""

import logging
import uuid
from collections import Counter
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.integrations.base import LessonPlanDirectory, UserDirectory
from src.models.votes import Vote
from src.services.exceptions import ResourceNotFoundError
from src.services.locks import lock_vote
from src.services.participants import require_event, require_user

logger = logging.getLogger(__name__)


def cast_vote(
    session: Session,
    users: UserDirectory,
    lesson_plans: LessonPlanDirectory,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    lesson_plan_id: uuid.UUID,
) -> Vote:
    """
    Cast or change a user's vote for an event.

    Args:
        session: Database session
        users: User directory (existence check)
        lesson_plans: Lesson plan directory (existence check)
        event_id: Event voted on
        user_id: Voter
        lesson_plan_id: Chosen lesson plan

    Returns:
        The live vote

    Raises:
        ResourceNotFoundError: If the event, user or lesson plan does not exist
    """
    require_event(session, event_id)
    require_user(users, user_id)
    if not lesson_plans.exists_lesson_plan(lesson_plan_id):
        raise ResourceNotFoundError(f"Lesson plan {lesson_plan_id} not found")

    vote = lock_vote(session, event_id, user_id)
    if vote is None:
        vote = Vote(event_id=event_id, user_id=user_id, lesson_plan_id=lesson_plan_id)
        try:
            with session.begin_nested():
                session.add(vote)
            logger.info(f"User {user_id} voted {lesson_plan_id} for event {event_id}")
            return vote
        except IntegrityError:
            vote = lock_vote(session, event_id, user_id)
            if vote is None:
                raise

    if vote.lesson_plan_id != lesson_plan_id:
        vote.lesson_plan_id = lesson_plan_id
        session.flush()
        logger.info(f"User {user_id} changed vote to {lesson_plan_id} for event {event_id}")
    return vote


def withdraw_vote(
    session: Session,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    lesson_plan_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    Withdraw a user's vote.

    Args:
        session: Database session
        event_id: Event voted on
        user_id: Voter
        lesson_plan_id: When given, only a vote for this plan is withdrawn

    Returns:
        True if a vote was deleted
    """
    vote = lock_vote(session, event_id, user_id)
    if vote is None:
        return False
    if lesson_plan_id is not None and vote.lesson_plan_id != lesson_plan_id:
        return False

    session.delete(vote)
    session.flush()
    logger.info(f"User {user_id} withdrew vote for event {event_id}")
    return True


def get_vote(session: Session, event_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Vote]:
    stmt = select(Vote).where(Vote.event_id == event_id, Vote.user_id == user_id)
    return session.scalar(stmt)


def tally_votes(session: Session, event_id: uuid.UUID) -> dict[uuid.UUID, int]:
    """
    Count live votes per lesson plan for an event.

    Returns:
        Mapping of lesson plan ID to vote count (plans without votes absent)
    """
    stmt = select(Vote.lesson_plan_id).where(Vote.event_id == event_id)
    return dict(Counter(session.scalars(stmt).all()))
