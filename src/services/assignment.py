"""
Lesson plan assignment engine.

For each event:
1. Tally live votes by lesson plan.
2. If any votes exist, the plan with the most votes wins.
3. Otherwise fall back to presentation history: among the presentable plans,
   the one used by the fewest earlier events wins.
4. Persist the winner on the event.

Ties (votes or history) go to the lowest lesson plan ID, so a run is
deterministic.

The batch runs each event in its own SAVEPOINT with the event row locked
for tally + write; one event failing is logged and reported, and the batch
moves on.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.integrations.base import LessonPlanDirectory
from src.integrations.directory.exceptions import DirectoryError
from src.models.events import Event
from src.services.exceptions import ResourceNotFoundError
from src.services.locks import lock_event
from src.services.votes import tally_votes

logger = logging.getLogger(__name__)

METHOD_VOTES = "votes"
METHOD_HISTORY = "history"
METHOD_SKIPPED = "skipped"


@dataclass(frozen=True)
class AssignmentOutcome:
    """Result of assigning one event."""

    event_id: uuid.UUID
    lesson_plan_id: Optional[uuid.UUID]
    method: str
    vote_count: int = 0


@dataclass
class AssignmentReport:
    """Result of a batch run."""

    outcomes: list[AssignmentOutcome] = field(default_factory=list)
    failed: dict[uuid.UUID, str] = field(default_factory=dict)

    @property
    def assigned(self) -> dict[uuid.UUID, uuid.UUID]:
        return {
            o.event_id: o.lesson_plan_id
            for o in self.outcomes
            if o.lesson_plan_id is not None
        }

    @property
    def skipped(self) -> list[uuid.UUID]:
        return [o.event_id for o in self.outcomes if o.method == METHOD_SKIPPED]


def select_by_votes(tally: dict[uuid.UUID, int]) -> Optional[uuid.UUID]:
    """
    Pick the most-voted plan.

    Returns:
        Winning plan ID (lowest ID among ties), or None if there are no votes
    """
    voted = {plan_id: count for plan_id, count in tally.items() if count > 0}
    if not voted:
        return None
    return min(voted, key=lambda plan_id: (-voted[plan_id], plan_id))


def count_prior_presentations(
    session: Session,
    event: Event,
    lesson_plan_ids: Sequence[uuid.UUID],
) -> dict[uuid.UUID, int]:
    """
    Count, per plan, the events starting before `event` that used it.

    Returns:
        Mapping covering every requested plan (0 for never presented)
    """
    counts = {plan_id: 0 for plan_id in lesson_plan_ids}
    if not counts:
        return counts

    stmt = (
        select(Event.lesson_plan_id, func.count(Event.id))
        .where(
            Event.start_time < event.start_time,
            Event.lesson_plan_id.in_(list(counts)),
        )
        .group_by(Event.lesson_plan_id)
    )
    for plan_id, count in session.execute(stmt).all():
        counts[plan_id] = count
    return counts


def select_by_history(
    session: Session,
    event: Event,
    presentable: Sequence[uuid.UUID],
) -> Optional[uuid.UUID]:
    """
    Pick the presentable plan presented least often before this event.

    Returns:
        Winning plan ID (lowest ID among ties), or None if nothing is presentable
    """
    counts = count_prior_presentations(session, event, presentable)
    if not counts:
        return None
    return min(counts, key=lambda plan_id: (counts[plan_id], plan_id))


def assign_lesson_plan(
    session: Session,
    lesson_plans: LessonPlanDirectory,
    event_id: uuid.UUID,
    presentable: Optional[Sequence[uuid.UUID]] = None,
) -> AssignmentOutcome:
    """
    Assign a lesson plan to one event.

    Args:
        session: Database session
        lesson_plans: Lesson plan directory (presentable plans for the fallback)
        event_id: Event to assign
        presentable: Presentable plan IDs already fetched by the caller

    Returns:
        AssignmentOutcome describing the choice

    Raises:
        ResourceNotFoundError: If the event does not exist
    """
    event = lock_event(session, event_id)
    if event is None:
        raise ResourceNotFoundError(f"Event {event_id} not found")

    # Votes are read once under the event lock; later votes count next run
    tally = tally_votes(session, event_id)
    winner = select_by_votes(tally)
    method = METHOD_VOTES

    if winner is None:
        if presentable is None:
            presentable = lesson_plans.list_presentable_lesson_plans()
        winner = select_by_history(session, event, presentable)
        method = METHOD_HISTORY

    if winner is None:
        logger.warning(f"No votes and no presentable lesson plans for event {event_id}")
        return AssignmentOutcome(event_id=event_id, lesson_plan_id=None, method=METHOD_SKIPPED)

    if event.lesson_plan_id != winner:
        event.lesson_plan_id = winner
        session.flush()

    logger.info(f"Assigned lesson plan {winner} to event {event_id} by {method}")
    return AssignmentOutcome(
        event_id=event_id,
        lesson_plan_id=winner,
        method=method,
        vote_count=tally.get(winner, 0),
    )


def assign_lesson_plans(
    session: Session,
    lesson_plans: LessonPlanDirectory,
) -> AssignmentReport:
    """
    Assign lesson plans to every event, oldest first.

    Earlier events are assigned first so the history fallback of later events
    sees this run's choices.

    Returns:
        AssignmentReport with per-event outcomes and failures
    """
    report = AssignmentReport()

    presentable: Optional[list[uuid.UUID]]
    try:
        presentable = list(lesson_plans.list_presentable_lesson_plans())
    except DirectoryError as e:
        # Vote-based assignments can still go ahead; fallbacks retry per event
        logger.error(f"Could not list presentable lesson plans: {e}")
        presentable = None

    event_ids = session.scalars(
        select(Event.id).order_by(Event.start_time, Event.id)
    ).all()

    for event_id in event_ids:
        try:
            with session.begin_nested():
                outcome = assign_lesson_plan(session, lesson_plans, event_id, presentable)
        except Exception as e:
            logger.error(f"Lesson plan assignment failed for event {event_id}: {e}", exc_info=True)
            report.failed[event_id] = str(e)
            continue
        report.outcomes.append(outcome)

    logger.info(
        f"Assignment run finished: {len(report.assigned)} assigned, "
        f"{len(report.skipped)} skipped, {len(report.failed)} failed"
    )
    return report
