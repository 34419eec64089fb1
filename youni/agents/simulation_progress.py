"""
youni/agents/simulation_progress.py

Per-user progress through career simulations, and the points, levels and
badges earned by finishing them.

A progress row keeps the ids of completed steps in completion order.
``current_step`` is the index of the first step not yet completed, and the
scenario counts as completed once every step is.  The first completion of
a scenario awards its ``points_reward``; un-checking a step later never
takes points away and completing it again never pays twice.

Quiz steps may be submitted with answers.  The quiz is then scored and the
step is only marked completed when the score reaches its passing score.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from youni.agents.simulation_designer import passing_score, score_quiz
from youni.database.models import CareerScenario, UserRewards, UserScenarioProgress

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL       = 500
FIRST_SIMULATION_BADGE = "first_simulation"

# badge id → total points required
POINT_BADGES: dict[str, int] = {
    "explorer":    100,
    "pathfinder":  500,
    "trailblazer": 1500,
}


class UnknownStepError(LookupError):
    """Raised when a step id is not part of the scenario."""


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

def level_for(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def award_points(
    db: Session,
    user_id: int,
    points: int,
    badges: Iterable[str] = (),
) -> UserRewards:
    """
    Add *points* to the user's total and grant *badges* plus any point badge
    the new total qualifies for.  The caller commits.
    """
    rewards = db.query(UserRewards).filter(UserRewards.user_id == user_id).first()
    if rewards is None:
        rewards = UserRewards(user_id=user_id, points=0, level=1, earned_badge_ids=[])
        db.add(rewards)

    rewards.points = (rewards.points or 0) + points
    rewards.level = level_for(rewards.points)

    earned = list(rewards.earned_badge_ids or [])
    qualified = [badge for badge, required in POINT_BADGES.items() if rewards.points >= required]
    for badge in [*badges, *qualified]:
        if badge not in earned:
            earned.append(badge)
    rewards.earned_badge_ids = earned
    rewards.updated_at = datetime.utcnow()
    db.flush()

    logger.info("User %s: +%d points, total %d, badges %s", user_id, points, rewards.points, earned)
    return rewards


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def get_progress(db: Session, user_id: int, scenario_id: int) -> Optional[UserScenarioProgress]:
    return (
        db.query(UserScenarioProgress)
        .filter(
            UserScenarioProgress.user_id == user_id,
            UserScenarioProgress.scenario_id == scenario_id,
        )
        .first()
    )


def _get_or_add_progress(db: Session, user_id: int, scenario_id: int) -> UserScenarioProgress:
    progress = get_progress(db, user_id, scenario_id)
    if progress is None:
        progress = UserScenarioProgress(
            user_id=user_id,
            scenario_id=scenario_id,
            current_step=0,
            completed=False,
            completed_steps=[],
            step_scores={},
        )
        db.add(progress)
    return progress


def start_progress(db: Session, user_id: int, scenario_id: int) -> UserScenarioProgress:
    """Create an empty progress row unless one exists."""
    progress = _get_or_add_progress(db, user_id, scenario_id)
    db.commit()
    db.refresh(progress)
    return progress


def record_step(
    db: Session,
    user_id: int,
    scenario: CareerScenario,
    step_id: str,
    completed: bool = True,
    answers: Optional[dict[str, str]] = None,
) -> UserScenarioProgress:
    """
    Mark one step completed (or not) and recompute the scenario's progress.

    Raises
    ------
    UnknownStepError
        If *step_id* is not one of the scenario's steps.
    """
    steps = scenario.steps or []
    step = next((s for s in steps if s.get("id") == step_id), None)
    if step is None:
        raise UnknownStepError(f"Step {step_id!r} is not part of scenario {scenario.id}.")

    progress = _get_or_add_progress(db, user_id, scenario.id)
    done = list(progress.completed_steps or [])
    scores = dict(progress.step_scores or {})

    mark = completed
    if completed and answers is not None and step.get("step_type") == "quiz":
        content = step.get("content") or {}
        scores[step_id] = score_quiz(content, answers)
        mark = scores[step_id] >= passing_score(content)

    if mark and step_id not in done:
        done.append(step_id)
    elif not completed and step_id in done:
        done.remove(step_id)

    now = datetime.utcnow()
    step_ids = [s.get("id") for s in steps]
    progress.completed_steps = done
    progress.step_scores = scores
    progress.current_step = next((i for i, sid in enumerate(step_ids) if sid not in done), len(step_ids))
    progress.completed = all(sid in done for sid in step_ids)
    progress.last_activity_at = now

    if progress.completed and progress.completed_at is None:
        progress.completed_at = now
        award_points(db, user_id, scenario.points_reward or 0, badges=[FIRST_SIMULATION_BADGE])
        logger.info("User %s completed scenario %s", user_id, scenario.id)

    db.commit()
    db.refresh(progress)
    return progress
