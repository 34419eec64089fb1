import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from youni.agents.simulation_designer import SimulationDesigner, SimulationError
from youni.agents.simulation_progress import (
    UnknownStepError,
    get_progress,
    record_step,
    start_progress,
)
from youni.api.auth_routes import get_current_user
from youni.database.connection import get_db
from youni.database.models import CareerScenario, Occupation, User, UserRewards

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulations", tags=["simulations"])


# ---------------------------------------------------------------------------
# Agent singleton (lazy-initialised on first /generate request)
# ---------------------------------------------------------------------------

_designer: Optional[SimulationDesigner] = None


def _get_designer() -> SimulationDesigner:
    global _designer
    if _designer is None:
        _designer = SimulationDesigner()
    return _designer


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class GenerateBody(BaseModel):
    onet_code: str
    regenerate: bool = False


class ScenarioSummary(BaseModel):
    id: int
    onet_code: str
    title: str
    description: str
    difficulty_level: str
    estimated_duration_minutes: int
    points_reward: int
    created_at: datetime

    class Config:
        from_attributes = True


class ScenarioOut(ScenarioSummary):
    steps: list[dict[str, Any]]


class ProgressBody(BaseModel):
    step_id: str
    completed: bool = True
    answers: Optional[dict[str, str]] = Field(
        default=None, description="Quiz answers: question id → chosen option id.",
    )


class ProgressOut(BaseModel):
    scenario_id: int
    current_step: int = 0
    completed: bool = False
    completed_steps: list[str] = Field(default_factory=list)
    step_scores: dict[str, int] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RewardsOut(BaseModel):
    points: int = 0
    level: int = 1
    earned_badge_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scenario_or_404(db: Session, scenario_id: int) -> CareerScenario:
    scenario = db.get(CareerScenario, scenario_id)
    if scenario is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Scenario {scenario_id} not found.",
        )
    return scenario


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/generate",
    response_model=ScenarioOut,
    summary="Get or generate a career simulation for an occupation",
    description=(
        "Returns the latest stored simulation for the occupation, or asks "
        "the simulation designer for a new one when none exists or "
        "``regenerate`` is set.  Either way the user's progress record for "
        "the simulation is started.  Returns 404 for an unknown occupation "
        "and 500 when the model's answer cannot be parsed."
    ),
)
def generate_simulation(
    body: GenerateBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    occupation = db.get(Occupation, body.onet_code)
    if occupation is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": f"Occupation {body.onet_code!r} not found."},
        )

    scenario = None
    if not body.regenerate:
        scenario = (
            db.query(CareerScenario)
            .filter(CareerScenario.onet_code == occupation.code)
            .order_by(CareerScenario.created_at.desc(), CareerScenario.id.desc())
            .first()
        )

    if scenario is None:
        logger.info("Generating simulation for %s (user %s)", occupation.code, current_user.id)
        try:
            simulation = _get_designer().design(occupation)
        except SimulationError as exc:
            logger.error("Simulation generation failed for %s: %s", occupation.code, exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": str(exc)},
            )
        except Exception as exc:
            logger.exception("Simulation model call failed for %s", occupation.code)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": str(exc) or "Failed to generate simulation."},
            )

        scenario = CareerScenario(
            onet_code=occupation.code,
            title=simulation.title,
            description=simulation.description,
            difficulty_level=simulation.difficulty_level,
            estimated_duration_minutes=simulation.estimated_duration_minutes,
            points_reward=simulation.points_reward,
            steps=[step.model_dump() for step in simulation.steps],
        )
        db.add(scenario)
        db.commit()
        db.refresh(scenario)
        logger.info("Simulation %s saved for %s", scenario.id, occupation.code)

    start_progress(db, current_user.id, scenario.id)
    return scenario


@router.get(
    "",
    response_model=list[ScenarioSummary],
    summary="List stored simulations, newest first",
)
def list_simulations(
    onet_code: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(CareerScenario)
    if onet_code:
        query = query.filter(CareerScenario.onet_code == onet_code)
    return query.order_by(CareerScenario.created_at.desc(), CareerScenario.id.desc()).all()


@router.get(
    "/rewards",
    response_model=RewardsOut,
    summary="Points, level and badges of the current user",
)
def get_rewards(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rewards = db.query(UserRewards).filter(UserRewards.user_id == current_user.id).first()
    if rewards is None:
        return RewardsOut()
    return RewardsOut(
        points=rewards.points,
        level=rewards.level,
        earned_badge_ids=rewards.earned_badge_ids or [],
    )


@router.get(
    "/{scenario_id}",
    response_model=ScenarioOut,
    summary="One simulation with all its steps",
)
def get_simulation(
    scenario_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _scenario_or_404(db, scenario_id)


@router.get(
    "/{scenario_id}/progress",
    response_model=ProgressOut,
    summary="The current user's progress through a simulation",
)
def read_progress(
    scenario_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _scenario_or_404(db, scenario_id)
    progress = get_progress(db, current_user.id, scenario_id)
    if progress is None:
        return ProgressOut(scenario_id=scenario_id)
    return progress


@router.post(
    "/{scenario_id}/progress",
    response_model=ProgressOut,
    summary="Complete or reopen one simulation step",
    description=(
        "Quiz steps may carry ``answers``; the step then only counts as "
        "completed when the quiz score reaches its passing score."
    ),
)
def update_progress(
    scenario_id: int,
    body: ProgressBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    scenario = _scenario_or_404(db, scenario_id)
    try:
        return record_step(
            db, current_user.id, scenario, body.step_id,
            completed=body.completed, answers=body.answers,
        )
    except UnknownStepError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
