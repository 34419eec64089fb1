import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from youni.agents.assessment_processor import (
    DEFAULT_ASSESSMENT_ID,
    SECTION_IDS,
    RADAR_TRAITS,
    NoResponsesError,
    UnknownTraitError,
    process_assessment,
    save_radar_score,
    save_section_responses,
)
from youni.api.auth_routes import get_current_user
from youni.database.connection import get_db
from youni.database.models import User, VocationalProfile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessment", tags=["assessment"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class SectionResponsesBody(BaseModel):
    response_data: dict[str, Any]
    assessment_id: str = DEFAULT_ASSESSMENT_ID


class SectionResponsesOut(BaseModel):
    id: int
    assessment_id: str
    section_id: str
    response_data: dict[str, Any]
    updated_at: datetime

    class Config:
        from_attributes = True


class RadarScoreBody(BaseModel):
    score: int = Field(..., ge=0, le=100)


class ProfileOut(BaseModel):
    user_id: int
    assessment_summary: Optional[dict[str, Any]] = None
    suggested_onet_codes: Optional[list[str]] = None
    dreamscapes_analysis: Optional[dict[str, Any]] = None
    personality_radar: Optional[dict[str, int]] = None
    last_updated: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.put(
    "/responses/{section_id}",
    response_model=SectionResponsesOut,
    summary="Save answers for one assessment section",
)
def save_responses(
    section_id: str,
    body: SectionResponsesBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if section_id not in SECTION_IDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown assessment section {section_id!r}.",
        )
    return save_section_responses(
        db, current_user.id, section_id, body.response_data, body.assessment_id
    )


@router.post(
    "/process",
    response_model=ProfileOut,
    summary="Recompute the vocational profile from stored answers",
)
def reprocess_assessment(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    logger.info("Assessment reprocessing request received for user %s", current_user.id)
    try:
        return process_assessment(db, current_user.id)
    except NoResponsesError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get(
    "/profile",
    response_model=ProfileOut,
    summary="Current vocational profile",
)
def get_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = db.query(VocationalProfile).filter(VocationalProfile.user_id == current_user.id).first()
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vocational profile not found.",
        )
    return profile


@router.put(
    "/personality-radar/{trait}",
    response_model=ProfileOut,
    summary="Save one Personality Radar trait score",
    description=(
        "Merges a 0-100 score for one Big-Five trait "
        f"({', '.join(RADAR_TRAITS)}) into the vocational profile, keeping "
        "the scores of the other traits."
    ),
)
def save_personality_radar(
    trait: str,
    body: RadarScoreBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return save_radar_score(db, current_user.id, trait, body.score)
    except UnknownTraitError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
