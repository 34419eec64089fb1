import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from youni.agents.dreamscapes_analyst import (
    AnalysisError,
    DreamscapesAnalysis,
    DreamscapesAnalyst,
    format_responses,
)
from youni.api.auth_routes import get_current_user
from youni.database.connection import get_db
from youni.database.models import DreamscapesResponse, User, VocationalProfile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workshop", tags=["workshop"])


# ---------------------------------------------------------------------------
# Agent singleton (lazy-initialised on first /analyze request)
# ---------------------------------------------------------------------------

_analyst: Optional[DreamscapesAnalyst] = None


def _get_analyst() -> DreamscapesAnalyst:
    global _analyst
    if _analyst is None:
        _analyst = DreamscapesAnalyst()
    return _analyst


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class SubDream(BaseModel):
    vision: str = ""
    why: str = ""


class DreamscapesAnswers(BaseModel):
    dreams: list[str] = Field(default_factory=list)
    subDreams: dict[str, list[SubDream]] = Field(default_factory=dict)
    essayGod: str = ""
    essayMillion: str = ""


class DreamscapesBody(BaseModel):
    responses: DreamscapesAnswers


class DreamscapesOut(BaseModel):
    id: int
    user_id: int
    responses: dict[str, Any]
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaveOut(BaseModel):
    message: str
    data: DreamscapesOut


class AnalyzeOut(BaseModel):
    success: bool
    message: str
    analysis: DreamscapesAnalysis


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/dreamscapes",
    response_model=SaveOut,
    status_code=status.HTTP_201_CREATED,
    summary="Save a completed Dreamscapes workshop",
)
def save_dreamscapes(
    body: DreamscapesBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = DreamscapesResponse(
        user_id=current_user.id,
        responses=body.responses.model_dump(),
        completed_at=datetime.utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Dreamscapes response saved for user %s", current_user.id)
    return {"message": "Workshop response saved successfully", "data": record}


@router.post(
    "/dreamscapes/analyze",
    response_model=AnalyzeOut,
    summary="Analyse the latest Dreamscapes workshop with the LLM",
    description=(
        "Runs the vocational analyst over the user's most recent workshop "
        "answers and stores the result on the vocational profile.  Returns "
        "404 when there is nothing to analyse and 500 when the model's "
        "answer cannot be parsed."
    ),
)
def analyze_dreamscapes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    latest = (
        db.query(DreamscapesResponse)
        .filter(DreamscapesResponse.user_id == current_user.id)
        .order_by(DreamscapesResponse.created_at.desc(), DreamscapesResponse.id.desc())
        .first()
    )
    if latest is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "No workshop responses found to analyze."},
        )

    try:
        analysis = _get_analyst().analyze(format_responses(latest.responses or {}))
    except AnalysisError as exc:
        logger.error("Dreamscapes analysis failed for user %s: %s", current_user.id, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )
    except Exception as exc:
        logger.exception("Analysis model call failed for user %s", current_user.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )

    profile = db.query(VocationalProfile).filter(VocationalProfile.user_id == current_user.id).first()
    if profile is None:
        profile = VocationalProfile(user_id=current_user.id)
        db.add(profile)
    profile.dreamscapes_analysis = analysis.model_dump()
    profile.last_updated = datetime.utcnow()
    db.commit()

    logger.info("Dreamscapes analysis complete, profile updated for user %s", current_user.id)
    return {
        "success": True,
        "message": "Analysis complete and profile updated.",
        "analysis": analysis,
    }
