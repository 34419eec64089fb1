import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from youni.agents.career_matcher import CareerMatcher, CareerMatchOutcome
from youni.api.auth_routes import get_current_user
from youni.database.connection import get_db
from youni.database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["career-match"])


@router.post(
    "/career-match",
    response_model=CareerMatchOutcome,
    response_model_exclude_none=True,
    summary="Rank occupations for the current user",
    description=(
        "Returns occupations suggested by the user's assessment "
        "(`direct_suggestion`, score 0.9), topped up with occupations sharing "
        "the user's primary Holland code (`holland_match`, score 0.6), "
        "at most 10 in total.  A user without a vocational profile gets an "
        "empty list and an explanatory message."
    ),
)
def career_match(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    logger.info("Career match request received for user %s", current_user.id)
    try:
        return CareerMatcher(db).match(current_user.id)
    except SQLAlchemyError:
        logger.exception("Career match failed for user %s", current_user.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Could not fetch user profile."},
        )
    except Exception as exc:
        logger.exception("Career match failed for user %s", current_user.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc) or "An unknown error occurred."},
        )
