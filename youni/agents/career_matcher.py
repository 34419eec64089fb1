"""
youni/agents/career_matcher.py

Ranks O*NET occupations for one user from their stored vocational profile.

Pipeline
--------
Step 1 – Direct suggestions
    Occupations listed in ``vocational_profile.suggested_onet_codes``
    (produced by assessment processing), scored DIRECT_SUGGESTION_SCORE.

Step 2 – Holland fallback (only while fewer than MAX_CAREER_MATCHES)
    Occupations whose cached ``riasec_code`` equals the user's primary
    Holland code (case-insensitive), excluding Step-1 codes, scored
    HOLLAND_MATCH_SCORE.

The result is Step 1 followed by Step 2, never longer than
MAX_CAREER_MATCHES and never repeating an occupation code.

Failure semantics
-----------------
- No profile          → empty result with an explanatory message.
- Step 1 query error  → logged; Step 1 contributes nothing, Step 2 still runs.
- Step 2 query error  → logged; Step 1 results are returned as-is.
- Profile query error → propagated (the caller turns it into a 500).

Usage
-----
from youni.agents.career_matcher import CareerMatcher

outcome = CareerMatcher(db).match(user_id=7)
for m in outcome.matches:
    print(m.onet_code, m.score, m.match_type)
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from youni.agents.occupation_data import Outlook, Wages, WorkContext
from youni.database.models import Occupation, VocationalProfile

load_dotenv()

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tunables
# ---------------------------------------------------------------------------

DIRECT_SUGGESTION_SCORE = float(os.getenv("DIRECT_SUGGESTION_SCORE", "0.9"))
HOLLAND_MATCH_SCORE     = float(os.getenv("HOLLAND_MATCH_SCORE", "0.6"))
MAX_CAREER_MATCHES      = int(os.getenv("MAX_CAREER_MATCHES", "10"))

NO_PROFILE_MESSAGE = "Vocational profile not found."


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------

class MatchType(str, Enum):
    DIRECT_SUGGESTION = "direct_suggestion"
    HOLLAND_MATCH     = "holland_match"


class MatchResult(BaseModel):
    """One ranked occupation for the career-match response."""

    onet_code: str
    name: str
    description: Optional[str] = None
    median_wage_annual: Optional[float] = None
    median_wage_hourly: Optional[float] = None
    entry_level_education: Optional[str] = None
    work_experience: Optional[str] = None
    on_the_job_training: Optional[str] = None
    employment_projection_national_growth_rate: Optional[Union[float, str]] = None
    employment_projection_national_openings: Optional[int] = None
    score: float = Field(ge=0.0, le=1.0)
    match_type: MatchType


class CareerMatchOutcome(BaseModel):
    matches: list[MatchResult] = Field(default_factory=list)
    message: Optional[str] = None


class _AssessmentSummary(BaseModel):
    holland_codes: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Matcher
# ---------------------------------------------------------------------------

class CareerMatcher:
    """Produce a user's ranked occupation matches for a single request."""

    def __init__(
        self,
        db: Session,
        max_matches: int = MAX_CAREER_MATCHES,
        direct_score: float = DIRECT_SUGGESTION_SCORE,
        holland_score: float = HOLLAND_MATCH_SCORE,
    ) -> None:
        self._db            = db
        self._max_matches   = max_matches
        self._direct_score  = direct_score
        self._holland_score = holland_score

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match(self, user_id: int) -> CareerMatchOutcome:
        profile = (
            self._db.query(VocationalProfile)
            .filter(VocationalProfile.user_id == user_id)
            .first()
        )
        if profile is None:
            logger.info("No vocational profile found for user %s", user_id)
            return CareerMatchOutcome(matches=[], message=NO_PROFILE_MESSAGE)

        matches = self._direct_suggestions(profile.suggested_onet_codes)

        if len(matches) < self._max_matches:
            primary = primary_holland_code(profile.assessment_summary)
            if primary:
                matches += self._holland_matches(
                    primary,
                    exclude={m.onet_code for m in matches},
                    limit=self._max_matches - len(matches),
                )
            else:
                logger.info("No Holland codes in assessment summary for user %s", user_id)

        logger.info("Career match for user %s: %d results", user_id, len(matches))
        return CareerMatchOutcome(matches=matches)

    # ------------------------------------------------------------------
    # Step 1: direct suggestions
    # ------------------------------------------------------------------

    def _direct_suggestions(self, suggested_codes) -> list[MatchResult]:
        codes = _clean_codes(suggested_codes)
        if not codes:
            return []

        try:
            rows = self._db.query(Occupation).filter(Occupation.code.in_(codes)).all()
        except SQLAlchemyError as exc:
            logger.error("Error fetching suggested occupations %s: %s", codes, exc)
            self._db.rollback()
            return []

        position = {code: i for i, code in enumerate(codes)}
        rows.sort(key=lambda occ: position[occ.code])
        return [
            to_match_result(occ, self._direct_score, MatchType.DIRECT_SUGGESTION)
            for occ in rows[: self._max_matches]
        ]

    # ------------------------------------------------------------------
    # Step 2: Holland-code fallback
    # ------------------------------------------------------------------

    def _holland_matches(self, primary_code: str, exclude: set[str], limit: int) -> list[MatchResult]:
        query = self._db.query(Occupation).filter(
            func.upper(Occupation.riasec_code) == primary_code.upper()
        )
        if exclude:
            query = query.filter(Occupation.code.notin_(exclude))

        try:
            rows = query.order_by(Occupation.code).limit(limit).all()
        except SQLAlchemyError as exc:
            logger.error(
                "Error fetching fallback occupations for Holland code %s: %s",
                primary_code, exc,
            )
            self._db.rollback()
            return []

        return [
            to_match_result(occ, self._holland_score, MatchType.HOLLAND_MATCH)
            for occ in rows
        ]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def primary_holland_code(assessment_summary) -> Optional[str]:
    """First Holland code in an ``assessment_summary`` blob, if any."""
    if not isinstance(assessment_summary, dict):
        return None
    try:
        summary = _AssessmentSummary.model_validate(assessment_summary)
    except ValidationError as exc:
        logger.warning("Malformed assessment_summary ignored: %s", exc)
        return None
    codes = [c.strip() for c in summary.holland_codes if c.strip()]
    return codes[0] if codes else None


def to_match_result(occ: Occupation, score: float, match_type: MatchType) -> MatchResult:
    wages   = Wages.parse(occ.wages)
    context = WorkContext.parse(occ.work_context)
    outlook = Outlook.parse(occ.outlook)
    return MatchResult(
        onet_code=occ.code,
        name=occ.title,
        description=occ.description,
        median_wage_annual=wages.annual_median,
        median_wage_hourly=wages.hourly_median,
        entry_level_education=context.education_level,
        work_experience=context.experience_required,
        on_the_job_training=context.training_required,
        employment_projection_national_growth_rate=outlook.growth_rate,
        employment_projection_national_openings=outlook.annual_openings,
        score=score,
        match_type=match_type,
    )


def _clean_codes(codes) -> list[str]:
    """Order-preserving de-duplicated list of non-empty string codes."""
    if not isinstance(codes, list):
        return []
    seen: list[str] = []
    for code in codes:
        if isinstance(code, str) and code.strip() and code.strip() not in seen:
            seen.append(code.strip())
    return seen
