"""
youni/agents/assessment_processor.py

Turns raw vocational-assessment answers into the profile fields that
career matching reads.

Steps
-----
1. Merge every stored section's ``response_data`` into one answer map.
2. Score it: one RIASEC point per interest scenario (the chosen option's
   theme) and Big-Five trait sums from the personality Likert items.
3. Holland codes = RIASEC codes with a positive score, highest first,
   at most three.
4. Suggested occupations = up to 5 occupations tagged with the primary
   code, topped up from the secondary code when fewer than 5 were found.
5. Upsert ``assessment_summary`` and ``suggested_onet_codes`` into the
   user's vocational profile.

Usage
-----
from youni.agents.assessment_processor import process_assessment

profile = process_assessment(db, user_id=7)
print(profile.assessment_summary["holland_codes"])   # ["I", "A", "R"]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from youni.agents.riasec_classifier import RIASEC_ORDER
from youni.database.models import Occupation, VocationalProfile, VocationalResponse

logger = logging.getLogger(__name__)

DEFAULT_ASSESSMENT_ID = "main_vocational"
MAX_HOLLAND_CODES     = 3
MAX_SUGGESTED_CODES   = 5

SECTION_IDS = ("warmup", "interests", "personality", "aptitude", "learning_style", "values", "goals")


class NoResponsesError(LookupError):
    """Raised when a user has no stored answers for an assessment."""


# ---------------------------------------------------------------------------
# Question bank
# ---------------------------------------------------------------------------

# question_id → {option_id: RIASEC theme}
INTEREST_SCENARIOS: dict[str, dict[str, str]] = {
    "interest_scenario_1": {"1a": "A", "1b": "C", "1c": "E", "1d": "I", "1e": "R", "1f": "S"},
    "interest_scenario_2": {"2a": "C", "2b": "A", "2c": "E", "2d": "I", "2e": "R", "2f": "S"},
    "interest_scenario_3": {"3a": "R", "3b": "E", "3c": "A", "3d": "I", "3e": "S", "3f": "C"},
    "interest_scenario_4": {"4a": "R", "4b": "I", "4c": "A", "4d": "S", "4e": "E", "4f": "C"},
    "interest_scenario_5": {"5a": "I", "5b": "A", "5c": "E", "5d": "S", "5e": "C", "5f": "R"},
}

# question_id → Big-Five trait
PERSONALITY_ITEMS: dict[str, str] = {
    "pers_openness_ideas":  "O",
    "pers_openness_art":    "O",
    "pers_consc_organized": "C",
    "pers_consc_reliable":  "C",
    "pers_extra_talkative": "E",
    "pers_extra_energy":    "E",
    "pers_agree_helpful":   "A",
    "pers_agree_trusting":  "A",
    "pers_neuro_calm":      "N",
    "pers_neuro_worry":     "N",
}

# Negatively framed items, scored as (6 - answer) on the 1-5 scale.
REVERSED_ITEMS = frozenset({"pers_neuro_worry"})


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@dataclass
class AssessmentScores:
    riasec: dict[str, int] = field(default_factory=lambda: {c: 0 for c in RIASEC_ORDER})
    personality: dict[str, int] = field(default_factory=lambda: {t: 0 for t in "OCEAN"})


def score_answers(answers: dict[str, Any]) -> AssessmentScores:
    """Score a merged answer map.  Unknown questions and options are ignored."""
    scores = AssessmentScores()

    for question_id, options in INTEREST_SCENARIOS.items():
        answer = answers.get(question_id)
        theme = options.get(answer) if isinstance(answer, str) else None
        if theme:
            scores.riasec[theme] += 1

    for question_id, trait in PERSONALITY_ITEMS.items():
        value = _likert(answers.get(question_id))
        if value is None:
            continue
        scores.personality[trait] += (6 - value) if question_id in REVERSED_ITEMS else value

    return scores


def top_holland_codes(riasec_scores: dict[str, int], limit: int = MAX_HOLLAND_CODES) -> list[str]:
    """Positive-scoring codes, highest first; ties keep R, I, A, S, E, C order."""
    ranked = sorted(
        (code for code in RIASEC_ORDER if riasec_scores.get(code, 0) > 0),
        key=lambda code: -riasec_scores[code],
    )
    return ranked[:limit]


def _likert(value: Any) -> Optional[int]:
    try:
        score = int(value)
    except (TypeError, ValueError):
        return None
    return score if 1 <= score <= 5 else None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def save_section_responses(
    db: Session,
    user_id: int,
    section_id: str,
    response_data: dict[str, Any],
    assessment_id: str = DEFAULT_ASSESSMENT_ID,
) -> VocationalResponse:
    """Insert or replace the stored answers for one assessment section."""
    row = (
        db.query(VocationalResponse)
        .filter(
            VocationalResponse.user_id == user_id,
            VocationalResponse.assessment_id == assessment_id,
            VocationalResponse.section_id == section_id,
        )
        .first()
    )
    if row is None:
        row = VocationalResponse(user_id=user_id, assessment_id=assessment_id, section_id=section_id)
        db.add(row)
    row.response_data = response_data
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


def suggest_onet_codes(db: Session, holland_codes: list[str], limit: int = MAX_SUGGESTED_CODES) -> list[str]:
    """Occupation codes for the primary Holland code, topped up from the secondary."""
    if not holland_codes:
        return []

    suggested = [
        code for (code,) in db.query(Occupation.code)
        .filter(Occupation.riasec_code == holland_codes[0])
        .order_by(Occupation.code)
        .limit(limit)
        .all()
    ]

    if len(suggested) < limit and len(holland_codes) > 1:
        query = db.query(Occupation.code).filter(Occupation.riasec_code == holland_codes[1])
        if suggested:
            query = query.filter(Occupation.code.notin_(suggested))
        suggested += [
            code for (code,) in query.order_by(Occupation.code).limit(limit - len(suggested)).all()
        ]

    return list(dict.fromkeys(suggested))


def process_assessment(
    db: Session,
    user_id: int,
    assessment_id: str = DEFAULT_ASSESSMENT_ID,
) -> VocationalProfile:
    """
    Recompute the user's vocational profile from their stored answers.

    Raises
    ------
    NoResponsesError
        If the user has no answers stored for *assessment_id*.
    """
    rows = (
        db.query(VocationalResponse)
        .filter(
            VocationalResponse.user_id == user_id,
            VocationalResponse.assessment_id == assessment_id,
        )
        .all()
    )
    if not rows:
        raise NoResponsesError("No vocational responses found to generate profile.")

    answers: dict[str, Any] = {}
    for row in rows:
        if isinstance(row.response_data, dict):
            answers.update(row.response_data)
        else:
            logger.warning("Unexpected response_data for section %s: %r", row.section_id, row.response_data)

    scores = score_answers(answers)
    holland_codes = top_holland_codes(scores.riasec)
    suggested = suggest_onet_codes(db, holland_codes)

    logger.info(
        "Assessment for user %s: RIASEC=%s, Holland=%s, suggested=%s",
        user_id, scores.riasec, holland_codes, suggested,
    )

    summary = None
    if holland_codes:
        summary = {
            "holland_codes": holland_codes,
            "riasec_scores": scores.riasec,
            "personality_scores": scores.personality,
        }

    profile = db.query(VocationalProfile).filter(VocationalProfile.user_id == user_id).first()
    if profile is None:
        profile = VocationalProfile(user_id=user_id)
        db.add(profile)
    profile.assessment_summary = summary
    profile.suggested_onet_codes = suggested or None
    profile.last_updated = datetime.utcnow()
    db.commit()
    db.refresh(profile)
    return profile


# ---------------------------------------------------------------------------
# Personality Radar
# ---------------------------------------------------------------------------

# Each Personality Radar mini-game measures one Big-Five trait and reports
# it on a 0-100 scale.
RADAR_TRAITS: dict[str, str] = {
    "openness":          "Openness",
    "conscientiousness": "Conscientiousness",
    "extraversion":      "Extraversion",
    "agreeableness":     "Agreeableness",
    "neuroticism":       "Neuroticism",
}


class UnknownTraitError(LookupError):
    """Raised for a trait the Personality Radar does not measure."""


def save_radar_score(db: Session, user_id: int, trait: str, score: int) -> VocationalProfile:
    """
    Merge one trait score into the profile's ``personality_radar``.

    Scores already stored for other traits are kept; a repeated game
    overwrites its own trait.
    """
    name = RADAR_TRAITS.get(trait.lower())
    if name is None:
        raise UnknownTraitError(f"Unknown personality trait {trait!r}.")

    profile = db.query(VocationalProfile).filter(VocationalProfile.user_id == user_id).first()
    if profile is None:
        profile = VocationalProfile(user_id=user_id)
        db.add(profile)
    profile.personality_radar = {**(profile.personality_radar or {}), name: score}
    profile.last_updated = datetime.utcnow()
    db.commit()
    db.refresh(profile)

    logger.info("Saved %s score for user %s: %s", name, user_id, score)
    return profile
