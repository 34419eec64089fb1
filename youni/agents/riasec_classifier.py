"""
youni/agents/riasec_classifier.py

Keyword-based RIASEC (Holland) classifier for O*NET occupations.

Each occupation gets exactly one interest code from the six-category
Holland taxonomy:

    R  Realistic       I  Investigative    A  Artistic
    S  Social          E  Enterprising     C  Conventional

Algorithm
---------
1. Lower-case the text and count, per category, how many of its keywords
   occur as substrings.
2. The category with the strictly highest count wins.  Equal non-zero
   counts resolve to the category met first in R, I, A, S, E, C order.
3. ``classify_occupation`` scores the ``interests`` field first, retries
   with ``title + description`` when that scores zero everywhere, and
   falls back to "R".

The keyword lists are plain configuration: pass a different mapping to
any function to swap them out.

Usage
-----
from youni.agents.riasec_classifier import classify_occupation, classify_text

classify_text("Conducts scientific research and data analysis")   # "I"
classify_occupation(occ.interests, occ.title, occ.description)    # "S"
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

RIASEC_ORDER: tuple[str, ...] = ("R", "I", "A", "S", "E", "C")

RIASEC_LABELS: dict[str, str] = {
    "R": "Realistic",
    "I": "Investigative",
    "A": "Artistic",
    "S": "Social",
    "E": "Enterprising",
    "C": "Conventional",
}

DEFAULT_RIASEC_CODE = "R"

RIASEC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "R": ("mechanical", "technical", "hands-on", "practical", "physical",
          "equipment", "tools", "machinery", "construction", "repair"),
    "I": ("analytical", "scientific", "research", "intellectual", "investigative",
          "analysis", "data", "problem-solving", "mathematics", "science"),
    "A": ("creative", "artistic", "expressive", "design", "innovative",
          "art", "music", "writing", "performance", "visual"),
    "S": ("helping", "teaching", "counseling", "social", "service",
          "people", "care", "support", "community", "education"),
    "E": ("leadership", "persuading", "managing", "entrepreneurial", "business",
          "sales", "influence", "negotiation", "coordination", "strategy"),
    "C": ("organizing", "detail", "structured", "systematic", "methodical",
          "data", "records", "procedures", "accuracy", "planning"),
}

Keywords = Mapping[str, Sequence[str]]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def keyword_counts(text: str, keywords: Optional[Keywords] = None) -> dict[str, int]:
    """Number of distinct keywords per category found in *text*."""
    keywords = keywords if keywords is not None else RIASEC_KEYWORDS
    haystack = (text or "").lower()
    return {
        code: sum(1 for word in words if word.lower() in haystack)
        for code, words in keywords.items()
    }


def classify_text(text: str, keywords: Optional[Keywords] = None) -> Optional[str]:
    """
    Return the best-scoring RIASEC code for *text*, or None if no keyword hits.
    """
    counts = keyword_counts(text, keywords)
    order = [c for c in RIASEC_ORDER if c in counts] + [c for c in counts if c not in RIASEC_ORDER]

    best_code: Optional[str] = None
    best_count = 0
    for code in order:
        if counts[code] > best_count:
            best_code, best_count = code, counts[code]
    return best_code


def interests_text(interests: Any) -> str:
    """Flatten an O*NET ``interests`` value (string, list or mapping) to text."""
    if interests is None:
        return ""
    if isinstance(interests, str):
        return interests
    if not interests:
        return ""
    return json.dumps(interests)


def classify_occupation(
    interests: Any,
    title: Optional[str],
    description: Optional[str],
    keywords: Optional[Keywords] = None,
) -> str:
    """
    Assign exactly one RIASEC code to an occupation.

    Raises
    ------
    TypeError
        If *interests* holds values that cannot be serialised to text.
    """
    code = classify_text(interests_text(interests), keywords)
    if code is None:
        code = classify_text(f"{title or ''} {description or ''}", keywords)
    return code or DEFAULT_RIASEC_CODE
