"""
youni/agents/dreamscapes_analyst.py

CrewAI agent that turns Dreamscapes workshop answers into a structured
vocational analysis.

Input
-----
The workshop stores one JSON document per submission:

    {
      "dreams":      ["...", "...", "..."],
      "subDreams":   {"dream_0": [{"vision": "...", "why": "..."}, ...], ...},
      "essayGod":    "...",
      "essayMillion": "..."
    }

Output
------
DreamscapesAnalysis with five fixed fields: themes, values, interests,
motivators (lists, normally of strings) and a short summary.  The model is
instructed to answer with strict JSON.  Anything that does not parse, or
parses without a ``themes`` list and a non-empty ``summary``, raises
AnalysisError.  The remaining lists are read leniently.

Usage
-----
from youni.agents.dreamscapes_analyst import DreamscapesAnalyst, format_responses

analyst  = DreamscapesAnalyst()
analysis = analyst.analyze(format_responses(record.responses))
print(analysis.themes, analysis.summary)
"""

from __future__ import annotations

import json
import logging
from typing import Any

from crewai import Agent, Crew, Task
from pydantic import BaseModel, Field, ValidationError, field_validator

from youni.llm import TaskType, get_llm, strip_code_fences

logger = logging.getLogger(__name__)

NOT_PROVIDED = "Not provided"

SYSTEM_PROMPT = (
    "You are an expert vocational analyst. Analyze the following user responses "
    "from a self-discovery workshop. Identify and list recurring themes (e.g., "
    "creativity, helping others, adventure, leadership, technical skill), core "
    "values demonstrated, potential career interests suggested by the content, "
    "and key motivators. Provide the output ONLY as a valid JSON object with the "
    'following keys: "themes" (array of strings), "values" (array of strings), '
    '"interests" (array of strings), "motivators" (array of strings), and '
    '"summary" (a brief text summary, max 100 words). Ensure the output is '
    "strictly JSON."
)


class AnalysisError(Exception):
    """The LLM answer could not be turned into a DreamscapesAnalysis."""


# ---------------------------------------------------------------------------
# Output model
# ---------------------------------------------------------------------------

class DreamscapesAnalysis(BaseModel):
    """
    Only ``themes`` (a list) and ``summary`` are required.  The other lists
    take whatever the model sends: a lone string becomes a one-item list and
    any other non-list becomes empty.  Items are kept as sent.
    """

    themes: list[Any]
    values: list[Any] = Field(default_factory=list)
    interests: list[Any] = Field(default_factory=list)
    motivators: list[Any] = Field(default_factory=list)
    summary: str

    @field_validator("values", "interests", "motivators", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> list[Any]:
        if isinstance(value, list):
            return value
        if isinstance(value, str) and value.strip():
            return [value.strip()]
        return []

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_not_blank(cls, value: Any) -> str:
        text = str(value).strip() if value else ""
        if not text:
            raise ValueError("summary must not be empty")
        return text


# ---------------------------------------------------------------------------
# Prompt input
# ---------------------------------------------------------------------------

def format_responses(responses: dict[str, Any]) -> str:
    """Render a stored workshop submission as the analysis prompt body."""
    dreams = responses.get("dreams") or []
    sub_dreams = responses.get("subDreams") or {}

    lines = ["User Dreams:"]
    for i, dream in enumerate(dreams):
        lines.append(f"- Dream {i + 1}: {dream or NOT_PROVIDED}")
        for j, sub in enumerate(sub_dreams.get(f"dream_{i}") or []):
            sub = sub if isinstance(sub, dict) else {}
            lines.append(f"  - Vision {j + 1}: {sub.get('vision') or NOT_PROVIDED}")
            lines.append(f"    - Why: {sub.get('why') or NOT_PROVIDED}")

    lines.append("")
    lines.append("Essay - God for a day:")
    lines.append(responses.get("essayGod") or NOT_PROVIDED)
    lines.append("")
    lines.append("Essay - Million euros:")
    lines.append(responses.get("essayMillion") or NOT_PROVIDED)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def parse_analysis(raw: str) -> DreamscapesAnalysis:
    """
    Strictly parse the model output.

    Markdown fences are tolerated; everything else must be a JSON object
    with a ``themes`` array and a non-empty ``summary``.
    """
    clean = strip_code_fences(raw)
    if not clean:
        raise AnalysisError("No content received from the analysis model.")

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"Failed to parse analysis result: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("themes"), list):
        raise AnalysisError("Invalid JSON structure received from the analysis model.")

    try:
        return DreamscapesAnalysis.model_validate(data)
    except ValidationError as exc:
        raise AnalysisError(f"Invalid JSON structure received from the analysis model: {exc}") from exc


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

class DreamscapesAnalyst:
    """Single-shot LLM analysis of workshop answers."""

    def __init__(self) -> None:
        self._llm   = get_llm(TaskType.ANALYSIS)
        self._agent = Agent(
            role="Vocational Analyst",
            goal=(
                "Extract recurring themes, values, interests and motivators "
                "from free-text self-discovery answers and report them as "
                "strict JSON."
            ),
            backstory=(
                "You are a career counsellor who has run hundreds of "
                "self-discovery workshops for students and reads between the "
                "lines of their dreams and essays to find what drives them."
            ),
            llm=self._llm,
            verbose=False,
            allow_delegation=False,
        )

    def analyze(self, analysis_input: str) -> DreamscapesAnalysis:
        task = Task(
            description=(
                f"{SYSTEM_PROMPT}\n\n"
                f"Analyze these workshop responses:\n\n{analysis_input}"
            ),
            expected_output=(
                'JSON: {"themes": [...], "values": [...], "interests": [...], '
                '"motivators": [...], "summary": "<max 100 words>"}'
            ),
            agent=self._agent,
        )
        crew = Crew(agents=[self._agent], tasks=[task], verbose=False)
        raw  = str(crew.kickoff()).strip()

        try:
            return parse_analysis(raw)
        except AnalysisError:
            logger.error("Raw analysis response: %s", raw)
            raise
