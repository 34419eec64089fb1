"""
youni/llm/llm_client.py

Shared LLM client factory for AI Youni.

Task types
----------
"general"  → conversational model (default gpt-4o-mini), temp 0.7
             Used by the AI Youni assistant chat.

"analysis" → analysis model (default gpt-3.5-turbo), temp 0.5
             Used where the output must be machine-readable JSON:
             the Dreamscapes workshop analysis and career simulations.

Usage
-----
from youni.llm import TaskType, get_llm

llm = get_llm(TaskType.GENERAL)
llm = get_llm(TaskType.ANALYSIS)
llm = get_llm("analysis", temperature=0)  # override temperature

Environment variables
---------------------
OPENAI_API_KEY         Required for every task type
OPENAI_MODEL           Override the general model name
OPENAI_ANALYSIS_MODEL  Override the analysis model name
"""

from __future__ import annotations

import os
import re
from enum import Enum

from crewai import LLM
from dotenv import load_dotenv

load_dotenv()


# ---------------------------------------------------------------------------
# Task type enum
# ---------------------------------------------------------------------------

class TaskType(str, Enum):
    """Semantic task category that determines which model is selected."""
    GENERAL  = "general"    # assistant chat
    ANALYSIS = "analysis"   # strict-JSON workshop analysis


# ---------------------------------------------------------------------------
# Model identifiers (LiteLLM routing strings used by CrewAI)
# ---------------------------------------------------------------------------

MODEL_GENERAL  = f"openai/{os.getenv('OPENAI_MODEL', 'gpt-4o-mini')}"
MODEL_ANALYSIS = f"openai/{os.getenv('OPENAI_ANALYSIS_MODEL', 'gpt-3.5-turbo')}"

_TEMP_GENERAL  = 0.7
_TEMP_ANALYSIS = 0.5

_MODELS = {
    TaskType.GENERAL:  (MODEL_GENERAL,  _TEMP_GENERAL),
    TaskType.ANALYSIS: (MODEL_ANALYSIS, _TEMP_ANALYSIS),
}


# ---------------------------------------------------------------------------
# Public factory
# ---------------------------------------------------------------------------

def get_llm(
    task_type: TaskType | str = TaskType.GENERAL,
    temperature: float | None = None,
) -> LLM:
    """
    Return a configured CrewAI LLM for the given task type.

    Parameters
    ----------
    task_type : TaskType | str
        "general" or "analysis".
    temperature : float | None
        Override the default temperature for this task type.

    Returns
    -------
    crewai.LLM

    Raises
    ------
    ValueError
        If task_type is not a recognised TaskType value.
    EnvironmentError
        If OPENAI_API_KEY is not set.
    """
    try:
        task = TaskType(task_type)
    except ValueError:
        valid = [t.value for t in TaskType]
        raise ValueError(
            f"Unknown task_type {task_type!r}. Valid options: {valid}"
        )

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise EnvironmentError(
            "OPENAI_API_KEY is not set. "
            "Add it to your .env file (see .env.example)."
        )

    model, default_temp = _MODELS[task]
    return LLM(
        model=model,
        temperature=temperature if temperature is not None else default_temp,
        api_key=api_key,
    )


_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.DOTALL)


def strip_code_fences(raw: str | None) -> str:
    """Drop a surrounding Markdown code fence from a model answer."""
    return _FENCE.sub("", (raw or "").strip()).strip()
