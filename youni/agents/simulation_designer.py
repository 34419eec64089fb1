"""
youni/agents/simulation_designer.py

CrewAI agent that writes a "day in the life" career simulation for one
O*NET occupation.

Output
------
The model is asked for a single JSON object:

    {
      "title": "...",
      "description": "...",
      "difficulty_level": "beginner" | "intermediate" | "advanced",
      "estimated_duration_minutes": 30,
      "steps": [
        {"step_type": "quiz", "title": "...", "description": "...",
         "content": {"questions": [{"text": "...", "options": [...]}]}},
        ...
      ]
    }

parse_simulation() validates it into a GeneratedSimulation.  Each step type
has its own content model (video, quiz, interactive_task, reflection).
Steps are renumbered in order and every step, question, option and prompt
gets a fresh id.  Difficulty and duration fall back to safe values.  A
non-JSON answer, an empty step list, an unknown step type or content that
does not fit its step type raises SimulationError.

Usage
-----
from youni.agents.simulation_designer import SimulationDesigner

simulation = SimulationDesigner().design(occupation)
print(simulation.title, [s.step_type for s in simulation.steps])
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Annotated, Any, Literal, Optional, Union

from crewai import Agent, Crew, Task
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from youni.database.models import Occupation
from youni.llm import TaskType, get_llm, strip_code_fences

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")
DIFFICULTY_POINTS = {"beginner": 100, "intermediate": 200, "advanced": 300}

# Older prompts asked for a 1-5 difficulty scale.
_NUMERIC_DIFFICULTY = {1: "beginner", 2: "beginner", 3: "intermediate", 4: "advanced", 5: "advanced"}

MIN_DURATION_MINUTES     = 15
MAX_DURATION_MINUTES     = 60
DEFAULT_DURATION_MINUTES = 30
DEFAULT_PASSING_SCORE    = 70
DEFAULT_MIN_WORDS        = 50

PLACEHOLDER_VIDEO_URL = "https://youni-dev.s3.amazonaws.com/career-simulations/placeholder-video.mp4"

SYSTEM_PROMPT = (
    "You are an expert career simulation designer. Create an engaging, "
    "realistic simulation of a day in the life of the occupation below. The "
    "simulation must be educational and based on actual job tasks, mix "
    "activity types (video scenarios, quizzes, interactive tasks, "
    "reflections), progress from basic to more complex tasks, take 30-45 "
    "minutes and state clear success criteria."
)

RESPONSE_FORMAT = (
    "Return ONLY a valid JSON object with the keys: "
    '"title" (string), "description" (string), '
    '"difficulty_level" ("beginner", "intermediate" or "advanced"), '
    '"estimated_duration_minutes" (number), and "steps" (4-6 objects with '
    '"step_type", "title", "description" and "content").\n'
    "Content by step_type:\n"
    '- video: {"key_points": [string], "reflection_questions": [string]}\n'
    '- quiz: {"questions": [{"text": string, "options": [{"text": string, '
    '"is_correct": boolean}]}], "passing_score": number}\n'
    '- interactive_task: {"task_description": string, "success_criteria": '
    '[string], "resources": [{"title": string, "url": string}]}\n'
    '- reflection: {"prompts": [{"text": string, "min_words": number, '
    '"example_response": string}]}\n'
    "Ensure the output is strictly JSON."
)


class SimulationError(Exception):
    """The LLM answer could not be turned into a GeneratedSimulation."""


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


# ---------------------------------------------------------------------------
# Step content models
# ---------------------------------------------------------------------------

class _Content(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _ids_assigned_locally(cls, data: Any) -> Any:
        if isinstance(data, dict) and "id" in data:
            data = {k: v for k, v in data.items() if k != "id"}
        return data


class VideoContent(_Content):
    video_url: str = PLACEHOLDER_VIDEO_URL
    key_points: list[str] = Field(default_factory=list)
    reflection_questions: list[str] = Field(default_factory=list)


class QuizOption(_Content):
    id: str = Field(default_factory=_new_id)
    text: str
    is_correct: bool = False


class QuizQuestion(_Content):
    id: str = Field(default_factory=_new_id)
    text: str
    options: list[QuizOption] = Field(min_length=2)

    @model_validator(mode="before")
    @classmethod
    def _options_by_index(cls, data: Any) -> Any:
        """Accept plain-string options with a ``correctAnswer`` index."""
        if not isinstance(data, dict):
            return data
        options = data.get("options")
        if isinstance(options, list) and options and all(isinstance(o, str) for o in options):
            correct = data.get("correctAnswer", data.get("correct_answer"))
            data = {
                **data,
                "options": [{"text": text, "is_correct": i == correct} for i, text in enumerate(options)],
            }
        return data


class QuizContent(_Content):
    questions: list[QuizQuestion] = Field(min_length=1)
    passing_score: int = Field(DEFAULT_PASSING_SCORE, ge=0, le=100)


class TaskResource(_Content):
    title: str = "Resource"
    url: str = "#"
    type: str = "link"


class InteractiveTaskContent(_Content):
    task_description: str
    success_criteria: list[str] = Field(default_factory=list)
    resources: list[TaskResource] = Field(default_factory=list)


class ReflectionPrompt(_Content):
    id: str = Field(default_factory=_new_id)
    text: str
    min_words: int = DEFAULT_MIN_WORDS
    example_response: Optional[str] = None


class ReflectionContent(_Content):
    prompts: list[ReflectionPrompt] = Field(min_length=1)

    @field_validator("prompts", mode="before")
    @classmethod
    def _plain_prompts(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"text": p} if isinstance(p, str) else p for p in value]
        return value


# ---------------------------------------------------------------------------
# Steps and the simulation
# ---------------------------------------------------------------------------

class _Step(BaseModel):
    id: str = ""
    step_number: int = 0
    title: str
    description: str


class VideoStep(_Step):
    step_type: Literal["video"]
    content: VideoContent = Field(default_factory=VideoContent)


class QuizStep(_Step):
    step_type: Literal["quiz"]
    content: QuizContent


class InteractiveTaskStep(_Step):
    step_type: Literal["interactive_task"]
    content: InteractiveTaskContent


class ReflectionStep(_Step):
    step_type: Literal["reflection"]
    content: ReflectionContent


SimulationStep = Annotated[
    Union[VideoStep, QuizStep, InteractiveTaskStep, ReflectionStep],
    Field(discriminator="step_type"),
]


class GeneratedSimulation(BaseModel):
    title: str
    description: str
    difficulty_level: Literal["beginner", "intermediate", "advanced"] = "beginner"
    estimated_duration_minutes: int = DEFAULT_DURATION_MINUTES
    steps: list[SimulationStep] = Field(min_length=1)

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _known_difficulty(cls, value: Any) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return _NUMERIC_DIFFICULTY.get(int(value), "beginner")
        value = str(value or "").strip().lower()
        return value if value in DIFFICULTY_LEVELS else "beginner"

    @field_validator("estimated_duration_minutes", mode="before")
    @classmethod
    def _clamp_duration(cls, value: Any) -> int:
        try:
            minutes = int(value)
        except (TypeError, ValueError):
            return DEFAULT_DURATION_MINUTES
        return min(max(minutes, MIN_DURATION_MINUTES), MAX_DURATION_MINUTES)

    @property
    def points_reward(self) -> int:
        return DIFFICULTY_POINTS[self.difficulty_level]


# ---------------------------------------------------------------------------
# Prompt input
# ---------------------------------------------------------------------------

def _labels(items: Any, limit: int = 3) -> list[str]:
    """First *limit* readable names from an O*NET list column."""
    labels = []
    for item in items if isinstance(items, list) else []:
        if isinstance(item, dict):
            item = item.get("name") or item.get("title") or item.get("task") or item.get("description")
        if isinstance(item, str) and item.strip():
            labels.append(item.strip())
        if len(labels) == limit:
            break
    return labels


def build_simulation_prompt(occupation: Occupation) -> str:
    lines = [
        f"Occupation: {occupation.title} ({occupation.code})",
        f"Description: {occupation.description or 'Not provided'}",
    ]
    for label, column in (
        ("Job tasks", occupation.tasks),
        ("Required skills", occupation.skills),
        ("Knowledge areas", occupation.knowledge),
    ):
        names = _labels(column)
        if names:
            lines.append(f"{label}: {', '.join(names)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _finalise_step(step: _Step, number: int) -> None:
    step.step_number = number
    step.id = f"step-{step.step_type}-{_new_id()}"
    if isinstance(step.content, VideoContent):
        step.content.video_url = PLACEHOLDER_VIDEO_URL


def parse_simulation(raw: str, occupation_title: str) -> GeneratedSimulation:
    """
    Parse the model output into a GeneratedSimulation.

    Markdown fences are tolerated and a missing title, description or step
    heading gets a default.  Any other deviation raises SimulationError.
    """
    clean = strip_code_fences(raw)
    if not clean:
        raise SimulationError("No content received from the simulation model.")

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as exc:
        raise SimulationError(f"Failed to parse simulation: {exc}") from exc

    steps = data.get("steps") if isinstance(data, dict) else None
    if not isinstance(steps, list) or not steps or not all(isinstance(s, dict) for s in steps):
        raise SimulationError("Simulation must contain a non-empty list of steps.")

    data = {
        **data,
        "title": data.get("title") or f"A Day in the Life of a {occupation_title}",
        "description": data.get("description")
        or f"Experience what it's like to work as a {occupation_title} through this interactive simulation.",
        "steps": [
            {
                **{k: v for k, v in step.items() if k not in ("id", "step_number")},
                "title": step.get("title") or f"Step {i}",
                "description": step.get("description") or "Complete this step.",
                "content": step.get("content") or {},
            }
            for i, step in enumerate(steps, start=1)
        ],
    }

    try:
        simulation = GeneratedSimulation.model_validate(data)
    except ValidationError as exc:
        raise SimulationError(f"Invalid simulation structure: {exc}") from exc

    for number, step in enumerate(simulation.steps, start=1):
        _finalise_step(step, number)
    return simulation


# ---------------------------------------------------------------------------
# Quiz scoring
# ---------------------------------------------------------------------------

def score_quiz(content: dict[str, Any], answers: dict[str, str]) -> int:
    """
    Percentage (0-100) of questions answered with a correct option.

    *content* is a stored quiz step content; *answers* maps question id to
    the chosen option id.
    """
    questions = content.get("questions") or []
    if not questions:
        return 0
    correct = 0
    for question in questions:
        chosen = answers.get(question.get("id"))
        if any(o.get("id") == chosen and o.get("is_correct") for o in question.get("options") or []):
            correct += 1
    return round(100 * correct / len(questions))


def passing_score(content: dict[str, Any]) -> int:
    return content.get("passing_score", DEFAULT_PASSING_SCORE)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

class SimulationDesigner:
    """Single-shot LLM design of a career simulation."""

    def __init__(self) -> None:
        self._llm   = get_llm(TaskType.ANALYSIS)
        self._agent = Agent(
            role="Career Simulation Designer",
            goal=(
                "Design realistic, step-by-step career simulations from "
                "O*NET occupation data and report them as strict JSON."
            ),
            backstory=(
                "You are an instructional designer who builds job-shadowing "
                "experiences for students, mixing short videos, quizzes, "
                "hands-on tasks and reflection."
            ),
            llm=self._llm,
            verbose=False,
            allow_delegation=False,
        )

    def design(self, occupation: Occupation) -> GeneratedSimulation:
        task = Task(
            description=(
                f"{SYSTEM_PROMPT}\n\n"
                f"{build_simulation_prompt(occupation)}\n\n"
                f"{RESPONSE_FORMAT}"
            ),
            expected_output=(
                'JSON: {"title": "...", "description": "...", "difficulty_level": "...", '
                '"estimated_duration_minutes": 30, "steps": [...]}'
            ),
            agent=self._agent,
        )
        crew = Crew(agents=[self._agent], tasks=[task], verbose=False)
        raw  = str(crew.kickoff()).strip()

        try:
            return parse_simulation(raw, occupation.title)
        except SimulationError:
            logger.error("Raw simulation response for %s: %s", occupation.code, raw)
            raise
