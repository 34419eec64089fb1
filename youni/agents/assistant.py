"""
youni/agents/assistant.py

AI Youni, the chat assistant.

Every chat message is persisted in ``user_memories``.  A reply is produced
from a single prompt that combines:

    - the assistant persona,
    - the user's name,
    - their latest assessment summary (Holland codes, Dreamscapes summary),
    - the last HISTORY_TURNS messages of the conversation,
    - the current question.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from crewai import Agent, Crew, Task
from sqlalchemy.orm import Session

from youni.agents.riasec_classifier import RIASEC_LABELS
from youni.database.models import User, UserMemory, VocationalProfile
from youni.llm import TaskType, get_llm

logger = logging.getLogger(__name__)

HISTORY_TURNS = 6
ROLES = ("user", "assistant")

PERSONA = (
    "You are AI Youni, a helpful AI Educational Consultant. Your goal is to "
    "guide the user based on their profile, assessment results, and "
    "conversation history."
)


# ---------------------------------------------------------------------------
# Chat memory
# ---------------------------------------------------------------------------

def save_chat_message(
    db: Session,
    user_id: int,
    role: str,
    content: str,
    session_id: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> UserMemory:
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}. Valid options: {list(ROLES)}")
    if not content or not content.strip():
        raise ValueError("Message content must not be empty.")

    message = UserMemory(
        user_id=user_id,
        role=role,
        content=content,
        session_id=session_id,
        metadata_json=metadata,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def recent_history(
    db: Session,
    user_id: int,
    session_id: Optional[str] = None,
    limit: int = HISTORY_TURNS,
) -> list[UserMemory]:
    """Latest *limit* messages, oldest first."""
    query = db.query(UserMemory).filter(UserMemory.user_id == user_id)
    if session_id is not None:
        query = query.filter(UserMemory.session_id == session_id)
    rows = query.order_by(UserMemory.created_at.desc(), UserMemory.id.desc()).limit(limit).all()
    return list(reversed(rows))


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_prompt(
    user: User,
    profile: Optional[VocationalProfile],
    history: list[UserMemory],
    question: str,
) -> str:
    name = user.full_name or user.email or "N/A"
    parts = [PERSONA, "", "## User Information:", f"- Name: {name}", ""]

    summary = (profile.assessment_summary if profile else None) or {}
    analysis = (profile.dreamscapes_analysis if profile else None) or {}
    holland = summary.get("holland_codes") or []

    if holland or analysis:
        parts.append("## Latest Assessment Summary:")
        if holland:
            labels = ", ".join(f"{c} ({RIASEC_LABELS.get(c.upper(), c)})" for c in holland)
            parts.append(f"- Holland codes: {labels}")
        if analysis.get("summary"):
            parts.append(f"- Dreamscapes summary: {analysis['summary']}")
        if analysis.get("themes"):
            themes = ", ".join(str(theme) for theme in analysis["themes"])
            parts.append(f"- Recurring themes: {themes}")
    else:
        parts.append("## Assessment Summary:")
        parts.append("- No assessment results found yet.")
    parts.append("")

    parts.append("## Recent Conversation History:")
    if history:
        parts.extend(f"{m.role}: {m.content}" for m in history)
    else:
        parts.append("- No recent history provided.")
    parts.append("")

    parts.append("## Current User Question:")
    parts.append(f"user: {question}")
    parts.append("")
    parts.append(
        "## Your Task:\nRespond helpfully and concisely as AI Youni, the AI "
        "Educational Consultant, drawing upon the provided user information, "
        "assessment summary, and conversation history. Address the user's "
        "current question directly."
    )
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

class YouniAssistant:
    def __init__(self) -> None:
        self._llm   = get_llm(TaskType.GENERAL)
        self._agent = Agent(
            role="AI Educational Consultant",
            goal="Help students understand their assessment results and explore careers that fit them.",
            backstory=(
                "You are AI Youni, a friendly guide who knows the O*NET "
                "occupation catalogue and the Holland (RIASEC) interest model."
            ),
            llm=self._llm,
            verbose=False,
            allow_delegation=False,
        )

    def reply(self, prompt: str) -> str:
        task = Task(
            description=prompt,
            expected_output="A concise, friendly reply addressed to the user.",
            agent=self._agent,
        )
        crew = Crew(agents=[self._agent], tasks=[task], verbose=False)
        return str(crew.kickoff()).strip()
