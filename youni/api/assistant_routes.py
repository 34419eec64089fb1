import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from youni.agents.assistant import (
    YouniAssistant,
    build_prompt,
    recent_history,
    save_chat_message,
)
from youni.api.auth_routes import get_current_user
from youni.database.connection import get_db
from youni.database.models import User, VocationalProfile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["assistant"])

EMPTY_REPLY = "Sorry, I could not come up with an answer. Could you rephrase your question?"


# ---------------------------------------------------------------------------
# Agent singleton (lazy-initialised on first message)
# ---------------------------------------------------------------------------

_assistant: Optional[YouniAssistant] = None


def _get_assistant() -> YouniAssistant:
    global _assistant
    if _assistant is None:
        _assistant = YouniAssistant()
    return _assistant


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ChatBody(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: Optional[str] = None

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value.strip()


class ChatMessageOut(BaseModel):
    id: int
    role: str
    content: str
    session_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: datetime

    class Config:
        from_attributes = True


class ChatReplyOut(BaseModel):
    reply: ChatMessageOut


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/messages",
    response_model=list[ChatMessageOut],
    summary="Chat history for the current user, oldest first",
)
def list_messages(
    session_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return recent_history(db, current_user.id, session_id=session_id, limit=limit)


@router.post(
    "/messages",
    response_model=ChatReplyOut,
    summary="Ask AI Youni a question",
)
def send_message(
    body: ChatBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    history = recent_history(db, current_user.id, session_id=body.session_id)
    profile = db.query(VocationalProfile).filter(VocationalProfile.user_id == current_user.id).first()
    prompt = build_prompt(current_user, profile, history, body.message)

    # The question is stored only together with its answer.
    try:
        answer = _get_assistant().reply(prompt)
    except Exception as exc:
        logger.exception("Assistant reply failed for user %s", current_user.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc) or "The assistant is unavailable."},
        )

    save_chat_message(db, current_user.id, "user", body.message, session_id=body.session_id)
    saved = save_chat_message(
        db, current_user.id, "assistant", answer or EMPTY_REPLY, session_id=body.session_id,
    )
    logger.info("Assistant reply saved for user %s", current_user.id)
    return {"reply": saved}
