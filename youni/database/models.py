from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime,
    ForeignKey, Text, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from youni.database.connection import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    otp_codes = relationship("OTPCode", back_populates="user")
    vocational_profile = relationship("VocationalProfile", back_populates="user", uselist=False)


class OTPCode(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    code = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="otp_codes")


# ---------------------------------------------------------------------------
# O*NET reference data
# ---------------------------------------------------------------------------

class Occupation(Base):
    """
    One O*NET occupation, imported by the data tooling.

    The nested fields keep the shape O*NET delivers them in; they are parsed
    into typed structures only where business logic reads them.
    ``riasec_code`` is derived by the RIASEC backfill and cached here.
    """

    __tablename__ = "occupations"

    code         = Column(String, primary_key=True)     # e.g. "11-3031.00"
    title        = Column(String, nullable=False, index=True)
    description  = Column(Text,   nullable=True)
    tasks        = Column(JSON,   nullable=True)
    skills       = Column(JSON,   nullable=True)
    knowledge    = Column(JSON,   nullable=True)
    abilities    = Column(JSON,   nullable=True)
    work_context = Column(JSON,   nullable=True)
    work_values  = Column(JSON,   nullable=True)
    interests    = Column(JSON,   nullable=True)
    work_styles  = Column(JSON,   nullable=True)
    wages        = Column(JSON,   nullable=True)
    outlook      = Column(JSON,   nullable=True)
    riasec_code  = Column(String(1), nullable=True, index=True)
    created_at   = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at   = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Per-user vocational data
# ---------------------------------------------------------------------------

class VocationalProfile(Base):
    __tablename__ = "vocational_profile"

    id                   = Column(Integer, primary_key=True, index=True)
    user_id              = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    assessment_summary   = Column(JSON(none_as_null=True), nullable=True)   # {"holland_codes": [...], ...}
    suggested_onet_codes = Column(JSON(none_as_null=True), nullable=True)   # ["11-3031.00", ...]
    dreamscapes_analysis = Column(JSON(none_as_null=True), nullable=True)
    personality_radar    = Column(JSON(none_as_null=True), nullable=True)   # {"Openness": 70, ...}
    last_updated         = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="vocational_profile")


class VocationalResponse(Base):
    """Raw answers for one assessment section."""

    __tablename__ = "vocational_responses"
    __table_args__ = (
        UniqueConstraint("user_id", "assessment_id", "section_id", name="uq_vocational_response_section"),
    )

    id            = Column(Integer, primary_key=True, index=True)
    user_id       = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assessment_id = Column(String,  nullable=False, default="main_vocational")
    section_id    = Column(String,  nullable=False)
    response_data = Column(JSON,    nullable=True)    # {question_id: answer}
    updated_at    = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DreamscapesResponse(Base):
    __tablename__ = "dreamscapes_responses"

    id           = Column(Integer, primary_key=True, index=True)
    user_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    responses    = Column(JSON,    nullable=False)
    created_at   = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)


class UserMemory(Base):
    """One chat message exchanged with the AI assistant."""

    __tablename__ = "user_memories"

    id         = Column(Integer, primary_key=True, index=True)
    user_id    = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role       = Column(String,  nullable=False)          # "user" | "assistant"
    content    = Column(Text,    nullable=False)
    session_id = Column(String,  nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


# ---------------------------------------------------------------------------
# Career simulations
# ---------------------------------------------------------------------------

class CareerScenario(Base):
    """An LLM-generated, step-by-step simulation of one occupation."""

    __tablename__ = "career_scenarios"

    id                         = Column(Integer, primary_key=True, index=True)
    onet_code                  = Column(String, ForeignKey("occupations.code"), nullable=False, index=True)
    title                      = Column(String, nullable=False)
    description                = Column(Text,   nullable=False)
    difficulty_level           = Column(String, nullable=False, default="beginner")
    estimated_duration_minutes = Column(Integer, nullable=False, default=30)
    points_reward              = Column(Integer, nullable=False, default=100)
    steps                      = Column(JSON,   nullable=False)    # [{"id", "step_type", "content", ...}]
    created_at                 = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at                 = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserScenarioProgress(Base):
    __tablename__ = "user_scenario_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "scenario_id", name="uq_user_scenario_progress"),
    )

    id               = Column(Integer, primary_key=True, index=True)
    user_id          = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scenario_id      = Column(Integer, ForeignKey("career_scenarios.id"), nullable=False, index=True)
    current_step     = Column(Integer, nullable=False, default=0)
    completed        = Column(Boolean, nullable=False, default=False)
    completed_steps  = Column(JSON,    nullable=False, default=list)     # step ids, in completion order
    step_scores      = Column(JSON,    nullable=False, default=dict)     # {step_id: percent} for quizzes
    started_at       = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at     = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserRewards(Base):
    """Points, level and badges earned by completing simulations."""

    __tablename__ = "user_rewards"

    id               = Column(Integer, primary_key=True, index=True)
    user_id          = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    points           = Column(Integer, nullable=False, default=0)
    level            = Column(Integer, nullable=False, default=1)
    earned_badge_ids = Column(JSON,    nullable=False, default=list)
    updated_at       = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
