import os

# Must be set before the app modules read them at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from youni.api.auth_routes import get_current_user  # noqa: E402
from youni.api.main import app  # noqa: E402
from youni.database.connection import Base, get_db  # noqa: E402
from youni.database.models import CareerScenario, Occupation, User, VocationalProfile  # noqa: E402


@pytest.fixture()
def db():
    """Isolated in-memory SQLite database per test.

    StaticPool ensures every SQLAlchemy checkout reuses the same underlying
    connection, which is required for in-memory SQLite (each real connection
    would otherwise get its own empty database).
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def user(db):
    u = User(email="user@test.com", full_name="Test User", is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def other_user(db):
    u = User(email="other@test.com", is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def client(db):
    """Unauthenticated TestClient with in-memory DB."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_client(db, user):
    """TestClient authenticated as `user` with in-memory DB."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def make_occupation(db):
    """Factory inserting an Occupation row."""
    def _make(code, title=None, riasec_code=None, **fields):
        occ = Occupation(
            code=code,
            title=title or f"Occupation {code}",
            description=fields.pop("description", f"Description of {code}"),
            riasec_code=riasec_code,
            **fields,
        )
        db.add(occ)
        db.commit()
        db.refresh(occ)
        return occ
    return _make


@pytest.fixture()
def make_profile(db):
    """Factory inserting a VocationalProfile row."""
    def _make(user, holland_codes=None, suggested=None, **fields):
        summary = fields.pop("assessment_summary", None)
        if summary is None and holland_codes is not None:
            summary = {"holland_codes": holland_codes}
        profile = VocationalProfile(
            user_id=user.id,
            assessment_summary=summary,
            suggested_onet_codes=suggested,
            **fields,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile
    return _make


SCENARIO_STEPS = [
    {"id": "step-video-1", "step_number": 1, "step_type": "video", "title": "Watch",
     "description": "d", "content": {"video_url": "#", "key_points": [], "reflection_questions": []}},
    {"id": "step-quiz-2", "step_number": 2, "step_type": "quiz", "title": "Quiz", "description": "d",
     "content": {"passing_score": 50, "questions": [
         {"id": "q1", "text": "?", "options": [
             {"id": "o1", "text": "yes", "is_correct": True},
             {"id": "o2", "text": "no", "is_correct": False},
         ]},
     ]}},
    {"id": "step-reflection-3", "step_number": 3, "step_type": "reflection", "title": "Reflect",
     "description": "d", "content": {"prompts": [{"id": "p1", "text": "Why?", "min_words": 50}]}},
]


@pytest.fixture()
def make_scenario(db, make_occupation):
    """Factory inserting a CareerScenario (and its occupation) with three steps."""
    def _make(onet_code="29-1141.00", points_reward=100, steps=None, **fields):
        if db.get(Occupation, onet_code) is None:
            make_occupation(onet_code)
        scenario = CareerScenario(
            onet_code=onet_code,
            title=fields.pop("title", f"Simulation for {onet_code}"),
            description=fields.pop("description", "Try the job."),
            difficulty_level=fields.pop("difficulty_level", "beginner"),
            estimated_duration_minutes=fields.pop("estimated_duration_minutes", 30),
            points_reward=points_reward,
            steps=steps if steps is not None else [dict(s) for s in SCENARIO_STEPS],
            **fields,
        )
        db.add(scenario)
        db.commit()
        db.refresh(scenario)
        return scenario
    return _make
