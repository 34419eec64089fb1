import logging
import os

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "development")
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Youni API",
    version="0.1.0",
    description=(
        "Backend API for AI Youni, a career-guidance assistant. Scores "
        "vocational assessments into Holland (RIASEC) codes, analyses the "
        "Dreamscapes workshop with an LLM, matches users to O*NET "
        "occupations and lets them try careers through generated simulations."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

if APP_ENV == "development":
    origins = ["*"]
else:
    origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

def runtime_settings() -> dict:
    """Effective configuration, as reported at startup."""
    from youni.agents.career_matcher import (
        DIRECT_SUGGESTION_SCORE,
        HOLLAND_MATCH_SCORE,
        MAX_CAREER_MATCHES,
    )
    from youni.database.connection import engine
    from youni.llm import MODEL_ANALYSIS, MODEL_GENERAL

    return {
        "environment": APP_ENV,
        "database": engine.dialect.name,
        "direct_suggestion_score": DIRECT_SUGGESTION_SCORE,
        "holland_match_score": HOLLAND_MATCH_SCORE,
        "max_career_matches": MAX_CAREER_MATCHES,
        "model_general": MODEL_GENERAL,
        "model_analysis": MODEL_ANALYSIS,
        "openai_configured": bool(os.getenv("OPENAI_API_KEY")),
    }


def settings_warnings(settings: dict) -> list[str]:
    warnings = []
    for key in ("direct_suggestion_score", "holland_match_score"):
        if not 0.0 <= settings[key] <= 1.0:
            warnings.append(f"{key} is {settings[key]}, outside [0, 1].")
    if settings["holland_match_score"] > settings["direct_suggestion_score"]:
        warnings.append("Holland matches score higher than direct suggestions.")
    if settings["max_career_matches"] < 1:
        warnings.append("max_career_matches below 1: career matching returns nothing.")
    if not settings["openai_configured"]:
        warnings.append("OPENAI_API_KEY is not set: workshop analysis, simulations and the assistant are unavailable.")
    return warnings


@app.on_event("startup")
def startup_event():
    import youni.database.models  # noqa: F401  registers models with metadata
    from youni.database.connection import Base, engine

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified/created.")
    except Exception as exc:
        logger.warning("Database not available at startup: %s", exc)

    settings = runtime_settings()
    logger.info("Environment : %s", settings["environment"])
    logger.info("Database    : %s", settings["database"])
    logger.info(
        "Career match: direct=%.2f holland=%.2f max=%d",
        settings["direct_suggestion_score"],
        settings["holland_match_score"],
        settings["max_career_matches"],
    )
    logger.info("LLM models  : general=%s analysis=%s", settings["model_general"], settings["model_analysis"])
    for warning in settings_warnings(settings):
        logger.warning(warning)
    logger.info("Listening on: http://%s:%s", APP_HOST, APP_PORT)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from youni.api.assessment_routes import router as assessment_router  # noqa: E402
from youni.api.assistant_routes import router as assistant_router    # noqa: E402
from youni.api.auth_routes import router as auth_router              # noqa: E402
from youni.api.career_routes import router as career_router          # noqa: E402
from youni.api.occupation_routes import router as occupation_router  # noqa: E402
from youni.api.simulation_routes import router as simulation_router  # noqa: E402
from youni.api.workshop_routes import router as workshop_router      # noqa: E402

app.include_router(auth_router)
app.include_router(career_router)
app.include_router(assessment_router)
app.include_router(workshop_router)
app.include_router(occupation_router)
app.include_router(assistant_router)
app.include_router(simulation_router)

# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["health"])
def health_check():
    return {"status": "ok", "version": "0.1.0"}

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "youni.api.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=APP_ENV == "development",
    )
