"""
FastAPI Endpoints for FO Qualification Engine
=============================================
JSON transport over the family office classification pipeline.

Base URL: http://localhost:8000

Endpoints:
- GET  /                          - API info
- GET  /api/health                - Health check
- POST /api/fo/firewall           - Heuristic firewall only (free)
- POST /api/fo/classify           - Firewall + entity classification
- POST /api/fo/qualify            - Full classify-and-score pipeline
- POST /api/fo/qualify/batch      - Qualify many entities with a run report
- GET  /api/stats                 - Get engine statistics
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from ..models.schemas import BatchQualifyRequest, QualifyRequest
from ..config.settings import LLM_CONFIG, PROVIDER_API_KEY_ENV
from ..engine import FOQualificationEngine, create_engine
from ..reporting.run_reporter import RunReporter, render_markdown

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="FO Qualification Engine API",
    description="""
## Family Office Classification & Scoring

Separates true family offices from wealth managers, funds and service
providers, then scores the survivors against the target profile.

### Pipeline:
- **Heuristic Firewall**: free pattern checks decide obvious entities
- **Entity Classification**: model call only for uncertain entities
- **FO Match Scoring**: model call only for entities that pass the gate

### Quick Start:
1. Use `/api/fo/firewall` to see the free heuristic verdict
2. Use `/api/fo/qualify` for the full pipeline
3. Use `/api/fo/qualify/batch` for bulk runs with a run report
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Engine Initialization
# =============================================================================

_default_engine: Optional[FOQualificationEngine] = None


def get_default_engine() -> FOQualificationEngine:
    """Build the shared engine on first use"""
    global _default_engine
    if _default_engine is None:
        try:
            _default_engine = create_engine()
        except ValueError as e:
            # Firewall-only: uncertain entities come back as classification errors
            logger.warning("Model backend unavailable (%s); serving heuristics only", e)
            _default_engine = FOQualificationEngine()
    return _default_engine


def set_default_engine(engine: Optional[FOQualificationEngine]) -> None:
    """Replace the shared engine (None rebuilds it on next use)"""
    global _default_engine
    _default_engine = engine


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "FO Qualification Engine",
        "version": VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Firewall": "POST /api/fo/firewall",
            "Classify": "POST /api/fo/classify",
            "Qualify": "POST /api/fo/qualify",
            "Batch Qualify": "POST /api/fo/qualify/batch",
            "Stats": "GET /api/stats",
            "Health": "GET /api/health",
        }
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    provider = LLM_CONFIG["provider"]
    api_key = os.getenv(PROVIDER_API_KEY_ENV.get(provider, ""), "")
    return {
        "status": "healthy",
        "service": "FO Qualification Engine",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "llm_provider": provider,
        "llm_configured": bool(api_key),
    }


# =============================================================================
# Pipeline Endpoints
# =============================================================================

@app.post("/api/fo/firewall", tags=["Pipeline"])
def firewall_check(request: QualifyRequest):
    """
    Run the heuristic firewall only

    - No model call, no cost
    - UNCERTAIN means the entity would be escalated to classification
    """
    engine = get_default_engine()
    decision = engine.firewall.process(
        request.company_name, request.company_text, request.domain
    )
    return decision.model_dump(mode="json")


@app.post("/api/fo/classify", tags=["Pipeline"])
def classify(request: QualifyRequest):
    """Classify an entity (firewall first, model only when uncertain)"""
    _require_name(request.company_name)
    engine = get_default_engine()
    result = engine.classifier.classify(
        request.company_name, request.company_text, request.domain
    )
    return result.model_dump(mode="json")


@app.post("/api/fo/qualify", tags=["Pipeline"])
def qualify(request: QualifyRequest):
    """
    Full pipeline for one entity

    Returns the classification, the score (absent when the entity was
    stopped at the gate) and the final status.
    """
    _require_name(request.company_name)
    engine = get_default_engine()
    outcome = engine.classify_and_score_fo(
        request.company_name,
        request.company_text,
        request.domain,
        request.geography,
    )
    return outcome.model_dump(mode="json")


@app.post("/api/fo/qualify/batch", tags=["Pipeline"])
def qualify_batch(request: BatchQualifyRequest):
    """
    Qualify multiple entities

    - Parallel workers share one run reporter
    - Optional markdown rendering of the run report
    """
    engine = get_default_engine()
    reporter = RunReporter()
    result = engine.run_batch(
        request.companies,
        max_workers=request.max_workers,
        reporter=reporter,
    )

    response = {
        "total_submitted": len(request.companies),
        "outcomes": [o.model_dump(mode="json") for o in result.outcomes],
        "report": result.report.model_dump(mode="json"),
    }
    if request.include_markdown:
        response["markdown"] = render_markdown(result.report)
    return response


@app.get("/api/stats", tags=["Info"])
async def get_stats():
    """Get engine statistics"""
    return {
        "default_engine": get_default_engine().get_stats(),
    }


# =============================================================================
# Helper Functions
# =============================================================================

def _require_name(company_name: str) -> None:
    if not company_name or not company_name.strip():
        raise HTTPException(status_code=422, detail="company_name must not be empty")


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
