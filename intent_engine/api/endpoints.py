"""
FastAPI Endpoints for the Intent Engine
=======================================
Thin HTTP surface over the scoring and embedding pipeline.

Base URL: http://localhost:8000

Endpoints:
- GET  /                        - API info
- GET  /api/health              - Health check
- POST /api/intent/score        - Score a raw signal report or structured score
- POST /api/intent/score/batch  - Score several inputs
- POST /api/intent/events       - Score business events against buying triggers
- POST /api/embeddings          - Embed text
- POST /api/keywords            - Extract keywords from an entity or text
- GET  /api/stats               - Engine statistics
"""

import os
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError
from typing import Optional, Dict, Any, List
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from .. import __version__
from ..models.schemas import (
    BusinessEvent,
    EntityKind,
    EventIntentScore,
    IntentScore,
)
from ..models.signal_config import SignalWeightConfig
from ..engine import IntentScoringEngine
from ..stages.event_scoring import score_events
from ..stages.stage2_embedding import EmbeddingGenerator
from ..core.utils import utcnow
from ..text.normalizer import canonicalize, extract_keywords


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="Intent Engine API",
    description="""
## Lead Intent Scoring & Embeddings

- **Intent scoring**: evidence scoring, AI assessment with rule-based fallback,
  business-rule adjustment
- **Event scoring**: weighted buying-trigger scores from business events
- **Embeddings**: primary API with deterministic offline fallback
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - Allow all origins for frontend development
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

default_engine = IntentScoringEngine()
default_generator = EmbeddingGenerator()


# =============================================================================
# Request/Response Models
# =============================================================================

class EventScoreRequest(BaseModel):
    """Events plus the buying triggers to score them against"""
    events: List[BusinessEvent] = Field(default_factory=list)
    triggers: List[str] = Field(..., min_length=1, description="Buying triggers (event names)")
    weights: Optional[Dict[str, float]] = Field(None, description="Relative trigger weights")


class EmbedRequest(BaseModel):
    text: str = Field("", description="Text to embed")


class EmbedResponse(BaseModel):
    dimensions: int
    provider: str
    generated_at: datetime
    embedding: List[float]


class KeywordRequest(BaseModel):
    text: Optional[str] = None
    entity: Optional[Dict[str, Any]] = None
    kind: EntityKind = EntityKind.COMPANY
    limit: int = Field(50, ge=1, le=200)


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "Intent Engine",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Score": "POST /api/intent/score",
            "Batch Score": "POST /api/intent/score/batch",
            "Event Score": "POST /api/intent/events",
            "Embed": "POST /api/embeddings",
            "Keywords": "POST /api/keywords",
            "Health": "GET /api/health",
        }
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "Intent Engine",
        "version": __version__,
        "timestamp": utcnow().isoformat(),
        "llm_configured": default_engine.llm_stage.available,
        "embedding_api_configured": default_generator.primary_enabled,
        "search_provider_configured": bool(os.getenv("EXA_API_KEY")),
    }


# =============================================================================
# Scoring Endpoints
# =============================================================================

@app.post("/api/intent/score", response_model=IntentScore, tags=["Scoring"])
async def score_intent(payload: Dict[str, Any]):
    """
    Score one company.

    The body is either a raw signal report (`"kind": "raw_report"`) or a
    structured score (`"kind": "structured_score"`). Unusable bodies get a
    zero score with an explanation rather than an error.
    """
    return await default_engine.calculate_intent_score(payload)


@app.post("/api/intent/score/batch", response_model=List[IntentScore], tags=["Scoring"])
async def score_intent_batch(payloads: List[Dict[str, Any]]):
    """Score several companies"""
    if len(payloads) > 100:
        raise HTTPException(status_code=400, detail="Maximum 100 inputs per batch")
    return await default_engine.score_batch(payloads)


@app.post("/api/intent/events", response_model=EventIntentScore, tags=["Scoring"])
async def score_intent_events(request: EventScoreRequest):
    """Weighted intent score from business events"""
    try:
        config = SignalWeightConfig(signals=request.triggers, raw_weights=request.weights)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return score_events(request.events, request.triggers, weights=config)


@app.get("/api/stats", tags=["Info"])
async def get_stats():
    """Get engine statistics"""
    return {
        "scoring": default_engine.get_stats(),
        "embeddings": dict(default_generator.stats),
    }


# =============================================================================
# Embedding Endpoints
# =============================================================================

@app.post("/api/embeddings", response_model=EmbedResponse, tags=["Embeddings"])
async def embed_text(request: EmbedRequest):
    """Embed text; falls back to the offline embedding when the API is unavailable"""
    vector = await default_generator.embed(request.text)
    return EmbedResponse(
        dimensions=vector.dimensions,
        provider=vector.provider.value,
        generated_at=vector.generated_at,
        embedding=vector.values,
    )


@app.post("/api/keywords", tags=["Embeddings"])
async def keywords(request: KeywordRequest):
    """Canonical text and keywords for an entity, or keywords for raw text"""
    if request.entity is not None:
        text = canonicalize(request.entity, request.kind)
    elif request.text is not None:
        text = request.text
    else:
        raise HTTPException(status_code=400, detail="Provide either text or entity")
    return {"text": text, "keywords": extract_keywords(text, limit=request.limit)}
