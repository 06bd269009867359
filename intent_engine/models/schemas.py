"""
Pydantic schemas for the Intent Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any, Union, Annotated, Literal
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from ..core.utils import utcnow


# =============================================================================
# ENUMS
# =============================================================================

class JobKind(str, Enum):
    """Kind of provider-side job"""
    SEARCH = "search"
    ENRICHMENT = "enrichment"


class PollStatus(str, Enum):
    """Outcome of a single status check"""
    CONTINUE = "continue"
    SUCCESS = "success"
    TERMINAL_FAILURE = "terminal_failure"
    TRANSIENT_ERROR = "transient_error"


class EntityKind(str, Enum):
    """Entity kinds that can carry an embedding"""
    COMPANY = "company"
    EMPLOYEE = "employee"
    ENRICHMENT = "enrichment"
    GTM_INTELLIGENCE = "gtm_intelligence"
    GTM_PERSONA_INTELLIGENCE = "gtm_persona_intelligence"


class EmbeddingSource(str, Enum):
    """Which strategy produced a vector"""
    PRIMARY = "primary"
    FALLBACK = "fallback"


class ConfidenceLevel(str, Enum):
    """Confidence in an intent score"""
    VERY_HIGH = "very-high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TimingRecommendation(str, Enum):
    """When sales should engage"""
    IMMEDIATE = "immediate"
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"
    MONITOR = "monitor"


class ScoringPath(str, Enum):
    """Which branch produced the final score"""
    AI = "ai"
    FALLBACK = "fallback"


# =============================================================================
# PROVIDER JOBS
# =============================================================================

class ProviderJob(BaseModel):
    """Handle for a job running at a data provider"""
    id: str
    kind: JobKind
    status: str = "pending"
    result_location: Optional[str] = None


class PollAttempt(BaseModel):
    """Per-call polling state"""
    attempt_number: int = 0
    elapsed_ms: float = 0
    consecutive_errors: int = 0
    last_error: Optional[str] = None


class PollOutcome(BaseModel):
    """Result of one status check, consumed by the poller"""
    status: PollStatus
    payload: Any = None
    reason: Optional[str] = None

    @classmethod
    def proceed(cls) -> "PollOutcome":
        return cls(status=PollStatus.CONTINUE)

    @classmethod
    def success(cls, payload: Any = None) -> "PollOutcome":
        return cls(status=PollStatus.SUCCESS, payload=payload)

    @classmethod
    def terminal_failure(cls, reason: str) -> "PollOutcome":
        return cls(status=PollStatus.TERMINAL_FAILURE, reason=reason)

    @classmethod
    def transient_error(cls, reason: str) -> "PollOutcome":
        return cls(status=PollStatus.TRANSIENT_ERROR, reason=reason)


class SearchJobSpec(BaseModel):
    """Request for a provider search job"""
    query: str
    count: int = 10
    entity_type: str = "company"
    exclude_ids: List[str] = Field(default_factory=list)
    min_results: Optional[int] = None


class EnrichmentJobSpec(BaseModel):
    """Request for an enrichment on an already completed search job"""
    job_id: str
    description: Optional[str] = None
    personas: List[str] = Field(default_factory=list)
    format: str = "email"
    item_id: Optional[str] = None

    def resolved_description(self) -> str:
        if self.description:
            return self.description
        return "Find target persona " + ",".join(self.personas)


class ResultSet(BaseModel):
    """Materialized items of a completed search job"""
    job_id: str
    items: List[Dict[str, Any]] = Field(default_factory=list)
    requested_count: int = 0
    is_partial: bool = False
    warnings: List[str] = Field(default_factory=list)
    processing_time_ms: float = 0


class EnrichmentResult(BaseModel):
    """Completed enrichment and, optionally, the per-item results"""
    job_id: str
    enrichment_id: str
    status: str
    enrichment: Dict[str, Any] = Field(default_factory=dict)
    item_enrichments: List[Dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# EMBEDDINGS
# =============================================================================

class EmbeddingVector(BaseModel):
    """Fixed-length vector with the text it was generated from"""
    values: List[float]
    generated_at: datetime = Field(default_factory=utcnow)
    source_text: str = ""
    provider: EmbeddingSource = EmbeddingSource.FALLBACK

    @property
    def dimensions(self) -> int:
        return len(self.values)


class EmbeddingUpdate(BaseModel):
    """Fields written back to the entity store"""
    embedding: List[float]
    embedding_text: str
    embedding_generated_at: datetime
    search_keywords: Optional[List[str]] = None
    semantic_summary: Optional[str] = None

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class EmbeddingStats(BaseModel):
    """Embedding coverage for one entity kind"""
    kind: EntityKind
    total: int = 0
    with_embeddings: int = 0
    without_embeddings: int = 0
    outdated: int = 0


# =============================================================================
# EVIDENCE & SIGNALS
# =============================================================================

class EvidenceItem(BaseModel):
    """A dated, sourced excerpt supporting a signal"""
    source: str = ""
    url: Optional[str] = None
    date: Optional[str] = None
    summary: str = ""
    confidence: float = Field(default=0.5, ge=0, le=1)
    source_type: str = "unknown"


class SignalResult(BaseModel):
    """Detection result for one requested business signal"""
    signal: str
    found: bool = False
    evidence: List[EvidenceItem] = Field(default_factory=list)
    reasoning: str = ""


class ReportSummary(BaseModel):
    total_signals: int = 0
    signals_found: int = 0
    evidence_count: int = 0


class RawSignalReport(BaseModel):
    """Signal-detection output before scoring"""
    kind: Literal["raw_report"] = "raw_report"
    company: str
    website: Optional[str] = None
    industry: Optional[str] = None
    analysis_date: Optional[str] = None
    requested_signals: List[str] = Field(default_factory=list)
    results: List[SignalResult] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)


class SourceDetail(BaseModel):
    """Evidence as carried on an evaluated signal"""
    url: Optional[str] = None
    title: str = ""
    date: Optional[str] = None
    confidence: float = 0.5
    source_type: str = "unknown"
    snippet: str = ""


class EvaluatedSignal(BaseModel):
    """A signal with its evidence score"""
    signal: str
    score: float = Field(default=0, ge=0, le=100)
    reason: str = ""
    sources: List[SourceDetail] = Field(default_factory=list)


class StructuredScore(BaseModel):
    """Already-evaluated signals for one company"""
    kind: Literal["structured_score"] = "structured_score"
    company_name: str = "Unknown"
    industry: str = "Unknown"
    evaluated_signals: List[EvaluatedSignal] = Field(default_factory=list)
    final_intent_score: float = Field(default=0, ge=0, le=100)
    intent_level: str = "No Intent"
    overall_reasoning: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


ScoringInput = Annotated[Union[RawSignalReport, StructuredScore], Field(discriminator="kind")]


class ScoredSignal(BaseModel):
    """A signal's contribution to a weighted score"""
    signal: str
    raw_score: float = Field(ge=0, le=100)
    weight: int = Field(ge=0, le=100)
    weighted_contribution: float = 0


# =============================================================================
# SCORING OUTPUT
# =============================================================================

class ScoringFactor(BaseModel):
    """Per-signal factor on a final intent score"""
    model_config = ConfigDict(frozen=True)

    signal: str
    score: float
    impact: str = "medium"
    evidence_quality: str = "fair"
    confidence: float = 0.5
    original_score: float = 0
    weight: int = 0
    weighted_contribution: float = 0


class IntentScore(BaseModel):
    """Final result of one scoring run"""
    model_config = ConfigDict(frozen=True)

    company_name: str = "Unknown"
    score: int = Field(ge=0, le=100)
    reason: str
    factors: List[ScoringFactor] = Field(default_factory=list)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    strategic_insights: List[str] = Field(default_factory=list)
    timing_recommendation: TimingRecommendation = TimingRecommendation.MONITOR
    risk_factors: List[str] = Field(default_factory=list)
    path: ScoringPath = ScoringPath.FALLBACK
    adjustments: List[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=utcnow)
    processing_time_ms: float = 0


class AdjustmentResult(BaseModel):
    """Score after business rules, with the rules that fired"""
    score: int
    original_score: float
    adjustments: List[str] = Field(default_factory=list)


# =============================================================================
# EVENT-BASED SCORING
# =============================================================================

class BusinessEvent(BaseModel):
    """A provider-reported business event"""
    event_name: str
    event_time: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class EventIntentScore(BaseModel):
    """Weighted intent score computed from business events"""
    model_config = ConfigDict(frozen=True)

    final_intent_score: float = Field(ge=0, le=100)
    signal_breakdown: List[ScoredSignal] = Field(default_factory=list)
    overall_confidence: str = "LOW"
    events_considered: int = 0


# =============================================================================
# KNOWLEDGE BASE
# =============================================================================

class KnowledgeDocument(BaseModel):
    """A collected document in the company knowledge base"""
    id: str
    content: str
    source: str
    url: Optional[str] = None
    date: Optional[str] = None
    type: str = "web"
    confidence: float = 0.8
    embedding: Optional[List[float]] = None


class SearchHit(BaseModel):
    document: KnowledgeDocument
    similarity: float
