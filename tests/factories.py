"""Builders for evidence, signals and reports used across the tests."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from intent_engine.models.schemas import (
    EvaluatedSignal,
    EvidenceItem,
    RawSignalReport,
    SignalResult,
    SourceDetail,
    StructuredScore,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def days_ago(days: int) -> str:
    return (NOW - timedelta(days=days)).date().isoformat()


def evidence(
    days: int = 10,
    confidence: float = 0.8,
    source_type: str = "news",
    summary: str = "Company announced news",
) -> EvidenceItem:
    return EvidenceItem(
        source="Example Source",
        url=f"https://example.com/{source_type}/{days}",
        date=days_ago(days),
        summary=summary,
        confidence=confidence,
        source_type=source_type,
    )


def source(days: int = 10, confidence: float = 0.8, source_type: str = "news") -> SourceDetail:
    return SourceDetail(
        url=f"https://example.com/{source_type}/{days}",
        title="Example Source",
        date=days_ago(days),
        confidence=confidence,
        source_type=source_type,
        snippet="Evidence snippet",
    )


def signal(name: str, score: float, sources: Optional[List[SourceDetail]] = None, reason: str = "") -> EvaluatedSignal:
    return EvaluatedSignal(signal=name, score=score, reason=reason, sources=sources or [])


def structured(signals: List[EvaluatedSignal], final_score: float = 50, industry: str = "Technology") -> StructuredScore:
    return StructuredScore(
        company_name="Acme Corp",
        industry=industry,
        evaluated_signals=signals,
        final_intent_score=final_score,
        overall_reasoning="Analysis based on test signals",
    )


def report(results: List[SignalResult]) -> RawSignalReport:
    return RawSignalReport(
        company="Acme Corp",
        website="https://acme.example",
        requested_signals=[r.signal for r in results],
        results=results,
    )
