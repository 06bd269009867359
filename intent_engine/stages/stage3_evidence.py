"""
Stage 3: Evidence Scoring & Rule-Based Fallback
===============================================
Deterministic scoring, no network.

Evidence scoring turns a raw signal-detection report into evaluated signals:
  score = (30 + quantity bonus + recency bonus + avg confidence x 15)
          x signal-importance multiplier, capped at 100

The fallback scorer produces a complete IntentScore from evaluated signals
when the AI path is skipped or fails.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..models.schemas import (
    ConfidenceLevel,
    EvaluatedSignal,
    IntentScore,
    RawSignalReport,
    ScoringFactor,
    ScoringPath,
    SignalResult,
    SourceDetail,
    StructuredScore,
    TimingRecommendation,
)
from ..models.signal_config import SignalWeightConfig
from ..config.settings import (
    CONFIDENCE_BY_SOURCES,
    EVIDENCE_SCORING,
    INTENT_LEVELS,
    SCORING_THRESHOLDS,
    SIGNAL_MULTIPLIERS,
    TIMING_BY_SCORE,
)
from ..core.utils import clamp, is_recent, round_half_up, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# Shared helpers
# =============================================================================

def signal_multiplier(signal: str) -> float:
    """Importance multiplier for a signal name"""
    for tier in ("high_impact", "medium_impact"):
        if signal in SIGNAL_MULTIPLIERS[tier]["signals"]:
            return SIGNAL_MULTIPLIERS[tier]["multiplier"]
    return SIGNAL_MULTIPLIERS["default"]


def intent_level(score: float) -> str:
    for threshold, label in INTENT_LEVELS:
        if score >= threshold:
            return label
    return INTENT_LEVELS[-1][1]


def _bucket(value: float, table) -> str:
    for threshold, label in table:
        if value >= threshold:
            return label
    return table[-1][1]


def average_confidence(sources: List[SourceDetail]) -> float:
    if not sources:
        return 0.0
    return sum(s.confidence for s in sources) / len(sources)


def recent_source_count(
    sources: List[SourceDetail], now: Optional[datetime] = None
) -> int:
    days = EVIDENCE_SCORING["recency_days"]
    return sum(1 for s in sources if is_recent(s.date, days, now))


def has_sufficient_evidence(structured: StructuredScore) -> bool:
    """
    True when at least one signal has evidence and a score high enough to
    justify a scoring-model call.
    """
    minimum = SCORING_THRESHOLDS["sufficiency_min_score"]
    signals = structured.evaluated_signals
    if not signals:
        return False
    if sum(len(s.sources) for s in signals) == 0:
        return False
    return any(s.sources and s.score >= minimum for s in signals)


def build_weights(
    structured: StructuredScore, config: Optional[SignalWeightConfig] = None
) -> Dict[str, int]:
    """Configured weights, or equal weights over the evaluated signals."""
    if config is not None:
        return dict(config.weights)
    names = [s.signal for s in structured.evaluated_signals]
    return dict(SignalWeightConfig(signals=names).weights)


# =============================================================================
# Evidence Scoring
# =============================================================================

class EvidenceScoringStage:
    """
    Stage 3a: Convert a raw signal report into evaluated signals.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def process(self, report: RawSignalReport) -> StructuredScore:
        """
        Score every signal in a raw report.

        Args:
            report: Signal-detection output

        Returns:
            StructuredScore with per-signal scores and an overall score
        """
        now = self.clock()
        evaluated = [self._evaluate(result, now) for result in report.results]
        overall = self.calculate_overall_score(evaluated)

        return StructuredScore(
            company_name=report.company,
            industry=report.industry or self._infer_industry(evaluated),
            evaluated_signals=evaluated,
            final_intent_score=overall,
            intent_level=intent_level(overall),
            overall_reasoning=self._overall_reasoning(evaluated),
            metadata={
                "website": report.website,
                "analysis_date": report.analysis_date,
                "requested_signals": report.requested_signals,
                "total_evidence": sum(len(r.evidence) for r in report.results),
            },
        )

    def calculate_evidence_score(self, result: SignalResult, now: Optional[datetime] = None) -> int:
        """Evidence score for one signal, in [0, 100]"""
        if not result.found or not result.evidence:
            return 0

        now = now or self.clock()
        count = len(result.evidence)
        score = EVIDENCE_SCORING["base"]

        for minimum, bonus in EVIDENCE_SCORING["quantity_bonus"]:
            if count >= minimum:
                score += bonus
                break

        recent = sum(
            1 for e in result.evidence
            if is_recent(e.date, EVIDENCE_SCORING["recency_days"], now)
        )
        for minimum, bonus in EVIDENCE_SCORING["recency_bonus"]:
            if recent >= minimum:
                score += bonus
                break

        avg_confidence = sum(e.confidence for e in result.evidence) / count
        score += avg_confidence * EVIDENCE_SCORING["confidence_weight"]

        score *= signal_multiplier(result.signal)
        return min(100, round_half_up(score))

    def calculate_overall_score(self, signals: List[EvaluatedSignal]) -> int:
        """Multiplier-weighted average of the signals that scored at all"""
        scored = [s for s in signals if s.score > 0]
        if not scored:
            return 0
        total_weight = sum(signal_multiplier(s.signal) for s in scored)
        weighted = sum(s.score * signal_multiplier(s.signal) for s in scored)
        return int(clamp(round_half_up(weighted / total_weight)))

    def _evaluate(self, result: SignalResult, now: datetime) -> EvaluatedSignal:
        sources = [
            SourceDetail(
                url=e.url,
                title=e.source,
                date=e.date,
                confidence=e.confidence,
                source_type=e.source_type,
                snippet=e.summary,
            )
            for e in result.evidence
        ]
        return EvaluatedSignal(
            signal=result.signal,
            score=self.calculate_evidence_score(result, now),
            reason=result.reasoning,
            sources=sources,
        )

    def _infer_industry(self, signals: List[EvaluatedSignal]) -> str:
        funding = next((s for s in signals if s.signal == "new_funding_round"), None)
        if funding and funding.score > 50:
            return "Fintech"
        return "Technology"

    def _overall_reasoning(self, signals: List[EvaluatedSignal]) -> str:
        if not any(s.score > 0 for s in signals):
            return "Limited evidence available for reliable intent assessment"
        strong = sum(1 for s in signals if s.score >= SCORING_THRESHOLDS["strong_signal"])
        total_sources = sum(len(s.sources) for s in signals)
        return (
            f"Analysis based on {strong} strong signals (score >= "
            f"{SCORING_THRESHOLDS['strong_signal']}) with {total_sources} total evidence sources"
        )


# =============================================================================
# Rule-Based Fallback
# =============================================================================

class FallbackScoringStage:
    """
    Stage 3b: Complete IntentScore without a scoring model.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def process(
        self,
        structured: StructuredScore,
        weights: Optional[Dict[str, int]] = None,
        failure_note: Optional[str] = None,
    ) -> IntentScore:
        """
        Score from evidence counts alone.

        Args:
            structured: Evaluated signals
            weights: Signal weights for the factors (equal weights if omitted)
            failure_note: Why the AI path did not produce the score
        """
        now = self.clock()
        signals = structured.evaluated_signals
        weights = weights if weights is not None else build_weights(structured)

        with_evidence = sum(1 for s in signals if s.sources)
        with_recent = sum(1 for s in signals if recent_source_count(s.sources, now) > 0)
        enhanced = (
            structured.final_intent_score
            + SCORING_THRESHOLDS["fallback_evidence_bonus"] * with_evidence
            + SCORING_THRESHOLDS["fallback_recency_bonus"] * with_recent
        )
        score = int(clamp(round_half_up(enhanced)))

        total_sources = sum(len(s.sources) for s in signals)
        confidence = ConfidenceLevel(_bucket(total_sources, CONFIDENCE_BY_SOURCES))

        factors = [self._factor(s, weights, now) for s in signals]

        reasoning = structured.overall_reasoning or "Insufficient data for analysis"
        reason = (
            f"Fallback analysis: {reasoning}. Based on {len(signals)} signals "
            f"with evidence from {total_sources} total sources."
        )
        if failure_note:
            reason += f" AI scoring unavailable: {failure_note}"

        return IntentScore(
            company_name=structured.company_name,
            score=score,
            reason=reason,
            factors=factors,
            confidence=confidence,
            strategic_insights=self._insights(structured),
            timing_recommendation=TimingRecommendation(_bucket(score, TIMING_BY_SCORE)),
            risk_factors=self._risks(signals, now),
            path=ScoringPath.FALLBACK,
        )

    def _factor(
        self, signal: EvaluatedSignal, weights: Dict[str, int], now: datetime
    ) -> ScoringFactor:
        weight = weights.get(signal.signal, 0)
        return ScoringFactor(
            signal=signal.signal,
            score=signal.score,
            impact=self._impact(signal),
            evidence_quality=self._evidence_quality(signal, now),
            confidence=round(average_confidence(signal.sources), 3),
            original_score=signal.score,
            weight=weight,
            weighted_contribution=round(signal.score * weight / 100, 2),
        )

    def _impact(self, signal: EvaluatedSignal) -> str:
        count = len(signal.sources)
        if signal.score >= 70 and count >= 2:
            return "high"
        if signal.score >= 40 and count >= 1:
            return "medium"
        return "low"

    def _evidence_quality(self, signal: EvaluatedSignal, now: datetime) -> str:
        count = len(signal.sources)
        avg = average_confidence(signal.sources)
        recent = recent_source_count(signal.sources, now)
        if count >= 3 and avg >= 0.8 and recent >= 2:
            return "excellent"
        if count >= 2 and avg >= 0.7:
            return "good"
        if count >= 1 and avg >= 0.6:
            return "fair"
        return "poor"

    def _insights(self, structured: StructuredScore) -> List[str]:
        signals = structured.evaluated_signals
        strong = [s for s in signals if s.score > 50]
        names = [s.signal for s in strong]
        insights = []

        if "new_funding_round" in names:
            insights.append("Recent funding activity indicates budget availability for new investments")
        if any("hiring" in n for n in names):
            insights.append("Active hiring suggests organizational growth and need for new solutions")
        if "new_product" in names:
            insights.append("New product development signals openness to complementary tools")

        very_strong = [s for s in signals if s.score >= SCORING_THRESHOLDS["strong_signal"]]
        if len(very_strong) >= 2:
            insights.append(f"Multiple strong signals ({len(very_strong)}) indicate heightened buying intent")

        industry = (structured.industry or "").lower()
        if "fintech" in industry:
            insights.append("Fintech companies often prioritize compliance and security solutions")
        elif "saas" in industry:
            insights.append("SaaS companies typically value scalability and integration capabilities")

        return insights[:4] or ["Limited insights available due to insufficient data"]

    def _risks(self, signals: List[EvaluatedSignal], now: datetime) -> List[str]:
        risks = []

        unsupported = [s for s in signals if s.score > 50 and not s.sources]
        if unsupported:
            risks.append(f"{len(unsupported)} high-scoring signal(s) lack supporting evidence")

        outdated = [
            s for s in signals if s.sources and recent_source_count(s.sources, now) == 0
        ]
        if outdated:
            risks.append("Some signals rely on outdated information")

        single_source = [s for s in signals if len(s.sources) == 1 and s.score > 60]
        if single_source:
            risks.append("High-scoring signals rely on a single source")

        if not signals:
            risks.append("No business signals detected")

        return risks[:3] or ["No significant risks identified"]
