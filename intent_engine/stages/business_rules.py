"""
Business-Rule Adjustment
========================
Deterministic corrections applied to a computed intent score:
- penalty per high-scoring signal with no supporting source
- bonus when several signals have recent sources
- bonus for source-type diversity
- penalty per negative signal (layoffs, cost cutting, decreases)
- bonus when funding and hiring appear together

The adjusted score is clamped to [0, 100] and rounded.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..models.schemas import AdjustmentResult, EvaluatedSignal
from ..config.settings import BUSINESS_RULES, EVIDENCE_SCORING
from ..core.utils import clamp, is_recent, round_half_up, utcnow


class BusinessRuleAdjuster:
    """Applies the business rules to a score."""

    def __init__(
        self,
        rules: Optional[Dict[str, Any]] = None,
        recency_days: int = EVIDENCE_SCORING["recency_days"],
        clock: Callable[[], datetime] = utcnow,
    ):
        self.rules = rules or BUSINESS_RULES
        self.recency_days = recency_days
        self.clock = clock

    def apply(self, score: float, signals: List[EvaluatedSignal]) -> AdjustmentResult:
        """
        Adjust ``score`` for the given evaluated signals.

        Returns:
            AdjustmentResult with the final score and a line per fired rule
        """
        now = self.clock()
        adjusted = float(score)
        notes: List[str] = []

        # Unsupported high scores
        rule = self.rules["unsupported_high_score"]
        unsupported = [s for s in signals if s.score > rule["threshold"] and not s.sources]
        if unsupported:
            delta = rule["penalty"] * len(unsupported)
            adjusted += delta
            notes.append(f"{delta:+d}: {len(unsupported)} high-scoring signal(s) without sources")

        # Recency
        rule = self.rules["recent_signals"]
        recent = [
            s for s in signals
            if any(is_recent(src.date, self.recency_days, now) for src in s.sources)
        ]
        if len(recent) >= rule["min_signals"]:
            adjusted += rule["bonus"]
            notes.append(f"{rule['bonus']:+d}: {len(recent)} signals with recent sources")

        # Source diversity
        rule = self.rules["source_diversity"]
        source_types = {src.source_type for s in signals for src in s.sources if src.source_type}
        if len(source_types) >= rule["min_types"]:
            adjusted += rule["bonus"]
            notes.append(f"{rule['bonus']:+d}: {len(source_types)} distinct source types")

        # Negative signals
        rule = self.rules["negative_signal"]
        negative = [
            s for s in signals
            if any(p in s.signal.lower() for p in rule["patterns"])
        ]
        if negative:
            delta = rule["penalty"] * len(negative)
            adjusted += delta
            notes.append(f"{delta:+d}: negative signal(s) {', '.join(s.signal for s in negative)}")

        # Funding and hiring together
        rule = self.rules["funding_and_hiring"]
        names = [s.signal.lower() for s in signals]
        if rule["funding"] in names and any(rule["hiring"] in n for n in names):
            adjusted += rule["bonus"]
            notes.append(f"{rule['bonus']:+d}: funding combined with hiring")

        return AdjustmentResult(
            score=int(clamp(round_half_up(adjusted))),
            original_score=score,
            adjustments=notes,
        )
