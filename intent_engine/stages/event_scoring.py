"""
Event-based intent scoring.

Scores provider-reported business events against a set of buying triggers.
Each trigger earns occurrence points (how many matching events) and recency
points (age of the newest matching event), 0-50 each. Trigger scores are
combined with the normalized trigger weights.
"""

from datetime import datetime
from typing import List, Optional

from ..models.schemas import BusinessEvent, EventIntentScore, ScoredSignal
from ..models.signal_config import SignalWeightConfig
from ..config.settings import EVENT_OCCURRENCE_POINTS, EVENT_RECENCY_POINTS
from ..core.utils import as_aware, clamp, parse_date, utcnow


def occurrence_points(count: int) -> int:
    for minimum, points in EVENT_OCCURRENCE_POINTS:
        if count >= minimum:
            return points
    return 0


def recency_points(age_days: Optional[float]) -> int:
    if age_days is None:
        return 0
    for max_age, points in EVENT_RECENCY_POINTS:
        if age_days <= max_age:
            return points
    return 0


def score_events(
    events: List[BusinessEvent],
    triggers: List[str],
    weights: Optional[SignalWeightConfig] = None,
    now: Optional[datetime] = None,
) -> EventIntentScore:
    """
    Weighted intent score from business events.

    Args:
        events: Events reported for one company
        triggers: Buying triggers (event names) to score
        weights: Trigger weights; equal weights over ``triggers`` if omitted
        now: Reference time for recency

    Returns:
        EventIntentScore with one ScoredSignal per weighted trigger
    """
    config = weights or SignalWeightConfig(signals=triggers)
    reference = as_aware(now) if now else utcnow()

    breakdown = []
    covered = 0
    considered = 0
    for trigger in config.signals:
        matching = [e for e in events if e.event_name == trigger]
        considered += len(matching)
        if matching:
            covered += 1

        ages = []
        for event in matching:
            occurred = parse_date(event.event_time)
            if occurred is not None:
                ages.append(max((reference - occurred).total_seconds() / 86400, 0))
        newest = min(ages) if ages else None

        raw = occurrence_points(len(matching)) + recency_points(newest)
        weight = config.weight_for(trigger)
        breakdown.append(ScoredSignal(
            signal=trigger,
            raw_score=raw,
            weight=weight,
            weighted_contribution=round(raw * weight / 100, 2),
        ))

    final = round(clamp(sum(s.weighted_contribution for s in breakdown)), 2)

    coverage = covered / len(config.signals) if config.signals else 0
    if coverage >= 0.6 and considered >= 5:
        confidence = "HIGH"
    elif coverage >= 0.3 or considered >= 2:
        confidence = "MEDIUM"
    else:
        confidence = "LOW"

    return EventIntentScore(
        final_intent_score=final,
        signal_breakdown=breakdown,
        overall_confidence=confidence,
        events_considered=considered,
    )
