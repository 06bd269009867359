"""
Intent Scoring Engine - Main Orchestrator
=========================================
Runs one scoring pass:
  Validate input → Sufficiency gate → {AI scoring | Rule-based fallback}
  → Business-rule adjustment → IntentScore

Key behaviors:
- Input is either a raw signal report or an already structured score,
  resolved once on entry
- The scoring model is never called for evidence too thin to trust
- Any model or adjuster failure falls back to the rule-based scorer, with
  the failure noted in the result's reason
- The caller always gets an IntentScore back
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from .models.schemas import (
    IntentScore,
    RawSignalReport,
    ScoringInput,
    StructuredScore,
)
from .models.signal_config import SignalWeightConfig
from .config.settings import BATCH_CONFIG, BUSINESS_RULES
from .core.errors import sanitize_error_message
from .core.utils import run_in_batches, utcnow
from .stages.business_rules import BusinessRuleAdjuster
from .stages.stage3_evidence import (
    EvidenceScoringStage,
    FallbackScoringStage,
    build_weights,
    has_sufficient_evidence,
)
from .stages.stage4_llm import IntentLLMStage, ScoringModel

logger = logging.getLogger(__name__)

_INPUT_ADAPTER = TypeAdapter(ScoringInput)


class IntentScoringEngine:
    """
    Main Intent Scoring Engine that orchestrates the scoring stages.
    """

    def __init__(
        self,
        llm_api_key: Optional[str] = None,
        llm_provider: Optional[str] = None,
        scoring_model: Optional[ScoringModel] = None,
        signal_config: Optional[SignalWeightConfig] = None,
        apply_rules_to_fallback: Optional[bool] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the scoring engine.

        Args:
            llm_api_key: API key for the scoring model provider
            llm_provider: "openrouter" or "openai"
            scoring_model: Ready-made scoring model (used instead of the key)
            signal_config: Signal weights for the result factors
            apply_rules_to_fallback: Also run the business rules after the fallback
            clock: Time source for recency checks
        """
        self.signal_config = signal_config
        self.apply_rules_to_fallback = (
            BUSINESS_RULES["apply_to_fallback"]
            if apply_rules_to_fallback is None else apply_rules_to_fallback
        )

        # Initialize stages
        self.evidence_stage = EvidenceScoringStage(clock=clock)
        self.fallback_stage = FallbackScoringStage(clock=clock)
        self.llm_stage = IntentLLMStage(
            api_key=llm_api_key, provider=llm_provider, model=scoring_model, clock=clock
        )
        self.adjuster = BusinessRuleAdjuster(clock=clock)

        # Track statistics
        self.stats = self._empty_stats()

    # =========================================================================
    # Input resolution
    # =========================================================================

    def resolve_input(
        self, data: Union[RawSignalReport, StructuredScore, Dict[str, Any]]
    ) -> StructuredScore:
        """
        Resolve the tagged input union to a StructuredScore.

        Raises:
            ValidationError: a dict that matches neither input shape
        """
        if isinstance(data, dict):
            data = _INPUT_ADAPTER.validate_python(data)
        if isinstance(data, RawSignalReport):
            return self.evidence_stage.process(data)
        if isinstance(data, StructuredScore):
            return data
        raise TypeError(f"Unsupported scoring input: {type(data).__name__}")

    # =========================================================================
    # Scoring
    # =========================================================================

    async def calculate_intent_score(
        self, data: Union[RawSignalReport, StructuredScore, Dict[str, Any]]
    ) -> IntentScore:
        """
        Score one company.

        Args:
            data: Raw signal report, structured score, or a dict of either
                  (tagged by its ``kind`` field)

        Returns:
            IntentScore; never raises
        """
        start_time = time.time()
        self.stats["total_processed"] += 1

        # =====================================================================
        # Validate
        # =====================================================================
        try:
            structured = self.resolve_input(data)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Unusable scoring input: {sanitize_error_message(str(e))}")
            self.stats["invalid_input"] += 1
            return self._finish(
                self.fallback_stage.process(
                    StructuredScore(),
                    weights={},
                    failure_note=None,
                ).model_copy(update={
                    "reason": "Insufficient data for analysis: input could not be used "
                              f"({sanitize_error_message(str(e), 120)})",
                }),
                start_time,
            )

        weights = build_weights(structured, self.signal_config)

        # =====================================================================
        # Sufficiency gate
        # =====================================================================
        if not has_sufficient_evidence(structured):
            logger.info(f"Skipping AI scoring for {structured.company_name}: insufficient evidence")
            self.stats["insufficient_evidence"] += 1
            return self._finish(self._fallback(structured, weights), start_time)

        if not self.llm_stage.available:
            return self._finish(self._fallback(structured, weights), start_time)

        # =====================================================================
        # AI path + business rules
        # =====================================================================
        try:
            reply = await self.llm_stage.process(structured)
            adjustment = self.adjuster.apply(reply["score"], structured.evaluated_signals)
            result = self.llm_stage.build_result(reply, structured, adjustment, weights)
            self.stats["ai_scored"] += 1
        except Exception as e:
            note = sanitize_error_message(str(e) or type(e).__name__)
            logger.warning(f"AI scoring failed for {structured.company_name}, using fallback: {note}")
            self.stats["ai_failures"] += 1
            result = self._fallback(structured, weights, failure_note=note)

        return self._finish(result, start_time)

    async def score_batch(
        self,
        inputs: List[Union[RawSignalReport, StructuredScore, Dict[str, Any]]],
        batch_size: int = BATCH_CONFIG["batch_size"],
        delay_seconds: float = BATCH_CONFIG["delay_seconds"],
    ) -> List[IntentScore]:
        """Score several companies in concurrent batches, order preserved."""
        return await run_in_batches(
            inputs, self.calculate_intent_score, batch_size, delay_seconds
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        if stats["total_processed"] > 0:
            stats["ai_rate"] = round(stats["ai_scored"] / stats["total_processed"] * 100, 1)
            stats["avg_processing_time_ms"] = round(
                stats["total_processing_time_ms"] / stats["total_processed"], 2
            )
        return stats

    def reset_stats(self):
        """Reset engine statistics"""
        self.stats = self._empty_stats()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _fallback(
        self,
        structured: StructuredScore,
        weights: Dict[str, int],
        failure_note: Optional[str] = None,
    ) -> IntentScore:
        self.stats["fallback_scored"] += 1
        result = self.fallback_stage.process(structured, weights, failure_note)
        if not self.apply_rules_to_fallback:
            return result

        adjustment = self.adjuster.apply(result.score, structured.evaluated_signals)
        return result.model_copy(update={
            "score": adjustment.score,
            "adjustments": adjustment.adjustments,
        })

    def _finish(self, result: IntentScore, start_time: float) -> IntentScore:
        total_time = (time.time() - start_time) * 1000
        self.stats["total_processing_time_ms"] += total_time
        return result.model_copy(update={
            "processing_time_ms": round(total_time, 2),
            "processed_at": utcnow(),
        })

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "total_processed": 0,
            "ai_scored": 0,
            "ai_failures": 0,
            "fallback_scored": 0,
            "insufficient_evidence": 0,
            "invalid_input": 0,
            "total_processing_time_ms": 0,
        }


# =============================================================================
# Convenience Functions
# =============================================================================

def create_engine(
    signals: Optional[List[str]] = None,
    signal_weights: Optional[Dict[str, float]] = None,
    llm_api_key: Optional[str] = None,
) -> IntentScoringEngine:
    """
    Factory function to create an Intent Scoring Engine with common settings.

    Args:
        signals: Buying signals to weight
        signal_weights: Relative weights per signal (equal if omitted)
        llm_api_key: API key for the scoring model

    Returns:
        Configured IntentScoringEngine instance
    """
    config = SignalWeightConfig(signals=signals, raw_weights=signal_weights) if signals else None
    return IntentScoringEngine(llm_api_key=llm_api_key, signal_config=config)
