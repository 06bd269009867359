"""
Stage 4: AI Intent Scoring
==========================
Asks a scoring model for a structured intent assessment.
Only runs when the evidence passes the sufficiency gate, since it is the
only stage that costs money.

Tasks:
- Build a prompt from every evaluated signal and its evidence
- Extract the JSON object from the model's free-text reply
- Validate the reply field by field (invalid replies raise)
- Turn the validated reply into an IntentScore
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..models.schemas import (
    AdjustmentResult,
    ConfidenceLevel,
    EvaluatedSignal,
    IntentScore,
    ScoringFactor,
    ScoringPath,
    StructuredScore,
    TimingRecommendation,
)
from ..config.settings import LLM_CONFIG
from ..core.errors import ScoringResponseError
from ..core.utils import utcnow
from .stage3_evidence import average_confidence, recent_source_count

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a B2B buying-intent analyst. You score how likely a company is to buy in the near term, based on detected business signals and their evidence.

SCORING FRAMEWORK:
- 0-20:   No meaningful intent; signals absent or unsupported
- 21-40:  Low intent; weak or stale signals
- 41-60:  Moderate intent; some supported signals
- 61-80:  High intent; several recent, well-sourced signals
- 81-100: Very high intent; strong, recent, corroborated signals

Weigh recency, source diversity and source confidence. Penalize claims without evidence.
Always respond with a single valid JSON object and nothing else."""


class ScoringModel(Protocol):
    async def generate(self, prompt: str, system_prompt: str) -> str:
        ...


class OpenAIScoringModel:
    """Scoring model over the OpenAI SDK (OpenRouter or OpenAI)."""

    def __init__(
        self,
        api_key: str,
        provider: str = "openrouter",
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        from openai import AsyncOpenAI

        self.provider = provider
        self.model = model or LLM_CONFIG.get("model")
        if provider == "openrouter":
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url or LLM_CONFIG.get("base_url"),
                default_headers={
                    "HTTP-Referer": LLM_CONFIG.get("site_url", "http://localhost:8000"),
                    "X-Title": LLM_CONFIG.get("app_name", "Intent Engine"),
                },
            )
        elif provider == "openai":
            self.client = AsyncOpenAI(api_key=api_key)
        else:
            raise ValueError(f"Unknown provider: {provider}")

    async def generate(self, prompt: str, system_prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=LLM_CONFIG.get("temperature", 0.3),
            max_tokens=LLM_CONFIG.get("max_tokens", 1500),
        )
        return response.choices[0].message.content or ""


# =============================================================================
# Response parsing
# =============================================================================

def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first JSON object embedded in free text."""
    if not text:
        raise ScoringResponseError("Empty response from scoring model")

    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            data, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        if isinstance(data, dict):
            return data
        index = text.find("{", index + 1)

    raise ScoringResponseError("No JSON object found in scoring model response")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_response(data: Dict[str, Any]) -> None:
    """Raise ScoringResponseError unless the reply matches the contract."""
    score = data.get("score")
    if not _is_number(score) or not 0 <= score <= 100:
        raise ScoringResponseError(f"Invalid score: {score!r}")

    reason = data.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        raise ScoringResponseError("Missing reason")

    factors = data.get("factors")
    if not isinstance(factors, list):
        raise ScoringResponseError("factors must be a list")

    for i, factor in enumerate(factors):
        if not isinstance(factor, dict):
            raise ScoringResponseError(f"Factor {i} is not an object")
        signal = factor.get("signal")
        if not isinstance(signal, str) or not signal.strip():
            raise ScoringResponseError(f"Factor {i} has no signal")
        factor_score = factor.get("score")
        if not _is_number(factor_score) or not 0 <= factor_score <= 100:
            raise ScoringResponseError(f"Factor {signal} has invalid score: {factor_score!r}")


def _string_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v][:limit]


class IntentLLMStage:
    """
    Stage 4: Score intent with a language model.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[ScoringModel] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the scoring model.

        Args:
            api_key: API key for the LLM provider
            provider: LLM provider ("openrouter" or "openai")
            model: Ready-made scoring model (overrides api_key/provider)
        """
        self.provider = provider or LLM_CONFIG.get("provider", "openrouter")
        self.api_key = api_key or LLM_CONFIG.get("api_key") or os.getenv("OPENROUTER_API_KEY")
        if self.provider == "openai" and not api_key:
            self.api_key = LLM_CONFIG.get("openai_api_key") or self.api_key
        self.clock = clock
        self.model = model

        if self.model is None and self.api_key:
            self.model = OpenAIScoringModel(api_key=self.api_key, provider=self.provider)

    @property
    def available(self) -> bool:
        return self.model is not None

    async def process(self, structured: StructuredScore) -> Dict[str, Any]:
        """
        Get and validate a scoring-model assessment.

        Returns:
            The validated JSON reply

        Raises:
            ScoringResponseError: the reply was missing or malformed
            Exception: any error raised by the model client
        """
        if self.model is None:
            raise ScoringResponseError("No scoring model configured")

        prompt = self.build_prompt(structured)
        text = await self.model.generate(prompt, SYSTEM_PROMPT)
        data = extract_json_object(text)
        validate_response(data)
        return data

    def build_prompt(self, structured: StructuredScore) -> str:
        """Generate the scoring prompt with all signal evidence"""
        now = self.clock()
        blocks = []
        for signal in structured.evaluated_signals:
            blocks.append(self._signal_block(signal, now))

        signals_context = "\n\n".join(blocks) if blocks else "No signals were evaluated."

        return f"""Assess the buying intent of the company below.

COMPANY:
- Name: {structured.company_name}
- Industry: {structured.industry}
- Pre-computed intent score: {structured.final_intent_score:g}/100 ({structured.intent_level})
- Summary: {structured.overall_reasoning or 'N/A'}

SIGNALS:
{signals_context}

TASK:
Provide your analysis as a valid JSON object with exactly these fields:

{{
  "score": 0-100,
  "reason": "2-3 sentences explaining the score",
  "factors": [
    {{"signal": "signal name", "score": 0-100, "impact": "high" | "medium" | "low", "evidence_quality": "excellent" | "good" | "fair" | "poor"}}
  ],
  "confidence": "very-high" | "high" | "medium" | "low",
  "strategic_insights": ["insight 1", "insight 2"],
  "timing_recommendation": "immediate" | "short-term" | "long-term" | "monitor",
  "risk_factors": ["risk 1", "risk 2"]
}}

Return ONLY the JSON object, no other text."""

    def _signal_block(self, signal: EvaluatedSignal, now: datetime) -> str:
        source_types = sorted({s.source_type for s in signal.sources if s.source_type})
        recent = recent_source_count(signal.sources, now)
        avg = average_confidence(signal.sources)
        snippets = [
            f"    * {(s.snippet or s.title)[:120]}" for s in signal.sources[:3]
            if s.snippet or s.title
        ]
        lines = [
            f"- {signal.signal}: score {signal.score:g}/100",
            f"  Reason: {signal.reason or 'N/A'}",
            f"  Sources: {len(signal.sources)} ({', '.join(source_types) or 'none'}), "
            f"{recent} recent, avg confidence {avg:.2f}",
        ]
        if snippets:
            lines.append("  Evidence:")
            lines.extend(snippets)
        return "\n".join(lines)

    def build_result(
        self,
        data: Dict[str, Any],
        structured: StructuredScore,
        adjustment: AdjustmentResult,
        weights: Dict[str, int],
    ) -> IntentScore:
        """Turn a validated reply and its adjusted score into an IntentScore"""
        by_name = {s.signal: s for s in structured.evaluated_signals}
        factors = []
        for factor in data.get("factors", []):
            name = factor["signal"]
            original = by_name.get(name)
            weight = weights.get(name, 0)
            factors.append(ScoringFactor(
                signal=name,
                score=factor["score"],
                impact=factor.get("impact") or "medium",
                evidence_quality=factor.get("evidence_quality") or "fair",
                confidence=round(average_confidence(original.sources), 3) if original and original.sources else 0.5,
                original_score=original.score if original else 0,
                weight=weight,
                weighted_contribution=round(factor["score"] * weight / 100, 2),
            ))

        try:
            confidence = ConfidenceLevel(data.get("confidence"))
        except ValueError:
            confidence = ConfidenceLevel.MEDIUM
        try:
            timing = TimingRecommendation(data.get("timing_recommendation"))
        except ValueError:
            timing = TimingRecommendation.MONITOR

        return IntentScore(
            company_name=structured.company_name,
            score=adjustment.score,
            reason=data["reason"].strip(),
            factors=factors,
            confidence=confidence,
            strategic_insights=_string_list(data.get("strategic_insights"), 5),
            timing_recommendation=timing,
            risk_factors=_string_list(data.get("risk_factors"), 5),
            path=ScoringPath.AI,
            adjustments=adjustment.adjustments,
        )
