"""
Tests for Stage 3: Evidence Scoring & Rule-Based Fallback
"""
import pytest

from intent_engine.models.schemas import (
    ConfidenceLevel,
    ScoringPath,
    SignalResult,
    StructuredScore,
    TimingRecommendation,
)
from intent_engine.stages.stage3_evidence import (
    EvidenceScoringStage,
    FallbackScoringStage,
    build_weights,
    has_sufficient_evidence,
    intent_level,
    signal_multiplier,
)
from tests.factories import evidence, report, signal, source, structured


class TestEvidenceScoring:
    """Per-signal evidence scores."""

    @pytest.fixture
    def stage(self, clock):
        return EvidenceScoringStage(clock=clock)

    def test_not_found_scores_zero(self, stage):
        result = SignalResult(signal="expansion", found=False, evidence=[evidence()])

        assert stage.calculate_evidence_score(result) == 0

    def test_found_without_evidence_scores_zero(self, stage):
        assert stage.calculate_evidence_score(SignalResult(signal="expansion", found=True)) == 0

    def test_single_recent_item(self, stage):
        result = SignalResult(signal="technology_adoption", found=True, evidence=[evidence(confidence=0.8)])

        # 30 base + 15 quantity + 10 recency + 12 confidence
        assert stage.calculate_evidence_score(result) == 67

    def test_medium_impact_multiplier(self, stage):
        result = SignalResult(signal="expansion", found=True, evidence=[evidence(confidence=0.8)])

        assert stage.calculate_evidence_score(result) == 74

    def test_capped_at_100(self, stage):
        result = SignalResult(
            signal="new_funding_round",
            found=True,
            evidence=[evidence(days=d, confidence=0.9) for d in (1, 2, 3, 4, 5)],
        )

        assert stage.calculate_evidence_score(result) == 100

    def test_half_rounds_up(self, stage):
        result = SignalResult(
            signal="technology_adoption",
            found=True,
            evidence=[evidence(days=5, confidence=0.5), evidence(days=6, confidence=0.5),
                      evidence(days=200, confidence=0.5)],
        )

        # 30 + 20 + 10 + 7.5 = 67.5
        assert stage.calculate_evidence_score(result) == 68

    def test_process_report(self, stage):
        structured_score = stage.process(report([
            SignalResult(signal="new_funding_round", found=True,
                         evidence=[evidence(days=d, confidence=0.9) for d in (1, 2, 3, 4, 5)]),
            SignalResult(signal="technology_adoption", found=True, evidence=[evidence(confidence=0.8)]),
            SignalResult(signal="expansion", found=False),
        ]))

        assert structured_score.company_name == "Acme Corp"
        assert [s.score for s in structured_score.evaluated_signals] == [100, 67, 0]
        assert structured_score.final_intent_score == 86
        assert structured_score.intent_level == "Very High"
        assert structured_score.industry == "Fintech"
        assert structured_score.overall_reasoning == (
            "Analysis based on 2 strong signals (score >= 60) with 6 total evidence sources"
        )
        assert structured_score.evaluated_signals[0].sources[0].snippet == "Company announced news"

    def test_process_empty_report(self, stage):
        structured_score = stage.process(report([SignalResult(signal="expansion")]))

        assert structured_score.final_intent_score == 0
        assert structured_score.industry == "Technology"
        assert structured_score.overall_reasoning == "Limited evidence available for reliable intent assessment"

    @pytest.mark.parametrize("score,level", [
        (95, "Very High"), (81, "Very High"), (61, "High"), (60, "Moderate"),
        (41, "Moderate"), (21, "Low"), (20, "No Intent"), (0, "No Intent"),
    ])
    def test_intent_levels(self, score, level):
        assert intent_level(score) == level

    def test_signal_multiplier(self):
        assert signal_multiplier("new_funding_round") == 1.3
        assert signal_multiplier("new_partnership") == 1.1
        assert signal_multiplier("anything_else") == 1.0


class TestSufficiencyGate:
    """has_sufficient_evidence."""

    def test_no_signals(self):
        assert has_sufficient_evidence(StructuredScore()) is False

    def test_no_sources_anywhere(self):
        assert has_sufficient_evidence(structured([signal("new_product", 90)])) is False

    def test_sources_but_low_scores(self):
        assert has_sufficient_evidence(structured([signal("new_product", 39, [source()])])) is False

    def test_supported_signal_at_threshold(self):
        assert has_sufficient_evidence(structured([
            signal("new_product", 90),
            signal("expansion", 40, [source()]),
        ])) is True


class TestFallbackScoring:
    """Rule-based fallback."""

    @pytest.fixture
    def stage(self, clock):
        return FallbackScoringStage(clock=clock)

    @pytest.fixture
    def mixed(self):
        return structured([
            signal("hiring_in_engineering_department", 70,
                   [source(days=5, confidence=0.9), source(days=8, confidence=0.9)]),
            signal("expansion", 45, [source(days=200, confidence=0.65)]),
            signal("new_product", 0),
        ], final_score=50)

    def test_score_and_labels(self, stage, mixed):
        result = stage.process(mixed)

        # 50 + 3 x 2 signals with evidence + 2 x 1 signal with recent evidence
        assert result.score == 58
        assert result.path == ScoringPath.FALLBACK
        assert result.confidence == ConfidenceLevel.MEDIUM
        assert result.timing_recommendation == TimingRecommendation.LONG_TERM
        assert result.risk_factors == ["Some signals rely on outdated information"]
        assert result.reason == (
            "Fallback analysis: Analysis based on test signals. Based on 3 signals "
            "with evidence from 3 total sources."
        )

    def test_factors(self, stage, mixed):
        factors = {f.signal: f for f in stage.process(mixed).factors}

        hiring = factors["hiring_in_engineering_department"]
        assert (hiring.impact, hiring.evidence_quality, hiring.weight) == ("high", "good", 34)
        assert hiring.weighted_contribution == pytest.approx(23.8)
        assert hiring.confidence == pytest.approx(0.9)
        assert (factors["expansion"].impact, factors["expansion"].evidence_quality) == ("medium", "fair")
        assert (factors["new_product"].impact, factors["new_product"].evidence_quality) == ("low", "poor")

    def test_insights(self, stage, mixed):
        assert stage.process(mixed).strategic_insights == [
            "Active hiring suggests organizational growth and need for new solutions"
        ]

    def test_failure_note_in_reason(self, stage, mixed):
        result = stage.process(mixed, failure_note="timeout")

        assert result.reason.endswith(" AI scoring unavailable: timeout")

    def test_score_clamped(self, stage):
        result = stage.process(structured(
            [signal("new_product", 100, [source(days=1)])], final_score=99
        ))

        assert result.score == 100
        assert result.timing_recommendation == TimingRecommendation.IMMEDIATE

    def test_empty_input(self, stage):
        result = stage.process(StructuredScore())

        assert result.score == 0
        assert result.confidence == ConfidenceLevel.LOW
        assert result.risk_factors == ["No business signals detected"]
        assert result.strategic_insights == ["Limited insights available due to insufficient data"]
        assert result.timing_recommendation == TimingRecommendation.MONITOR

    def test_unsupported_and_single_source_risks(self, stage):
        result = stage.process(structured([
            signal("new_product", 80),
            signal("expansion", 75, [source(days=3)]),
        ]))

        assert result.risk_factors == [
            "1 high-scoring signal(s) lack supporting evidence",
            "High-scoring signals rely on a single source",
        ]

    def test_fintech_insight_and_strong_signals(self, stage):
        result = stage.process(structured([
            signal("new_funding_round", 80, [source(), source(days=20)]),
            signal("new_product", 65, [source()]),
        ], industry="Fintech"))

        assert result.strategic_insights == [
            "Recent funding activity indicates budget availability for new investments",
            "New product development signals openness to complementary tools",
            "Multiple strong signals (2) indicate heightened buying intent",
            "Fintech companies often prioritize compliance and security solutions",
        ]

    def test_custom_weights(self, mixed):
        weights = build_weights(mixed)

        assert weights == {
            "hiring_in_engineering_department": 34,
            "expansion": 33,
            "new_product": 33,
        }
