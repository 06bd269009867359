"""
Tests for signal weight configuration
"""
from datetime import timedelta

import pytest

from intent_engine.models.signal_config import (
    SignalWeightConfig,
    create_signal_config,
    normalize_weights,
)


class TestNormalizeWeights:

    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 6, 7])
    def test_equal_weights_sum_to_100(self, count):
        signals = [f"signal_{i}" for i in range(count)]

        assert sum(normalize_weights(signals).values()) == 100

    def test_remainder_goes_to_first(self):
        assert normalize_weights(["a", "b", "c"]) == {"a": 34, "b": 33, "c": 33}

    def test_proportional_raw_weights(self):
        assert normalize_weights(["a", "b", "c"], {"a": 2, "b": 1, "c": 1}) == {"a": 50, "b": 25, "c": 25}

    def test_zero_raw_weights_become_equal(self):
        assert normalize_weights(["a", "b"], {"a": 0, "b": 0}) == {"a": 50, "b": 50}

    def test_empty(self):
        assert normalize_weights([]) == {}


class TestSignalWeightConfig:

    def test_caps_and_dedupes_signals(self):
        config = SignalWeightConfig(signals=["a", "b", "a", "c", "d", "e", "f", "g"])

        assert config.signals == ["a", "b", "c", "d", "e"]
        assert config.weights == {"a": 20, "b": 20, "c": 20, "d": 20, "e": 20}
        assert config.total_weight == 100

    def test_weight_for_unknown_signal(self):
        config = create_signal_config(["a", "b"], name="Growth")

        assert config.name == "Growth"
        assert config.weight_for("a") == 50
        assert config.weight_for("z") == 0

    def test_no_signals(self):
        config = SignalWeightConfig()

        assert config.weights == {}
        assert config.total_weight == 0

    def test_created_at_is_timezone_aware(self):
        config = SignalWeightConfig()

        assert config.created_at.tzinfo is not None
        assert config.created_at.utcoffset() == timedelta(0)
