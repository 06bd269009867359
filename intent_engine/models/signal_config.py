"""
Signal Weight Configuration
"""

from typing import List, Dict, Optional
from pydantic import BaseModel, Field, model_validator
from datetime import datetime
import uuid

from ..config.settings import MAX_WEIGHTED_SIGNALS
from ..core.utils import utcnow


def normalize_weights(
    signals: List[str],
    raw_weights: Optional[Dict[str, float]] = None,
) -> Dict[str, int]:
    """
    Turn a signal list into integer weights that sum to exactly 100.

    Without raw weights every signal gets an equal share. With raw weights the
    shares are proportional. Integer rounding leftovers go to the first signal.
    """
    if not signals:
        return {}

    if raw_weights:
        values = [max(float(raw_weights.get(s, 0)), 0.0) for s in signals]
        total = sum(values)
        if total <= 0:
            values = [1.0] * len(signals)
            total = float(len(signals))
        weights = [int(v * 100 // total) for v in values]
    else:
        weights = [100 // len(signals)] * len(signals)

    weights[0] += 100 - sum(weights)
    return dict(zip(signals, weights))


class SignalWeightConfig(BaseModel):
    """Weighted set of buying signals for one target profile"""
    config_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Default Signals"
    signals: List[str] = Field(default_factory=list)
    raw_weights: Optional[Dict[str, float]] = None
    weights: Dict[str, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _normalize(self):
        # Signals beyond the cap are dropped before weighting
        seen = []
        for signal in self.signals:
            if signal and signal not in seen:
                seen.append(signal)
        self.signals = seen[:MAX_WEIGHTED_SIGNALS]
        self.weights = normalize_weights(self.signals, self.raw_weights)
        return self

    def weight_for(self, signal: str) -> int:
        return self.weights.get(signal, 0)

    @property
    def total_weight(self) -> int:
        return sum(self.weights.values())


def create_signal_config(
    signals: List[str],
    raw_weights: Optional[Dict[str, float]] = None,
    name: str = "Default Signals",
) -> SignalWeightConfig:
    """
    Factory function to create a signal weight config
    """
    return SignalWeightConfig(name=name, signals=signals, raw_weights=raw_weights)
