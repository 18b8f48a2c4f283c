from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List


@dataclass(frozen=True)
class MarketSignal:
    """Predicted movement for one asset."""

    movement_score: float  # signed, conventionally in [-1, 1]
    confidence: float  # 0-1


@dataclass
class SignalAnalysis:
    """Output of a market signal provider.

    ``signals`` may be partial; assets without an entry are analysed as
    degraded by the engine.
    """

    signals: Dict[str, MarketSignal] = field(default_factory=dict)
    model_id: str = "unknown"
    warnings: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls, model_id: str = "none", warning: str = "") -> "SignalAnalysis":
        return cls(signals={}, model_id=model_id, warnings=[warning] if warning else [])

    def get(self, asset: str):
        return self.signals.get(asset)
