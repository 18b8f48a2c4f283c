"""Fixed-signal provider for offline runs and tests."""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping

from src.decision.models import MarketData
from src.prediction.base import BaseSignalProvider
from src.prediction.models import MarketSignal, SignalAnalysis


class StaticSignalProvider(BaseSignalProvider):
    NAME = "static"

    def __init__(self, signals: Mapping[str, Any]):
        self._signals: Dict[str, MarketSignal] = {}
        for asset, item in signals.items():
            if isinstance(item, MarketSignal):
                self._signals[asset] = item
            else:
                self._signals[asset] = MarketSignal(
                    movement_score=float(item["movement_score"]),
                    confidence=float(item["confidence"]),
                )

    async def analyze_market(self, assets: FrozenSet[str], context: MarketData) -> SignalAnalysis:
        return SignalAnalysis(
            signals={a: s for a, s in self._signals.items() if a in assets},
            model_id="static",
        )
