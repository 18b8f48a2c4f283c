"""Market signal provider base class."""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import FrozenSet

from src.decision.models import MarketData
from src.prediction.models import MarketSignal, SignalAnalysis


class BaseSignalProvider(ABC):
    """Predictive model producing a movement score and confidence per asset.

    Providers may omit assets they cannot analyse. A provider that cannot
    produce anything raises SignalUnavailableError.
    """

    NAME: str = "base"

    @abstractmethod
    async def analyze_market(self, assets: FrozenSet[str], context: MarketData) -> SignalAnalysis:
        """Analyse ``assets`` given the market context."""

    async def health_check(self) -> bool:
        return True

    @staticmethod
    def is_valid_signal(signal: MarketSignal) -> bool:
        return (
            math.isfinite(signal.movement_score)
            and math.isfinite(signal.confidence)
            and 0.0 <= signal.confidence <= 1.0
        )
