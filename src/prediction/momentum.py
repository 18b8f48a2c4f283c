"""Heuristic market signal from price momentum."""
from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

import numpy as np
import pandas as pd

from src.decision.models import MarketData
from src.prediction.base import BaseSignalProvider
from src.prediction.data_loader import HistoricalDataLoader
from src.prediction.models import MarketSignal, SignalAnalysis
from src.utils.errors import SignalUnavailableError
from src.utils.logging import get_logger


logger = get_logger(__name__)


@dataclass
class MomentumConfig:
    history_days: int = 180
    short_window: int = 20
    long_window: int = 50
    rsi_period: int = 14
    min_observations: int = 60
    max_confidence: float = 0.6
    trend_weight: float = 0.7
    symbols: Dict[str, str] = field(default_factory=dict)  # asset -> Yahoo symbol

    @classmethod
    def from_dict(cls, d: Optional[Dict]) -> "MomentumConfig":
        d = d or {}
        default = cls()
        return cls(
            history_days=int(d.get("history_days", default.history_days)),
            short_window=int(d.get("short_window", default.short_window)),
            long_window=int(d.get("long_window", default.long_window)),
            rsi_period=int(d.get("rsi_period", default.rsi_period)),
            min_observations=int(d.get("min_observations", default.min_observations)),
            max_confidence=float(d.get("max_confidence", default.max_confidence)),
            trend_weight=float(d.get("trend_weight", default.trend_weight)),
            symbols=dict(d.get("symbols") or {}),
        )


class MomentumSignalProvider(BaseSignalProvider):
    """Trend-vs-moving-average z-score blended with RSI.

    Confidence is capped at ``max_confidence`` since this is a heuristic,
    and halves when the trend and the short/long average crossover disagree.
    Assets with fewer than ``min_observations`` closes are left out.
    """

    NAME = "momentum"

    def __init__(self, config: Optional[MomentumConfig] = None, loader: Optional[HistoricalDataLoader] = None):
        self.config = config or MomentumConfig()
        self.loader = loader or HistoricalDataLoader()

    async def analyze_market(self, assets: FrozenSet[str], context: MarketData) -> SignalAnalysis:
        ordered = sorted(assets)
        histories = await asyncio.gather(
            *(self.loader.fetch_closes(self._symbol(a), days=self.config.history_days) for a in ordered)
        )

        signals: Dict[str, MarketSignal] = {}
        warnings = []
        for asset, closes in zip(ordered, histories):
            if closes is None or len(closes) < self.config.min_observations:
                count = 0 if closes is None else len(closes)
                warnings.append(f"Insufficient history for {asset} ({count} closes)")
                continue
            signal = self.compute_signal(closes)
            if signal is not None:
                signals[asset] = signal

        if ordered and not signals:
            raise SignalUnavailableError("Momentum provider produced no signals: " + "; ".join(warnings))

        return SignalAnalysis(signals=signals, model_id="momentum_heuristic", warnings=warnings)

    def compute_signal(self, closes: pd.Series) -> Optional[MarketSignal]:
        cfg = self.config
        closes = closes.astype(float)
        last = float(closes.iloc[-1])
        sma_short = float(closes.rolling(cfg.short_window).mean().iloc[-1])
        sma_long = float(closes.rolling(cfg.long_window).mean().iloc[-1])
        vol = float(closes.pct_change().dropna().std())

        if not all(math.isfinite(v) for v in (last, sma_short, sma_long)) or sma_long <= 0:
            return None

        trend = last / sma_long - 1.0
        scale = vol * math.sqrt(cfg.long_window) if math.isfinite(vol) else 0.0
        trend_score = math.tanh(trend / scale) if scale > 0 else float(np.sign(trend))

        rsi = self._calculate_rsi(closes, period=cfg.rsi_period)
        rsi_score = (rsi - 50.0) / 50.0

        score = cfg.trend_weight * trend_score + (1.0 - cfg.trend_weight) * rsi_score
        score = max(-1.0, min(1.0, score))

        coverage = min(1.0, len(closes) / float(2 * cfg.long_window))
        crossover = np.sign(sma_short - sma_long)
        agreement = 1.0 if crossover == np.sign(trend_score) else 0.5
        confidence = max(0.0, min(1.0, cfg.max_confidence * coverage * agreement))

        return MarketSignal(movement_score=float(score), confidence=float(confidence))

    def _symbol(self, asset: str) -> str:
        return self.config.symbols.get(asset, asset)

    @staticmethod
    def _calculate_rsi(series: pd.Series, period: int = 14) -> float:
        delta = series.diff()
        gain = (delta.where(delta > 0, 0.0)).rolling(window=period).mean()
        loss = (-delta.where(delta < 0, 0.0)).rolling(window=period).mean()
        rs = gain / loss
        rsi = 100.0 - (100.0 / (1.0 + rs))
        val = rsi.iloc[-1]
        return float(val) if not np.isnan(val) else 50.0
