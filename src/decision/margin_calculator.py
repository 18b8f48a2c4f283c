from __future__ import annotations

import math
from typing import Optional

from src.data_collection.models import ExchangeRates
from src.decision.models import AssetMargin, MarginBatch, MarketData
from src.prediction.models import MarketSignal, SignalAnalysis
from src.utils.errors import MarginComputationError, RateUnavailableError


class MarginCalculator:
    """Per-asset profit margins after currency and financing adjustment.

    For asset ``a`` with base currency ``c``:

        volume_ref     = volume(a) * rate(c)
        gross_return   = movement_score(a) * confidence(a) * volume_ref
        financing_cost = financing_rate(a) * volume_ref
        margin         = (gross_return - financing_cost) / volume_ref   (0 if volume_ref == 0)

    Assets without a signal are computed with score 0 and confidence 0 and
    flagged as degraded. Pure and deterministic.
    """

    def compute_margin(
        self,
        asset: str,
        data: MarketData,
        signal: Optional[MarketSignal],
        rates: ExchangeRates,
    ) -> AssetMargin:
        base = data.base_currencies[asset]
        rate = rates.rate_for(base)
        if rate is None:
            raise RateUnavailableError(f"No exchange rate for {base} (base currency of {asset})")

        degraded = signal is None
        score = 0.0 if degraded else float(signal.movement_score)
        confidence = 0.0 if degraded else float(signal.confidence)

        volume_ref = float(data.trade_volumes[asset]) * float(rate)
        gross_return = score * confidence * volume_ref
        financing_cost = float(data.financing_rates[asset]) * volume_ref

        if volume_ref > 0:
            margin = (gross_return - financing_cost) / volume_ref
        else:
            # No exposure, no margin
            margin = 0.0

        if not math.isfinite(margin):
            raise MarginComputationError(asset, f"Non-finite margin ({margin})")

        return AssetMargin(
            asset=asset,
            base_currency=base,
            volume_ref=volume_ref,
            gross_return=gross_return,
            financing_cost=financing_cost,
            margin=margin,
            movement_score=score,
            confidence=confidence,
            signal_degraded=degraded,
        )

    def calculate(self, data: MarketData, signals: SignalAnalysis, rates: ExchangeRates) -> MarginBatch:
        """Compute every asset, collecting failures per asset instead of aborting."""
        batch = MarginBatch()
        for asset in sorted(data.assets):
            try:
                batch.margins[asset] = self.compute_margin(asset, data, signals.get(asset), rates)
            except MarginComputationError as e:
                batch.errors[asset] = e
            except RateUnavailableError as e:
                err = MarginComputationError(asset, str(e))
                err.__cause__ = e
                batch.errors[asset] = err
        return batch
