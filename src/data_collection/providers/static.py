"""Fixed-rate oracle for offline runs and tests."""
from __future__ import annotations

from typing import Dict, FrozenSet, Mapping

from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle


class StaticRateOracle(BaseRateOracle):
    NAME = "static"

    def __init__(self, rates: Mapping[str, float], reference_currency: str = "USD") -> None:
        super().__init__(reference_currency)
        self._rates: Dict[str, float] = {str(c).upper(): float(r) for c, r in rates.items()}

    async def get_exchange_rates(self, currencies: FrozenSet[str]) -> ExchangeRates:
        requested = self.validate_currencies(currencies)
        rates = ExchangeRates(
            reference_currency=self.reference_currency,
            rates=dict(self._rates),
            source=self.NAME,
        )
        return self.ensure_complete(rates, requested).subset(requested)
