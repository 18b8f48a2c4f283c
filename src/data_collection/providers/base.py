"""Rate oracle base class and contract."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable

from src.data_collection.models import ExchangeRates
from src.utils.errors import RateUnavailableError, ValidationError
from src.utils.validation import validate_currency_code


class BaseRateOracle(ABC):
    """Source of exchange rates normalised to one reference currency.

    Implementations return a rate for every requested currency or raise
    RateUnavailableError; partial rate sets are not part of the contract.
    """

    NAME: str = "base"

    def __init__(self, reference_currency: str = "USD") -> None:
        self.reference_currency = reference_currency.upper()

    @abstractmethod
    async def get_exchange_rates(self, currencies: FrozenSet[str]) -> ExchangeRates:
        """Fetch rates for ``currencies`` relative to the reference currency."""

    async def health_check(self) -> bool:
        """Return True when the upstream service looks reachable/healthy."""
        try:
            await self.get_exchange_rates(frozenset({self.reference_currency}))
            return True
        except Exception:
            return False

    @staticmethod
    def validate_currencies(currencies: Iterable[str]) -> FrozenSet[str]:
        """Validate requested codes; a malformed code makes the rate unavailable."""
        try:
            return frozenset(validate_currency_code(c) for c in currencies)
        except ValidationError as e:
            raise RateUnavailableError(str(e)) from e

    def ensure_complete(self, rates: ExchangeRates, currencies: Iterable[str]) -> ExchangeRates:
        """Validate ``rates`` and fail if any requested currency is missing."""
        try:
            rates.validate()
        except ValidationError as e:
            raise RateUnavailableError(f"{self.NAME}: {e}") from e
        missing = rates.missing(currencies)
        if missing:
            raise RateUnavailableError(f"{self.NAME}: no rate for {', '.join(missing)}")
        return rates
