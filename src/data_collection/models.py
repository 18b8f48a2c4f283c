"""
Data models for exchange rate information.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from src.utils.errors import ValidationError

REFERENCE_RATE_TOLERANCE = 1e-9


@dataclass
class ExchangeRates:
    """
    Exchange rates normalised to a single reference currency.

    ``rates[c]`` is how many units of the reference currency one unit of
    ``c`` is worth, so converting a volume quoted in ``c`` is
    ``volume * rates[c]``.
    """
    reference_currency: str  # e.g., "USD"
    rates: Dict[str, float] = field(default_factory=dict)
    source: str = "unknown"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def validate(self) -> None:
        """Check the reference-currency identity and that every quote is positive.

        A missing reference entry is filled in with 1.0.
        """
        ref = self.rates.get(self.reference_currency)
        if ref is None:
            self.rates[self.reference_currency] = 1.0
        elif abs(ref - 1.0) > REFERENCE_RATE_TOLERANCE:
            raise ValidationError(
                f"Reference currency {self.reference_currency} must map to 1.0, got {ref}"
            )

        for currency, rate in self.rates.items():
            if rate is None or not isinstance(rate, (int, float)) or not math.isfinite(rate):
                raise ValidationError(f"Invalid rate for {currency}: {rate!r}")
            if rate <= 0:
                raise ValidationError(f"Rate for {currency} must be > 0, got {rate}")

    def rate_for(self, currency: str) -> Optional[float]:
        """Rate for ``currency`` or None when it was not quoted."""
        if currency == self.reference_currency:
            return self.rates.get(currency, 1.0)
        return self.rates.get(currency)

    def missing(self, currencies) -> List[str]:
        """Requested currencies without a quote, sorted."""
        return sorted(c for c in currencies if self.rate_for(c) is None)

    def subset(self, currencies) -> "ExchangeRates":
        """Copy restricted to ``currencies`` (plus the reference currency)."""
        wanted = set(currencies) | {self.reference_currency}
        return ExchangeRates(
            reference_currency=self.reference_currency,
            rates={c: r for c, r in self.rates.items() if c in wanted},
            source=self.source,
            timestamp=self.timestamp,
        )

    def __str__(self) -> str:
        quoted = ", ".join(f"{c}={r:.6g}" for c, r in sorted(self.rates.items()))
        return f"ExchangeRates[{self.reference_currency}] ({self.source}): {quoted}"
