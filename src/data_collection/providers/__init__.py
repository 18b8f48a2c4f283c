"""Rate oracle factory and exports."""

from typing import Any, Dict, Optional

from .base import BaseRateOracle
from .cached import CachedRateOracle
from .exchange_rate_host import ExchangeRateHostOracle
from .static import StaticRateOracle
from .yfinance_client import YFinanceRateOracle


def get_rate_oracle(
    name: str,
    reference_currency: str = "USD",
    settings: Optional[Dict[str, Any]] = None,
    api_key: Optional[str] = None,
) -> BaseRateOracle:
    """Get rate oracle by canonical name.

    Canonical names:
    - "exchange_rate_host"
    - "yfinance"
    - "static" (``settings["rates"]`` holds the fixed quotes)
    """
    settings = settings or {}
    if name == "exchange_rate_host":
        return ExchangeRateHostOracle(
            reference_currency=reference_currency,
            base_url=settings.get("base_url", "https://api.exchangerate.host"),
            timeout=float(settings.get("timeout", 10)),
            api_key=api_key or "",
        )
    if name == "yfinance":
        return YFinanceRateOracle(reference_currency=reference_currency)
    if name == "static":
        return StaticRateOracle(settings.get("rates") or {}, reference_currency=reference_currency)
    raise ValueError(f"Unknown rate oracle: {name}")


__all__ = [
    "BaseRateOracle",
    "CachedRateOracle",
    "ExchangeRateHostOracle",
    "StaticRateOracle",
    "YFinanceRateOracle",
    "get_rate_oracle",
]
