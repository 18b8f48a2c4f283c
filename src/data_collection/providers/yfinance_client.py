"""yfinance rate oracle for FX pairs."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import FrozenSet, Optional

import yfinance as yf

from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle
from src.utils.decorators import log_execution
from src.utils.errors import RateUnavailableError
from src.utils.logging import get_logger


logger = get_logger(__name__)


class YFinanceRateOracle(BaseRateOracle):
    NAME = "yfinance"

    def get_symbol(self, currency: str) -> str:
        # CURREF=X quotes REF per one unit of CUR, which is the rate we need.
        return f"{currency}{self.reference_currency}=X"

    @log_execution(log_args=False, log_result=False)
    async def get_exchange_rates(self, currencies: FrozenSet[str]) -> ExchangeRates:
        requested = self.validate_currencies(currencies)
        ref = self.reference_currency
        quoted = sorted(requested - {ref})

        prices = await asyncio.gather(
            *(asyncio.to_thread(self._fetch_mid, self.get_symbol(c)) for c in quoted),
            return_exceptions=True,
        )

        rates = {ref: 1.0}
        failures = []
        for currency, price in zip(quoted, prices):
            if isinstance(price, Exception):
                logger.warning(f"yfinance error for {currency}: {price}", extra={"adapter": self.NAME})
                failures.append(currency)
            elif price is None:
                failures.append(currency)
            else:
                rates[currency] = price

        if failures:
            raise RateUnavailableError(f"yfinance: no price available for {', '.join(failures)}")

        result = ExchangeRates(
            reference_currency=ref,
            rates=rates,
            source=self.NAME,
            timestamp=datetime.now(timezone.utc),
        )
        return self.ensure_complete(result, requested)

    @staticmethod
    def _fetch_mid(symbol: str) -> Optional[float]:
        """Mid price from the order book, falling back to the last trade."""
        ticker = yf.Ticker(symbol)

        fi = getattr(ticker, "fast_info", None) or {}
        bid = float(fi.get("bid", 0) or 0)
        ask = float(fi.get("ask", 0) or 0)
        last = float(fi.get("last_price", 0) or 0)
        if bid > 0 and ask > 0:
            return (bid + ask) / 2.0
        if last > 0:
            return last

        info = getattr(ticker, "info", None) or {}
        bid = float(info.get("bid", 0) or 0)
        ask = float(info.get("ask", 0) or 0)
        last = float(info.get("regularMarketPrice", 0) or 0)
        if bid > 0 and ask > 0:
            return (bid + ask) / 2.0
        if last > 0:
            return last
        return None
