"""ExchangeRate.host rate oracle."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet

import httpx

from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle
from src.utils.decorators import log_execution, retry
from src.utils.errors import RateUnavailableError
from src.utils.logging import get_logger


logger = get_logger(__name__)


class ExchangeRateHostOracle(BaseRateOracle):
    NAME = "exchange_rate_host"

    def __init__(
        self,
        reference_currency: str = "USD",
        base_url: str = "https://api.exchangerate.host",
        timeout: float = 10.0,
        api_key: str = "",
    ) -> None:
        super().__init__(reference_currency)
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.api_key = api_key

    @log_execution(log_args=False, log_result=False)
    async def get_exchange_rates(self, currencies: FrozenSet[str]) -> ExchangeRates:
        requested = self.validate_currencies(currencies)
        ref = self.reference_currency
        quoted = sorted(requested - {ref})
        if not quoted:
            return self.ensure_complete(
                ExchangeRates(reference_currency=ref, rates={ref: 1.0}, source=self.NAME), requested
            )

        params = {"source": ref, "currencies": ",".join(quoted)}
        if self.api_key:
            params["access_key"] = self.api_key

        try:
            data = await self._fetch_live(params)
        except httpx.HTTPError as e:
            logger.error(f"ExchangeRate.host request failed: {e}", extra={"adapter": self.NAME})
            raise RateUnavailableError(f"ExchangeRate.host request failed: {e}") from e

        rates = self._parse_quotes(data, quoted)
        return self.ensure_complete(rates, requested)

    @retry(max_attempts=3, delay=0.5, exceptions=(httpx.TransportError,))
    async def _fetch_live(self, params: Dict[str, str]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}/live", params=params)
            resp.raise_for_status()
            return resp.json() or {}

    def _parse_quotes(self, data: Dict[str, Any], quoted) -> ExchangeRates:
        ref = self.reference_currency
        if not data.get("success", True):
            error_info = data.get("error", {}) or {}
            error_msg = f"API error: {error_info.get('type', 'unknown')} - {error_info.get('info', 'no details')}"
            logger.error(f"ExchangeRate.host API error: {error_msg}", extra={"adapter": self.NAME})
            raise RateUnavailableError(error_msg)

        # {"quotes": {"USDEUR": 0.86}} is EUR per USD; we need USD per EUR.
        quotes = data.get("quotes") or {}
        rates: Dict[str, float] = {ref: 1.0}
        for currency in quoted:
            value = quotes.get(f"{ref}{currency}")
            if value is None:
                continue
            try:
                value = float(value)
            except (TypeError, ValueError) as e:
                raise RateUnavailableError(f"Malformed quote for {ref}{currency}: {value!r}") from e
            if value <= 0:
                raise RateUnavailableError(f"Non-positive quote for {ref}{currency}: {value}")
            rates[currency] = 1.0 / value

        ts = data.get("timestamp")
        timestamp = datetime.fromtimestamp(ts, timezone.utc) if ts else datetime.now(timezone.utc)
        return ExchangeRates(reference_currency=ref, rates=rates, source=self.NAME, timestamp=timestamp)
