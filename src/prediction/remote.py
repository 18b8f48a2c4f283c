"""Market signal from a remote prediction model served over HTTP."""
from __future__ import annotations

from typing import Any, Dict, FrozenSet

import httpx

from src.decision.models import MarketData
from src.prediction.base import BaseSignalProvider
from src.prediction.models import MarketSignal, SignalAnalysis
from src.utils.decorators import log_execution, retry
from src.utils.errors import SignalUnavailableError
from src.utils.logging import get_logger


logger = get_logger(__name__)


class RemoteSignalProvider(BaseSignalProvider):
    """POSTs the asset set and market context to ``{base_url}/analyze``.

    Expected response::

        {"model_id": "...", "signals": {"AAPL": {"movement_score": 0.4, "confidence": 0.7}}}
    """

    NAME = "remote"

    def __init__(self, base_url: str, timeout: float = 10.0, api_key: str = ""):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.api_key = api_key

    @log_execution(log_args=False, log_result=False)
    async def analyze_market(self, assets: FrozenSet[str], context: MarketData) -> SignalAnalysis:
        payload = {"assets": sorted(assets), "context": context.to_dict()}
        try:
            data = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error(f"Signal model request failed: {e}", extra={"adapter": self.NAME})
            raise SignalUnavailableError(f"Signal model request failed: {e}") from e
        return self._parse(data, assets)

    @retry(max_attempts=3, delay=0.5, exceptions=(httpx.TransportError,))
    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/analyze", json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json() or {}

    def _parse(self, data: Dict[str, Any], assets: FrozenSet[str]) -> SignalAnalysis:
        raw = data.get("signals")
        if not isinstance(raw, dict):
            raise SignalUnavailableError("Signal model response has no 'signals' mapping")

        signals: Dict[str, MarketSignal] = {}
        warnings = list(data.get("warnings") or [])
        for asset, item in raw.items():
            if asset not in assets:
                continue
            try:
                signals[asset] = MarketSignal(
                    movement_score=float(item["movement_score"]),
                    confidence=float(item["confidence"]),
                )
            except (KeyError, TypeError, ValueError):
                warnings.append(f"Malformed signal for {asset}")

        return SignalAnalysis(
            signals=signals,
            model_id=str(data.get("model_id", self.NAME)),
            warnings=warnings,
        )
