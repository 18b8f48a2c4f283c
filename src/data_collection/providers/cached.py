"""TTL cache wrapper around any rate oracle.

Caching sits outside the analysis engine: the engine itself always asks its
oracle, and wrapping the oracle is how a deployment opts in to reuse.
"""
from __future__ import annotations

from typing import FrozenSet, Optional

from src.cache import SimpleCache, cache as default_cache
from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle
from src.utils.logging import get_logger


logger = get_logger(__name__)


class CachedRateOracle(BaseRateOracle):
    NAME = "cached"

    def __init__(
        self,
        inner: BaseRateOracle,
        ttl_seconds: float = 30.0,
        cache: Optional[SimpleCache] = None,
    ) -> None:
        super().__init__(inner.reference_currency)
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.cache = cache if cache is not None else default_cache

    def _key(self, currencies: FrozenSet[str]) -> str:
        return f"rates:{self.inner.NAME}:{self.reference_currency}:{','.join(sorted(currencies))}"

    async def get_exchange_rates(self, currencies: FrozenSet[str]) -> ExchangeRates:
        key = self._key(frozenset(currencies))
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Rate cache hit for {key}")
            # Hand out a copy; callers own the rates they receive.
            return cached.subset(currencies)

        rates = await self.inner.get_exchange_rates(currencies)
        self.cache.set(key, rates.subset(currencies), ttl_seconds=self.ttl_seconds)
        return rates.subset(currencies)

    async def health_check(self) -> bool:
        return await self.inner.health_check()
