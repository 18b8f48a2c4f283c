"""
Service layer for the CLI: wires configured adapters into the analyzer.
"""

import json
import uuid
from pathlib import Path
from typing import Optional

import yaml

from src.config import Config
from src.data_collection.providers import BaseRateOracle, CachedRateOracle, get_rate_oracle
from src.decision.differential_analyzer import DifferentialAnalyzer
from src.decision.models import AnalysisOptions, AnalysisResult, MarketData
from src.prediction import BaseSignalProvider, get_signal_provider
from src.utils.errors import ConfigurationError, InvalidInputError


OFFLINE_PROVIDER = "static"

# Adapters that authenticate, and where their key comes from
API_KEY_ENV_VARS = {
    "exchange_rate_host": "EXCHANGE_RATE_HOST_API_KEY",
    "remote": "SIGNAL_API_KEY",
}


def load_market_data(path: str) -> MarketData:
    """Read market data from a YAML or JSON file."""
    file_path = Path(path)
    if not file_path.exists():
        raise InvalidInputError(f"Market data file not found: {path}")
    text = file_path.read_text()
    try:
        if file_path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidInputError(f"Cannot parse market data file {path}: {e}") from e
    return MarketData.from_dict(raw or {})


class AnalysisService:
    """Builds adapters from configuration and runs analyses.

    ``offline`` swaps both adapters for the static ones configured under
    ``providers.static``.
    """

    def __init__(self, config: Config, offline: bool = False):
        self.config = config
        self.offline = offline

    @property
    def rate_oracle_name(self) -> str:
        return OFFLINE_PROVIDER if self.offline else self.config.rate_oracle_name

    @property
    def signal_provider_name(self) -> str:
        return OFFLINE_PROVIDER if self.offline else self.config.signal_provider_name

    def build_rate_oracle(self) -> BaseRateOracle:
        name = self.rate_oracle_name
        try:
            oracle = get_rate_oracle(
                name,
                reference_currency=self.config.reference_currency,
                settings=self.config.provider_settings(name),
                api_key=self._api_key(name),
            )
        except ValueError as e:
            raise ConfigurationError(f"providers.rate_oracle: {e}") from e
        ttl = self.config.cache_ttl
        if ttl and ttl > 0:
            oracle = CachedRateOracle(oracle, ttl_seconds=ttl)
        return oracle

    def build_signal_provider(self) -> BaseSignalProvider:
        name = self.signal_provider_name
        try:
            return get_signal_provider(
                name, settings=self.config.provider_settings(name), api_key=self._api_key(name)
            )
        except ValueError as e:
            raise ConfigurationError(f"providers.signal_provider: {e}") from e

    def _api_key(self, name: str) -> Optional[str]:
        env_var = API_KEY_ENV_VARS.get(name)
        return self.config.get_env(env_var) if env_var else None

    def build_options(
        self,
        timeout: Optional[float] = None,
        strict_signal: bool = False,
    ) -> AnalysisOptions:
        options = AnalysisOptions.from_config(self.config.analysis, correlation_id=str(uuid.uuid4()))
        if timeout is not None:
            options.timeout = timeout
        if strict_signal:
            options.allow_degraded_signal = False
        return options

    async def analyze(self, data: MarketData, options: AnalysisOptions) -> AnalysisResult:
        analyzer = DifferentialAnalyzer(self.build_rate_oracle(), self.build_signal_provider())
        return await analyzer.perform_differential_analysis(data, options)
