"""Pytest configuration and fixtures."""
import asyncio
import tempfile
import time
from pathlib import Path

import pytest
import yaml

from src.cache import cache
from src.config import reset_config
from src.data_collection.models import ExchangeRates
from src.data_collection.providers.base import BaseRateOracle
from src.decision.models import MarketData
from src.prediction.base import BaseSignalProvider
from src.prediction.models import MarketSignal, SignalAnalysis


DEFAULT_RATES = {"USD": 1.0, "EUR": 1.1, "GBP": 1.25, "JPY": 0.0067}

DEFAULT_SIGNALS = {
    "AAPL": MarketSignal(movement_score=0.5, confidence=0.8),
    "SAP": MarketSignal(movement_score=0.1, confidence=0.5),
    "VOD": MarketSignal(movement_score=-0.2, confidence=0.5),
}


class FakeRateOracle(BaseRateOracle):
    """Deterministic oracle; can be slow, failing or (non-conforming) partial."""

    NAME = "fake"

    def __init__(self, rates=None, delay=0.0, error=None, omit=(), reference_currency="USD"):
        super().__init__(reference_currency)
        self.rates = dict(DEFAULT_RATES if rates is None else rates)
        self.delay = delay
        self.error = error
        self.omit = set(omit)
        self.calls = 0
        self.cancelled = False

    async def get_exchange_rates(self, currencies):
        self.calls += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        wanted = set(currencies) | {self.reference_currency}
        return ExchangeRates(
            reference_currency=self.reference_currency,
            rates={c: r for c, r in self.rates.items() if c in wanted and c not in self.omit},
            source=self.NAME,
        )


class FakeSignalProvider(BaseSignalProvider):
    NAME = "fake"

    def __init__(self, signals=None, delay=0.0, error=None, model_id="fake_model", result=None):
        self.signals = dict(DEFAULT_SIGNALS if signals is None else signals)
        self.delay = delay
        self.error = error
        self.model_id = model_id
        self.result = result
        self.calls = 0
        self.cancelled = False

    async def analyze_market(self, assets, context):
        self.calls += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return SignalAnalysis(
            signals={a: s for a, s in self.signals.items() if a in assets},
            model_id=self.model_id,
        )


class BlockingRateOracle(FakeRateOracle):
    """Synchronous adapter; the analyzer runs it in a worker thread."""

    NAME = "blocking"

    def get_exchange_rates(self, currencies):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        wanted = set(currencies) | {self.reference_currency}
        return ExchangeRates(
            reference_currency=self.reference_currency,
            rates={c: r for c, r in self.rates.items() if c in wanted},
            source=self.NAME,
        )


class BlockingSignalProvider(FakeSignalProvider):
    NAME = "blocking"

    def analyze_market(self, assets, context):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return SignalAnalysis(
            signals={a: s for a, s in self.signals.items() if a in assets},
            model_id=self.model_id,
        )


def build_market_data(**overrides) -> MarketData:
    fields = {
        "assets": {"AAPL", "SAP", "VOD"},
        "currencies": {"USD", "EUR", "GBP"},
        "trade_volumes": {"AAPL": 1000.0, "SAP": 2000.0, "VOD": 500.0},
        "financing_rates": {"AAPL": 0.01, "SAP": 0.02, "VOD": -0.005},
        "base_currencies": {"AAPL": "USD", "SAP": "EUR", "VOD": "GBP"},
    }
    fields.update(overrides)
    return MarketData(**fields)


@pytest.fixture
def market_data():
    return build_market_data()


@pytest.fixture
def make_market_data():
    return build_market_data


@pytest.fixture
def rate_oracle():
    return FakeRateOracle()


@pytest.fixture
def signal_provider():
    return FakeSignalProvider()


def _write_yaml(data) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(data, f)
        return f.name


@pytest.fixture
def config_data():
    return {
        'app': {
            'name': 'Test App',
            'version': '0.1.0',
            'debug': True
        },
        'analysis': {
            'reference_currency': 'USD',
            'timeout_seconds': 2.0,
            'allow_degraded_signal': True,
            'thresholds': {
                'strong_buy': 0.05,
                'buy': 0.01,
                'avoid': -0.01,
                'strong_avoid': -0.05
            }
        },
        'providers': {
            'rate_oracle': 'static',
            'signal_provider': 'static',
            'static': {
                'rates': {'USD': 1.0, 'EUR': 1.1, 'GBP': 1.25},
                'signals': {
                    'AAPL': {'movement_score': 0.5, 'confidence': 0.8},
                    'SAP': {'movement_score': 0.1, 'confidence': 0.5}
                }
            }
        },
        'cache': {
            'rates_ttl': 0
        },
        'logging': {
            'level': 'DEBUG',
            'format': 'text'
        }
    }


@pytest.fixture
def temp_config_file(config_data):
    """Create a temporary config file for testing."""
    config_path = _write_yaml(config_data)

    yield config_path

    # Cleanup
    Path(config_path).unlink()


@pytest.fixture
def market_file(tmp_path):
    """Market data file in the per-asset layout."""
    path = tmp_path / "market.yaml"
    path.write_text(yaml.dump({
        'assets': {
            'AAPL': {'base_currency': 'USD', 'volume': 1000, 'financing_rate': 0.01},
            'SAP': {'base_currency': 'EUR', 'volume': 2000, 'financing_rate': 0.02},
            'VOD': {'base_currency': 'GBP', 'volume': 500, 'financing_rate': -0.005},
        }
    }))
    return str(path)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Each test loads its own configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear the global cache before each test."""
    cache.clear()
    yield
    cache.clear()
