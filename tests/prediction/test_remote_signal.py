import httpx
import pytest

from conftest import build_market_data
from src.prediction import RemoteSignalProvider, StaticSignalProvider, get_signal_provider
from src.prediction.models import MarketSignal
from src.prediction.momentum import MomentumSignalProvider
from src.utils.errors import SignalUnavailableError


class DummyResponse:
    def __init__(self, data, status_code: int = 200):
        self._data = data
        self.status_code = status_code

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError("error", request=None, response=None)


class DummyClient:
    calls = []

    def __init__(self, timeout=None, data=None, should_raise: bool = False):
        self._data = data if data is not None else {
            "model_id": "lgbm-v3",
            "signals": {
                "AAPL": {"movement_score": 0.4, "confidence": 0.7},
                "SAP": {"movement_score": "bad", "confidence": 0.7},
                "MSFT": {"movement_score": 0.1, "confidence": 0.1},
            },
        }
        self._should_raise = should_raise

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, json=None, headers=None):
        DummyClient.calls.append((url, json, headers))
        if self._should_raise:
            raise httpx.HTTPError("network error")
        return DummyResponse(self._data)


@pytest.fixture(autouse=True)
def reset_calls():
    DummyClient.calls = []


@pytest.mark.asyncio
async def test_remote_signal_success(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", lambda timeout=None: DummyClient(timeout=timeout))
    data = build_market_data()

    provider = RemoteSignalProvider("http://model.local/", api_key="token")
    result = await provider.analyze_market(data.assets, data)

    assert result.model_id == "lgbm-v3"
    assert result.signals == {"AAPL": MarketSignal(0.4, 0.7)}
    assert "Malformed signal for SAP" in result.warnings

    url, payload, headers = DummyClient.calls[0]
    assert url == "http://model.local/analyze"
    assert payload["assets"] == ["AAPL", "SAP", "VOD"]
    assert payload["context"]["base_currencies"]["SAP"] == "EUR"
    assert headers == {"Authorization": "Bearer token"}


@pytest.mark.asyncio
async def test_remote_signal_http_error(monkeypatch):
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda timeout=None: DummyClient(timeout=timeout, should_raise=True)
    )
    data = build_market_data()
    with pytest.raises(SignalUnavailableError):
        await RemoteSignalProvider("http://model.local", api_key="").analyze_market(data.assets, data)


@pytest.mark.asyncio
async def test_remote_signal_without_signals_mapping(monkeypatch):
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda timeout=None: DummyClient(timeout=timeout, data={"error": "nope"})
    )
    data = build_market_data()
    with pytest.raises(SignalUnavailableError):
        await RemoteSignalProvider("http://model.local", api_key="").analyze_market(data.assets, data)


@pytest.mark.asyncio
async def test_static_signal_provider_filters_assets():
    provider = StaticSignalProvider({
        "AAPL": {"movement_score": 0.2, "confidence": 0.9},
        "TSLA": MarketSignal(-0.5, 0.5),
    })
    data = build_market_data()
    result = await provider.analyze_market(data.assets, data)

    assert result.signals == {"AAPL": MarketSignal(0.2, 0.9)}
    assert result.model_id == "static"


def test_get_signal_provider_factory():
    assert isinstance(get_signal_provider("remote", {"base_url": "http://x"}), RemoteSignalProvider)
    assert isinstance(get_signal_provider("momentum"), MomentumSignalProvider)
    assert isinstance(get_signal_provider("static"), StaticSignalProvider)
    with pytest.raises(ValueError):
        get_signal_provider("crystal_ball")
