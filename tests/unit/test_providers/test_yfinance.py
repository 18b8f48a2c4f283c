import pytest
from datetime import timezone

from src.data_collection.providers.yfinance_client import YFinanceRateOracle
from src.utils.errors import RateUnavailableError


class FakeTicker:
    def __init__(self, symbol):
        self.symbol = symbol
        self._fast_info = {
            "bid": 1.0800,
            "ask": 1.0810,
            "last_price": 1.0805,
        }
        self._info = {
            "bid": 1.0800,
            "ask": 1.0810,
            "regularMarketPrice": 1.0805,
        }

    @property
    def fast_info(self):
        return self._fast_info

    @property
    def info(self):
        return self._info


@pytest.mark.asyncio
async def test_yfinance_success(monkeypatch):
    import yfinance as yf

    seen = []

    def make_ticker(symbol):
        seen.append(symbol)
        return FakeTicker(symbol)

    monkeypatch.setattr(yf, "Ticker", make_ticker)

    oracle = YFinanceRateOracle()
    rates = await oracle.get_exchange_rates(frozenset({"USD", "EUR"}))

    assert rates.source == "yfinance"
    assert rates.rates["USD"] == 1.0
    assert rates.rates["EUR"] == pytest.approx(1.0805)
    assert rates.timestamp.tzinfo == timezone.utc
    assert seen == ["EURUSD=X"]


@pytest.mark.asyncio
async def test_yfinance_invalid_currency():
    oracle = YFinanceRateOracle()
    with pytest.raises(RateUnavailableError):
        await oracle.get_exchange_rates(frozenset({"EURO"}))


class FakeTickerNoBook(FakeTicker):
    @property
    def fast_info(self):
        return {"last_price": 0.75}

    @property
    def info(self):
        return {"regularMarketPrice": 0.75}


@pytest.mark.asyncio
async def test_yfinance_fallback_to_last_price(monkeypatch):
    import yfinance as yf

    monkeypatch.setattr(yf, "Ticker", lambda symbol: FakeTickerNoBook(symbol))

    rates = await YFinanceRateOracle().get_exchange_rates(frozenset({"GBP"}))
    assert rates.rates["GBP"] == pytest.approx(0.75, rel=1e-6)


class FakeTickerInfoOnly(FakeTicker):
    @property
    def fast_info(self):
        return {}


@pytest.mark.asyncio
async def test_yfinance_fallback_to_info(monkeypatch):
    import yfinance as yf

    monkeypatch.setattr(yf, "Ticker", lambda symbol: FakeTickerInfoOnly(symbol))

    rates = await YFinanceRateOracle().get_exchange_rates(frozenset({"EUR"}))
    assert rates.rates["EUR"] == pytest.approx(1.0805)


class FakeTickerNoData(FakeTicker):
    @property
    def fast_info(self):
        return {}

    @property
    def info(self):
        return {}


@pytest.mark.asyncio
async def test_yfinance_no_data(monkeypatch):
    import yfinance as yf

    monkeypatch.setattr(yf, "Ticker", lambda symbol: FakeTickerNoData(symbol))
    with pytest.raises(RateUnavailableError, match="JPY"):
        await YFinanceRateOracle().get_exchange_rates(frozenset({"EUR", "JPY"}))


@pytest.mark.asyncio
async def test_yfinance_ticker_error(monkeypatch):
    import yfinance as yf

    def broken(symbol):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(yf, "Ticker", broken)
    with pytest.raises(RateUnavailableError):
        await YFinanceRateOracle().get_exchange_rates(frozenset({"EUR"}))


def test_yfinance_symbol_uses_reference_currency():
    assert YFinanceRateOracle(reference_currency="eur").get_symbol("GBP") == "GBPEUR=X"
