"""Tests for validation utilities."""
import pytest
from src.utils.validation import (
    validate_currency_code,
    validate_identifiers,
    validate_market_data,
    validate_timeout,
)
from src.utils.errors import InvalidInputError, ValidationError

from conftest import build_market_data


def test_validate_currency_code():
    assert validate_currency_code("USD") == "USD"
    for bad in ("usd", "US", "USDT", "U$D", ""):
        with pytest.raises(ValidationError):
            validate_currency_code(bad)


def test_validate_identifiers():
    assert validate_identifiers(["A", "B"], "asset") == ["A", "B"]
    with pytest.raises(InvalidInputError):
        validate_identifiers(["A", "A"], "asset")
    with pytest.raises(InvalidInputError):
        validate_identifiers(["A", " "], "asset")
    with pytest.raises(InvalidInputError):
        validate_identifiers([1], "asset")


def test_validate_market_data_accepts_valid(market_data):
    validate_market_data(market_data)


def test_validate_market_data_allows_negative_financing():
    validate_market_data(build_market_data(financing_rates={"AAPL": -0.5, "SAP": 0.0, "VOD": 0.1}))


def test_validate_market_data_rejects_boolean_volume():
    with pytest.raises(InvalidInputError):
        validate_market_data(build_market_data(trade_volumes={"AAPL": True, "SAP": 1.0, "VOD": 1.0}))


def test_validate_timeout():
    assert validate_timeout(2) == 2.0
    for bad in (0, -1, float("inf"), None, True):
        with pytest.raises(InvalidInputError):
            validate_timeout(bad)
