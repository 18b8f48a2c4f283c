"""Input validation utilities."""
import math
from typing import Any, Iterable, List

from src.utils.errors import InvalidInputError, ValidationError


def validate_currency_code(code: str) -> str:
    """
    Validate a 3-letter uppercase ISO currency code.

    Raises:
        ValidationError: If the code is malformed
    """
    if not code or len(code) != 3 or not code.isalpha() or code != code.upper():
        raise ValidationError(
            f"Invalid currency code: {code}. Expect 3-letter uppercase ISO code."
        )
    return code


def validate_identifiers(values: Iterable[Any], kind: str) -> List[str]:
    """Validate a collection of non-empty, unique string identifiers."""
    items = list(values)
    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise InvalidInputError(f"Invalid {kind} identifier: {item!r}")
    duplicates = sorted({item for item in items if items.count(item) > 1})
    if duplicates:
        raise InvalidInputError(f"Duplicate {kind} identifiers: {duplicates}")
    return items


def validate_market_data(data: Any) -> None:
    """
    Check the invariants of a MarketData instance.

    Raises:
        InvalidInputError: empty asset set, missing per-asset inputs, negative
            or non-finite volume, non-finite financing rate, or a base currency
            outside the currency set
    """
    if not data.assets:
        raise InvalidInputError("Market data must contain at least one asset")
    if not data.currencies:
        raise InvalidInputError("Market data must contain at least one currency")

    for asset in sorted(data.assets):
        if asset not in data.trade_volumes:
            raise InvalidInputError(f"Missing trade volume for asset {asset}")
        if asset not in data.financing_rates:
            raise InvalidInputError(f"Missing financing rate for asset {asset}")
        if asset not in data.base_currencies:
            raise InvalidInputError(f"Missing base currency for asset {asset}")

        volume = data.trade_volumes[asset]
        if not _is_number(volume) or not math.isfinite(volume):
            raise InvalidInputError(f"Trade volume for {asset} must be a finite number, got {volume!r}")
        if volume < 0:
            raise InvalidInputError(f"Trade volume for {asset} must be >= 0, got {volume}")

        financing = data.financing_rates[asset]
        if not _is_number(financing) or not math.isfinite(financing):
            raise InvalidInputError(
                f"Financing rate for {asset} must be a finite number, got {financing!r}"
            )

        base = data.base_currencies[asset]
        if base not in data.currencies:
            raise InvalidInputError(
                f"Base currency {base} of asset {asset} is not in the currency set"
            )


def validate_timeout(seconds: Any) -> float:
    """Validate an analysis timeout in seconds."""
    if not _is_number(seconds) or not math.isfinite(seconds) or seconds <= 0:
        raise InvalidInputError(f"Timeout must be a positive number of seconds, got {seconds!r}")
    return float(seconds)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
