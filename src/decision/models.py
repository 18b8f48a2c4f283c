from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from src.decision.config import AnalysisConfig, RankingThresholds
from src.utils.errors import InvalidInputError, MarginComputationError
from src.utils.validation import validate_identifiers


@dataclass(frozen=True)
class MarketData:
    """Input to the differential analysis.

    Volumes are notional amounts in each asset's base currency; financing
    rates are fractions of notional (negative means a subsidy).
    """

    assets: FrozenSet[str]
    currencies: FrozenSet[str]
    trade_volumes: Mapping[str, float]
    financing_rates: Mapping[str, float]
    base_currencies: Mapping[str, str]

    def __post_init__(self):
        # Freeze the mappings so the caller's copy cannot leak mutations in.
        object.__setattr__(self, "assets", frozenset(self.assets))
        object.__setattr__(self, "currencies", frozenset(self.currencies))
        object.__setattr__(self, "trade_volumes", MappingProxyType(dict(self.trade_volumes)))
        object.__setattr__(self, "financing_rates", MappingProxyType(dict(self.financing_rates)))
        object.__setattr__(self, "base_currencies", MappingProxyType(dict(self.base_currencies)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketData":
        """Build market data from a plain mapping.

        Accepts either the flat layout (``assets``, ``currencies``,
        ``trade_volumes``, ``financing_rates``, ``base_currencies``) or a
        per-asset layout::

            assets:
              AAPL: {base_currency: USD, volume: 1000, financing_rate: 0.02}
            currencies: [USD, EUR]   # optional, derived from base currencies
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError("Market data must be a mapping")

        raw_assets = data.get("assets")
        if isinstance(raw_assets, Mapping):
            assets = validate_identifiers(raw_assets.keys(), "asset")
            volumes: Dict[str, float] = {}
            financing: Dict[str, float] = {}
            bases: Dict[str, str] = {}
            for asset, entry in raw_assets.items():
                entry = entry or {}
                if not isinstance(entry, Mapping):
                    raise InvalidInputError(f"Entry for asset {asset!r} must be a mapping, got {entry!r}")
                if "volume" in entry:
                    volumes[asset] = entry["volume"]
                if "financing_rate" in entry:
                    financing[asset] = entry["financing_rate"]
                if "base_currency" in entry:
                    bases[asset] = str(entry["base_currency"]).upper()
        else:
            assets = validate_identifiers(_sequence(raw_assets, "assets"), "asset")
            volumes = dict(_mapping(data.get("trade_volumes"), "trade_volumes"))
            financing = dict(_mapping(data.get("financing_rates"), "financing_rates"))
            bases = {
                a: str(c).upper()
                for a, c in _mapping(data.get("base_currencies"), "base_currencies").items()
            }

        raw_currencies = data.get("currencies")
        if raw_currencies is None:
            currencies = sorted(set(bases.values()))
        else:
            raw_currencies = _sequence(raw_currencies, "currencies")
            currencies = validate_identifiers([str(c).upper() for c in raw_currencies], "currency")

        return cls(
            assets=frozenset(assets),
            currencies=frozenset(currencies),
            trade_volumes=volumes,
            financing_rates=financing,
            base_currencies=bases,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assets": sorted(self.assets),
            "currencies": sorted(self.currencies),
            "trade_volumes": {a: self.trade_volumes[a] for a in sorted(self.trade_volumes)},
            "financing_rates": {a: self.financing_rates[a] for a in sorted(self.financing_rates)},
            "base_currencies": {a: self.base_currencies[a] for a in sorted(self.base_currencies)},
        }


def _sequence(value: Any, name: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidInputError(f"'{name}' must be a list, got {type(value).__name__}")
    return list(value)


def _mapping(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


class RecommendationAction(str, Enum):
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    AVOID = "avoid"
    STRONG_AVOID = "strong_avoid"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class AssetMargin:
    """Per-asset margin with the intermediate terms that produced it."""

    asset: str
    base_currency: str
    volume_ref: float  # trade volume in reference currency
    gross_return: float
    financing_cost: float
    margin: float  # fraction of volume_ref; 0 when volume_ref == 0
    movement_score: float
    confidence: float
    signal_degraded: bool = False


@dataclass(frozen=True)
class Recommendation:
    asset: str
    action: RecommendationAction
    margin: float
    movement_score: float
    signal_degraded: bool = False
    rank: int = 0  # 1-based position in the ranking


@dataclass
class MarginBatch:
    """Calculator output: successful margins and per-asset failures."""

    margins: Dict[str, AssetMargin] = field(default_factory=dict)
    errors: Dict[str, MarginComputationError] = field(default_factory=dict)


@dataclass
class AnalysisOptions:
    timeout: float = 5.0  # seconds, bounds the join on both adapters
    allow_degraded_signal: bool = True
    ranking_thresholds: RankingThresholds = field(default_factory=RankingThresholds)
    correlation_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: AnalysisConfig, correlation_id: Optional[str] = None) -> "AnalysisOptions":
        return cls(
            timeout=config.timeout_seconds,
            allow_degraded_signal=config.allow_degraded_signal,
            ranking_thresholds=config.thresholds,
            correlation_id=correlation_id,
        )


@dataclass
class AnalysisResult:
    # Per-asset outcome: exactly one of margins/errors holds each asset.
    margins: Dict[str, float]
    details: Dict[str, AssetMargin]
    recommendations: List[Recommendation]
    errors: Dict[str, MarginComputationError] = field(default_factory=dict)
    signal_degraded: Dict[str, bool] = field(default_factory=dict)

    # Diagnostics
    reference_currency: str = "USD"
    model_id: str = "unknown"
    warnings: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        """success | degraded | partial"""
        if self.errors:
            return "partial"
        if any(self.signal_degraded.values()):
            return "degraded"
        return "success"

    @property
    def degraded_assets(self) -> List[str]:
        return sorted(a for a, flag in self.signal_degraded.items() if flag)

    def recommendation_for(self, asset: str) -> Optional[Recommendation]:
        for rec in self.recommendations:
            if rec.asset == asset:
                return rec
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Deterministic, JSON-serialisable representation."""
        return {
            "status": self.status,
            "reference_currency": self.reference_currency,
            "model_id": self.model_id,
            "margins": {a: self.margins[a] for a in sorted(self.margins)},
            "details": {
                a: {
                    "base_currency": d.base_currency,
                    "volume_ref": d.volume_ref,
                    "gross_return": d.gross_return,
                    "financing_cost": d.financing_cost,
                    "margin": d.margin,
                    "movement_score": d.movement_score,
                    "confidence": d.confidence,
                    "signal_degraded": d.signal_degraded,
                }
                for a, d in sorted(self.details.items())
            },
            "recommendations": [
                {
                    "rank": r.rank,
                    "asset": r.asset,
                    "action": r.action.value,
                    "margin": r.margin,
                    "movement_score": r.movement_score,
                    "signal_degraded": r.signal_degraded,
                }
                for r in self.recommendations
            ],
            "errors": {
                a: {"type": type(e).__name__, "reason": e.reason}
                for a, e in sorted(self.errors.items())
            },
            "signal_degraded": {a: self.signal_degraded[a] for a in sorted(self.signal_degraded)},
            "warnings": list(self.warnings),
        }
