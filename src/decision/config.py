from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.utils.errors import ConfigurationError


@dataclass(frozen=True)
class RankingThresholds:
    """Margin boundaries between recommendation bands (fractions, 0.05 = 5%).

    margin > strong_buy                    -> strong_buy
    buy < margin <= strong_buy             -> buy
    avoid <= margin <= buy                 -> hold
    strong_avoid <= margin < avoid         -> avoid
    margin < strong_avoid                  -> strong_avoid
    """

    strong_buy: float = 0.05
    buy: float = 0.01
    avoid: float = -0.01
    strong_avoid: float = -0.05

    def __post_init__(self):
        if not (self.strong_buy >= self.buy >= self.avoid >= self.strong_avoid):
            raise ConfigurationError(
                "Ranking thresholds must satisfy strong_buy >= buy >= avoid >= strong_avoid, "
                f"got {self.strong_buy}, {self.buy}, {self.avoid}, {self.strong_avoid}"
            )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RankingThresholds":
        d = data or {}
        default = cls()
        try:
            return cls(
                strong_buy=float(d.get("strong_buy", default.strong_buy)),
                buy=float(d.get("buy", default.buy)),
                avoid=float(d.get("avoid", default.avoid)),
                strong_avoid=float(d.get("strong_avoid", default.strong_avoid)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid ranking thresholds: {e}") from e


@dataclass
class AnalysisConfig:
    reference_currency: str = "USD"
    timeout_seconds: float = 5.0
    allow_degraded_signal: bool = True
    thresholds: RankingThresholds = field(default_factory=RankingThresholds)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "AnalysisConfig":
        d = d or {}
        timeout = float(d.get("timeout_seconds", 5.0))
        if timeout <= 0:
            raise ConfigurationError(f"analysis.timeout_seconds must be positive, got {timeout}")
        return cls(
            reference_currency=str(d.get("reference_currency", "USD")).upper(),
            timeout_seconds=timeout,
            allow_degraded_signal=bool(d.get("allow_degraded_signal", True)),
            thresholds=RankingThresholds.from_dict(d.get("thresholds")),
        )
