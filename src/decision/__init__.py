"""Differential analysis public API.

The orchestrator lives in ``src.decision.differential_analyzer``.
"""

from .models import (
    MarketData,
    AssetMargin,
    MarginBatch,
    Recommendation,
    RecommendationAction,
    AnalysisOptions,
    AnalysisResult,
)
from .config import (
    AnalysisConfig,
    RankingThresholds,
)

__all__ = [
    "MarketData",
    "AssetMargin",
    "MarginBatch",
    "Recommendation",
    "RecommendationAction",
    "AnalysisOptions",
    "AnalysisResult",
    "AnalysisConfig",
    "RankingThresholds",
]
