from __future__ import annotations

from typing import Iterable, List, Optional

from src.decision.config import RankingThresholds
from src.decision.models import AssetMargin, Recommendation, RecommendationAction


class RecommendationRanker:
    """Order assets by margin and classify them into recommendation bands.

    Order is margin descending, then asset id ascending, so the ranking does
    not depend on input order.
    """

    def __init__(self, thresholds: Optional[RankingThresholds] = None):
        self.thresholds = thresholds or RankingThresholds()

    def classify(self, margin: float) -> RecommendationAction:
        t = self.thresholds
        if margin > t.strong_buy:
            return RecommendationAction.STRONG_BUY
        if margin > t.buy:
            return RecommendationAction.BUY
        if margin >= t.avoid:
            return RecommendationAction.HOLD
        if margin >= t.strong_avoid:
            return RecommendationAction.AVOID
        return RecommendationAction.STRONG_AVOID

    def rank(self, margins: Iterable[AssetMargin]) -> List[Recommendation]:
        ordered = sorted(margins, key=lambda m: (-m.margin, m.asset))
        return [
            Recommendation(
                asset=m.asset,
                action=self.classify(m.margin),
                margin=m.margin,
                movement_score=m.movement_score,
                signal_degraded=m.signal_degraded,
                rank=position,
            )
            for position, m in enumerate(ordered, start=1)
        ]
