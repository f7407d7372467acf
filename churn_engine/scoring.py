"""
Scorer interface and the deterministic rule-based scorer.

Usage:
    from churn_engine import RuleBasedScorer, ChurnFeatures

    scorer = RuleBasedScorer()
    probability = scorer.score(
        ChurnFeatures(plan="free", days_since_activity=45,
                      events_last_30=1, revenue_last_30=0)
    )
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .components import ActivityFactor, EngagementFactor, PlanFactor, RevenueFactor
from .config import DEFAULT_CONFIG, EngineConfig
from .features import ChurnFeatures, features_to_frame


@dataclass(frozen=True)
class ScoreOutcome:
    """Probability produced by a scorer, with the scorer's confidence."""

    probability: float
    confidence: Optional[float]
    scorer: str


class Scorer(ABC):
    """Capability interface shared by every churn scorer."""

    name: str = "scorer"

    @abstractmethod
    def predict(self, features: ChurnFeatures) -> ScoreOutcome:
        """Score a single validated feature record."""
        pass


class RuleBasedScorer(Scorer):
    """
    Additive weighted-factor churn model.

    Starts at the configured baseline (0.5) and adds one adjustment per
    factor, then clamps to the fallback bounds [0.05, 0.95]. Never fails,
    which makes it the fallback for every other scorer.

    Factors:
    - Plan: free / basic / premium
    - Activity recency: days since last activity
    - Engagement: events in the last 30 days
    - Revenue: revenue in the last 30 days
    """

    name = "rule_based"

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize scorer with configuration.

        Args:
            config: EngineConfig instance. Uses DEFAULT_CONFIG if None.
        """
        self.config = config or DEFAULT_CONFIG
        self.factors = {
            "plan": PlanFactor(self.config),
            "activity": ActivityFactor(self.config),
            "engagement": EngagementFactor(self.config),
            "revenue": RevenueFactor(self.config),
        }

    def _clamp(self, values):
        low, high = self.config.fallback_bounds
        return np.clip(values, low, high)

    def adjustments(self, df: pd.DataFrame) -> pd.DataFrame:
        """Per-factor adjustment columns (`<factor>_adjustment`)."""
        return pd.DataFrame(
            {
                f"{name}_adjustment": factor.score(df)
                for name, factor in self.factors.items()
            },
            index=df.index,
        )

    def score_frame(self, df: pd.DataFrame) -> pd.Series:
        """
        Vectorized probabilities for every row of a feature frame.

        Args:
            df: Frame with PLAN, DAYS_SINCE_ACTIVITY, EVENTS_LAST_30 and
                REVENUE_LAST_30 columns

        Returns:
            Series of clamped probabilities aligned to df.index
        """
        raw = self.config.baseline + self.adjustments(df).sum(axis=1)
        return pd.Series(self._clamp(raw.to_numpy(dtype=float)), index=df.index)

    def score(self, features: ChurnFeatures) -> float:
        """Churn probability for one customer."""
        df = features_to_frame([features])
        return float(self.score_frame(df).iloc[0])

    def explain(self, features: ChurnFeatures) -> dict:
        """
        Score one customer and show each factor's contribution.

        Returns:
            Dictionary with baseline, per-factor adjustments and probability
        """
        df = features_to_frame([features])
        row = self.adjustments(df).iloc[0]
        return {
            "baseline": self.config.baseline,
            "adjustments": {
                col.replace("_adjustment", ""): float(row[col]) for col in row.index
            },
            "probability": float(self._clamp(self.config.baseline + row.sum())),
        }

    def predict(self, features: ChurnFeatures) -> ScoreOutcome:
        return ScoreOutcome(
            probability=self.score(features),
            confidence=self.config.fallback_confidence,
            scorer=self.name,
        )
