"""
Min-max feature normalization for the regression scorer.

Maps raw numeric signals into comparable [0, 1] ranges using statistics
computed over a training population.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Mapping

import numpy as np
import pandas as pd

from .errors import EmptyDatasetError
from .features import ChurnFeatures, FRAME_COLUMNS

NUMERIC_FEATURES = ["days_since_activity", "events_last_30", "revenue_last_30"]


@dataclass(frozen=True)
class FeatureRange:
    """Observed min, max and mean of one numeric feature."""

    min: float
    max: float
    mean: float

    def normalize(self, value):
        return normalize(value, self.min, self.max)


@dataclass(frozen=True)
class FeatureStats:
    """Per-feature ranges used to normalize the numeric features."""

    days_since_activity: FeatureRange
    events_last_30: FeatureRange
    revenue_last_30: FeatureRange

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, float]]) -> "FeatureStats":
        """Load stats from a plain mapping (accepts camelCase keys too)."""
        camel = {
            "days_since_activity": "daysSinceActivity",
            "events_last_30": "eventsLast30",
            "revenue_last_30": "revenueLast30",
        }
        ranges = {}
        for name in NUMERIC_FEATURES:
            raw = data[name] if name in data else data[camel[name]]
            ranges[name] = FeatureRange(
                min=float(raw["min"]),
                max=float(raw["max"]),
                mean=float(raw["mean"]),
            )
        return cls(**ranges)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)

    def get(self, name: str) -> FeatureRange:
        return getattr(self, name)


def normalize(value, min_value: float, max_value: float):
    """
    Min-max scale a value (or array/Series of values).

    A degenerate range (max == min) uses a denominator of 1.
    """
    return (value - min_value) / ((max_value - min_value) or 1)


def update_stats(samples: Iterable[ChurnFeatures]) -> FeatureStats:
    """
    Compute min/max/mean for each numeric feature.

    Args:
        samples: Feature records from the training population

    Returns:
        New FeatureStats

    Raises:
        EmptyDatasetError: If no samples were supplied
    """
    samples = list(samples)
    if not samples:
        raise EmptyDatasetError("Cannot compute feature stats from an empty dataset")

    ranges = {}
    for name in NUMERIC_FEATURES:
        values = np.array([getattr(s, name) for s in samples], dtype=float)
        ranges[name] = FeatureRange(
            min=float(values.min()),
            max=float(values.max()),
            mean=float(values.mean()),
        )
    return FeatureStats(**ranges)


def normalize_frame(df: pd.DataFrame, stats: FeatureStats) -> pd.DataFrame:
    """Return the numeric feature columns of a frame, min-max scaled."""
    return pd.DataFrame(
        {
            name: stats.get(name).normalize(df[FRAME_COLUMNS[name]].astype(float))
            for name in NUMERIC_FEATURES
        },
        index=df.index,
    )
