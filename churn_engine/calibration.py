"""
Batch calibration of risk categories.

Relabels a scored batch so the shares of Low / Medium / High match a
target distribution, keeping the probability ranking intact. The
probabilities themselves are never changed.
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence, TypeVar, Union

import pandas as pd

from .errors import InvalidInputError
from .risk import RiskCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TargetDistribution:
    """
    Desired share of each risk category in a batch.

    Fractions must be non-negative and sum to 1.0 (within 0.01).
    """

    low: float = 0.45
    medium: float = 0.35
    high: float = 0.20

    def __post_init__(self):
        values = {"low": self.low, "medium": self.medium, "high": self.high}
        negative = [name for name, value in values.items() if value < 0]
        if negative:
            raise InvalidInputError(
                f"Target fractions must be non-negative: {negative}", fields=negative
            )
        total = self.low + self.medium + self.high
        if not math.isclose(total, 1.0, abs_tol=0.01):
            raise InvalidInputError(
                f"Target fractions must sum to 1.0, got {total:.3f}",
                fields=list(values),
            )

    @classmethod
    def coerce(
        cls, value: Union["TargetDistribution", Mapping[str, float], None]
    ) -> "TargetDistribution":
        if value is None:
            return DEFAULT_TARGET
        if isinstance(value, cls):
            return value
        return cls(**value)

    def counts(self, n: int) -> tuple[int, int, int]:
        """
        Bucket sizes for a batch of n items.

        Low and Medium are floored; High absorbs the rounding remainder.
        """
        low_count = math.floor(n * self.low)
        medium_count = min(math.floor(n * self.medium), n - low_count)
        high_count = n - low_count - medium_count
        return low_count, medium_count, high_count


DEFAULT_TARGET = TargetDistribution()


def _label_for(position: int, low_count: int, medium_count: int) -> RiskCategory:
    if position < low_count:
        return RiskCategory.LOW
    if position < low_count + medium_count:
        return RiskCategory.MEDIUM
    return RiskCategory.HIGH


def _get(item, key: str):
    if isinstance(item, Mapping):
        return item[key]
    return getattr(item, key)


def _set(item, key: str, value) -> None:
    if isinstance(item, dict):
        item[key] = value
    else:
        setattr(item, key, value)


def _log_counts(stage: str, labels) -> None:
    counts = pd.Series([RiskCategory.parse(label).value for label in labels]).value_counts()
    logger.info(
        "%s calibration - High: %d, Medium: %d, Low: %d",
        stage,
        counts.get(RiskCategory.HIGH.value, 0),
        counts.get(RiskCategory.MEDIUM.value, 0),
        counts.get(RiskCategory.LOW.value, 0),
    )


def calibrate(
    predictions: Sequence[T],
    target: Union[TargetDistribution, Mapping[str, float], None] = None,
) -> list[T]:
    """
    Reassign risk categories to match a target distribution.

    Items are sorted ascending by probability (stable, so ties keep input
    order); the first `floor(n * low)` become Low Risk, the next
    `floor(n * medium)` Medium Risk, and the rest High Risk.

    Args:
        predictions: Objects (or dicts) with `probability` and a mutable
            `risk_category`
        target: TargetDistribution or {"low", "medium", "high"} mapping;
            defaults to 45% / 35% / 20%

    Returns:
        The same items, sorted by probability, with risk_category updated
        in place. An empty batch is returned unchanged.
    """
    if not predictions:
        return list(predictions)
    target = TargetDistribution.coerce(target)

    result = sorted(predictions, key=lambda p: _get(p, "probability"))
    n = len(result)
    low_count, medium_count, high_count = target.counts(n)
    logger.info(
        "Calibrating %d predictions to Low=%d (%d%%), Medium=%d (%d%%), High=%d (%d%%)",
        n,
        low_count, round(low_count / n * 100),
        medium_count, round(medium_count / n * 100),
        high_count, round(high_count / n * 100),
    )

    for position, item in enumerate(result):
        _set(item, "risk_category", _label_for(position, low_count, medium_count))

    return result


def calibrate_frame(
    df: pd.DataFrame,
    target: Union[TargetDistribution, Mapping[str, float], None] = None,
    probability_column: str = "PROBABILITY",
    category_column: str = "RISK_CATEGORY",
) -> pd.DataFrame:
    """
    DataFrame version of `calibrate`.

    Returns:
        A copy sorted ascending by probability with the category column
        rewritten (as category labels, e.g. "High Risk")
    """
    if df.empty:
        return df.copy()
    target = TargetDistribution.coerce(target)

    result = df.sort_values(probability_column, kind="mergesort").copy()
    if category_column in result.columns:
        _log_counts("Before", result[category_column])

    low_count, medium_count, _ = target.counts(len(result))
    result[category_column] = [
        _label_for(position, low_count, medium_count).value
        for position in range(len(result))
    ]
    _log_counts("After", result[category_column])
    return result
