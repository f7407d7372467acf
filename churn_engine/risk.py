"""
Risk categorization of churn probabilities.

`CANONICAL_THRESHOLDS` is the single source of truth for every prediction
the engine returns:
- probability < 0.3: Low Risk
- probability < 0.8: Medium Risk
- otherwise: High Risk

`STORED_PREDICTION_THRESHOLDS` (0.4 / 0.7) is kept as an explicit named
variant for callers reproducing the older stored-prediction labels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidInputError


class RiskCategory(str, Enum):
    """Ordinal risk label."""

    LOW = "Low Risk"
    MEDIUM = "Medium Risk"
    HIGH = "High Risk"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value) -> "RiskCategory":
        """Accept a RiskCategory, its label ("High Risk") or short name ("high")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            for category in cls:
                if text in (category.value.lower(), category.name.lower()):
                    return category
        raise ValueError(f"Unknown risk category: {value!r}")


_SEVERITY = {RiskCategory.LOW: 0, RiskCategory.MEDIUM: 1, RiskCategory.HIGH: 2}

RISK_ORDER = [RiskCategory.LOW, RiskCategory.MEDIUM, RiskCategory.HIGH]


@dataclass(frozen=True)
class RiskThresholds:
    """
    Cut points between risk categories.

    Attributes:
        low_medium: Probabilities below this are Low Risk
        medium_high: Probabilities below this (and not Low) are Medium Risk
    """

    low_medium: float
    medium_high: float

    def __post_init__(self):
        if not 0.0 <= self.low_medium <= self.medium_high <= 1.0:
            raise ValueError(
                "Risk thresholds must satisfy 0 <= low_medium <= medium_high <= 1"
            )


CANONICAL_THRESHOLDS = RiskThresholds(low_medium=0.3, medium_high=0.8)
STORED_PREDICTION_THRESHOLDS = RiskThresholds(low_medium=0.4, medium_high=0.7)


def categorize(
    probability: float, thresholds: Optional[RiskThresholds] = None
) -> RiskCategory:
    """
    Map a churn probability to a risk category.

    Args:
        probability: Value in [0, 1]
        thresholds: Cut points; CANONICAL_THRESHOLDS if None

    Raises:
        InvalidInputError: If probability is outside [0, 1]
    """
    thresholds = thresholds or CANONICAL_THRESHOLDS
    if not 0.0 <= probability <= 1.0:
        raise InvalidInputError(
            f"Probability must be within [0, 1], got {probability}",
            fields=["probability"],
        )
    if probability < thresholds.low_medium:
        return RiskCategory.LOW
    if probability < thresholds.medium_high:
        return RiskCategory.MEDIUM
    return RiskCategory.HIGH
