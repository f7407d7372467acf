"""Base classes for rule-based churn factors."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Tuple

import numpy as np
import pandas as pd

from ..errors import InvalidInputError

if TYPE_CHECKING:
    from ..config import EngineConfig


class BaseFactor(ABC):
    """
    Abstract base class for a single churn factor.

    Each factor turns one raw signal into an additive probability
    adjustment, using vectorized pandas operations.
    """

    name: str = "base"

    def __init__(self, config: "EngineConfig"):
        """
        Initialize factor with configuration.

        Args:
            config: EngineConfig instance with thresholds and adjustments
        """
        self.config = config

    @abstractmethod
    def score(self, df: pd.DataFrame) -> pd.Series:
        """
        Calculate the probability adjustment for all rows.

        Args:
            df: DataFrame with required columns

        Returns:
            Series of float adjustments
        """
        pass

    @property
    @abstractmethod
    def required_columns(self) -> list[str]:
        """List of columns required by this factor."""
        pass

    def validate(self, df: pd.DataFrame) -> None:
        """Validate required columns exist."""
        missing = set(self.required_columns) - set(df.columns)
        if missing:
            raise InvalidInputError(
                f"{self.__class__.__name__} requires columns: {sorted(missing)}",
                fields=sorted(missing),
            )


class ThresholdFactor(BaseFactor):
    """
    Factor driven by an ordered (threshold, adjustment) table.

    The first threshold strictly exceeded wins; values at or below every
    threshold get no adjustment.
    """

    column: str = ""

    @property
    def required_columns(self) -> list[str]:
        return [self.column]

    @property
    @abstractmethod
    def thresholds(self) -> List[Tuple[float, float]]:
        """Ordered table for this factor, highest threshold first."""
        pass

    def score(self, df: pd.DataFrame) -> pd.Series:
        self.validate(df)
        values = df[self.column]

        # Build conditions from thresholds (first match wins)
        conditions = []
        choices = []

        for threshold, adjustment in sorted(self.thresholds, reverse=True):
            conditions.append(values > threshold)
            choices.append(adjustment)

        return pd.Series(
            np.select(conditions, choices, default=0.0),
            index=df.index,
            dtype=float,
        )
