"""Subscription plan factor."""

import pandas as pd

from .base import BaseFactor


class PlanFactor(BaseFactor):
    """
    Adjustment based on subscription plan.

    Free users have nothing invested and leave most easily; premium
    customers are the most stable.

    Adjustments (standard weights):
    - free: +0.25
    - basic: +0.12
    - premium: +0.04
    """

    name = "plan"

    @property
    def required_columns(self) -> list[str]:
        return ["PLAN"]

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Map plan names to adjustments."""
        self.validate(df)
        return (
            df["PLAN"]
            .astype(str)
            .str.lower()
            .map(self.config.plan_adjustments)
            .fillna(self.config.plan_default)
            .astype(float)
        )
