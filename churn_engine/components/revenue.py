"""Revenue factor."""

from .base import ThresholdFactor


class RevenueFactor(ThresholdFactor):
    """
    Adjustment based on revenue in the last 30 days.

    Any spend is a commitment signal; heavy spenders get the
    largest reduction.

    Adjustments (standard weights):
    - >200: -0.25
    - >50: -0.15
    - >0: -0.05
    - otherwise: 0
    """

    name = "revenue"
    column = "REVENUE_LAST_30"

    @property
    def thresholds(self):
        return self.config.revenue_thresholds
