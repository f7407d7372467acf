"""Activity recency factor."""

from .base import ThresholdFactor


class ActivityFactor(ThresholdFactor):
    """
    Adjustment based on days since last activity.

    The longer a customer has been away, the more likely they have
    already stopped using the product.

    Adjustments (standard weights):
    - >30 days: +0.40
    - >14 days: +0.25
    - >7 days: +0.08
    - otherwise: 0
    """

    name = "activity"
    column = "DAYS_SINCE_ACTIVITY"

    @property
    def thresholds(self):
        return self.config.activity_thresholds
