"""Engagement factor."""

from .base import ThresholdFactor


class EngagementFactor(ThresholdFactor):
    """
    Adjustment based on events in the last 30 days.

    Adjustments (standard weights):
    - >100 events: -0.30
    - >50 events: -0.20
    - >10 events: -0.10
    - otherwise: 0
    """

    name = "engagement"
    column = "EVENTS_LAST_30"

    @property
    def thresholds(self):
        return self.config.engagement_thresholds
