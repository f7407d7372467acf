"""Rule-based churn factors."""

from .base import BaseFactor, ThresholdFactor
from .plan import PlanFactor
from .activity import ActivityFactor
from .engagement import EngagementFactor
from .revenue import RevenueFactor

__all__ = [
    "BaseFactor",
    "ThresholdFactor",
    "PlanFactor",
    "ActivityFactor",
    "EngagementFactor",
    "RevenueFactor",
]
