"""
Scoring configuration for the churn engine.

All rule weights, risk thresholds and calibration targets are defined here
for easy tuning. The rule weights double as the explanation shown to end
users ("free plans add +0.25"), so changing them changes the product's
documented behaviour.
"""

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Dict, List, Tuple

import yaml


# Canonical weights. Each activity/engagement/revenue table is an ordered
# list of (threshold, adjustment); the first threshold strictly exceeded wins.
STANDARD_RULE_WEIGHTS: Dict[str, object] = {
    "plan": {"free": 0.25, "basic": 0.12, "premium": 0.04},
    "activity": [(30, 0.40), (14, 0.25), (7, 0.08)],
    "engagement": [(100, -0.30), (50, -0.20), (10, -0.10)],
    "revenue": [(200, -0.25), (50, -0.15), (0, -0.05)],
}

# Lighter heuristic used by the legacy fallback path
SIMPLIFIED_RULE_WEIGHTS: Dict[str, object] = {
    "plan": {"free": 0.10, "basic": 0.03, "premium": -0.05},
    "activity": [(20, 0.10), (10, 0.05)],
    "engagement": [(50, -0.08), (20, -0.05)],
    "revenue": [(100, -0.08), (50, -0.05)],
}


@dataclass
class EngineConfig:
    """
    Configuration for every scoring and calibration stage.

    Probability model:
    - Start at `baseline`
    - Add one adjustment per factor (plan, activity, engagement, revenue)
    - Clamp to `fallback_bounds`
    """

    # === Rule-based scorer ===
    baseline: float = 0.5
    plan_adjustments: Dict[str, float] = field(default_factory=lambda: dict(
        STANDARD_RULE_WEIGHTS["plan"]
    ))
    plan_default: float = 0.0
    activity_thresholds: List[Tuple[float, float]] = field(default_factory=lambda: list(
        STANDARD_RULE_WEIGHTS["activity"]
    ))
    engagement_thresholds: List[Tuple[float, float]] = field(default_factory=lambda: list(
        STANDARD_RULE_WEIGHTS["engagement"]
    ))
    revenue_thresholds: List[Tuple[float, float]] = field(default_factory=lambda: list(
        STANDARD_RULE_WEIGHTS["revenue"]
    ))
    fallback_bounds: Tuple[float, float] = (0.05, 0.95)
    fallback_confidence: float = 0.3

    # === Decision and risk categorization ===
    churn_threshold: float = 0.5
    # (low_medium, medium_high): p < low_medium is Low, p < medium_high is Medium
    risk_thresholds: Tuple[float, float] = (0.3, 0.8)

    # === Batch calibration ===
    calibration_target: Dict[str, float] = field(default_factory=lambda: {
        "low": 0.45,
        "medium": 0.35,
        "high": 0.20,
    })

    # === Regression model ===
    model_path: str = "models/churn-model.json"
    history_path: str = "models/training-history.json"

    # === Metadata ===
    version: str = "1.0.0"

    def __post_init__(self):
        # YAML has no tuples
        self.activity_thresholds = [tuple(t) for t in self.activity_thresholds]
        self.engagement_thresholds = [tuple(t) for t in self.engagement_thresholds]
        self.revenue_thresholds = [tuple(t) for t in self.revenue_thresholds]
        self.fallback_bounds = tuple(self.fallback_bounds)
        self.risk_thresholds = tuple(self.risk_thresholds)

    @classmethod
    def with_rule_weights(cls, weights: Dict[str, object], **overrides) -> "EngineConfig":
        """Build a config from one of the named rule weight tables."""
        return cls(
            plan_adjustments=dict(weights["plan"]),
            activity_thresholds=list(weights["activity"]),
            engagement_thresholds=list(weights["engagement"]),
            revenue_thresholds=list(weights["revenue"]),
            **overrides,
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "EngineConfig":
        """Load configuration from YAML file, on top of the defaults."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data["activity_thresholds"] = [list(t) for t in self.activity_thresholds]
        data["engagement_thresholds"] = [list(t) for t in self.engagement_thresholds]
        data["revenue_thresholds"] = [list(t) for t in self.revenue_thresholds]
        data["fallback_bounds"] = list(self.fallback_bounds)
        data["risk_thresholds"] = list(self.risk_thresholds)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


# Default configuration instance
DEFAULT_CONFIG = EngineConfig()
