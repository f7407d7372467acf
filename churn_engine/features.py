"""
Customer feature records.

`ChurnFeatures` is the fixed-schema value passed into every scorer. Callers
holding loose dictionaries (web handlers, bulk imports) go through
`ChurnFeatures.from_mapping`, which validates presence and ranges before any
scorer runs.
"""

import math
from dataclasses import dataclass
from enum import Enum
from decimal import Decimal
from numbers import Real
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from .errors import InvalidInputError


class Plan(str, Enum):
    """Subscription tier."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Any) -> "Plan":
        """Case-insensitive lookup; raises InvalidInputError for unknown plans."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidInputError(
            f"Unknown plan {value!r}; expected one of "
            f"{[p.value for p in cls]}",
            fields=["plan"],
        )


FEATURE_FIELDS = [
    "plan",
    "days_since_activity",
    "events_last_30",
    "revenue_last_30",
]

# Keys used by the web layer
FIELD_ALIASES = {
    "plan": ("plan",),
    "days_since_activity": ("days_since_activity", "daysSinceActivity"),
    "events_last_30": ("events_last_30", "eventsLast30"),
    "revenue_last_30": ("revenue_last_30", "revenueLast30"),
}

IDENTITY_KEYS = ("customer_id", "customerId", "userId", "user_id", "id")

# DataFrame column for each record field
FRAME_COLUMNS = {
    "plan": "PLAN",
    "days_since_activity": "DAYS_SINCE_ACTIVITY",
    "events_last_30": "EVENTS_LAST_30",
    "revenue_last_30": "REVENUE_LAST_30",
}
ID_COLUMN = "CUSTOMER_ID"
LABEL_COLUMN = "CHURNED"


def _non_negative(name: str, value: Any, integral: bool) -> float:
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise InvalidInputError(
            f"{name} must be a number, got {value!r}", fields=[name]
        )
    value = float(value) if isinstance(value, Decimal) else value
    if math.isnan(value) or math.isinf(value):
        raise InvalidInputError(f"{name} must be finite", fields=[name])
    if value < 0:
        raise InvalidInputError(
            f"{name} must be non-negative, got {value}", fields=[name]
        )
    if integral:
        if value != int(value):
            raise InvalidInputError(
                f"{name} must be a whole number, got {value}", fields=[name]
            )
        return int(value)
    return float(value)


@dataclass(frozen=True)
class ChurnFeatures:
    """
    Raw churn signals for one customer.

    Attributes:
        plan: Subscription tier
        days_since_activity: Days since the customer's last activity
        events_last_30: Number of events in the last 30 days
        revenue_last_30: Revenue in the last 30 days, in currency units
    """

    plan: Plan
    days_since_activity: int
    events_last_30: int
    revenue_last_30: float

    def __post_init__(self):
        object.__setattr__(self, "plan", Plan.parse(self.plan))
        object.__setattr__(
            self,
            "days_since_activity",
            _non_negative("days_since_activity", self.days_since_activity, True),
        )
        object.__setattr__(
            self,
            "events_last_30",
            _non_negative("events_last_30", self.events_last_30, True),
        )
        object.__setattr__(
            self,
            "revenue_last_30",
            _non_negative("revenue_last_30", self.revenue_last_30, False),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ChurnFeatures":
        """
        Build a record from a loose mapping.

        Args:
            data: Mapping with snake_case or camelCase feature keys

        Raises:
            InvalidInputError: Naming every missing field at once
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError(
                f"Expected a mapping of feature values, got {type(data).__name__}",
                fields=FEATURE_FIELDS,
            )
        values = {}
        missing = []
        for name in FEATURE_FIELDS:
            for key in FIELD_ALIASES[name]:
                if data.get(key) is not None:
                    values[name] = data[key]
                    break
            else:
                missing.append(name)
        if missing:
            raise InvalidInputError(
                f"Missing required fields: {', '.join(missing)}", fields=missing
            )
        return cls(**values)

    @classmethod
    def coerce(cls, value: Any) -> "ChurnFeatures":
        """Accept either a ChurnFeatures instance or a mapping."""
        if isinstance(value, cls):
            return value
        return cls.from_mapping(value)

    def to_dict(self) -> dict:
        return {
            "plan": self.plan.value,
            "days_since_activity": self.days_since_activity,
            "events_last_30": self.events_last_30,
            "revenue_last_30": self.revenue_last_30,
        }


def extract_identity(data: Any) -> Optional[Any]:
    """Return the caller's correlation id from a mapping, if any."""
    if isinstance(data, Mapping):
        for key in IDENTITY_KEYS:
            if key in data:
                return data[key]
    return None


def features_to_frame(
    records: Iterable[ChurnFeatures],
    customer_ids: Optional[Iterable[Any]] = None,
) -> pd.DataFrame:
    """Convert feature records to the upper-case column frame."""
    records = list(records)
    df = pd.DataFrame(
        {
            FRAME_COLUMNS["plan"]: [r.plan.value for r in records],
            FRAME_COLUMNS["days_since_activity"]: [r.days_since_activity for r in records],
            FRAME_COLUMNS["events_last_30"]: [r.events_last_30 for r in records],
            FRAME_COLUMNS["revenue_last_30"]: [r.revenue_last_30 for r in records],
        }
    )
    if customer_ids is not None:
        df.insert(0, ID_COLUMN, list(customer_ids))
    return df


def frame_to_features(df: pd.DataFrame) -> list[ChurnFeatures]:
    """Convert a feature frame back to validated records."""
    missing = [col for col in FRAME_COLUMNS.values() if col not in df.columns]
    if missing:
        raise InvalidInputError(
            f"Missing required columns: {missing}", fields=missing
        )
    return [
        ChurnFeatures(
            plan=row[FRAME_COLUMNS["plan"]],
            days_since_activity=int(row[FRAME_COLUMNS["days_since_activity"]]),
            events_last_30=int(row[FRAME_COLUMNS["events_last_30"]]),
            revenue_last_30=float(row[FRAME_COLUMNS["revenue_last_30"]]),
        )
        for _, row in df.iterrows()
    ]


def generate_sample_data(n_customers: int = 100, seed: int = 42) -> pd.DataFrame:
    """
    Generate a reproducible labelled customer population.

    Distributions:
    - Plan: free 50%, basic 30%, premium 20%
    - Inactivity and low engagement raise the churn odds
    - Paying, active customers churn least
    """
    rng = np.random.default_rng(seed)

    plans = rng.choice(
        ["free", "basic", "premium"],
        size=n_customers,
        p=[0.50, 0.30, 0.20],
    )
    days = rng.integers(0, 61, size=n_customers)
    events = np.clip(rng.poisson(lam=40, size=n_customers) - days // 2, 0, None)

    base_revenue = np.select(
        [plans == "free", plans == "basic"],
        [0.0, 40.0],
        default=150.0,
    )
    revenue = np.clip(
        base_revenue + rng.normal(loc=0, scale=30, size=n_customers), 0, None
    ) * (plans != "free")

    # Churn propensity: inactivity up, engagement and spend down
    logit = (
        -1.0
        + 0.08 * days
        - 0.03 * events
        - 0.01 * revenue
        + np.where(plans == "free", 0.8, 0.0)
    )
    churn_prob = 1 / (1 + np.exp(-logit))
    churned = rng.random(n_customers) < churn_prob

    return pd.DataFrame(
        {
            ID_COLUMN: [f"CUST_{i:05d}" for i in range(n_customers)],
            FRAME_COLUMNS["plan"]: plans,
            FRAME_COLUMNS["days_since_activity"]: days.astype(int),
            FRAME_COLUMNS["events_last_30"]: events.astype(int),
            FRAME_COLUMNS["revenue_last_30"]: revenue.round(2),
            LABEL_COLUMN: churned,
        }
    )
