"""
Pytest fixtures for churn engine tests.
"""

import pandas as pd
import pytest

# Add package to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from churn_engine.config import EngineConfig
from churn_engine.features import ChurnFeatures, generate_sample_data
from churn_engine.predictor import ChurnPredictor
from churn_engine.scoring import RuleBasedScorer
from churn_engine.store import ModelStore


@pytest.fixture
def default_config():
    """Default engine configuration."""
    return EngineConfig()


@pytest.fixture
def rule_scorer(default_config):
    """RuleBasedScorer with default config."""
    return RuleBasedScorer(default_config)


@pytest.fixture
def predictor(default_config):
    """Predictor with a fresh in-memory model store."""
    return ChurnPredictor(store=ModelStore(), config=default_config)


@pytest.fixture
def model_path(tmp_path):
    """Artifact location inside the test's temp directory."""
    return tmp_path / "models" / "churn-model.json"


@pytest.fixture
def sample_data():
    """500 labelled customers with realistic distributions."""
    return generate_sample_data(n_customers=500, seed=42)


@pytest.fixture
def training_pairs(sample_data):
    """sample_data as (ChurnFeatures, churned) pairs."""
    return [
        (
            ChurnFeatures(
                plan=row.PLAN,
                days_since_activity=int(row.DAYS_SINCE_ACTIVITY),
                events_last_30=int(row.EVENTS_LAST_30),
                revenue_last_30=float(row.REVENUE_LAST_30),
            ),
            bool(row.CHURNED),
        )
        for row in sample_data.itertuples()
    ]


@pytest.fixture
def high_risk_customer():
    """Inactive free user: near the top of the probability range."""
    return ChurnFeatures(
        plan="free", days_since_activity=45, events_last_30=1, revenue_last_30=0
    )


@pytest.fixture
def low_risk_customer():
    """Active, paying premium customer: near the bottom of the range."""
    return ChurnFeatures(
        plan="premium", days_since_activity=2, events_last_30=120, revenue_last_30=300
    )


@pytest.fixture
def edge_cases():
    """Specific edge cases for testing boundary conditions."""
    return pd.DataFrame([
        # Highest risk: free, long inactive, no engagement, no revenue
        {
            "CUSTOMER_ID": "EDGE_HIGH_RISK",
            "PLAN": "free",
            "DAYS_SINCE_ACTIVITY": 45,
            "EVENTS_LAST_30": 1,
            "REVENUE_LAST_30": 0.0,
        },
        # Lowest risk: premium, active, engaged, high revenue
        {
            "CUSTOMER_ID": "EDGE_LOW_RISK",
            "PLAN": "premium",
            "DAYS_SINCE_ACTIVITY": 2,
            "EVENTS_LAST_30": 120,
            "REVENUE_LAST_30": 300.0,
        },
        # Middle of the road basic customer
        {
            "CUSTOMER_ID": "EDGE_MEDIUM",
            "PLAN": "basic",
            "DAYS_SINCE_ACTIVITY": 10,
            "EVENTS_LAST_30": 20,
            "REVENUE_LAST_30": 60.0,
        },
        # Exactly on every threshold: no adjustment except plan
        {
            "CUSTOMER_ID": "EDGE_THRESHOLDS",
            "PLAN": "basic",
            "DAYS_SINCE_ACTIVITY": 7,
            "EVENTS_LAST_30": 10,
            "REVENUE_LAST_30": 0.0,
        },
    ])
