"""
Churn Scoring Engine

Rule-based and regression churn probability models, risk categorization
and batch calibration of risk labels.
"""

from .calibration import TargetDistribution, calibrate, calibrate_frame
from .config import (
    DEFAULT_CONFIG,
    SIMPLIFIED_RULE_WEIGHTS,
    STANDARD_RULE_WEIGHTS,
    EngineConfig,
)
from .errors import (
    ChurnEngineError,
    EmptyDatasetError,
    InvalidInputError,
    PredictionRuntimeError,
    TrainingInProgressError,
)
from .features import ChurnFeatures, Plan, generate_sample_data
from .history import TrainingHistory
from .normalizer import FeatureRange, FeatureStats, normalize, update_stats
from .predictor import ChurnPredictor, PredictionResult, ScoringResult
from .regression import RegressionScorer
from .risk import (
    CANONICAL_THRESHOLDS,
    STORED_PREDICTION_THRESHOLDS,
    RiskCategory,
    RiskThresholds,
    categorize,
)
from .scoring import RuleBasedScorer, ScoreOutcome, Scorer
from .store import ModelStore, TrainedModel

__all__ = [
    "ChurnPredictor",
    "PredictionResult",
    "ScoringResult",
    "ChurnFeatures",
    "Plan",
    "generate_sample_data",
    "EngineConfig",
    "DEFAULT_CONFIG",
    "STANDARD_RULE_WEIGHTS",
    "SIMPLIFIED_RULE_WEIGHTS",
    "Scorer",
    "ScoreOutcome",
    "RuleBasedScorer",
    "RegressionScorer",
    "ModelStore",
    "TrainedModel",
    "TrainingHistory",
    "FeatureRange",
    "FeatureStats",
    "normalize",
    "update_stats",
    "RiskCategory",
    "RiskThresholds",
    "CANONICAL_THRESHOLDS",
    "STORED_PREDICTION_THRESHOLDS",
    "categorize",
    "TargetDistribution",
    "calibrate",
    "calibrate_frame",
    "ChurnEngineError",
    "InvalidInputError",
    "EmptyDatasetError",
    "PredictionRuntimeError",
    "TrainingInProgressError",
]
__version__ = "1.0.0"
