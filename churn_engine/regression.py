"""
Regression-based churn scorer.

Fits a multivariate linear regression on one-hot plan flags plus min-max
normalized activity, engagement and revenue, treating the churn label as a
continuous target. Whenever no trained model is available, or prediction
fails, scoring falls back to the rule-based scorer.
"""

import logging
from typing import Iterable, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression

from .config import DEFAULT_CONFIG, EngineConfig
from .errors import (
    EmptyDatasetError,
    InvalidInputError,
    PredictionRuntimeError,
    TrainingInProgressError,
)
from .evaluation import classification_metrics
from .features import ChurnFeatures, LABEL_COLUMN, Plan, frame_to_features
from .history import TrainingHistory
from .normalizer import FeatureStats, NUMERIC_FEATURES, update_stats
from .schemas import TRAINING_SCHEMA, validate_frame
from .scoring import RuleBasedScorer, ScoreOutcome, Scorer
from .store import ModelStore, TrainedModel

logger = logging.getLogger(__name__)

PLAN_ORDER = [Plan.FREE, Plan.BASIC, Plan.PREMIUM]
N_FEATURES = len(PLAN_ORDER) + len(NUMERIC_FEATURES)


def feature_vector(features: ChurnFeatures, stats: FeatureStats) -> list[float]:
    """One-hot plan flags followed by the normalized numeric features."""
    one_hot = [1.0 if features.plan == plan else 0.0 for plan in PLAN_ORDER]
    numeric = [
        float(stats.get(name).normalize(getattr(features, name)))
        for name in NUMERIC_FEATURES
    ]
    return one_hot + numeric


def coerce_dataset(dataset) -> Tuple[list[ChurnFeatures], np.ndarray]:
    """
    Split a labelled dataset into feature records and 0/1 labels.

    Args:
        dataset: DataFrame with a CHURNED column, or an iterable of
            (features, churned) pairs where features is a ChurnFeatures
            or a mapping

    Raises:
        InvalidInputError: If any record is malformed
    """
    if isinstance(dataset, pd.DataFrame):
        if dataset.empty:
            return [], np.array([], dtype=float)
        df = dataset.copy()
        if "PLAN" in df.columns:
            df["PLAN"] = df["PLAN"].astype(str).str.lower()
        df = validate_frame(TRAINING_SCHEMA, df)
        return frame_to_features(df), df[LABEL_COLUMN].to_numpy(dtype=float)

    records = []
    labels = []
    for i, item in enumerate(dataset):
        try:
            features, churned = item
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                f"Training sample {i} must be a (features, churned) pair"
            ) from e
        records.append(ChurnFeatures.coerce(features))
        labels.append(1.0 if churned else 0.0)
    return records, np.array(labels, dtype=float)


class RegressionScorer(Scorer):
    """
    Linear-regression churn predictor backed by a ModelStore.

    Usage:
        scorer = RegressionScorer(ModelStore("models/churn-model.json"))
        scorer.train(dataset)
        outcome = scorer.predict(features)
    """

    name = "regression"

    def __init__(
        self,
        store: ModelStore,
        fallback: Optional[RuleBasedScorer] = None,
        config: Optional[EngineConfig] = None,
        history: Optional[TrainingHistory] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.store = store
        self.fallback = fallback or RuleBasedScorer(self.config)
        self.history = history or TrainingHistory()

    # === Training ===

    def fit(self, records: list[ChurnFeatures], labels: np.ndarray) -> TrainedModel:
        """
        Build a new TrainedModel without publishing it.

        Raises:
            EmptyDatasetError: If records is empty
            ValueError: If feature vectors have inconsistent lengths
        """
        stats = update_stats(records)
        vectors = [feature_vector(r, stats) for r in records]

        feature_count = len(vectors[0])
        if any(len(v) != feature_count for v in vectors):
            raise ValueError("Inconsistent feature counts in input data")
        if len(vectors) != len(labels):
            raise ValueError(
                f"Got {len(vectors)} feature vectors but {len(labels)} labels"
            )

        X = np.asarray(vectors, dtype=float)
        logger.info("Training churn model: input shape %dx%d", *X.shape)
        estimator = LinearRegression().fit(X, labels)
        return TrainedModel(estimator=estimator, stats=stats)

    def _record(self, log, *args, **kwargs) -> None:
        """Append to the training history; a write failure never fails training."""
        try:
            log(*args, **kwargs)
        except OSError:
            logger.exception("Error writing training history")

    def train(self, dataset) -> bool:
        """
        Fit and publish a new model from labelled samples.

        Returns:
            True if a new model was published; False if the dataset was
            empty or inconsistent, another training run was in progress, or
            the model could not be persisted. On False the previously
            published model is unchanged.

        Raises:
            InvalidInputError: If a sample is malformed
        """
        records, labels = coerce_dataset(dataset)
        try:
            with self.store.training():
                model = self.fit(records, labels)
                self.store.publish(model)
        except EmptyDatasetError as e:
            logger.warning("No training data provided: %s", e)
            self._record(self.history.log_failure, 0, str(e))
            return False
        except TrainingInProgressError as e:
            logger.warning("Training rejected: %s", e)
            self._record(self.history.log_failure, len(records), str(e))
            return False
        except ValueError as e:
            logger.warning("Training rejected: %s", e)
            self._record(self.history.log_failure, len(records), str(e))
            return False
        except OSError as e:
            logger.exception("Error saving churn model")
            self._record(self.history.log_failure, len(records), str(e))
            return False

        churn_ratio = float(labels.mean())
        in_sample = self._predict_model(model, records)
        metrics = classification_metrics(
            labels, in_sample, threshold=self.config.churn_threshold
        )
        logger.info(
            "Churn model trained on %d samples (churn ratio %.1f%%, accuracy %.1f%%)",
            len(records),
            churn_ratio * 100,
            metrics["accuracy"] * 100,
        )
        self._record(
            self.history.log_success,
            samples=len(records),
            churn_ratio=churn_ratio,
            coefficients=model.coefficients,
            intercept=model.intercept,
            metrics=metrics,
            model_timestamp=model.timestamp,
            config_version=self.config.version,
        )
        return True

    # === Prediction ===

    def _predict_model(
        self, model: TrainedModel, records: Iterable[ChurnFeatures]
    ) -> np.ndarray:
        """Clamped probabilities from a specific model."""
        X = np.asarray(
            [feature_vector(r, model.stats) for r in records], dtype=float
        )
        if X.ndim != 2 or X.shape[1] != model.n_features:
            raise PredictionRuntimeError(
                f"Model expects {model.n_features} features, got shape {X.shape}"
            )
        raw = np.ravel(model.estimator.predict(X))
        if not np.all(np.isfinite(raw)):
            raise PredictionRuntimeError("Model produced non-finite predictions")
        return np.clip(raw, 0.0, 1.0)

    def predict(self, features: ChurnFeatures) -> ScoreOutcome:
        """
        Score one customer with the published model.

        Falls back to the rule-based scorer, with its fixed low confidence,
        when no model is published or the model fails.
        """
        model = self.store.get()
        if model is None:
            return self.fallback.predict(features)

        try:
            probability = float(self._predict_model(model, [features])[0])
        except Exception:
            logger.exception("Error making regression prediction; using rule-based fallback")
            return self.fallback.predict(features)

        return ScoreOutcome(
            probability=probability,
            confidence=abs(probability - 0.5) * 2,
            scorer=self.name,
        )
