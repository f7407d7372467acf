"""
Trained model artifact and its lifecycle.

The `ModelStore` owns the one piece of shared mutable state in the engine:
the reference to the currently published `TrainedModel`. Published models
are immutable; training builds a new one off to the side and swaps the
reference in a single assignment, so readers never see a half-updated
model. Training runs are serialized with a non-blocking lock.
"""

import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
from sklearn.linear_model import LinearRegression

from .errors import TrainingInProgressError
from .normalizer import FeatureStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    """
    Fitted regression coefficients plus the stats used to normalize inputs.

    Attributes:
        estimator: Fitted scikit-learn LinearRegression
        stats: FeatureStats computed from the training population
        timestamp: Training time in epoch milliseconds
    """

    estimator: LinearRegression
    stats: FeatureStats
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def coefficients(self) -> list[float]:
        return [float(c) for c in np.ravel(self.estimator.coef_)]

    @property
    def intercept(self) -> float:
        return float(np.ravel(self.estimator.intercept_)[0])

    @property
    def n_features(self) -> int:
        return int(self.estimator.n_features_in_)

    def to_dict(self) -> dict:
        """Serialize to the persisted artifact layout."""
        return {
            "model": {
                "type": "LinearRegression",
                "coefficients": self.coefficients,
                "intercept": self.intercept,
                "n_features": self.n_features,
            },
            "stats": self.stats.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainedModel":
        """
        Rebuild a model from the persisted artifact layout.

        Raises:
            KeyError, TypeError, ValueError: If the artifact is malformed
        """
        blob = data["model"]
        coefficients = np.asarray(blob["coefficients"], dtype=float)
        n_features = int(blob.get("n_features", coefficients.size))
        if coefficients.ndim != 1 or coefficients.size != n_features:
            raise ValueError(
                f"Expected {n_features} coefficients, got shape {coefficients.shape}"
            )

        estimator = LinearRegression()
        estimator.coef_ = coefficients
        estimator.intercept_ = float(blob["intercept"])
        estimator.n_features_in_ = n_features

        return cls(
            estimator=estimator,
            stats=FeatureStats.from_dict(data["stats"]),
            timestamp=int(data["timestamp"]),
        )


class ModelStore:
    """
    Load, publish and persist the trained regression model.

    Usage:
        store = ModelStore("models/churn-model.json")
        if store.is_loaded():
            model = store.get()

    Args:
        path: Artifact location. None keeps models in memory only.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path is not None else None
        self._model: Optional[TrainedModel] = None
        self._load_attempted = False
        self._load_lock = threading.Lock()
        self._train_lock = threading.Lock()

    def get(self) -> Optional[TrainedModel]:
        """Return the published model, loading it lazily on first use."""
        if not self._load_attempted:
            model = self._read()
            with self._load_lock:
                # A model published during the read wins over the read result
                if not self._load_attempted:
                    self._model = model
                    self._load_attempted = True
        return self._model

    def is_loaded(self) -> bool:
        return self.get() is not None

    @property
    def trained_at(self) -> Optional[int]:
        """Timestamp (epoch millis) of the published model, if any."""
        model = self.get()
        return model.timestamp if model is not None else None

    def _read(self) -> Optional[TrainedModel]:
        """Read the artifact. A missing or corrupt file means no model."""
        if self.path is None or not self.path.exists():
            return None
        try:
            with open(self.path) as f:
                model = TrainedModel.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable model artifact %s: %s", self.path, e)
            return None
        logger.info("Churn prediction model loaded from %s", self.path)
        return model

    def _write(self, model: TrainedModel) -> None:
        """Write the artifact atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(model.to_dict(), f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @contextmanager
    def training(self):
        """
        Hold the training lock for the duration of a training run.

        Raises:
            TrainingInProgressError: If another run already holds it
        """
        if not self._train_lock.acquire(blocking=False):
            raise TrainingInProgressError("A training run is already in progress")
        try:
            yield self
        finally:
            self._train_lock.release()

    def publish(self, model: TrainedModel) -> None:
        """
        Persist a new model, then swap it in.

        If writing fails the previous model stays published and the error
        propagates.
        """
        if self.path is not None:
            self._write(model)
            logger.info("Churn prediction model saved to %s", self.path)
        with self._load_lock:
            self._model = model
            self._load_attempted = True

    def reset(self) -> None:
        """Forget the in-memory model; the next get() reloads from disk."""
        with self._load_lock:
            self._model = None
            self._load_attempted = False
