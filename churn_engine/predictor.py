"""
Main ChurnPredictor class - the single entry point for callers.

Usage:
    from churn_engine import ChurnPredictor, ModelStore

    predictor = ChurnPredictor(store=ModelStore("models/churn-model.json"))

    # One customer
    result = predictor.predict_one({
        "customer_id": "c-1",
        "plan": "free",
        "days_since_activity": 45,
        "events_last_30": 1,
        "revenue_last_30": 0,
    })

    # Many customers, then an explicit calibration step for reports
    results = predictor.predict_batch(records)
    shaped = predictor.calibrate(results)
"""

from dataclasses import dataclass, asdict
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import pandas as pd

from .calibration import TargetDistribution, calibrate, calibrate_frame
from .config import DEFAULT_CONFIG, EngineConfig
from .errors import InvalidInputError
from .evaluation import classification_metrics
from .features import ChurnFeatures, extract_identity, frame_to_features
from .history import TrainingHistory
from .regression import RegressionScorer, coerce_dataset
from .risk import RISK_ORDER, RiskCategory, RiskThresholds, categorize
from .schemas import FEATURES_SCHEMA, PREDICTION_OUTPUT_SCHEMA, validate_frame
from .scoring import RuleBasedScorer, ScoreOutcome
from .store import ModelStore


@dataclass
class PredictionResult:
    """
    Churn prediction for one customer.

    Attributes:
        probability: Churn probability in [0, 1]
        will_churn: probability > churn threshold (0.5)
        risk_category: Risk label; rewritten by calibration
        confidence: Distance from the decision boundary for regression
            predictions, the fixed fallback confidence otherwise
        customer_id: Caller-supplied identity, echoed back unchanged
        scorer: Which scorer produced the probability
    """

    probability: float
    will_churn: bool
    risk_category: RiskCategory
    confidence: Optional[float] = None
    customer_id: Any = None
    scorer: str = RuleBasedScorer.name

    def to_dict(self) -> dict:
        data = asdict(self)
        data["risk_category"] = RiskCategory.parse(self.risk_category).value
        return data


@dataclass
class ScoringResult:
    """
    Container for DataFrame scoring results.

    Attributes:
        df: Original DataFrame with prediction columns added
    """

    df: pd.DataFrame

    def get_high_risk(self, min_category: Union[str, RiskCategory] = RiskCategory.HIGH) -> pd.DataFrame:
        """
        Get customers at or above a risk category.

        Args:
            min_category: Minimum category ("Low Risk", "medium", ...)

        Returns:
            DataFrame filtered to customers at or above the category
        """
        min_idx = RISK_ORDER.index(RiskCategory.parse(min_category))
        valid = [category.value for category in RISK_ORDER[min_idx:]]
        return self.df[self.df["RISK_CATEGORY"].isin(valid)]

    def summary(self) -> pd.DataFrame:
        """
        Summary statistics by plan and risk category.

        Returns:
            DataFrame with counts and mean probability
        """
        return (
            self.df.groupby(["PLAN", "RISK_CATEGORY"])
            .agg(
                count=("PROBABILITY", "count"),
                avg_probability=("PROBABILITY", "mean"),
            )
            .round(3)
        )

    def distribution(self) -> pd.Series:
        """Share of customers in each risk category (Low, Medium, High)."""
        labels = [category.value for category in RISK_ORDER]
        if self.df.empty:
            return pd.Series(0.0, index=labels)
        return (
            self.df["RISK_CATEGORY"]
            .value_counts(normalize=True)
            .reindex(labels, fill_value=0.0)
        )


class ChurnPredictor:
    """
    Orchestrates validation, scoring, categorization and calibration.

    Uses the regression scorer when the model store has a published model,
    otherwise the rule-based scorer. Every result is categorized with the
    configured (canonical) thresholds; calibration is never applied
    automatically.
    """

    def __init__(
        self,
        store: Optional[ModelStore] = None,
        config: Optional[EngineConfig] = None,
        history: Optional[TrainingHistory] = None,
    ):
        """
        Initialize predictor.

        Args:
            store: ModelStore for the regression model. An in-memory store
                (no persistence) if None.
            config: EngineConfig instance. Uses DEFAULT_CONFIG if None.
            history: TrainingHistory for training runs. In-memory if None.
        """
        self.config = config or DEFAULT_CONFIG
        self.store = store or ModelStore()
        self.thresholds = RiskThresholds(*self.config.risk_thresholds)
        self.rule_based = RuleBasedScorer(self.config)
        self.regression = RegressionScorer(
            self.store,
            fallback=self.rule_based,
            config=self.config,
            history=history,
        )

    @classmethod
    def from_config(cls, config: EngineConfig) -> "ChurnPredictor":
        """Predictor persisting its model and history at the configured paths."""
        return cls(
            store=ModelStore(config.model_path),
            config=config,
            history=TrainingHistory(config.history_path),
        )

    @property
    def history(self) -> TrainingHistory:
        return self.regression.history

    # === Single and batch prediction ===

    def _score(self, features: ChurnFeatures) -> ScoreOutcome:
        if self.store.is_loaded():
            return self.regression.predict(features)
        return self.rule_based.predict(features)

    def _build_result(self, outcome: ScoreOutcome, customer_id: Any) -> PredictionResult:
        return PredictionResult(
            probability=outcome.probability,
            will_churn=outcome.probability > self.config.churn_threshold,
            risk_category=self.categorize(outcome.probability),
            confidence=outcome.confidence,
            customer_id=customer_id,
            scorer=outcome.scorer,
        )

    def predict_one(
        self,
        features: Union[ChurnFeatures, Mapping[str, Any]],
        customer_id: Any = None,
    ) -> PredictionResult:
        """
        Predict churn for one customer.

        Args:
            features: ChurnFeatures or a mapping of feature values; a
                mapping may carry its own customer_id / userId / id
            customer_id: Identity to echo back (overrides the mapping's)

        Raises:
            InvalidInputError: If a required field is missing or invalid
        """
        record = ChurnFeatures.coerce(features)
        if customer_id is None:
            customer_id = extract_identity(features)
        return self._build_result(self._score(record), customer_id)

    def predict_batch(
        self, batch: Iterable[Union[ChurnFeatures, Mapping[str, Any]]]
    ) -> list[PredictionResult]:
        """
        Predict churn for many customers, in input order.

        Every record is validated before any is scored.

        Raises:
            InvalidInputError: Naming the first invalid record's position
        """
        items = list(batch)
        records = []
        for i, item in enumerate(items):
            try:
                records.append(ChurnFeatures.coerce(item))
            except InvalidInputError as e:
                raise InvalidInputError(f"Record {i}: {e}", fields=e.fields) from e

        return [
            self._build_result(self._score(record), extract_identity(item))
            for record, item in zip(records, items)
        ]

    def predict_frame(self, df: pd.DataFrame) -> ScoringResult:
        """
        Predict churn for every row of a feature frame.

        Args:
            df: Frame with PLAN, DAYS_SINCE_ACTIVITY, EVENTS_LAST_30 and
                REVENUE_LAST_30 (CUSTOMER_ID optional)

        Returns:
            ScoringResult with PROBABILITY, WILL_CHURN, RISK_CATEGORY,
            CONFIDENCE and SCORER columns added
        """
        result = df.copy()
        if "PLAN" in result.columns:
            result["PLAN"] = result["PLAN"].astype(str).str.lower()
        result = validate_frame(FEATURES_SCHEMA, result)

        if self.store.is_loaded():
            outcomes = [self.regression.predict(r) for r in frame_to_features(result)]
            result["PROBABILITY"] = [o.probability for o in outcomes]
            result["CONFIDENCE"] = [o.confidence for o in outcomes]
            result["SCORER"] = [o.scorer for o in outcomes]
        else:
            result["PROBABILITY"] = self.rule_based.score_frame(result)
            result["CONFIDENCE"] = self.config.fallback_confidence
            result["SCORER"] = self.rule_based.name

        result["PROBABILITY"] = result["PROBABILITY"].astype(float)
        result["CONFIDENCE"] = result["CONFIDENCE"].astype(float)
        result["WILL_CHURN"] = result["PROBABILITY"] > self.config.churn_threshold
        result["RISK_CATEGORY"] = result["PROBABILITY"].apply(
            lambda p: self.categorize(p).value
        ).astype(str)

        return ScoringResult(df=validate_frame(PREDICTION_OUTPUT_SCHEMA, result))

    # === Training, categorization, calibration ===

    def train(self, dataset) -> bool:
        """Train and publish a regression model; see RegressionScorer.train."""
        return self.regression.train(dataset)

    def categorize(
        self, probability: float, thresholds: Optional[RiskThresholds] = None
    ) -> RiskCategory:
        """Risk category for a probability (configured thresholds by default)."""
        return categorize(probability, thresholds or self.thresholds)

    def calibrate(
        self,
        predictions: Sequence,
        target: Union[TargetDistribution, Mapping[str, float], None] = None,
    ) -> list:
        """Relabel a batch to the target (configured default) distribution."""
        if target is None:
            target = self.config.calibration_target
        return calibrate(predictions, target)

    def calibrate_result(
        self,
        result: ScoringResult,
        target: Union[TargetDistribution, Mapping[str, float], None] = None,
    ) -> ScoringResult:
        """Relabel a ScoringResult's categories to the target distribution."""
        if target is None:
            target = self.config.calibration_target
        return ScoringResult(df=calibrate_frame(result.df, target))

    def evaluate(self, dataset) -> dict:
        """
        Score a labelled dataset and compute classification metrics.

        Args:
            dataset: Labelled frame or (features, churned) pairs

        Returns:
            Dictionary with accuracy, precision, recall, f1, auc_roc and
            confusion counts
        """
        records, labels = coerce_dataset(dataset)
        if not records:
            raise InvalidInputError("Cannot evaluate an empty dataset")
        probabilities = [self._score(r).probability for r in records]
        return classification_metrics(
            labels, probabilities, threshold=self.config.churn_threshold
        )
