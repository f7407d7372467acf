"""
Tests for the regression scorer and its model store.
"""

import json
import threading

import numpy as np
import pytest
from sklearn.linear_model import LinearRegression

from churn_engine import (
    ChurnFeatures,
    InvalidInputError,
    ModelStore,
    RegressionScorer,
    RuleBasedScorer,
    TrainedModel,
    TrainingHistory,
    TrainingInProgressError,
)
from churn_engine.normalizer import update_stats
from churn_engine.regression import N_FEATURES, feature_vector


@pytest.fixture
def store():
    return ModelStore()


@pytest.fixture
def scorer(store):
    return RegressionScorer(store)


def _broken_model(coefficient_count, n_features=N_FEATURES):
    estimator = LinearRegression()
    estimator.coef_ = np.zeros(coefficient_count)
    estimator.intercept_ = 0.0
    estimator.n_features_in_ = n_features
    stats = update_stats([ChurnFeatures("free", 0, 0, 0), ChurnFeatures("free", 10, 10, 10)])
    return TrainedModel(estimator=estimator, stats=stats)


class TestFeatureVector:

    def test_one_hot_plan_then_normalized_numbers(self):
        stats = update_stats([
            ChurnFeatures("free", 0, 0, 0),
            ChurnFeatures("premium", 30, 100, 300),
        ])
        vector = feature_vector(ChurnFeatures("basic", 15, 25, 150), stats)

        assert len(vector) == N_FEATURES == 6
        assert vector == pytest.approx([0.0, 1.0, 0.0, 0.5, 0.25, 0.5])


class TestFallback:
    """Without a model the regression scorer is the rule-based scorer."""

    def test_no_model_matches_rule_based(self, scorer, high_risk_customer, low_risk_customer):
        rule_based = RuleBasedScorer()

        for customer in (high_risk_customer, low_risk_customer):
            outcome = scorer.predict(customer)
            assert outcome.probability == rule_based.score(customer)
            assert outcome.confidence == pytest.approx(0.3)
            assert outcome.scorer == "rule_based"

    def test_shape_mismatch_falls_back(self, store, scorer, high_risk_customer):
        store.publish(_broken_model(coefficient_count=3))

        outcome = scorer.predict(high_risk_customer)
        assert outcome.scorer == "rule_based"
        assert outcome.probability == pytest.approx(0.95)

    def test_wrong_feature_count_falls_back(self, store, scorer, high_risk_customer):
        store.publish(_broken_model(coefficient_count=4, n_features=4))

        outcome = scorer.predict(high_risk_customer)
        assert outcome.scorer == "rule_based"
        assert outcome.confidence == pytest.approx(0.3)


class TestTraining:

    def test_train_publishes_model(self, store, scorer, training_pairs):
        assert scorer.train(training_pairs) is True
        assert store.is_loaded()

        model = store.get()
        assert len(model.coefficients) == N_FEATURES
        assert model.stats.days_since_activity.max == max(
            f.days_since_activity for f, _ in training_pairs
        )

    def test_train_accepts_dataframe(self, store, scorer, sample_data):
        assert scorer.train(sample_data) is True
        assert store.is_loaded()

    def test_train_accepts_mappings(self, store, scorer):
        dataset = [
            ({"plan": "free", "daysSinceActivity": 40, "eventsLast30": 0, "revenueLast30": 0}, True),
            ({"plan": "premium", "daysSinceActivity": 1, "eventsLast30": 90, "revenueLast30": 250}, False),
            ({"plan": "basic", "daysSinceActivity": 20, "eventsLast30": 5, "revenueLast30": 20}, True),
            ({"plan": "basic", "daysSinceActivity": 3, "eventsLast30": 60, "revenueLast30": 40}, False),
        ]
        assert scorer.train(dataset) is True

    def test_malformed_sample_raises(self, scorer):
        with pytest.raises(InvalidInputError):
            scorer.train([({"plan": "free"}, True)])
        with pytest.raises(InvalidInputError):
            scorer.train([("not a pair",)])

    def test_empty_dataset_returns_false(self, store, scorer, training_pairs):
        scorer.train(training_pairs)
        published = store.get()

        assert scorer.train([]) is False
        assert store.get() is published

    def test_empty_dataset_without_model(self, store, scorer):
        assert scorer.train([]) is False
        assert not store.is_loaded()

    def test_confidence_is_distance_from_boundary(self, scorer, training_pairs, high_risk_customer):
        scorer.train(training_pairs)
        outcome = scorer.predict(high_risk_customer)

        assert outcome.scorer == "regression"
        assert 0.0 <= outcome.probability <= 1.0
        assert outcome.confidence == pytest.approx(abs(outcome.probability - 0.5) * 2)

    def test_churners_score_higher(self, scorer, training_pairs):
        """Churned samples cross 0.5 more often than retained ones."""
        scorer.train(training_pairs)

        churned = [scorer.predict(f).probability for f, label in training_pairs if label]
        retained = [scorer.predict(f).probability for f, label in training_pairs if not label]

        assert np.mean(np.array(churned) > 0.5) > np.mean(np.array(retained) > 0.5)
        assert np.mean(churned) > np.mean(retained)

    def test_retraining_replaces_model(self, store, scorer, training_pairs):
        scorer.train(training_pairs)
        first = store.get()
        scorer.train(training_pairs[:100])

        assert store.get() is not first

    def test_degenerate_population(self, scorer):
        """Identical numeric values (max == min) still train."""
        dataset = [(ChurnFeatures("free", 5, 5, 5), i % 2 == 0) for i in range(10)]
        assert scorer.train(dataset) is True

        outcome = scorer.predict(ChurnFeatures("free", 5, 5, 5))
        assert outcome.probability == pytest.approx(0.5)


class TestTrainingSerialization:

    def test_concurrent_training_rejected(self, store, scorer, training_pairs):
        with store.training():
            assert scorer.train(training_pairs) is False
        assert not store.is_loaded()
        assert scorer.history.latest()["status"] == "FAIL"

    def test_training_lock_is_exclusive(self, store):
        entered = threading.Event()
        release = threading.Event()

        def hold():
            with store.training():
                entered.set()
                release.wait(timeout=5)

        worker = threading.Thread(target=hold)
        worker.start()
        entered.wait(timeout=5)
        try:
            with pytest.raises(TrainingInProgressError):
                with store.training():
                    pass
        finally:
            release.set()
            worker.join()

        with store.training():
            pass

    @pytest.mark.parametrize("persisted", [False, True])
    def test_publish_during_lazy_load_survives(self, persisted, model_path, training_pairs, monkeypatch):
        """A model published while a first get() is reading is not overwritten."""
        if persisted:
            assert RegressionScorer(ModelStore(model_path)).train(training_pairs[:50])
            store = ModelStore(model_path)
        else:
            store = ModelStore()

        reading = threading.Event()
        release = threading.Event()
        original_read = store._read

        def slow_read():
            result = original_read()
            reading.set()
            release.wait(timeout=5)
            return result

        monkeypatch.setattr(store, "_read", slow_read)

        loader = threading.Thread(target=store.get)
        loader.start()
        assert reading.wait(timeout=5)
        try:
            assert RegressionScorer(store).train(training_pairs) is True
            published = store.get()
        finally:
            release.set()
            loader.join()

        assert published is not None
        assert store.get() is published
        assert store.is_loaded()


class TestPersistence:

    def test_artifact_layout(self, model_path, training_pairs):
        scorer = RegressionScorer(ModelStore(model_path))
        scorer.train(training_pairs)

        with open(model_path) as f:
            artifact = json.load(f)

        assert set(artifact) == {"model", "stats", "timestamp"}
        assert len(artifact["model"]["coefficients"]) == N_FEATURES
        assert set(artifact["stats"]) == {
            "days_since_activity",
            "events_last_30",
            "revenue_last_30",
        }
        assert isinstance(artifact["timestamp"], int)

    def test_fresh_store_loads_same_model(self, model_path, training_pairs, high_risk_customer):
        trainer = RegressionScorer(ModelStore(model_path))
        trainer.train(training_pairs)

        reader = RegressionScorer(ModelStore(model_path))
        assert reader.store.is_loaded()
        assert reader.store.get().coefficients == pytest.approx(trainer.store.get().coefficients)
        assert reader.predict(high_risk_customer).probability == pytest.approx(
            trainer.predict(high_risk_customer).probability
        )

    def test_load_is_lazy(self, model_path, training_pairs):
        reader = ModelStore(model_path)
        RegressionScorer(ModelStore(model_path)).train(training_pairs)

        # Created before the artifact existed, first read still finds it
        assert reader.is_loaded()
        assert reader.trained_at is not None

    def test_missing_artifact_means_no_model(self, model_path):
        store = ModelStore(model_path)
        assert not store.is_loaded()
        assert store.trained_at is None

    def test_corrupt_artifact_ignored(self, model_path, high_risk_customer):
        model_path.parent.mkdir(parents=True)
        model_path.write_text("{not json")

        scorer = RegressionScorer(ModelStore(model_path))
        outcome = scorer.predict(high_risk_customer)

        assert not scorer.store.is_loaded()
        assert outcome.scorer == "rule_based"

    def test_write_failure_keeps_previous_model(self, model_path, training_pairs, monkeypatch):
        store = ModelStore(model_path)
        scorer = RegressionScorer(store)
        scorer.train(training_pairs)
        published = store.get()

        def fail(model):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write", fail)

        assert scorer.train(training_pairs) is False
        assert store.get() is published

    def test_reset_reloads_from_disk(self, model_path, training_pairs):
        store = ModelStore(model_path)
        RegressionScorer(store).train(training_pairs)
        timestamp = store.trained_at

        store.reset()
        assert store.trained_at == timestamp

    def test_model_dict_round_trip(self, training_pairs):
        scorer = RegressionScorer(ModelStore())
        scorer.train(training_pairs)
        model = scorer.store.get()

        restored = TrainedModel.from_dict(model.to_dict())
        assert restored.coefficients == pytest.approx(model.coefficients)
        assert restored.intercept == pytest.approx(model.intercept)
        assert restored.stats == model.stats

    def test_malformed_blob_rejected(self):
        with pytest.raises(ValueError):
            TrainedModel.from_dict({
                "model": {"coefficients": [1, 2], "intercept": 0, "n_features": 6},
                "stats": {},
                "timestamp": 0,
            })


class TestHistory:

    def test_success_and_failure_recorded(self, model_path, training_pairs):
        history = TrainingHistory(model_path.parent / "history.json")
        scorer = RegressionScorer(ModelStore(model_path), history=history)

        scorer.train(training_pairs)
        scorer.train([])

        records = history.get_all()
        assert [r["status"] for r in records] == ["PASS", "FAIL"]
        assert records[0]["samples"] == len(training_pairs)
        assert 0 < records[0]["churn_ratio"] < 1
        assert "accuracy" in records[0]["metrics"]

        summary = history.get_summary_dataframe()
        assert len(summary) == 2
        assert {"status", "samples", "accuracy"} <= set(summary.columns)
        assert records[0]["config_version"] == "1.0.0"

    def test_history_write_failure_keeps_training_result(self, model_path, training_pairs, monkeypatch):
        history = TrainingHistory(model_path.parent / "history.json")
        scorer = RegressionScorer(ModelStore(model_path), history=history)

        def fail_save(records):
            raise PermissionError("history is read-only")

        monkeypatch.setattr(history, "_save", fail_save)

        assert scorer.train(training_pairs) is True
        assert scorer.store.is_loaded()
        assert model_path.exists()
        assert scorer.train([]) is False
