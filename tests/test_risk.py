"""
Tests for risk categorization.
"""

import numpy as np
import pytest

from churn_engine import (
    CANONICAL_THRESHOLDS,
    STORED_PREDICTION_THRESHOLDS,
    InvalidInputError,
    RiskCategory,
    RiskThresholds,
    categorize,
)


class TestCanonicalThresholds:
    """<0.3 Low, <0.8 Medium, otherwise High."""

    @pytest.mark.parametrize("probability, expected", [
        (0.0, RiskCategory.LOW),
        (0.29, RiskCategory.LOW),
        (0.3, RiskCategory.MEDIUM),
        (0.5, RiskCategory.MEDIUM),
        (0.79, RiskCategory.MEDIUM),
        (0.8, RiskCategory.HIGH),
        (1.0, RiskCategory.HIGH),
    ])
    def test_boundaries(self, probability, expected):
        assert categorize(probability) == expected

    def test_default_is_canonical(self):
        assert categorize(0.75) == categorize(0.75, CANONICAL_THRESHOLDS)

    def test_monotonic(self):
        """A higher probability never gets a less severe label."""
        grid = np.linspace(0, 1, 1001)
        severities = [categorize(float(p)).severity for p in grid]
        assert severities == sorted(severities)

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidInputError):
            categorize(1.5)
        with pytest.raises(InvalidInputError):
            categorize(-0.1)


class TestStoredPredictionThresholds:
    """Named 0.4 / 0.7 variant."""

    @pytest.mark.parametrize("probability, expected", [
        (0.39, RiskCategory.LOW),
        (0.4, RiskCategory.MEDIUM),
        (0.69, RiskCategory.MEDIUM),
        (0.7, RiskCategory.HIGH),
    ])
    def test_boundaries(self, probability, expected):
        assert categorize(probability, STORED_PREDICTION_THRESHOLDS) == expected


class TestRiskThresholds:

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            RiskThresholds(low_medium=0.8, medium_high=0.3)


class TestRiskCategory:

    def test_labels(self):
        assert RiskCategory.LOW.value == "Low Risk"
        assert RiskCategory.MEDIUM.value == "Medium Risk"
        assert RiskCategory.HIGH.value == "High Risk"

    def test_severity_order(self):
        assert RiskCategory.LOW.severity < RiskCategory.MEDIUM.severity < RiskCategory.HIGH.severity

    @pytest.mark.parametrize("text", ["High Risk", "high", "HIGH", RiskCategory.HIGH])
    def test_parse(self, text):
        assert RiskCategory.parse(text) is RiskCategory.HIGH

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            RiskCategory.parse("Critical")
