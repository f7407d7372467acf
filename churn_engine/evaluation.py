"""
Classification metrics for churn probabilities.

Consolidates the metric calculations used after training and when a
caller evaluates a predictor on held-out labelled data.
"""

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    precision_score,
    recall_score,
    f1_score,
    roc_auc_score,
    confusion_matrix,
)


def classification_metrics(y_true, probabilities, threshold: float = 0.5) -> dict:
    """
    Calculate all metrics at a given decision threshold.

    Args:
        y_true: Observed churn labels (bool or 0/1)
        probabilities: Predicted churn probabilities
        threshold: A probability strictly above this counts as churn

    Returns:
        Dictionary with all metrics
    """
    y_true = np.asarray(y_true, dtype=int)
    y_prob = np.asarray(probabilities, dtype=float)
    y_pred = (y_prob > threshold).astype(int)

    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])

    return {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "precision": float(precision_score(y_true, y_pred, zero_division=0)),
        "recall": float(recall_score(y_true, y_pred, zero_division=0)),
        "f1": float(f1_score(y_true, y_pred, zero_division=0)),
        "auc_roc": float(roc_auc_score(y_true, y_prob))
        if len(np.unique(y_true)) > 1
        else 0.0,
        "true_positives": int(cm[1, 1]),
        "true_negatives": int(cm[0, 0]),
        "false_positives": int(cm[0, 1]),
        "false_negatives": int(cm[1, 0]),
    }
