"""
Training history for the regression model.

Every training run, successful or not, is appended as one JSON record.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd


class TrainingHistory:
    """
    Structured JSON log of training runs.

    Args:
        path: JSON file holding a list of records. None keeps records in
            memory only.
    """

    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path is not None else None
        self._records: list[dict] = []

    def _load(self) -> list[dict]:
        if self.path is None:
            return list(self._records)
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, records: list[dict]) -> None:
        if self.path is None:
            self._records = records
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, default=str)

    def log_success(
        self,
        samples: int,
        churn_ratio: float,
        coefficients: list[float],
        intercept: float,
        metrics: dict,
        model_timestamp: int,
        config_version: Optional[str] = None,
    ) -> dict:
        """Record a training run that published a new model."""
        return self._append({
            "status": "PASS",
            "samples": samples,
            "churn_ratio": churn_ratio,
            "coefficients": coefficients,
            "intercept": intercept,
            "metrics": metrics,
            "model_timestamp": model_timestamp,
            "config_version": config_version,
        })

    def log_failure(self, samples: int, error: str) -> dict:
        """Record a rejected or failed training run."""
        return self._append({
            "status": "FAIL",
            "samples": samples,
            "error": error,
        })

    def _append(self, entry: dict) -> dict:
        entry = {"timestamp": datetime.now(timezone.utc).isoformat(), **entry}
        records = self._load()
        records.append(entry)
        self._save(records)
        return entry

    def get_all(self) -> list[dict]:
        """All records, oldest first."""
        return self._load()

    def latest(self) -> Optional[dict]:
        records = self._load()
        return records[-1] if records else None

    def get_summary_dataframe(self) -> pd.DataFrame:
        """
        Summary of all training runs.

        Returns:
            DataFrame with one row per run, newest first
        """
        records = self._load()
        if not records:
            return pd.DataFrame()

        summary = []
        for record in records:
            entry = {
                "timestamp": record["timestamp"],
                "status": record["status"],
                "samples": record.get("samples"),
            }
            metrics = record.get("metrics", {})
            for key in ["accuracy", "precision", "recall", "f1"]:
                entry[key] = metrics.get(key)
            summary.append(entry)

        df = pd.DataFrame(summary)
        return df.sort_values("timestamp", ascending=False)
