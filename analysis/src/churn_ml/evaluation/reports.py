"""
Report aggregation and structured results output.

Provides:
- ReportAggregator: collects FinalResults per model and derives ROC curves,
  confusion matrices, and a model x metric table
- OutputDirectories: directory layout for one report run
- ResultsWriter: saves metrics, predictions, tuning tables, and model bundles
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from churn_ml.evaluation.final import FinalResult
from churn_ml.metrics.classification import accuracy_from_counts, confusion_counts, roc_points
from churn_ml.utils.serialization import library_versions, load_joblib, save_joblib, save_json

logger = logging.getLogger(__name__)


class ReportAggregator:
    """
    Collects the final result of every model for side-by-side reporting.

    Models are reported in the order they were added.

    Usage:
        agg = ReportAggregator()
        agg.add("Logistic Regression", final_lr)
        agg.add("KNN", final_knn)
        agg.metrics_table()
    """

    def __init__(self):
        self._results: dict[str, FinalResult] = {}

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, model_name: str) -> bool:
        return model_name in self._results

    @property
    def models(self) -> list[str]:
        return list(self._results)

    def get(self, model_name: str) -> FinalResult:
        return self._results[model_name]

    def add(self, model_name: str, final_result: FinalResult) -> None:
        """
        Register a model's final result.

        Raises:
            ValueError: If a result for this model name was already added
        """
        if model_name in self._results:
            raise ValueError(f"Model '{model_name}' already added to report")
        self._results[model_name] = final_result

    def roc_curves(self) -> pd.DataFrame:
        """ROC points for every model (columns: model, fpr, tpr, threshold)."""
        frames = []
        for name, result in self._results.items():
            pts = roc_points(result.predictions["y_true"], result.predictions["prob"])
            pts.insert(0, "model", name)
            frames.append(pts)
        if not frames:
            return pd.DataFrame(columns=["model", "fpr", "tpr", "threshold"])
        return pd.concat(frames, ignore_index=True)

    def confusion_matrices(self) -> pd.DataFrame:
        """Confusion counts per model (columns: model, TP, TN, FP, FN, accuracy)."""
        rows = []
        for name, result in self._results.items():
            counts = confusion_counts(result.predictions["y_true"], result.predictions["y_pred"])
            rows.append({"model": name, **counts, "accuracy": accuracy_from_counts(counts)})
        return pd.DataFrame(rows, columns=["model", "TP", "TN", "FP", "FN", "accuracy"])

    def metrics_table(self) -> pd.DataFrame:
        """One row per model, one column per metric."""
        rows = [{"model": name, **result.metrics} for name, result in self._results.items()]
        return pd.DataFrame(rows)


@dataclass
class OutputDirectories:
    """
    Structured output directory paths.

    Attributes:
        root: Base output directory
        core: Test metrics, confusion matrices, ROC points, run settings
        cv: Resampling metrics and tuning summaries
        preds: TEST predictions per model
        plots: ROC, confusion, and tuning plots
        models: Fitted model bundles
    """

    root: str
    core: str
    cv: str
    preds: str
    plots: str
    models: str

    @classmethod
    def create(
        cls,
        root: str,
        exist_ok: bool = True,
        split_seed: int | None = None,
    ) -> "OutputDirectories":
        """
        Create output directory structure.

        Args:
            root: Base output directory path
            exist_ok: If True, do not raise if directories exist
            split_seed: If provided, nest under root/split_seed{N}/

        Returns:
            OutputDirectories instance with all paths created
        """
        root_path = Path(root)
        if split_seed is not None:
            root_path = root_path / f"split_seed{split_seed}"

        paths = {"root": str(root_path)}
        for key in ("core", "cv", "preds", "plots", "models"):
            abs_path = root_path / key
            abs_path.mkdir(parents=True, exist_ok=exist_ok)
            paths[key] = str(abs_path)

        logger.debug(f"Created output structure at: {root_path}")
        return cls(**paths)

    def get_path(self, category: str, filename: str) -> str:
        """
        Construct full path for a file in a specific category.

        Raises:
            ValueError: If category is invalid
        """
        if category not in ("root", "core", "cv", "preds", "plots", "models"):
            raise ValueError(f"Unknown output category: {category}")
        return os.path.join(getattr(self, category), filename)


def _safe_name(model: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in model)


class ResultsWriter:
    """
    High-level API for writing report results.

    Usage:
        writer = ResultsWriter(OutputDirectories.create("results"))
        writer.save_metrics_table(aggregator.metrics_table())
        writer.save_model_artifact(final_result, "KNN")
    """

    def __init__(self, output_dirs: OutputDirectories):
        self.dirs = output_dirs

    def _write_csv(self, df: pd.DataFrame, category: str, filename: str, label: str) -> str:
        path = self.dirs.get_path(category, filename)
        df.to_csv(path, index=False)
        logger.info(f"Saved {label}: {path}")
        return path

    # ========== Settings ==========

    def save_run_settings(self, settings: dict[str, Any]) -> str:
        """Save run configuration to core/run_settings.json."""
        path = self.dirs.get_path("core", "run_settings.json")
        save_json(settings, path)
        logger.info(f"Saved run settings: {path}")
        return path

    # ========== Data summaries ==========

    def save_class_balance(self, balance_df: pd.DataFrame) -> str:
        return self._write_csv(balance_df, "core", "class_balance.csv", "class balance")

    def save_split_summary(self, summary_df: pd.DataFrame) -> str:
        return self._write_csv(summary_df, "core", "split_summary.csv", "split summary")

    # ========== Test-subset results ==========

    def save_metrics_table(self, metrics_df: pd.DataFrame) -> str:
        return self._write_csv(metrics_df, "core", "test_metrics.csv", "test metrics")

    def save_confusion_matrices(self, confusion_df: pd.DataFrame) -> str:
        return self._write_csv(confusion_df, "core", "confusion_matrices.csv", "confusion matrices")

    def save_roc_curves(self, roc_df: pd.DataFrame) -> str:
        return self._write_csv(roc_df, "core", "roc_curves.csv", "ROC curves")

    def save_test_predictions(self, predictions_df: pd.DataFrame, model: str) -> str:
        filename = f"test_preds__{_safe_name(model)}.csv"
        return self._write_csv(predictions_df, "preds", filename, "test predictions")

    # ========== Resampling / tuning ==========

    def save_resampling_metrics(self, fold_df: pd.DataFrame, model: str) -> str:
        """Per-fold metrics to cv/{model}__fold_metrics.csv."""
        filename = f"{_safe_name(model)}__fold_metrics.csv"
        return self._write_csv(fold_df, "cv", filename, "fold metrics")

    def save_resampling_summary(self, summary_df: pd.DataFrame, model: str) -> str:
        """Per-configuration metric means to cv/{model}__cv_summary.csv."""
        filename = f"{_safe_name(model)}__cv_summary.csv"
        return self._write_csv(summary_df, "cv", filename, "CV summary")

    def save_fold_predictions(self, predictions_df: pd.DataFrame, model: str) -> str:
        """Out-of-fold predictions over TRAIN to preds/oof_preds__{model}.csv."""
        filename = f"oof_preds__{_safe_name(model)}.csv"
        return self._write_csv(predictions_df, "preds", filename, "out-of-fold predictions")

    def save_best_params(self, best_params: list[dict[str, Any]]) -> str:
        """Selected hyperparameters per tuned model to cv/best_params.csv."""
        return self._write_csv(pd.DataFrame(best_params), "cv", "best_params.csv", "best params")

    # ========== Model artifacts ==========

    def save_model_artifact(
        self,
        final_result: FinalResult,
        model_name: str,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """
        Save fitted transform and estimator to models/{model}__final_model.joblib.

        Raises:
            OSError: If serialization fails
        """
        bundle = {
            "model_name": model_name,
            "family": final_result.candidate.family,
            "params": final_result.params,
            "estimator": final_result.estimator,
            "fitted_transform": final_result.fitted_transform,
            "threshold": final_result.threshold,
            "metrics": final_result.metrics,
            "metadata": metadata or {},
            "versions": library_versions(),
        }
        path = self.dirs.get_path("models", f"{_safe_name(model_name)}__final_model.joblib")
        try:
            save_joblib(bundle, path)
        except Exception as e:
            logger.error(f"Failed to save model artifact: {e}")
            raise OSError(f"Model serialization failed: {e}") from e
        logger.info(f"Saved model artifact: {path}")
        return path

    def load_model_artifact(self, model_name: str) -> dict[str, Any]:
        """
        Load a bundle written by save_model_artifact.

        Raises:
            FileNotFoundError: If artifact does not exist
        """
        path = self.dirs.get_path("models", f"{_safe_name(model_name)}__final_model.joblib")
        if not os.path.exists(path):
            raise FileNotFoundError(f"Model artifact not found: {path}")
        return load_joblib(path)

    def summarize_outputs(self) -> list[str]:
        """Relative paths (from root) of key files that exist."""
        key_files = [
            ("core", "run_settings.json"),
            ("core", "class_balance.csv"),
            ("core", "test_metrics.csv"),
            ("core", "confusion_matrices.csv"),
            ("core", "roc_curves.csv"),
            ("cv", "best_params.csv"),
        ]
        existing = []
        for category, filename in key_files:
            path = self.dirs.get_path(category, filename)
            if os.path.exists(path):
                existing.append(os.path.relpath(path, self.dirs.root))
        return existing
