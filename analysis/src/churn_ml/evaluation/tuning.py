"""
Grid-search hyperparameter tuning over a fixed FoldSet.

Every configuration in the grid is evaluated on the same folds, metrics are
averaged per configuration, and the best configuration is selected on one
metric with the polarity recorded in the metric registry. Exact ties go to
the configuration enumerated first; configurations whose selection metric is
NaN on average cannot be selected.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.model_selection import ParameterGrid

from churn_ml.data.schema import POSITIVE_LABEL
from churn_ml.data.splits import FoldSet
from churn_ml.errors import EmptyGridError, TuningError
from churn_ml.evaluation.resampling import (
    ErrorScore,
    MetricRecord,
    evaluate,
    records_to_frame,
    summarize_records,
)
from churn_ml.features.preprocessing import PreprocessingPipeline
from churn_ml.metrics.classification import (
    DEFAULT_METRICS,
    DEFAULT_THRESHOLD,
    greater_is_better,
)
from churn_ml.models.registry import CandidateConfig

logger = logging.getLogger(__name__)


def expand_grid(grid: Mapping[str, Any]) -> list[dict[str, Any]]:
    """
    Enumerate every configuration of a parameter grid in a fixed order.

    Scalar values are treated as single-element lists.

    Raises:
        EmptyGridError: If the grid yields no configurations

    Example:
        >>> expand_grid({"n_neighbors": [1, 3, 5]})
        [{'n_neighbors': 1}, {'n_neighbors': 3}, {'n_neighbors': 5}]
    """
    if not grid:
        raise EmptyGridError("Parameter grid is empty", stage="tune")
    normalized = {
        key: list(values) if isinstance(values, (list, tuple, np.ndarray)) else [values]
        for key, values in grid.items()
    }
    configs = list(ParameterGrid(normalized))
    if not configs:
        empty = sorted(k for k, v in normalized.items() if not v)
        raise EmptyGridError(f"Parameter grid has no values for {empty}", stage="tune")
    return configs


def finalize_candidate(candidate: CandidateConfig, params: Mapping[str, Any]) -> CandidateConfig:
    """Substitute tuned values into a candidate's TUNE placeholders."""
    return candidate.with_params(**dict(params))


def select_best(summary: pd.DataFrame, metric: str) -> int:
    """
    Pick the best configuration from a tuning summary.

    Args:
        summary: Output of summarize_records (long format)
        metric: Selection metric

    Returns:
        config_id of the winning configuration

    Raises:
        TuningError: If the metric is absent or NaN for every configuration
    """
    rows = summary[summary["metric"] == metric].sort_values("config_id", kind="mergesort")
    if rows.empty:
        raise TuningError(f"Selection metric '{metric}' not in tuning summary", stage="tune")

    higher = greater_is_better(metric)
    best_id = None
    best_value = np.nan
    for config_id, value in zip(rows["config_id"], rows["mean"]):
        if np.isnan(value):
            continue
        if best_id is None or (value > best_value if higher else value < best_value):
            best_id, best_value = int(config_id), float(value)

    if best_id is None:
        raise TuningError(
            f"Every configuration has NaN mean {metric}; nothing to select", stage="tune"
        )
    return best_id


@dataclass(frozen=True, eq=False)
class TuningResult:
    """
    Outcome of a grid search.

    Attributes:
        candidate: The candidate with TUNE placeholders
        configs: Enumerated grid configurations (index = config_id)
        metric_names: Metrics computed for every fold
        selection_metric: Metric used to choose the winner
        records: n_configs x k MetricRecords, in grid then fold order
        summary: Per configuration and metric mean/std_err/n/n_nan
        best_config_id: Index of the selected configuration
        predictions: Out-of-fold predictions of the selected configuration,
            when requested
    """

    candidate: CandidateConfig
    configs: tuple[dict[str, Any], ...]
    metric_names: tuple[str, ...]
    selection_metric: str
    records: tuple[MetricRecord, ...]
    summary: pd.DataFrame
    best_config_id: int
    predictions: pd.DataFrame | None = None

    @property
    def best_params(self) -> dict[str, Any]:
        return dict(self.configs[self.best_config_id])

    @property
    def best_config(self) -> CandidateConfig:
        """Candidate with the winning values substituted."""
        return finalize_candidate(self.candidate, self.best_params)

    def results_table(self) -> pd.DataFrame:
        """One row per (configuration, fold)."""
        return records_to_frame(self.records)

    def show_best(self, n: int = 5, metric: str | None = None) -> pd.DataFrame:
        """Top-n configurations on a metric (default: the selection metric)."""
        metric = metric or self.selection_metric
        rows = self.summary[self.summary["metric"] == metric]
        ranked = rows.sort_values(
            "mean",
            ascending=not greater_is_better(metric),
            kind="mergesort",
            na_position="last",
        )
        return ranked.head(n).reset_index(drop=True)


def tune(
    candidate: CandidateConfig,
    grid: Mapping[str, Any],
    fold_set: FoldSet,
    preprocessing: PreprocessingPipeline,
    selection_metric: str = "roc_auc",
    metric_names: Sequence[str] | None = None,
    *,
    keep_predictions: bool = False,
    n_jobs: int = 1,
    error_score: ErrorScore = "nan",
    positive_label: str = POSITIVE_LABEL,
    threshold: float = DEFAULT_THRESHOLD,
) -> TuningResult:
    """
    Evaluate every grid configuration on the same folds and select the best.

    Args:
        candidate: Candidate whose TUNE placeholders the grid fills in
        grid: Hyperparameter name -> candidate values
        fold_set: Folds over the TRAIN subset
        preprocessing: Recipe refitted inside every fold
        selection_metric: Metric that decides the winner
        metric_names: Metrics to compute (selection metric is always added)
        keep_predictions: Keep out-of-fold predictions of the selected configuration
        n_jobs: Parallel workers across configurations
        error_score: Per-fold failure handling ("nan" or "raise")
        positive_label: Outcome level encoded as 1
        threshold: Probability threshold for hard predictions

    Returns:
        TuningResult

    Raises:
        EmptyGridError: If the grid yields no configurations
        TuningError: If no configuration has a usable selection metric
        ValueError: If a TUNE placeholder has no grid values
    """
    configs = expand_grid(grid)

    untuned = sorted(set(candidate.tuned_params()) - set(grid))
    if untuned:
        raise ValueError(f"No grid values for tuned hyperparameters of {candidate.label}: {untuned}")

    metric_names = list(metric_names or DEFAULT_METRICS)
    if selection_metric not in metric_names:
        metric_names.append(selection_metric)

    logger.info(
        f"Tuning {candidate.label}: {len(configs)} configurations x {fold_set.k} folds "
        f"(select on {selection_metric})"
    )

    results = Parallel(n_jobs=n_jobs)(
        delayed(evaluate)(
            finalize_candidate(candidate, params),
            fold_set,
            preprocessing,
            metric_names,
            keep_predictions=keep_predictions,
            n_jobs=1,
            error_score=error_score,
            config_id=config_id,
            params=params,
            positive_label=positive_label,
            threshold=threshold,
        )
        for config_id, params in enumerate(configs)
    )

    records = tuple(rec for result in results for rec in result.records)
    summary = summarize_records(records, metric_names)

    n_nan = summary.loc[
        (summary["metric"] == selection_metric) & (summary["n_nan"] > 0), "config_id"
    ].tolist()
    if n_nan:
        logger.warning(f"{candidate.label}: NaN {selection_metric} folds in configs {n_nan}")

    best_id = select_best(summary, selection_metric)
    best_mean = float(
        summary.loc[
            (summary["config_id"] == best_id) & (summary["metric"] == selection_metric), "mean"
        ].iloc[0]
    )
    logger.info(f"{candidate.label}: best {configs[best_id]} ({selection_metric}={best_mean:.4f})")

    return TuningResult(
        candidate=candidate,
        configs=tuple(configs),
        metric_names=tuple(metric_names),
        selection_metric=selection_metric,
        records=records,
        summary=summary,
        best_config_id=best_id,
        predictions=results[best_id].predictions,
    )
