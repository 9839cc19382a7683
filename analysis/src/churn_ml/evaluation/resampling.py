"""
Cross-validated evaluation of one candidate configuration.

For each fold of a FoldSet:
1. Fit the preprocessing recipe on the fold's fit piece
2. Apply the fitted transform to both pieces
3. Fit the candidate on the transformed fit piece
4. Predict the validation piece and compute every requested metric

Each fold produces one MetricRecord tagged with its fold id. Folds are
independent and may run in parallel (joblib); records are always returned in
fold order. A fold that fails to fit or predict is either recorded with NaN
metrics and its error text (error_score="nan") or aborts the evaluation with
FoldEvaluationError (error_score="raise").
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from churn_ml.data.schema import POSITIVE_LABEL, encode_outcome
from churn_ml.data.splits import Fold, FoldSet
from churn_ml.errors import FoldEvaluationError, SchemaMismatchError
from churn_ml.features.preprocessing import PreprocessingPipeline
from churn_ml.metrics.classification import (
    DEFAULT_METRICS,
    DEFAULT_THRESHOLD,
    compute_metrics,
    get_metric,
)
from churn_ml.models.registry import CandidateConfig, predict_positive_proba

logger = logging.getLogger(__name__)

ErrorScore = Literal["nan", "raise"]


@dataclass(frozen=True)
class MetricRecord:
    """
    Metric values for one (configuration, fold) pair. Never mutated.

    Attributes:
        config_id: Position of the configuration in its grid (0 when untuned)
        model: Candidate label
        fold: Fold id (e.g. "Fold3")
        params: Hyperparameter values that distinguish this configuration
        metrics: Metric name -> value (NaN where undefined or failed)
        error: Error text if the fold failed, else None
    """

    config_id: int
    model: str
    fold: str
    params: Mapping[str, Any]
    metrics: Mapping[str, float]
    error: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {"config_id": self.config_id, "model": self.model, "fold": self.fold}
        row.update(self.params)
        row.update(self.metrics)
        row["error"] = self.error
        return row


@dataclass(frozen=True, eq=False)
class ResamplingResult:
    """Records (and optional out-of-fold predictions) from one evaluate() call."""

    candidate: CandidateConfig
    config_id: int
    metric_names: tuple[str, ...]
    records: tuple[MetricRecord, ...]
    predictions: pd.DataFrame | None = field(default=None)

    @property
    def n_failed(self) -> int:
        return sum(r.failed for r in self.records)

    def metrics_table(self) -> pd.DataFrame:
        """One row per fold with every metric."""
        return records_to_frame(self.records)

    def collect_metrics(self) -> pd.DataFrame:
        """Per-metric average across folds (see summarize_records)."""
        return summarize_records(self.records, self.metric_names)


def records_to_frame(records: Sequence[MetricRecord]) -> pd.DataFrame:
    """Wide table of MetricRecords in the given order."""
    return pd.DataFrame([r.as_row() for r in records])


def summarize_records(
    records: Sequence[MetricRecord],
    metric_names: Sequence[str],
) -> pd.DataFrame:
    """
    Average each metric across folds, per configuration.

    NaN fold values are excluded from the mean but counted in ``n_nan`` so a
    degenerate or failed fold stays visible in the summary.

    Returns:
        Long DataFrame with columns: config_id, model, <params...>, metric,
        mean, std_err, n, n_nan. Ordered by config_id then metric order.
    """
    rows = []
    by_config: dict[int, list[MetricRecord]] = {}
    for rec in records:
        by_config.setdefault(rec.config_id, []).append(rec)

    for config_id in sorted(by_config):
        recs = by_config[config_id]
        for metric in metric_names:
            values = np.array([r.metrics.get(metric, np.nan) for r in recs], dtype=float)
            valid = values[~np.isnan(values)]
            n = int(valid.size)
            mean = float(valid.mean()) if n else np.nan
            std_err = float(valid.std(ddof=1) / np.sqrt(n)) if n > 1 else np.nan
            row: dict[str, Any] = {"config_id": config_id, "model": recs[0].model}
            row.update(recs[0].params)
            row.update(
                {
                    "metric": metric,
                    "mean": mean,
                    "std_err": std_err,
                    "n": n,
                    "n_nan": int(values.size - n),
                }
            )
            rows.append(row)
    return pd.DataFrame(rows)


def _evaluate_fold(
    candidate: CandidateConfig,
    fold: Fold,
    fold_set: FoldSet,
    preprocessing: PreprocessingPipeline,
    metric_names: Sequence[str],
    config_id: int,
    params: Mapping[str, Any],
    positive_label: str,
    threshold: float,
    keep_predictions: bool,
    error_score: str,
) -> tuple[MetricRecord, pd.DataFrame | None]:
    target_col = preprocessing.target_col
    fit_piece, valid_piece = fold_set.pieces(fold)
    y_valid = encode_outcome(valid_piece[target_col], positive_label)

    try:
        fitted = preprocessing.fit(fit_piece)
        X_fit = fitted.apply(fit_piece, stage="fold")
        X_valid = fitted.apply(valid_piece, stage="fold")
        y_fit = encode_outcome(fit_piece[target_col], positive_label)
        estimator = candidate.fit(X_fit, y_fit)
        prob = predict_positive_proba(estimator, X_valid)
    except SchemaMismatchError as e:
        raise e.with_context(
            "fold", config=f"{candidate.label}#{config_id}", fold=fold.fold_id
        ) from e
    except Exception as e:
        if error_score == "raise":
            raise FoldEvaluationError(
                f"{type(e).__name__}: {e}",
                stage="fold",
                config=f"{candidate.label}#{config_id}",
                fold=fold.fold_id,
            ) from e
        logger.warning(
            f"{candidate.label} config {config_id} {fold.fold_id} failed "
            f"({type(e).__name__}: {e}); metrics recorded as NaN"
        )
        record = MetricRecord(
            config_id=config_id,
            model=candidate.label,
            fold=fold.fold_id,
            params=params,
            metrics={m: np.nan for m in metric_names},
            error=f"{type(e).__name__}: {e}",
        )
        return record, None

    metrics = compute_metrics(y_valid, prob, metric_names, threshold=threshold)
    record = MetricRecord(
        config_id=config_id,
        model=candidate.label,
        fold=fold.fold_id,
        params=params,
        metrics=metrics,
    )

    preds = None
    if keep_predictions:
        preds = pd.DataFrame(
            {
                "row": fold.valid_idx,
                "index": valid_piece.index.to_numpy(),
                "fold": fold.fold_id,
                "config_id": config_id,
                "y_true": y_valid,
                "prob": prob,
                "y_pred": (prob >= threshold).astype(int),
            }
        )
    return record, preds


def evaluate(
    candidate: CandidateConfig,
    fold_set: FoldSet,
    preprocessing: PreprocessingPipeline,
    metric_names: Sequence[str] = DEFAULT_METRICS,
    *,
    keep_predictions: bool = False,
    n_jobs: int = 1,
    error_score: ErrorScore = "nan",
    config_id: int = 0,
    params: Mapping[str, Any] | None = None,
    positive_label: str = POSITIVE_LABEL,
    threshold: float = DEFAULT_THRESHOLD,
) -> ResamplingResult:
    """
    Evaluate one candidate configuration across every fold of a FoldSet.

    Args:
        candidate: Fully specified candidate (no TUNE markers)
        fold_set: Folds over the TRAIN subset
        preprocessing: Recipe refitted on each fold's fit piece
        metric_names: Registered metrics to compute
        keep_predictions: Also return out-of-fold predictions
        n_jobs: Parallel workers across folds (1 = sequential)
        error_score: "nan" to record failed folds as NaN, "raise" to abort
        config_id: Grid position used to tag records
        params: Hyperparameter values recorded with each record
        positive_label: Outcome level encoded as 1
        threshold: Probability threshold for hard predictions

    Returns:
        ResamplingResult with k MetricRecords in fold order

    Raises:
        FoldEvaluationError: If a fold fails and error_score="raise"
        ValueError: If error_score is invalid or the candidate has TUNE markers
    """
    if error_score not in ("nan", "raise"):
        raise ValueError(f"error_score must be 'nan' or 'raise', got {error_score}")
    for name in metric_names:
        get_metric(name)
    # Fail fast on untuned candidates rather than once per fold
    candidate.resolved_params()

    params = dict(params or {})
    logger.debug(f"Evaluating {candidate.label} config {config_id} {params} on {fold_set.k} folds")

    outputs = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_fold)(
            candidate,
            fold,
            fold_set,
            preprocessing,
            list(metric_names),
            config_id,
            params,
            positive_label,
            threshold,
            keep_predictions,
            error_score,
        )
        for fold in fold_set
    )

    records = tuple(rec for rec, _ in outputs)
    predictions = None
    if keep_predictions:
        frames = [p for _, p in outputs if p is not None]
        predictions = (
            pd.concat(frames, ignore_index=True).sort_values("row").reset_index(drop=True)
            if frames
            else pd.DataFrame(
                columns=["row", "index", "fold", "config_id", "y_true", "prob", "y_pred"]
            )
        )

    result = ResamplingResult(
        candidate=candidate,
        config_id=config_id,
        metric_names=tuple(metric_names),
        records=records,
        predictions=predictions,
    )
    if result.n_failed:
        logger.warning(f"{candidate.label} config {config_id}: {result.n_failed} fold(s) failed")
    return result
