"""
Classification metrics for binary plan-cancellation models.

This module provides:
- A metric registry carrying each metric's polarity (higher or lower is better)
- compute_metrics(): every requested metric for one set of predictions
- Confusion-matrix counts and ROC curve points

Positive class is encoded as 1 (customer cancelled). Hard class predictions
use a 0.5 probability threshold unless told otherwise.

Metrics that need both outcome classes (AUC, class-conditional rates) return
NaN with a DegenerateFoldWarning instead of raising when y_true holds a single
class, so one degenerate validation piece never aborts a resampling run.
"""

import warnings
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    brier_score_loss,
    cohen_kappa_score,
    confusion_matrix,
    f1_score,
    log_loss,
    precision_score,
    recall_score,
    roc_auc_score,
    roc_curve,
)

from churn_ml.errors import DegenerateFoldWarning

DEFAULT_THRESHOLD = 0.5


@dataclass(frozen=True)
class MetricSpec:
    """
    Registry entry for one metric.

    Attributes:
        name: Metric identifier used in configs and tables
        func: Callable(y_true, prob, y_pred) -> float
        greater_is_better: Polarity used by the tuner
        needs_both_classes: NaN when y_true holds a single class
    """

    name: str
    func: Callable[[np.ndarray, np.ndarray, np.ndarray], float]
    greater_is_better: bool = True
    needs_both_classes: bool = False


def _roc_auc(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(roc_auc_score(y, p))


def _accuracy(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(accuracy_score(y, yhat))


def _kappa(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    # Undefined when both raters use one identical label
    if len(np.unique(np.concatenate([y, yhat]))) < 2:
        return np.nan
    return float(cohen_kappa_score(y, yhat))


def _sensitivity(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(recall_score(y, yhat, pos_label=1, zero_division=np.nan))


def _specificity(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(recall_score(y, yhat, pos_label=0, zero_division=np.nan))


def _precision(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(precision_score(y, yhat, pos_label=1, zero_division=np.nan))


def _f_meas(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    if yhat.sum() == 0:
        return np.nan
    return float(f1_score(y, yhat, pos_label=1, zero_division=np.nan))


def _mn_log_loss(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(log_loss(y, np.clip(p, 1e-15, 1 - 1e-15), labels=[0, 1]))


def _brier(y: np.ndarray, p: np.ndarray, yhat: np.ndarray) -> float:
    return float(brier_score_loss(y, p))


METRICS: dict[str, MetricSpec] = {
    spec.name: spec
    for spec in (
        MetricSpec("roc_auc", _roc_auc, needs_both_classes=True),
        MetricSpec("accuracy", _accuracy),
        MetricSpec("kap", _kappa, needs_both_classes=True),
        MetricSpec("sensitivity", _sensitivity, needs_both_classes=True),
        MetricSpec("recall", _sensitivity, needs_both_classes=True),
        MetricSpec("specificity", _specificity, needs_both_classes=True),
        MetricSpec("precision", _precision, needs_both_classes=True),
        MetricSpec("f_meas", _f_meas, needs_both_classes=True),
        MetricSpec("mn_log_loss", _mn_log_loss, greater_is_better=False),
        MetricSpec("brier_score", _brier, greater_is_better=False),
    )
}

DEFAULT_METRICS = [
    "roc_auc",
    "accuracy",
    "kap",
    "sensitivity",
    "specificity",
    "precision",
    "f_meas",
]


def get_metric(name: str) -> MetricSpec:
    """
    Look up a metric by name.

    Raises:
        ValueError: If the metric is not registered
    """
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown metric '{name}'. Available: {sorted(METRICS)}"
        ) from None


def greater_is_better(name: str) -> bool:
    """Polarity of a registered metric."""
    return get_metric(name).greater_is_better


def register_metric(spec: MetricSpec, overwrite: bool = False) -> None:
    """Add a metric to the registry (e.g. a lower-is-better loss)."""
    if spec.name in METRICS and not overwrite:
        raise ValueError(f"Metric '{spec.name}' already registered")
    METRICS[spec.name] = spec


def _has_both_classes(y_true: np.ndarray) -> bool:
    return len(np.unique(y_true)) == 2


def compute_metrics(
    y_true: np.ndarray,
    prob: np.ndarray,
    metric_names: Sequence[str] = DEFAULT_METRICS,
    threshold: float = DEFAULT_THRESHOLD,
) -> dict[str, float]:
    """
    Compute the requested metrics for one set of predictions.

    Args:
        y_true: True labels (0/1)
        prob: Predicted probability of the positive class
        metric_names: Registered metric names
        threshold: Probability at or above which the positive class is predicted

    Returns:
        Dict metric name -> value (NaN where undefined)

    Warns:
        DegenerateFoldWarning if y_true contains a single class

    Examples:
        >>> compute_metrics(np.array([0, 1, 1]), np.array([0.2, 0.7, 0.9]), ["accuracy"])
        {'accuracy': 1.0}
    """
    y = np.asarray(y_true).astype(int)
    p = np.asarray(prob).astype(float)
    yhat = (p >= threshold).astype(int)

    specs = [get_metric(name) for name in metric_names]
    both = _has_both_classes(y)
    if not both and any(s.needs_both_classes for s in specs):
        warnings.warn(
            f"Only class {np.unique(y).tolist()} present in y_true; "
            "class-conditional metrics are NaN.",
            DegenerateFoldWarning,
            stacklevel=2,
        )

    results: dict[str, float] = {}
    for spec in specs:
        if spec.needs_both_classes and not both:
            results[spec.name] = np.nan
            continue
        results[spec.name] = spec.func(y, p, yhat)
    return results


def confusion_counts(y_true: np.ndarray, y_pred: np.ndarray) -> dict[str, int]:
    """
    Confusion-matrix counts for hard predictions.

    Examples:
        >>> confusion_counts(np.array([1, 0, 1, 0]), np.array([1, 1, 0, 0]))
        {'TP': 1, 'TN': 1, 'FP': 1, 'FN': 1}
    """
    tn, fp, fn, tp = confusion_matrix(
        np.asarray(y_true).astype(int), np.asarray(y_pred).astype(int), labels=[0, 1]
    ).ravel()
    return {"TP": int(tp), "TN": int(tn), "FP": int(fp), "FN": int(fn)}


def accuracy_from_counts(counts: dict[str, int]) -> float:
    """Accuracy derived from confusion counts."""
    total = counts["TP"] + counts["TN"] + counts["FP"] + counts["FN"]
    if total == 0:
        return np.nan
    return (counts["TP"] + counts["TN"]) / total


def roc_points(y_true: np.ndarray, prob: np.ndarray) -> pd.DataFrame:
    """
    ROC curve as (fpr, tpr, threshold) rows swept over all thresholds.

    Returns an empty frame when y_true holds a single class.
    """
    y = np.asarray(y_true).astype(int)
    if not _has_both_classes(y):
        return pd.DataFrame(columns=["fpr", "tpr", "threshold"])
    fpr, tpr, thr = roc_curve(y, np.asarray(prob).astype(float))
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thr})
