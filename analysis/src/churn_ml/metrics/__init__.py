"""Metrics module for model evaluation."""

from churn_ml.metrics.classification import (
    DEFAULT_METRICS,
    DEFAULT_THRESHOLD,
    METRICS,
    MetricSpec,
    accuracy_from_counts,
    compute_metrics,
    confusion_counts,
    get_metric,
    greater_is_better,
    register_metric,
    roc_points,
)

__all__ = [
    "METRICS",
    "DEFAULT_METRICS",
    "DEFAULT_THRESHOLD",
    "MetricSpec",
    "get_metric",
    "greater_is_better",
    "register_metric",
    "compute_metrics",
    "confusion_counts",
    "accuracy_from_counts",
    "roc_points",
]
