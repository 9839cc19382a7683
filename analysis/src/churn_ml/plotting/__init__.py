"""Plotting utilities for churn-ML.

Visualization of report outputs:
- ROC curves for all finalized models
- Confusion-matrix heatmaps
- Hyperparameter tuning curves
"""

from churn_ml.plotting._common import apply_plot_metadata
from churn_ml.plotting.confusion import plot_confusion_matrix
from churn_ml.plotting.roc import plot_roc_curves
from churn_ml.plotting.tuning import plot_tuning_curve

__all__ = [
    "apply_plot_metadata",
    "plot_roc_curves",
    "plot_confusion_matrix",
    "plot_tuning_curve",
]
