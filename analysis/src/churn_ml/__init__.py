"""
churn-ML: Classification report for customer plan cancellation

A reproducible pipeline that splits a customer dataset, cross-validates and
tunes several classifiers on the training subset, and scores each of them
once on a held-out test subset.
"""

# Enable pandas Copy-on-Write for pandas 3.0 compatibility
import pandas as pd

pd.options.mode.copy_on_write = True

__version__ = "1.0.0"
__license__ = "MIT"

from churn_ml import (  # noqa: E402
    cli,
    config,
    data,
    errors,
    evaluation,
    features,
    metrics,
    models,
    plotting,
    utils,
)

__all__ = [
    "__version__",
    "cli",
    "config",
    "data",
    "errors",
    "evaluation",
    "features",
    "metrics",
    "models",
    "plotting",
    "utils",
]
