"""
Default configuration values for the churn-ML report.

Single source of truth for parameter defaults; the pydantic schema and the
loader both start from these.
"""

from typing import Any

from churn_ml.data.schema import ID_COL, NEGATIVE_LABEL, POSITIVE_LABEL, TARGET_COL
from churn_ml.metrics.classification import DEFAULT_METRICS

DEFAULT_DATA_CONFIG: dict[str, Any] = {
    "infile": None,
    "target_col": TARGET_COL,
    "positive_label": POSITIVE_LABEL,
    "negative_label": NEGATIVE_LABEL,
    "id_col": ID_COL,
    "numeric_cols": None,
    "categorical_cols": None,
}

DEFAULT_SPLITS_CONFIG: dict[str, Any] = {
    "train_fraction": 0.75,
    "seed": 123,
    "outdir": "splits",
    "overwrite": False,
    "use_saved": False,
}

DEFAULT_CV_CONFIG: dict[str, Any] = {
    "folds": 5,
    "seed": None,
    "n_jobs": 1,
    "error_score": "nan",
}

DEFAULT_PREPROCESSING_CONFIG: dict[str, Any] = {
    "power_transform": True,
    "standardize": True,
    "unknown_policy": "bucket",
}

DEFAULT_TUNING_CONFIG: dict[str, Any] = {
    "selection_metric": "roc_auc",
    "n_jobs": 1,
    "show_best": 5,
}

DEFAULT_OUTPUT_CONFIG: dict[str, Any] = {
    "outdir": "results",
    "save_plots": True,
    "save_models": True,
    "save_predictions": True,
    "save_fold_predictions": False,
}

DEFAULT_STRICTNESS_CONFIG: dict[str, Any] = {
    "level": "warn",
}

# Candidates of the reference report; random forest is defined but not run
DEFAULT_MODELS: list[dict[str, Any]] = [
    {
        "name": "Logistic Regression",
        "family": "logistic_regression",
        "params": {},
        "grid": {},
        "enabled": True,
    },
    {
        "name": "Discriminant Analysis",
        "family": "discriminant",
        "params": {"frac_common_cov": 1.0},
        "grid": {},
        "enabled": True,
    },
    {
        "name": "KNN",
        "family": "knn",
        "params": {},
        "grid": {"n_neighbors": [1, 3, 5, 7, 9, 11, 13, 15, 17, 19, 21]},
        "enabled": True,
    },
    {
        "name": "Random Forest",
        "family": "random_forest",
        "params": {"n_estimators": 500},
        "grid": {"min_samples_leaf": [1, 5, 10]},
        "enabled": False,
    },
]

DEFAULT_REPORT_CONFIG: dict[str, Any] = {
    "data": DEFAULT_DATA_CONFIG,
    "splits": DEFAULT_SPLITS_CONFIG,
    "cv": DEFAULT_CV_CONFIG,
    "preprocessing": DEFAULT_PREPROCESSING_CONFIG,
    "metrics": list(DEFAULT_METRICS),
    "tuning": DEFAULT_TUNING_CONFIG,
    "models": DEFAULT_MODELS,
    "output": DEFAULT_OUTPUT_CONFIG,
    "strictness": DEFAULT_STRICTNESS_CONFIG,
}
