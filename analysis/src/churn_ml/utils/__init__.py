"""Utility functions for churn-ML."""

from churn_ml.utils.logging import (
    auto_log_path,
    log_section,
    setup_logger,
    verbose_to_level,
)
from churn_ml.utils.random import derive_seed, seed_global_from_env
from churn_ml.utils.serialization import (
    load_joblib,
    load_json,
    save_joblib,
    save_json,
    to_builtin,
)

__all__ = [
    "setup_logger",
    "verbose_to_level",
    "auto_log_path",
    "log_section",
    "seed_global_from_env",
    "derive_seed",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
    "to_builtin",
]
