"""Configuration management for churn-ML."""

from churn_ml.config.defaults import (
    DEFAULT_CV_CONFIG,
    DEFAULT_MODELS,
    DEFAULT_REPORT_CONFIG,
    DEFAULT_SPLITS_CONFIG,
)
from churn_ml.config.loader import (
    apply_overrides,
    load_report_config,
    load_yaml,
    print_config_summary,
    save_config,
)
from churn_ml.config.schema import (
    CVConfig,
    DataConfig,
    ModelSpec,
    OutputConfig,
    PreprocessingConfig,
    ReportConfig,
    SplitsConfig,
    TuningConfig,
)
from churn_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_config,
    validate_report_config,
)

__all__ = [
    "DEFAULT_MODELS",
    "DEFAULT_SPLITS_CONFIG",
    "DEFAULT_CV_CONFIG",
    "DEFAULT_REPORT_CONFIG",
    "load_yaml",
    "load_report_config",
    "apply_overrides",
    "save_config",
    "print_config_summary",
    "ReportConfig",
    "DataConfig",
    "SplitsConfig",
    "CVConfig",
    "PreprocessingConfig",
    "TuningConfig",
    "ModelSpec",
    "OutputConfig",
    "ConfigValidationError",
    "ConfigValidationWarning",
    "validate_report_config",
    "validate_config",
]
