"""
Configuration validation and safety checks.

Issues are collected and then reported according to a strictness level:
"off" ignores them, "warn" emits a ConfigValidationWarning, and "error"
raises ConfigValidationError.
"""

import warnings

from churn_ml.config.schema import ModelSpec, ReportConfig
from churn_ml.models.registry import MODEL_FAMILIES, TUNE


class ConfigValidationError(Exception):
    """Raised when configuration validation fails in strict mode."""


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""


def _model_issues(spec: ModelSpec) -> list[str]:
    issues = []
    family = MODEL_FAMILIES.get(spec.family)
    if family is None:
        return [f"Model '{spec.name}': unknown family '{spec.family}'"]

    valid = set(family.defaults)
    bad_params = sorted(set(spec.params) - valid)
    if bad_params:
        issues.append(f"Model '{spec.name}': unknown hyperparameters {bad_params}")

    bad_grid = sorted(set(spec.grid) - valid)
    if bad_grid:
        issues.append(f"Model '{spec.name}': grid keys are not hyperparameters {bad_grid}")

    empty = sorted(k for k, v in spec.grid.items() if not v)
    if empty:
        issues.append(f"Model '{spec.name}': grid has no values for {empty}")

    untuned = sorted(k for k, v in spec.params.items() if v == TUNE and k not in spec.grid)
    if untuned:
        issues.append(f"Model '{spec.name}': tuned hyperparameters {untuned} have no grid")

    both = sorted(k for k in spec.grid if k in spec.params and spec.params[k] != TUNE)
    if both:
        issues.append(f"Model '{spec.name}': {both} set in both params and grid (grid wins)")

    return issues


def validate_report_config(config: ReportConfig, strictness: str | None = None):
    """
    Validate report configuration for inconsistencies.

    Args:
        config: ReportConfig instance
        strictness: "off", "warn", or "error" (default: config.strictness.level)
    """
    strictness = strictness or config.strictness.level
    issues = []

    if config.tuning.selection_metric not in config.metrics:
        issues.append(
            f"selection_metric '{config.tuning.selection_metric}' is not in metrics "
            f"{config.metrics}"
        )

    if not config.enabled_models:
        issues.append("No enabled models; the report would be empty.")

    for spec in config.models:
        issues.extend(_model_issues(spec))

    if config.cv.n_jobs != 1 and config.tuning.n_jobs != 1:
        issues.append(
            f"cv.n_jobs={config.cv.n_jobs} and tuning.n_jobs={config.tuning.n_jobs}: "
            "tuning parallelizes across configurations and runs folds sequentially."
        )

    _handle_issues(issues, strictness, "Report configuration")


def validate_config(config: ReportConfig) -> tuple[list[str], list[str]]:
    """
    Validate configuration and return lists of errors and warnings.

    Returns:
        Tuple of (errors, warnings) as lists of strings
    """
    errors: list[str] = []
    warnings_list: list[str] = []

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConfigValidationWarning)
        try:
            validate_report_config(config)
        except ConfigValidationError as e:
            errors.append(str(e))
    warnings_list.extend(
        str(w.message) for w in caught if issubclass(w.category, ConfigValidationWarning)
    )
    return errors, warnings_list


def _handle_issues(issues: list[str], strictness: str, context: str):
    """Handle validation issues based on strictness level."""
    if not issues:
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigValidationError(message)
    elif strictness == "warn":
        warnings.warn(message, ConfigValidationWarning, stacklevel=3)
