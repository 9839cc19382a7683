"""
Configuration schema for the churn-ML report.

Defines Pydantic models for every report parameter. Defaults reproduce the
reference report: 75/25 stratified split, 5-fold CV, seed 123, and three
model candidates (logistic regression, LDA-style discriminant analysis,
k-nearest-neighbors tuned over its neighborhood size).
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from churn_ml.config.defaults import DEFAULT_MODELS
from churn_ml.data.schema import ID_COL, NEGATIVE_LABEL, POSITIVE_LABEL, TARGET_COL
from churn_ml.metrics.classification import DEFAULT_METRICS, DEFAULT_THRESHOLD, METRICS
from churn_ml.models.registry import TUNE, CandidateConfig
from churn_ml.utils.random import derive_seed

# ============================================================================
# Data and Split Configuration
# ============================================================================


class DataConfig(BaseModel):
    """Input dataset and column roles."""

    infile: Path | None = None
    target_col: str = TARGET_COL
    positive_label: str = POSITIVE_LABEL
    negative_label: str = NEGATIVE_LABEL
    id_col: str | None = ID_COL
    numeric_cols: list[str] | None = None
    categorical_cols: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def coerce_yaml_booleans(cls, values: Any):
        # YAML 1.1 reads bare yes/no as booleans
        if isinstance(values, dict):
            for key in ("positive_label", "negative_label"):
                if isinstance(values.get(key), bool):
                    values = {**values, key: "yes" if values[key] else "no"}
        return values

    @model_validator(mode="after")
    def validate_labels(self):
        if self.positive_label == self.negative_label:
            raise ValueError(
                f"positive_label and negative_label must differ (both '{self.positive_label}')"
            )
        if self.numeric_cols and self.categorical_cols:
            overlap = sorted(set(self.numeric_cols) & set(self.categorical_cols))
            if overlap:
                raise ValueError(f"Columns listed as both numeric and categorical: {overlap}")
        return self


class SplitsConfig(BaseModel):
    """Configuration for the TRAIN/TEST split."""

    train_fraction: float = Field(default=0.75, gt=0.0, lt=1.0)
    seed: int = Field(default=123, ge=0)
    outdir: Path = Field(default=Path("splits"))
    overwrite: bool = False
    use_saved: bool = False


# ============================================================================
# Cross-Validation and Tuning Configuration
# ============================================================================


class CVConfig(BaseModel):
    """Configuration for k-fold resampling of the TRAIN subset.

    Without an explicit seed, fold assignment uses a seed derived from the
    split seed.
    """

    folds: int = Field(default=5, ge=2)
    seed: int | None = Field(default=None, ge=0)
    n_jobs: int = 1
    error_score: Literal["nan", "raise"] = "nan"


class TuningConfig(BaseModel):
    """Configuration for grid search."""

    selection_metric: str = "roc_auc"
    n_jobs: int = 1
    show_best: int = Field(default=5, ge=1)


class PreprocessingConfig(BaseModel):
    """Configuration for the preprocessing recipe."""

    power_transform: bool = True
    standardize: bool = True
    unknown_policy: Literal["bucket", "error"] = "bucket"


# ============================================================================
# Model Configuration
# ============================================================================


class ModelSpec(BaseModel):
    """
    One model candidate in the report.

    Grid keys become TUNE placeholders; every other hyperparameter comes from
    ``params`` or the family defaults.
    """

    name: str
    family: str
    params: dict[str, Any] = Field(default_factory=dict)
    grid: dict[str, list[Any]] = Field(default_factory=dict)
    enabled: bool = True

    @model_validator(mode="after")
    def mark_tuned_params(self):
        """Accept "tune" or "tune()" as the placeholder for grid-searched values."""
        self.params = {
            key: TUNE if isinstance(val, str) and val.strip().lower() in ("tune", TUNE) else val
            for key, val in self.params.items()
        }
        return self

    @property
    def is_tuned(self) -> bool:
        return bool(self.grid) or any(v == TUNE for v in self.params.values())

    def to_candidate(self) -> CandidateConfig:
        """Build the CandidateConfig (raises ValueError on unknown family/params)."""
        params = dict(self.params)
        for key in self.grid:
            params[key] = TUNE
        return CandidateConfig(self.family, params, name=self.name)


# ============================================================================
# Output Configuration
# ============================================================================


class OutputConfig(BaseModel):
    """Configuration for report outputs."""

    outdir: Path = Field(default=Path("results"))
    save_plots: bool = True
    save_models: bool = True
    save_predictions: bool = True
    save_fold_predictions: bool = False


class StrictnessConfig(BaseModel):
    """Configuration for validation strictness."""

    level: Literal["off", "warn", "error"] = "warn"


# ============================================================================
# Master Configuration
# ============================================================================


def _default_models() -> list[ModelSpec]:
    return [ModelSpec(**spec) for spec in DEFAULT_MODELS]


class ReportConfig(BaseModel):
    """Complete report configuration."""

    data: DataConfig = Field(default_factory=DataConfig)
    splits: SplitsConfig = Field(default_factory=SplitsConfig)
    cv: CVConfig = Field(default_factory=CVConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    metrics: list[str] = Field(default_factory=lambda: list(DEFAULT_METRICS))
    threshold: float = Field(default=DEFAULT_THRESHOLD, gt=0.0, lt=1.0)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    models: list[ModelSpec] = Field(default_factory=_default_models)
    output: OutputConfig = Field(default_factory=OutputConfig)
    strictness: StrictnessConfig = Field(default_factory=StrictnessConfig)

    @model_validator(mode="after")
    def validate_config(self):
        """Cross-field validation."""
        unknown = [m for m in self.metrics if m not in METRICS]
        if unknown:
            raise ValueError(f"Unknown metrics: {unknown}. Available: {sorted(METRICS)}")
        if not self.metrics:
            raise ValueError("At least one metric is required")

        names = [m.name for m in self.models]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate model names: {duplicates}")
        return self

    @property
    def enabled_models(self) -> list[ModelSpec]:
        return [m for m in self.models if m.enabled]

    @property
    def cv_seed(self) -> int:
        """Fold seed: cv.seed if set, else derived from the split seed."""
        if self.cv.seed is not None:
            return self.cv.seed
        return derive_seed(self.splits.seed, "cv")
