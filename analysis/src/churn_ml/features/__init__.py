"""Feature preprocessing fitted on training subsets only."""

from churn_ml.features.preprocessing import (
    MISSING_CATEGORY,
    FittedTransform,
    PreprocessingPipeline,
    apply,
)

__all__ = [
    "MISSING_CATEGORY",
    "FittedTransform",
    "PreprocessingPipeline",
    "apply",
]
