"""Model registry, candidate configurations, and custom estimators."""

from churn_ml.models.discriminant import RegularizedDiscriminantAnalysis
from churn_ml.models.registry import (
    MODEL_FAMILIES,
    TUNE,
    CandidateConfig,
    ModelFamily,
    build_discriminant,
    build_knn,
    build_logistic_regression,
    build_random_forest,
    get_model_family,
    predict_positive_proba,
    register_model_family,
)

__all__ = [
    "TUNE",
    "MODEL_FAMILIES",
    "ModelFamily",
    "CandidateConfig",
    "RegularizedDiscriminantAnalysis",
    "build_logistic_regression",
    "build_discriminant",
    "build_knn",
    "build_random_forest",
    "get_model_family",
    "register_model_family",
    "predict_positive_proba",
]
