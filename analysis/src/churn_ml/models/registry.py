"""Model registry and candidate configurations.

This module provides:
- Model builders (logistic regression, regularized discriminant analysis,
  k-nearest-neighbors, random forest)
- A registry of model families with their default hyperparameters
- CandidateConfig: a family plus hyperparameter values, some of which may be
  marked TUNE ("to be tuned") until a grid search fills them in
- sklearn version compatibility handling

Every fit starts from a freshly built estimator, so a candidate carries no
state between calls.

References:
- scikit-learn 1.8+ deprecates penalty= in LogisticRegression (use C=np.inf)
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import sklearn
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier

from churn_ml.models.discriminant import RegularizedDiscriminantAnalysis

logger = logging.getLogger(__name__)

# Marker for a hyperparameter whose value comes from tuning
TUNE = "tune()"


def _sklearn_version_tuple(ver: str) -> tuple[int, int, int]:
    """Parse sklearn version string to tuple (major, minor, patch)."""
    parts = ver.split(".")
    out = []
    for p in parts[:3]:
        digits = "".join(ch for ch in p if ch.isdigit())
        out.append(int(digits) if digits else 0)
    while len(out) < 3:
        out.append(0)
    return tuple(out)


SKLEARN_VER = _sklearn_version_tuple(sklearn.__version__)


# ----------------------------
# Model builders
# ----------------------------
def build_logistic_regression(
    solver: str = "lbfgs",
    max_iter: int = 1000,
    tol: float = 1e-4,
) -> LogisticRegression:
    """Build an unpenalized Logistic Regression (sklearn 1.8+ compatible).

    Args:
        solver: Optimization algorithm
        max_iter: Maximum iterations
        tol: Convergence tolerance

    Returns:
        Configured LogisticRegression estimator
    """
    lr_common = {
        "solver": solver,
        "max_iter": int(max_iter),
        "tol": float(tol),
    }

    # sklearn >=1.8 deprecates penalty=; C=inf disables regularization
    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegression(C=np.inf, **lr_common)
    else:
        return LogisticRegression(penalty=None, **lr_common)


def build_discriminant(
    frac_common_cov: float = 1.0,
    frac_identity: float = 0.0,
) -> RegularizedDiscriminantAnalysis:
    """Build regularized discriminant analysis (frac_common_cov=1 is LDA)."""
    return RegularizedDiscriminantAnalysis(
        frac_common_cov=float(frac_common_cov),
        frac_identity=float(frac_identity),
    )


def build_knn(
    n_neighbors: int = 5,
    weights: str = "uniform",
    p: int = 2,
) -> KNeighborsClassifier:
    """Build k-nearest-neighbors classifier.

    Args:
        n_neighbors: Neighborhood size
        weights: 'uniform' or 'distance'
        p: Minkowski power (2 = Euclidean)
    """
    return KNeighborsClassifier(n_neighbors=int(n_neighbors), weights=weights, p=int(p))


def build_random_forest(
    n_estimators: int = 500,
    max_features: str | int | float = "sqrt",
    min_samples_leaf: int = 1,
    random_state: int = 0,
    n_jobs: int = 1,
) -> RandomForestClassifier:
    """Build Random Forest classifier.

    Args:
        n_estimators: Number of trees
        max_features: Features per split ('sqrt', int, or float)
        min_samples_leaf: Minimum samples per leaf
        random_state: Random seed
        n_jobs: Parallel jobs
    """
    return RandomForestClassifier(
        n_estimators=int(n_estimators),
        max_features=max_features,
        min_samples_leaf=int(min_samples_leaf),
        random_state=int(random_state),
        n_jobs=int(max(1, n_jobs)),
    )


# ----------------------------
# Family registry
# ----------------------------
@dataclass(frozen=True)
class ModelFamily:
    """A named model builder with its default hyperparameters."""

    name: str
    builder: Callable[..., Any]
    defaults: Mapping[str, Any]
    display_name: str = ""


MODEL_FAMILIES: dict[str, ModelFamily] = {}


def register_model_family(
    name: str,
    builder: Callable[..., Any],
    defaults: Mapping[str, Any],
    display_name: str = "",
    overwrite: bool = False,
) -> ModelFamily:
    """Register a model family so configs can refer to it by name.

    Raises:
        ValueError: If the name is taken and overwrite is False
    """
    if name in MODEL_FAMILIES and not overwrite:
        raise ValueError(f"Model family '{name}' already registered")
    family = ModelFamily(
        name=name,
        builder=builder,
        defaults=dict(defaults),
        display_name=display_name or name,
    )
    MODEL_FAMILIES[name] = family
    return family


register_model_family(
    "logistic_regression",
    build_logistic_regression,
    {"solver": "lbfgs", "max_iter": 1000, "tol": 1e-4},
    display_name="Logistic Regression",
)
register_model_family(
    "discriminant",
    build_discriminant,
    {"frac_common_cov": 1.0, "frac_identity": 0.0},
    display_name="Regularized Discriminant Analysis",
)
register_model_family(
    "knn",
    build_knn,
    {"n_neighbors": 5, "weights": "uniform", "p": 2},
    display_name="K-Nearest Neighbors",
)
register_model_family(
    "random_forest",
    build_random_forest,
    {
        "n_estimators": 500,
        "max_features": "sqrt",
        "min_samples_leaf": 1,
        "random_state": 0,
        "n_jobs": 1,
    },
    display_name="Random Forest",
)


def get_model_family(name: str) -> ModelFamily:
    """Look up a registered family.

    Raises:
        ValueError: If the family is unknown
    """
    try:
        return MODEL_FAMILIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown model family: {name}. Available: {sorted(MODEL_FAMILIES)}"
        ) from None


# ----------------------------
# Candidate configuration
# ----------------------------
@dataclass(frozen=True)
class CandidateConfig:
    """
    A model family plus hyperparameter values.

    Values equal to TUNE are placeholders filled in by grid search. Unlisted
    hyperparameters take the family defaults.

    Example:
        >>> knn = CandidateConfig("knn", {"n_neighbors": TUNE}, name="KNN")
        >>> knn.tuned_params()
        ['n_neighbors']
        >>> knn.with_params(n_neighbors=5).resolved_params()["n_neighbors"]
        5
    """

    family: str
    params: Mapping[str, Any] = field(default_factory=dict)
    name: str | None = None

    def __post_init__(self):
        family = get_model_family(self.family)
        unknown = sorted(set(self.params) - set(family.defaults))
        if unknown:
            raise ValueError(
                f"Unknown hyperparameters for '{self.family}': {unknown}. "
                f"Valid: {sorted(family.defaults)}"
            )
        # Private copy so the caller's mapping cannot change this config
        object.__setattr__(self, "params", dict(self.params))

    @property
    def label(self) -> str:
        return self.name or self.family

    @property
    def display_name(self) -> str:
        return self.name or get_model_family(self.family).display_name

    def tuned_params(self) -> list[str]:
        """Hyperparameters still marked TUNE."""
        return [k for k, v in self.params.items() if v == TUNE]

    def with_params(self, **values: Any) -> "CandidateConfig":
        """Copy with some hyperparameter values replaced."""
        merged = dict(self.params)
        merged.update(values)
        return CandidateConfig(self.family, merged, self.name)

    def with_seed(self, seed: int) -> "CandidateConfig":
        """Copy with random_state set, for families that take one and leave it unset."""
        if "random_state" not in get_model_family(self.family).defaults:
            return self
        if "random_state" in self.params:
            return self
        return self.with_params(random_state=int(seed))

    def resolved_params(self) -> dict[str, Any]:
        """Family defaults overlaid with explicit values.

        Raises:
            ValueError: If any value is still marked TUNE
        """
        pending = self.tuned_params()
        if pending:
            raise ValueError(
                f"Candidate '{self.label}' has untuned hyperparameters: {pending}"
            )
        params = dict(get_model_family(self.family).defaults)
        params.update(self.params)
        return params

    def build(self) -> Any:
        """Fresh, unfitted estimator."""
        return get_model_family(self.family).builder(**self.resolved_params())

    def fit(self, X: pd.DataFrame, y: np.ndarray) -> Any:
        """Fit a fresh estimator and return it."""
        estimator = self.build()
        estimator.fit(X, y)
        return estimator


def predict_positive_proba(estimator: Any, X: pd.DataFrame) -> np.ndarray:
    """Probability of the positive class (label 1) from a fitted estimator."""
    proba = estimator.predict_proba(X)
    classes = list(estimator.classes_)
    if 1 not in classes:
        return np.zeros(len(X), dtype=float)
    return np.clip(proba[:, classes.index(1)], 0.0, 1.0)
