"""
Tests for the model registry and candidate configurations.
"""

import numpy as np
import pytest
from churn_ml.models.discriminant import RegularizedDiscriminantAnalysis
from churn_ml.models.registry import (
    MODEL_FAMILIES,
    TUNE,
    CandidateConfig,
    build_knn,
    build_logistic_regression,
    build_random_forest,
    get_model_family,
    predict_positive_proba,
    register_model_family,
)
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier


@pytest.fixture
def xy():
    """Two separable clusters."""
    rng = np.random.default_rng(1)
    X = np.vstack([rng.normal(0, 1, (50, 2)), rng.normal(3, 1, (50, 2))])
    y = np.array([0] * 50 + [1] * 50)
    return X, y


class TestBuilders:
    """Test model builders."""

    def test_logistic_regression_unpenalized(self):
        """Logistic regression has no regularization."""
        model = build_logistic_regression()
        assert isinstance(model, LogisticRegression)
        assert model.penalty is None or np.isinf(model.C)

    def test_knn(self):
        """KNN uses the requested neighborhood."""
        model = build_knn(n_neighbors=7)
        assert isinstance(model, KNeighborsClassifier)
        assert model.n_neighbors == 7

    def test_random_forest(self):
        """Random forest is seeded."""
        model = build_random_forest(n_estimators=10, random_state=3)
        assert isinstance(model, RandomForestClassifier)
        assert model.random_state == 3

    def test_default_families_registered(self):
        """Shipped families are available by name."""
        assert {"logistic_regression", "discriminant", "knn", "random_forest"} <= set(
            MODEL_FAMILIES
        )

    def test_unknown_family_raises(self):
        """Unknown families are rejected."""
        with pytest.raises(ValueError, match="Unknown model family"):
            get_model_family("svm")

    def test_register_duplicate_raises(self):
        """Existing families are not silently replaced."""
        with pytest.raises(ValueError, match="already registered"):
            register_model_family("knn", build_knn, {})


class TestCandidateConfig:
    """Test CandidateConfig."""

    def test_tuned_params(self):
        """TUNE markers are reported."""
        cand = CandidateConfig("knn", {"n_neighbors": TUNE}, name="KNN")
        assert cand.tuned_params() == ["n_neighbors"]

    def test_with_params_fills_marker(self):
        """with_params returns a new candidate without touching the original."""
        cand = CandidateConfig("knn", {"n_neighbors": TUNE})
        filled = cand.with_params(n_neighbors=5)
        assert filled.tuned_params() == []
        assert filled.resolved_params()["n_neighbors"] == 5
        assert cand.params["n_neighbors"] == TUNE

    def test_resolved_params_includes_defaults(self):
        """Unlisted hyperparameters take family defaults."""
        params = CandidateConfig("knn", {"n_neighbors": 3}).resolved_params()
        assert params == {"n_neighbors": 3, "weights": "uniform", "p": 2}

    def test_resolved_params_with_marker_raises(self):
        """A candidate with TUNE markers cannot be built."""
        cand = CandidateConfig("knn", {"n_neighbors": TUNE})
        with pytest.raises(ValueError, match="untuned"):
            cand.build()

    def test_unknown_param_raises(self):
        """Hyperparameters outside the family are rejected."""
        with pytest.raises(ValueError, match="Unknown hyperparameters"):
            CandidateConfig("knn", {"max_depth": 3})

    def test_params_copied(self):
        """Mutating the caller's dict does not change the candidate."""
        params = {"n_neighbors": 3}
        cand = CandidateConfig("knn", params)
        params["n_neighbors"] = 99
        assert cand.params["n_neighbors"] == 3

    def test_with_seed(self):
        """random_state is filled in only where the family takes one and it is unset."""
        rf = CandidateConfig("random_forest").with_seed(99)
        assert rf.resolved_params()["random_state"] == 99
        pinned = CandidateConfig("random_forest", {"random_state": 1}).with_seed(99)
        assert pinned.params["random_state"] == 1
        knn = CandidateConfig("knn")
        assert knn.with_seed(99) is knn

    def test_label(self):
        """label prefers the given name over the family."""
        assert CandidateConfig("knn").label == "knn"
        assert CandidateConfig("knn", name="KNN").label == "KNN"
        assert CandidateConfig("knn").display_name == "K-Nearest Neighbors"

    def test_fresh_estimator_per_fit(self, xy):
        """Every fit starts from a new estimator."""
        X, y = xy
        cand = CandidateConfig("logistic_regression")
        first = cand.fit(X, y)
        second = cand.fit(X, y)
        assert first is not second
        np.testing.assert_allclose(first.coef_, second.coef_)

    def test_discriminant_family(self, xy):
        """The discriminant family builds the RDA estimator."""
        X, y = xy
        est = CandidateConfig("discriminant", {"frac_common_cov": 0.5}).fit(X, y)
        assert isinstance(est, RegularizedDiscriminantAnalysis)
        assert est.frac_common_cov == 0.5


class TestPredictPositiveProba:
    """Test positive-class probability extraction."""

    def test_probabilities_in_range(self, xy):
        """Probabilities are in [0, 1] and separate the classes."""
        X, y = xy
        est = CandidateConfig("knn", {"n_neighbors": 5}).fit(X, y)
        prob = predict_positive_proba(est, X)
        assert prob.shape == (100,)
        assert ((prob >= 0) & (prob <= 1)).all()
        assert prob[y == 1].mean() > prob[y == 0].mean()

    def test_column_follows_classes(self, xy):
        """The positive column is located through classes_."""
        X, y = xy
        est = CandidateConfig("logistic_regression").fit(X, y)
        np.testing.assert_allclose(predict_positive_proba(est, X), est.predict_proba(X)[:, 1])
