"""
Tests for regularized discriminant analysis.
"""

import numpy as np
import pytest
from churn_ml.models.discriminant import RegularizedDiscriminantAnalysis
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis


@pytest.fixture
def gaussians():
    """Two Gaussian classes with a shared covariance."""
    rng = np.random.default_rng(7)
    cov = np.array([[1.0, 0.4], [0.4, 1.0]])
    X0 = rng.multivariate_normal([0, 0], cov, 200)
    X1 = rng.multivariate_normal([3, 1.5], cov, 150)
    X = np.vstack([X0, X1])
    y = np.array([0] * 200 + [1] * 150)
    return X, y


class TestRegularizedDiscriminantAnalysis:
    """Test RDA behavior."""

    def test_probabilities_sum_to_one(self, gaussians):
        """Class probabilities are a distribution."""
        X, y = gaussians
        proba = RegularizedDiscriminantAnalysis().fit(X, y).predict_proba(X)
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)

    def test_lda_agrees_with_sklearn(self, gaussians):
        """frac_common_cov=1 reproduces linear discriminant analysis."""
        X, y = gaussians
        rda = RegularizedDiscriminantAnalysis(frac_common_cov=1.0).fit(X, y)
        lda = LinearDiscriminantAnalysis().fit(X, y)
        agreement = (rda.predict(X) == lda.predict(X)).mean()
        assert agreement >= 0.98

    def test_priors_from_frequencies(self, gaussians):
        """Default priors are class frequencies."""
        X, y = gaussians
        rda = RegularizedDiscriminantAnalysis().fit(X, y)
        np.testing.assert_allclose(rda.priors_, [200 / 350, 150 / 350])

    @pytest.mark.parametrize("lam,gam", [(0.0, 0.0), (0.5, 0.0), (0.5, 0.5), (1.0, 1.0)])
    def test_regularization_grid_fits(self, gaussians, lam, gam):
        """Every corner of the regularization square fits and predicts well."""
        X, y = gaussians
        rda = RegularizedDiscriminantAnalysis(frac_common_cov=lam, frac_identity=gam).fit(X, y)
        assert (rda.predict(X) == y).mean() > 0.8

    def test_predict_labels_match_classes(self, gaussians):
        """Predicted labels come from classes_."""
        X, y = gaussians
        labels = np.where(y == 1, "yes", "no")
        rda = RegularizedDiscriminantAnalysis().fit(X, labels)
        assert set(rda.predict(X)) <= {"yes", "no"}

    def test_out_of_range_fraction_raises(self, gaussians):
        """Fractions outside [0, 1] are rejected."""
        X, y = gaussians
        with pytest.raises(ValueError, match="frac_common_cov"):
            RegularizedDiscriminantAnalysis(frac_common_cov=1.5).fit(X, y)

    def test_single_class_raises(self, gaussians):
        """At least two classes are required."""
        X, _ = gaussians
        with pytest.raises(ValueError, match="at least 2 classes"):
            RegularizedDiscriminantAnalysis().fit(X, np.zeros(len(X)))

    def test_constant_feature_stays_invertible(self, gaussians):
        """The ridge floor keeps a constant feature from breaking inversion."""
        X, y = gaussians
        X = np.column_stack([X, np.ones(len(X))])
        proba = RegularizedDiscriminantAnalysis().fit(X, y).predict_proba(X)
        assert np.isfinite(proba).all()
