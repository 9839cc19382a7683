"""
Tests for two-phase preprocessing (fit on TRAIN, apply anywhere).
"""

import numpy as np
import pandas as pd
import pytest
from churn_ml.data.schema import TARGET_COL, UNKNOWN_CATEGORY
from churn_ml.data.splits import split_dataset
from churn_ml.errors import (
    SchemaMismatchError,
    UnknownCategoryError,
    UnknownCategoryWarning,
)
from churn_ml.features.preprocessing import (
    MISSING_CATEGORY,
    PreprocessingPipeline,
    apply,
)

from conftest import CATEGORICAL_COLS, NUMERIC_COLS


class TestFit:
    """Test parameter estimation."""

    def test_inferred_roles(self, split, preprocessing):
        """Numeric and categorical fields are inferred from dtypes."""
        fitted = preprocessing.fit(split.train)
        assert list(fitted.numeric_cols) == NUMERIC_COLS
        assert list(fitted.categorical_cols) == CATEGORICAL_COLS
        assert fitted.constant_cols == ()

    def test_parameters_from_train_only(self, split, preprocessing):
        """Medians and categories come from the training subset."""
        fitted = preprocessing.fit(split.train)
        params = fitted.parameters()
        for col in NUMERIC_COLS:
            assert params["medians"][col] == pytest.approx(split.train[col].median())
        assert params["categories"]["area_code"] == sorted(split.train["area_code"].unique())

    def test_train_output_standardized(self, split, preprocessing):
        """Transformed TRAIN numeric fields have mean 0 and unit variance."""
        fitted = preprocessing.fit(split.train)
        X = fitted.apply(split.train)
        for col in NUMERIC_COLS:
            assert X[col].mean() == pytest.approx(0.0, abs=1e-8)
            assert X[col].std(ddof=0) == pytest.approx(1.0, abs=1e-6)

    def test_one_hot_drops_first_level(self, split, preprocessing):
        """Three observed levels plus unknown give three indicator columns."""
        fitted = preprocessing.fit(split.train)
        X = fitted.apply(split.test)
        indicator_cols = [c for c in X.columns if c.startswith("area_code_")]
        assert len(indicator_cols) == 3
        assert "area_code_area_code_408" not in indicator_cols
        assert f"area_code_{UNKNOWN_CATEGORY}" in indicator_cols
        assert X.shape[1] == len(NUMERIC_COLS) + 3

    def test_missing_declared_field_raises(self, split):
        """Declared fields absent from the data are a schema mismatch."""
        recipe = PreprocessingPipeline(numeric_cols=["no_such_field"])
        with pytest.raises(SchemaMismatchError, match="not in data"):
            recipe.fit(split.train)

    def test_non_numeric_declared_numeric_raises(self, split):
        """A string field declared numeric is rejected."""
        recipe = PreprocessingPipeline(numeric_cols=["area_code"])
        with pytest.raises(SchemaMismatchError, match="not numeric"):
            recipe.fit(split.train)

    def test_overlapping_roles_raise(self):
        """A field cannot be both numeric and categorical."""
        recipe = PreprocessingPipeline(numeric_cols=["a"], categorical_cols=["a"])
        with pytest.raises(ValueError, match="both numeric and categorical"):
            recipe.resolve_columns(pd.DataFrame({"a": [1], TARGET_COL: ["no"]}))

    def test_invalid_policy_raises(self):
        """Unknown policies are rejected at construction."""
        with pytest.raises(ValueError, match="unknown_policy"):
            PreprocessingPipeline(unknown_policy="ignore")

    def test_numeric_declared_rest_categorical(self, split):
        """With only numeric fields declared, remaining fields become categorical."""
        recipe = PreprocessingPipeline(numeric_cols=NUMERIC_COLS[:2])
        fitted = recipe.fit(split.train)
        assert "total_intl_calls" in fitted.categorical_cols
        assert "area_code" in fitted.categorical_cols

    def test_constant_field(self, split, preprocessing):
        """Constant numeric fields skip the power transform and stay finite."""
        train = split.train.assign(flat=5.0)
        test = split.test.assign(flat=5.0)
        fitted = preprocessing.fit(train)
        assert fitted.constant_cols == ("flat",)
        X = fitted.apply(test)
        assert np.isfinite(X["flat"]).all()
        assert (X["flat"] == 0.0).all()

    def test_options_disable_steps(self, split):
        """Without power transform and scaling, only imputation is applied."""
        recipe = PreprocessingPipeline(power_transform=False, standardize=False)
        fitted = recipe.fit(split.train)
        X = fitted.apply(split.test)
        np.testing.assert_allclose(
            X["total_eve_minutes"].to_numpy(), split.test["total_eve_minutes"].to_numpy()
        )


class TestApply:
    """Test applying a fitted transform to other subsets."""

    def test_index_preserved(self, split, preprocessing):
        """Output rows line up with the input subset."""
        fitted = preprocessing.fit(split.train)
        X = fitted.apply(split.test)
        assert X.index.tolist() == split.test.index.tolist()

    def test_apply_uses_fitted_parameters(self, split, preprocessing):
        """Applying to TEST does not re-estimate anything."""
        fitted = preprocessing.fit(split.train)
        before = fitted.parameters()
        fitted.apply(split.test)
        assert fitted.parameters() == before

    def test_apply_is_idempotent(self, split, preprocessing):
        """Applying the same fitted transform twice gives identical output."""
        fitted = preprocessing.fit(split.train)
        first = fitted.apply(split.test)
        second = fitted.apply(split.test)
        pd.testing.assert_frame_equal(first, second)
        pd.testing.assert_frame_equal(fitted.apply(split.train), fitted.apply(split.train))

    def test_test_rows_do_not_affect_fit(self, churn_df, split, preprocessing):
        """Changing every TEST row leaves the fitted parameters unchanged."""
        baseline = preprocessing.fit(split.train).parameters()

        altered = churn_df.copy()
        test_rows = altered.index[split.test_idx]
        for col in NUMERIC_COLS:
            altered.loc[test_rows, col] = altered.loc[test_rows, col] * 10 + 1000
        altered.loc[test_rows, "area_code"] = "area_code_999"
        altered_split = split_dataset(altered, train_fraction=0.75, seed=123)
        np.testing.assert_array_equal(altered_split.train_idx, split.train_idx)

        assert preprocessing.fit(altered_split.train).parameters() == baseline

    def test_test_median_imputation_uses_train_median(self, split):
        """Missing TEST values are filled with the TRAIN median."""
        recipe = PreprocessingPipeline(power_transform=False, standardize=False)
        fitted = recipe.fit(split.train)
        test = split.test.copy()
        test.iloc[0, test.columns.get_loc("total_eve_minutes")] = np.nan
        X = fitted.apply(test)
        assert X["total_eve_minutes"].iloc[0] == pytest.approx(
            split.train["total_eve_minutes"].median()
        )

    def test_functional_apply(self, split, preprocessing):
        """Module-level apply matches the method."""
        fitted = preprocessing.fit(split.train)
        pd.testing.assert_frame_equal(apply(fitted, split.test), fitted.apply(split.test))

    def test_unseen_level_bucketed(self, split, preprocessing):
        """Unseen levels map to the unknown indicator with a warning."""
        fitted = preprocessing.fit(split.train)
        test = split.test.copy()
        test.iloc[0, test.columns.get_loc("area_code")] = "area_code_999"
        with pytest.warns(UnknownCategoryWarning, match="area_code_999"):
            X = fitted.apply(test)
        assert X[f"area_code_{UNKNOWN_CATEGORY}"].iloc[0] == 1.0
        assert X[f"area_code_{UNKNOWN_CATEGORY}"].iloc[1:].sum() == 0.0

    def test_unseen_level_error_policy(self, split):
        """With policy 'error', unseen levels raise."""
        fitted = PreprocessingPipeline(unknown_policy="error").fit(split.train)
        test = split.test.copy()
        test.iloc[0, test.columns.get_loc("area_code")] = "area_code_999"
        with pytest.raises(UnknownCategoryError, match="area_code_999"):
            fitted.apply(test, stage="finalize")

    def test_missing_category_is_own_level(self, split, preprocessing):
        """Missing categorical values seen at fit time get their own level."""
        train = split.train.copy()
        train.iloc[:5, train.columns.get_loc("area_code")] = None
        fitted = preprocessing.fit(train)
        assert MISSING_CATEGORY in fitted.categories["area_code"]

    def test_missing_column_raises(self, split, preprocessing):
        """A subset lacking a fitted field is a schema mismatch."""
        fitted = preprocessing.fit(split.train)
        with pytest.raises(SchemaMismatchError, match="stage=finalize"):
            fitted.apply(split.test.drop(columns=["total_day_minutes"]), stage="finalize")

    def test_extra_column_raises(self, split, preprocessing):
        """A subset with an unexpected field is a schema mismatch."""
        fitted = preprocessing.fit(split.train)
        with pytest.raises(SchemaMismatchError, match="unexpected"):
            fitted.apply(split.test.assign(new_field=1.0))

    def test_retyped_numeric_raises(self, split, preprocessing):
        """A numeric field that turned into strings is a schema mismatch."""
        fitted = preprocessing.fit(split.train)
        test = split.test.assign(total_day_minutes=split.test["total_day_minutes"].astype(str))
        with pytest.raises(SchemaMismatchError, match="no longer numeric"):
            fitted.apply(test)

    def test_feature_names(self, split, preprocessing):
        """feature_names matches the output columns."""
        fitted = preprocessing.fit(split.train)
        assert fitted.feature_names == list(fitted.apply(split.test).columns)
