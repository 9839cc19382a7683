"""
Two-phase preprocessing: fit on a training subset, apply to any subset.

Steps (numeric fields):
1. Median imputation
2. Yeo-Johnson power transform (variance stabilisation)
3. Standardization to zero mean / unit variance

Steps (categorical fields):
1. Missing values become their own level; values unseen at fit time are
   mapped to an explicit unknown level (or rejected, per policy)
2. One-hot indicators with the first observed level dropped as reference

All parameters are estimated once in ``fit`` from the training subset and
reused verbatim by ``apply``. Numeric fields that are constant in the
training subset skip the power transform and are centred with unit scale.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Literal

import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, PowerTransformer, StandardScaler

from churn_ml.data.schema import ID_COL, TARGET_COL, UNKNOWN_CATEGORY, infer_feature_columns
from churn_ml.errors import (
    SchemaMismatchError,
    UnknownCategoryError,
    UnknownCategoryWarning,
)

logger = logging.getLogger(__name__)

MISSING_CATEGORY = "Missing"

UnknownPolicy = Literal["bucket", "error"]


def _categorical_values(series: pd.Series) -> pd.Series:
    """String view of a categorical column with missing values as their own level."""
    return series.astype(object).where(series.notna(), MISSING_CATEGORY).astype(str)


@dataclass(frozen=True, eq=False)
class FittedTransform:
    """
    Preprocessing parameters estimated on one training subset.

    Attributes:
        numeric_cols: Numeric fields that are power-transformed and scaled
        constant_cols: Numeric fields constant at fit time (centred only)
        categorical_cols: Categorical fields one-hot encoded
        categories: Observed levels per categorical field (sorted)
        unknown_policy: "bucket" or "error" for unseen levels
        passthrough_cols: Non-feature columns tolerated (and dropped) at apply time
        transformer: Fitted ColumnTransformer
    """

    numeric_cols: tuple[str, ...]
    constant_cols: tuple[str, ...]
    categorical_cols: tuple[str, ...]
    categories: dict[str, tuple[str, ...]]
    unknown_policy: str
    passthrough_cols: tuple[str, ...]
    transformer: ColumnTransformer

    @property
    def input_cols(self) -> tuple[str, ...]:
        return self.numeric_cols + self.constant_cols + self.categorical_cols

    @property
    def feature_names(self) -> list[str]:
        return [str(c) for c in self.transformer.get_feature_names_out()]

    def check_schema(self, subset: pd.DataFrame, stage: str = "preprocess") -> None:
        """
        Raise SchemaMismatchError if subset fields differ from the fitted fields.

        Outcome and id columns may be present and are ignored.
        """
        expected = set(self.input_cols)
        present = set(subset.columns) - set(self.passthrough_cols)
        missing = sorted(expected - present)
        unexpected = sorted(present - expected)
        if missing or unexpected:
            raise SchemaMismatchError(
                f"Fields do not match fitted transform (missing={missing}, "
                f"unexpected={unexpected})",
                stage=stage,
            )

        not_numeric = [
            c
            for c in self.numeric_cols + self.constant_cols
            if not pd.api.types.is_numeric_dtype(subset[c].dtype)
        ]
        if not_numeric:
            raise SchemaMismatchError(
                f"Numeric fields are no longer numeric: {not_numeric}", stage=stage
            )

    def _bucket_unknown(self, X: pd.DataFrame, stage: str) -> pd.DataFrame:
        for col in self.categorical_cols:
            values = _categorical_values(X[col])
            unseen = ~values.isin(self.categories[col])
            n_unseen = int(unseen.sum())
            if n_unseen:
                levels = sorted(values[unseen].unique().tolist())
                if self.unknown_policy == "error":
                    raise UnknownCategoryError(
                        f"Field '{col}' has levels not seen at fit time: {levels}",
                        stage=stage,
                    )
                warnings.warn(
                    f"Field '{col}': {n_unseen} values with unseen levels {levels} "
                    f"mapped to '{UNKNOWN_CATEGORY}'",
                    UnknownCategoryWarning,
                    stacklevel=3,
                )
                values = values.where(~unseen, UNKNOWN_CATEGORY)
            X[col] = values
        return X

    def apply(self, subset: pd.DataFrame, stage: str = "preprocess") -> pd.DataFrame:
        """
        Transform a subset with the fitted parameters (never re-estimated).

        Args:
            subset: Any subset with the fitted fields (outcome/id columns allowed)
            stage: Pipeline stage reported in errors

        Returns:
            Float DataFrame of model-ready features, indexed like ``subset``
        """
        self.check_schema(subset, stage=stage)
        X = subset.loc[:, list(self.input_cols)].copy()
        X = self._bucket_unknown(X, stage)
        out = self.transformer.transform(X)
        return out.astype(float)

    def parameters(self) -> dict[str, Any]:
        """Fitted parameters, for inspection and leakage checks."""
        params: dict[str, Any] = {
            "numeric_cols": list(self.numeric_cols),
            "constant_cols": list(self.constant_cols),
            "categories": {k: list(v) for k, v in self.categories.items()},
        }

        if self.numeric_cols:
            num_pipe = self.transformer.named_transformers_["num"]
            params["medians"] = dict(
                zip(self.numeric_cols, num_pipe.named_steps["impute"].statistics_.tolist())
            )
            if "power" in num_pipe.named_steps:
                params["lambdas"] = dict(
                    zip(self.numeric_cols, num_pipe.named_steps["power"].lambdas_.tolist())
                )
            if "scale" in num_pipe.named_steps:
                scaler = num_pipe.named_steps["scale"]
                params["means"] = dict(zip(self.numeric_cols, scaler.mean_.tolist()))
                params["scales"] = dict(zip(self.numeric_cols, scaler.scale_.tolist()))

        if self.constant_cols:
            const_pipe = self.transformer.named_transformers_["const"]
            params["constant_values"] = dict(
                zip(self.constant_cols, const_pipe.named_steps["impute"].statistics_.tolist())
            )

        return params


class PreprocessingPipeline:
    """
    Declarative preprocessing recipe.

    Column roles are taken from the arguments or, when omitted, inferred from
    the training subset's dtypes at fit time.

    Example:
        >>> recipe = PreprocessingPipeline(categorical_cols=["region"])
        >>> fitted = recipe.fit(split.train)
        >>> X_test = fitted.apply(split.test)
    """

    def __init__(
        self,
        numeric_cols: list[str] | None = None,
        categorical_cols: list[str] | None = None,
        power_transform: bool = True,
        standardize: bool = True,
        unknown_policy: UnknownPolicy = "bucket",
        target_col: str = TARGET_COL,
        id_col: str | None = ID_COL,
    ):
        if unknown_policy not in ("bucket", "error"):
            raise ValueError(f"unknown_policy must be 'bucket' or 'error', got {unknown_policy}")
        self.numeric_cols = list(numeric_cols) if numeric_cols is not None else None
        self.categorical_cols = list(categorical_cols) if categorical_cols is not None else None
        self.power_transform = power_transform
        self.standardize = standardize
        self.unknown_policy = unknown_policy
        self.target_col = target_col
        self.id_col = id_col

    def __repr__(self) -> str:
        return (
            f"PreprocessingPipeline(numeric_cols={self.numeric_cols}, "
            f"categorical_cols={self.categorical_cols}, power_transform={self.power_transform}, "
            f"standardize={self.standardize}, unknown_policy='{self.unknown_policy}')"
        )

    def resolve_columns(self, df: pd.DataFrame) -> tuple[list[str], list[str]]:
        """Numeric and categorical fields for ``df`` (explicit lists win over inference)."""
        inferred_num, inferred_cat = infer_feature_columns(
            df, target_col=self.target_col, id_col=self.id_col
        )
        numeric_cols = self.numeric_cols if self.numeric_cols is not None else inferred_num
        if self.categorical_cols is not None:
            categorical_cols = self.categorical_cols
        elif self.numeric_cols is not None:
            categorical_cols = [c for c in inferred_cat + inferred_num if c not in numeric_cols]
        else:
            categorical_cols = inferred_cat

        overlap = set(numeric_cols) & set(categorical_cols)
        if overlap:
            raise ValueError(f"Columns declared both numeric and categorical: {sorted(overlap)}")
        return list(numeric_cols), list(categorical_cols)

    def _numeric_pipeline(self) -> Pipeline:
        steps = [("impute", SimpleImputer(strategy="median"))]
        if self.power_transform:
            steps.append(("power", PowerTransformer(method="yeo-johnson", standardize=False)))
        if self.standardize:
            steps.append(("scale", StandardScaler()))
        return Pipeline(steps)

    def fit(self, training_subset: pd.DataFrame) -> FittedTransform:
        """
        Estimate all preprocessing parameters from the training subset.

        Args:
            training_subset: Rows used for estimation (outcome/id columns allowed)

        Returns:
            FittedTransform to apply to this or any other subset

        Raises:
            SchemaMismatchError: If declared fields are missing or not numeric
        """
        numeric_cols, categorical_cols = self.resolve_columns(training_subset)

        missing = [c for c in numeric_cols + categorical_cols if c not in training_subset.columns]
        if missing:
            raise SchemaMismatchError(f"Declared fields not in data: {missing}", stage="preprocess")
        not_numeric = [
            c for c in numeric_cols if not pd.api.types.is_numeric_dtype(training_subset[c].dtype)
        ]
        if not_numeric:
            raise SchemaMismatchError(
                f"Declared numeric fields are not numeric: {not_numeric}", stage="preprocess"
            )

        constant_cols = [c for c in numeric_cols if training_subset[c].nunique(dropna=True) <= 1]
        varying_cols = [c for c in numeric_cols if c not in constant_cols]
        if constant_cols:
            logger.warning(f"Constant numeric fields (centred, not scaled): {constant_cols}")

        X = training_subset.loc[:, varying_cols + constant_cols + categorical_cols].copy()
        categories: dict[str, tuple[str, ...]] = {}
        for col in categorical_cols:
            X[col] = _categorical_values(X[col])
            categories[col] = tuple(sorted(X[col].unique().tolist()))

        transformers = []
        if varying_cols:
            transformers.append(("num", self._numeric_pipeline(), varying_cols))
        if constant_cols:
            const_steps = [("impute", SimpleImputer(strategy="median", keep_empty_features=True))]
            if self.standardize:
                const_steps.append(("scale", StandardScaler()))
            transformers.append(("const", Pipeline(const_steps), constant_cols))
        if categorical_cols:
            encoder = OneHotEncoder(
                categories=[list(categories[c]) + [UNKNOWN_CATEGORY] for c in categorical_cols],
                drop="first",
                sparse_output=False,
                handle_unknown="error",
            )
            transformers.append(("cat", encoder, categorical_cols))

        if not transformers:
            raise SchemaMismatchError("No feature columns to preprocess", stage="preprocess")

        transformer = ColumnTransformer(
            transformers=transformers,
            remainder="drop",
            verbose_feature_names_out=False,
        )
        transformer.set_output(transform="pandas")
        transformer.fit(X)

        passthrough = tuple(c for c in (self.target_col, self.id_col) if c)
        return FittedTransform(
            numeric_cols=tuple(varying_cols),
            constant_cols=tuple(constant_cols),
            categorical_cols=tuple(categorical_cols),
            categories=categories,
            unknown_policy=self.unknown_policy,
            passthrough_cols=passthrough,
            transformer=transformer,
        )


def apply(fitted: FittedTransform, subset: pd.DataFrame, stage: str = "preprocess") -> pd.DataFrame:
    """Functional form of ``FittedTransform.apply``."""
    return fitted.apply(subset, stage=stage)
