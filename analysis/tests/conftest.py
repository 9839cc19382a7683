"""
Shared pytest fixtures for churn-ML tests.
"""

import numpy as np
import pandas as pd
import pytest
from churn_ml.data.schema import ID_COL, NEGATIVE_LABEL, POSITIVE_LABEL, TARGET_COL
from churn_ml.data.splits import Fold, FoldSet, make_folds, split_dataset
from churn_ml.features.preprocessing import PreprocessingPipeline

NUMERIC_COLS = [
    "account_length",
    "total_day_minutes",
    "total_eve_minutes",
    "total_intl_calls",
    "customer_service_calls",
]
CATEGORICAL_COLS = ["area_code"]


def make_churn_frame(n_samples: int = 1000, n_positive: int = 300, seed: int = 42) -> pd.DataFrame:
    """
    Synthetic customer dataset with a learnable cancellation signal.

    Cancelling customers have more day minutes and more service calls.
    """
    rng = np.random.default_rng(seed)
    y = np.array([POSITIVE_LABEL] * n_positive + [NEGATIVE_LABEL] * (n_samples - n_positive))
    rng.shuffle(y)
    is_pos = (y == POSITIVE_LABEL).astype(float)

    return pd.DataFrame(
        {
            ID_COL: [f"CUST_{i:05d}" for i in range(n_samples)],
            "account_length": rng.integers(1, 240, n_samples),
            "total_day_minutes": rng.normal(175, 45, n_samples) + 45 * is_pos,
            "total_eve_minutes": rng.normal(200, 50, n_samples),
            "total_intl_calls": rng.poisson(4, n_samples),
            "customer_service_calls": rng.poisson(1.2 + 1.8 * is_pos),
            "area_code": rng.choice(
                ["area_code_408", "area_code_415", "area_code_510"], n_samples
            ),
            TARGET_COL: y,
        }
    )


@pytest.fixture
def churn_df():
    """1000 customers, 30% cancelled."""
    return make_churn_frame()


@pytest.fixture
def churn_csv(tmp_path, churn_df):
    """churn_df written to CSV."""
    path = tmp_path / "customers.csv"
    churn_df.to_csv(path, index=False)
    return path


@pytest.fixture
def split(churn_df):
    """Default 75/25 stratified split (seed 123)."""
    return split_dataset(churn_df, train_fraction=0.75, seed=123)


@pytest.fixture
def fold_set(split):
    """5 stratified folds over TRAIN (seed 123)."""
    return make_folds(split.train, k=5, seed=123)


@pytest.fixture
def preprocessing():
    """Default recipe with inferred column roles."""
    return PreprocessingPipeline()


@pytest.fixture
def tiny_df():
    """40 rows: positions 0-19 are 'no', 20-39 are 'yes'."""
    rng = np.random.default_rng(0)
    y = np.array([NEGATIVE_LABEL] * 20 + [POSITIVE_LABEL] * 20)
    return pd.DataFrame(
        {
            "x1": rng.normal(0, 1, 40) + 2.0 * (y == POSITIVE_LABEL),
            "x2": rng.normal(0, 1, 40),
            TARGET_COL: y,
        }
    )


@pytest.fixture
def single_class_fit_folds(tiny_df):
    """Fold1 is fitted on 'no' rows only; Fold2 is a normal even/odd fold."""
    positions = np.arange(40)
    folds = (
        Fold("Fold1", fit_idx=positions[:20], valid_idx=positions[20:]),
        Fold("Fold2", fit_idx=positions[::2], valid_idx=positions[1::2]),
    )
    return FoldSet(data=tiny_df, folds=folds, seed=0)


@pytest.fixture
def degenerate_valid_folds(tiny_df):
    """Fold1 validates on 'no' rows only; Fold2 is a normal even/odd fold."""
    positions = np.arange(40)
    folds = (
        Fold(
            "Fold1",
            fit_idx=np.concatenate([positions[:10], positions[20:]]),
            valid_idx=positions[10:20],
        ),
        Fold("Fold2", fit_idx=positions[::2], valid_idx=positions[1::2]),
    )
    return FoldSet(data=tiny_df, folds=folds, seed=0)
