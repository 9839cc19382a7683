"""
Split generation for the churn-ML pipeline.

This module handles:
- Stratified TRAIN/TEST partitioning of the dataset
- Stratified k-fold partitioning of the TRAIN subset
- Class-balance summaries used in reports and split metadata

Splits and fold sets hold positional index arrays plus a reference to the
frame they partition; subsets are materialised on demand, so they can never
drift out of sync with the source data.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from churn_ml.data.schema import POSITIVE_LABEL, TARGET_COL
from churn_ml.errors import PipelineError

logger = logging.getLogger(__name__)


# ============================================================================
# Value Types
# ============================================================================


@dataclass(frozen=True, eq=False)
class Split:
    """
    Stratified TRAIN/TEST partition of a dataset.

    Attributes:
        data: The partitioned dataset (read-only reference)
        train_idx: Sorted positional indices of the TRAIN subset
        test_idx: Sorted positional indices of the TEST subset
        train_fraction: Requested TRAIN proportion
        seed: Seed that produced the partition
        stratify_field: Column used for stratification
    """

    data: pd.DataFrame
    train_idx: np.ndarray
    test_idx: np.ndarray
    train_fraction: float
    seed: int
    stratify_field: str = TARGET_COL

    @property
    def train(self) -> pd.DataFrame:
        return self.data.iloc[self.train_idx]

    @property
    def test(self) -> pd.DataFrame:
        return self.data.iloc[self.test_idx]


@dataclass(frozen=True, eq=False)
class Fold:
    """One resampling round: fit on fit_idx, validate on valid_idx."""

    fold_id: str
    fit_idx: np.ndarray
    valid_idx: np.ndarray


@dataclass(frozen=True, eq=False)
class FoldSet:
    """
    Stratified k-fold partition of a TRAIN subset.

    Fold indices are positional within ``data``. Each row appears in exactly
    one fold's validation piece.
    """

    data: pd.DataFrame
    folds: tuple[Fold, ...]
    seed: int
    stratify_field: str = TARGET_COL

    def __len__(self) -> int:
        return len(self.folds)

    def __iter__(self):
        return iter(self.folds)

    @property
    def k(self) -> int:
        return len(self.folds)

    def pieces(self, fold: Fold) -> tuple[pd.DataFrame, pd.DataFrame]:
        """Return (fit_piece, validation_piece) for a fold."""
        return self.data.iloc[fold.fit_idx], self.data.iloc[fold.valid_idx]

    def assignments(self) -> pd.DataFrame:
        """One row per record: its position and the fold that validates it."""
        rows = [
            pd.DataFrame({"row": fold.valid_idx, "fold": fold.fold_id})
            for fold in self.folds
        ]
        return pd.concat(rows, ignore_index=True).sort_values("row").reset_index(drop=True)


# ============================================================================
# Split Manager
# ============================================================================


def split_dataset(
    dataset: pd.DataFrame,
    train_fraction: float = 0.75,
    stratify_field: str = TARGET_COL,
    seed: int = 123,
) -> Split:
    """
    Partition a dataset into stratified TRAIN and TEST subsets.

    Args:
        dataset: Full dataset
        train_fraction: Proportion of rows assigned to TRAIN, in (0, 1)
        stratify_field: Column whose class proportions are preserved
        seed: Random seed (same seed + same data = same partition)

    Returns:
        Split with sorted positional indices

    Raises:
        PipelineError: If the fraction is out of range or stratification is impossible

    Example:
        >>> split = split_dataset(df, train_fraction=0.75, seed=123)
        >>> len(split.train), len(split.test)
        (750, 250)
    """
    if not 0.0 < train_fraction < 1.0:
        raise PipelineError(
            f"train_fraction must be in (0, 1), got {train_fraction}", stage="split"
        )
    if stratify_field not in dataset.columns:
        raise PipelineError(
            f"Stratification column '{stratify_field}' not found", stage="split"
        )

    strata = dataset[stratify_field].astype(str).to_numpy()
    counts = pd.Series(strata).value_counts()
    if (counts < 2).any():
        raise PipelineError(
            f"Every class needs at least 2 rows to stratify; counts: {counts.to_dict()}",
            stage="split",
        )

    positions = np.arange(len(dataset))
    try:
        train_idx, test_idx = train_test_split(
            positions,
            train_size=train_fraction,
            random_state=seed,
            stratify=strata,
        )
    except ValueError as e:
        raise PipelineError(str(e), stage="split") from e

    split = Split(
        data=dataset,
        train_idx=np.sort(train_idx.astype(int)),
        test_idx=np.sort(test_idx.astype(int)),
        train_fraction=float(train_fraction),
        seed=int(seed),
        stratify_field=stratify_field,
    )
    logger.info(
        f"Split (seed={seed}): TRAIN={len(split.train_idx):,}, TEST={len(split.test_idx):,}"
    )
    return split


def make_folds(
    train: pd.DataFrame,
    k: int = 5,
    stratify_field: str = TARGET_COL,
    seed: int = 123,
) -> FoldSet:
    """
    Partition a TRAIN subset into k stratified folds.

    Args:
        train: TRAIN subset (e.g. ``split.train``)
        k: Number of folds (>= 2)
        stratify_field: Column whose class proportions are preserved per fold
        seed: Random seed for the shuffled fold assignment

    Returns:
        FoldSet with folds named Fold1..Fold{k}

    Raises:
        PipelineError: If k < 2 or the smallest class has fewer than k rows
    """
    if k < 2:
        raise PipelineError(f"k must be >= 2, got {k}", stage="fold")

    strata = train[stratify_field].astype(str).to_numpy()
    min_class = int(pd.Series(strata).value_counts().min()) if len(strata) else 0
    if min_class < k:
        raise PipelineError(
            f"Smallest outcome class has {min_class} rows, fewer than k={k}",
            stage="fold",
        )

    skf = StratifiedKFold(n_splits=k, shuffle=True, random_state=seed)
    folds = tuple(
        Fold(
            fold_id=f"Fold{i + 1}",
            fit_idx=np.sort(fit_idx.astype(int)),
            valid_idx=np.sort(valid_idx.astype(int)),
        )
        for i, (fit_idx, valid_idx) in enumerate(skf.split(np.zeros(len(strata)), strata))
    )
    logger.debug(f"Built {k} stratified folds over {len(train):,} rows (seed={seed})")
    return FoldSet(data=train, folds=folds, seed=int(seed), stratify_field=stratify_field)


# ============================================================================
# Summaries
# ============================================================================


def class_balance(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
) -> pd.DataFrame:
    """Class-balance table: one row per outcome level with count and proportion."""
    counts = df[target_col].astype(str).value_counts().sort_index()
    return pd.DataFrame(
        {
            target_col: counts.index,
            "n": counts.to_numpy(),
            "prop": (counts / counts.sum()).to_numpy(),
        }
    )


def positive_rate(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
    positive_label: str = POSITIVE_LABEL,
) -> float:
    """Proportion of rows carrying the positive label."""
    if len(df) == 0:
        return float("nan")
    return float((df[target_col].astype(str) == str(positive_label)).mean())


def stratification_gap(
    split: Split,
    positive_label: str = POSITIVE_LABEL,
) -> float:
    """Largest absolute positive-rate difference between a subset and the full dataset."""
    field = split.stratify_field
    overall = positive_rate(split.data, field, positive_label)
    return max(
        abs(positive_rate(split.train, field, positive_label) - overall),
        abs(positive_rate(split.test, field, positive_label) - overall),
    )


def summarize_split(
    split: Split,
    positive_label: str = POSITIVE_LABEL,
) -> pd.DataFrame:
    """
    Summarize a split: size and positive rate per subset.

    Returns:
        DataFrame with columns: subset, n, n_positive, positive_rate
    """
    field = split.stratify_field
    rows = []
    for name, subset in (("ALL", split.data), ("TRAIN", split.train), ("TEST", split.test)):
        n_pos = int((subset[field].astype(str) == str(positive_label)).sum())
        rows.append(
            {
                "subset": name,
                "n": len(subset),
                "n_positive": n_pos,
                "positive_rate": n_pos / len(subset) if len(subset) else float("nan"),
            }
        )
    return pd.DataFrame(rows)
