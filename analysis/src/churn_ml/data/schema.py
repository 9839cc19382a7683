"""
Data schema definitions and constants.

Defines the outcome column, its two levels, and helpers that validate a
dataset against that schema and split its columns into numeric and
categorical fields.
"""

import numpy as np
import pandas as pd

# ============================================================================
# Column Names
# ============================================================================

# Outcome column (binary)
TARGET_COL = "canceled_plan"

# Optional identifier column (never used as a feature)
ID_COL = "customer_id"

# ============================================================================
# Class Labels
# ============================================================================

# Positive (event) level: the customer cancelled their plan
POSITIVE_LABEL = "yes"
NEGATIVE_LABEL = "no"

# ============================================================================
# Preprocessing Constants
# ============================================================================

# Level substituted for categorical values unseen at fit time
UNKNOWN_CATEGORY = "__unknown__"

# ============================================================================
# Split Names
# ============================================================================

SPLIT_TRAIN = "TRAIN"
SPLIT_TEST = "TEST"


def validate_dataset(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
    positive_label: str = POSITIVE_LABEL,
    negative_label: str = NEGATIVE_LABEL,
) -> None:
    """
    Check that the outcome column exists, is complete, and is binary.

    Args:
        df: Dataset
        target_col: Outcome column name
        positive_label: Event level
        negative_label: Non-event level

    Raises:
        ValueError: If the outcome is missing, has NaNs, or has unexpected levels
    """
    if target_col not in df.columns:
        raise ValueError(f"Outcome column '{target_col}' not found in dataset")

    n_missing = int(df[target_col].isna().sum())
    if n_missing:
        raise ValueError(f"Outcome column '{target_col}' has {n_missing} missing values")

    levels = set(df[target_col].astype(str).unique())
    unexpected = levels - {str(positive_label), str(negative_label)}
    if unexpected:
        raise ValueError(
            f"Outcome column '{target_col}' has unexpected levels {sorted(unexpected)}; "
            f"expected '{positive_label}' / '{negative_label}'"
        )


def encode_outcome(
    values: pd.Series | np.ndarray,
    positive_label: str = POSITIVE_LABEL,
) -> np.ndarray:
    """Map outcome labels to 0/1 (1 = positive label)."""
    values = pd.Series(values).astype(str)
    return (values == str(positive_label)).to_numpy(dtype=int)


def decode_outcome(
    y: np.ndarray,
    positive_label: str = POSITIVE_LABEL,
    negative_label: str = NEGATIVE_LABEL,
) -> np.ndarray:
    """Map 0/1 predictions back to outcome labels."""
    y = np.asarray(y).astype(int)
    return np.where(y == 1, positive_label, negative_label)


def infer_feature_columns(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
    id_col: str | None = ID_COL,
) -> tuple[list[str], list[str]]:
    """
    Split feature columns into numeric and categorical by dtype.

    Booleans are treated as categorical. The outcome and id columns are excluded.

    Returns:
        (numeric_cols, categorical_cols), each in dataset column order
    """
    excluded = {target_col}
    if id_col:
        excluded.add(id_col)

    numeric_cols: list[str] = []
    categorical_cols: list[str] = []
    for col in df.columns:
        if col in excluded:
            continue
        dtype = df[col].dtype
        if pd.api.types.is_bool_dtype(dtype):
            categorical_cols.append(col)
        elif pd.api.types.is_numeric_dtype(dtype):
            numeric_cols.append(col)
        else:
            categorical_cols.append(col)

    return numeric_cols, categorical_cols
