"""
Data I/O utilities for the churn-ML pipeline.

Reads the customer dataset (CSV or Parquet), validates the outcome column,
and coerces declared column roles to consistent dtypes.
"""

import logging
from pathlib import Path

import pandas as pd

from churn_ml.data.schema import (
    NEGATIVE_LABEL,
    POSITIVE_LABEL,
    TARGET_COL,
    validate_dataset,
)

logger = logging.getLogger(__name__)


def read_dataset(
    filepath: str | Path,
    *,
    target_col: str = TARGET_COL,
    positive_label: str = POSITIVE_LABEL,
    negative_label: str = NEGATIVE_LABEL,
    validate: bool = True,
) -> pd.DataFrame:
    """
    Read the customer dataset from CSV or Parquet.

    Args:
        filepath: Path to .csv or .parquet file
        target_col: Outcome column name
        positive_label: Event level of the outcome
        negative_label: Non-event level of the outcome
        validate: Whether to validate the outcome column after loading

    Returns:
        DataFrame with a fresh RangeIndex

    Raises:
        FileNotFoundError: If filepath does not exist
        ValueError: If the format is unsupported or validation fails

    Example:
        >>> df = read_dataset("data/customers.csv")
        >>> assert "canceled_plan" in df.columns
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix == ".csv":
        logger.info(f"Reading CSV: {filepath}")
        df = pd.read_csv(filepath, low_memory=False)
    elif suffix == ".parquet":
        logger.info(f"Reading Parquet: {filepath}")
        df = pd.read_parquet(filepath, engine="pyarrow")
    else:
        raise ValueError(
            f"Unsupported file format: {suffix}. Expected .csv or .parquet. File: {filepath}"
        )

    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")

    # Positional indices in splits refer to this ordering
    df = df.reset_index(drop=True)

    if validate:
        validate_dataset(
            df,
            target_col=target_col,
            positive_label=positive_label,
            negative_label=negative_label,
        )

    return df


def coerce_column_types(
    df: pd.DataFrame,
    numeric_cols: list[str],
    categorical_cols: list[str],
) -> pd.DataFrame:
    """
    Coerce declared numeric columns to numbers and categorical columns to strings.

    Unparseable numeric values become NaN (logged); missing categorical values
    stay missing so the preprocessing step decides how to treat them.

    Example:
        >>> df = pd.DataFrame({"total_minutes": ["25", "x"], "region": [1, 2]})
        >>> out = coerce_column_types(df, ["total_minutes"], ["region"])
        >>> assert out["region"].tolist() == ["1", "2"]
    """
    df = df.copy()

    for col in numeric_cols:
        if col not in df.columns:
            logger.warning(f"Column '{col}' not found, skipping numeric coercion")
            continue
        before = int(df[col].isna().sum())
        df[col] = pd.to_numeric(df[col], errors="coerce")
        after = int(df[col].isna().sum())
        if after > before:
            logger.warning(f"Coerced {after - before} non-numeric values in '{col}' to NaN")

    for col in categorical_cols:
        if col not in df.columns:
            logger.warning(f"Column '{col}' not found, skipping categorical coercion")
            continue
        df[col] = df[col].where(df[col].isna(), df[col].astype(str)).astype(object)

    return df
