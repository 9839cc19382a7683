"""Data handling, splitting, and schema definitions."""

from churn_ml.data.io import coerce_column_types, read_dataset
from churn_ml.data.persistence import (
    check_split_files_exist,
    load_split,
    load_split_indices,
    save_fold_assignments,
    save_split_indices,
    save_split_metadata,
    validate_split_indices,
)
from churn_ml.data.schema import (
    ID_COL,
    NEGATIVE_LABEL,
    POSITIVE_LABEL,
    TARGET_COL,
    UNKNOWN_CATEGORY,
    decode_outcome,
    encode_outcome,
    infer_feature_columns,
    validate_dataset,
)
from churn_ml.data.splits import (
    Fold,
    FoldSet,
    Split,
    class_balance,
    make_folds,
    split_dataset,
    stratification_gap,
    summarize_split,
)

__all__ = [
    # Schema
    "ID_COL",
    "TARGET_COL",
    "POSITIVE_LABEL",
    "NEGATIVE_LABEL",
    "UNKNOWN_CATEGORY",
    "validate_dataset",
    "encode_outcome",
    "decode_outcome",
    "infer_feature_columns",
    # I/O
    "read_dataset",
    "coerce_column_types",
    # Splits
    "Split",
    "Fold",
    "FoldSet",
    "split_dataset",
    "make_folds",
    "class_balance",
    "stratification_gap",
    "summarize_split",
    # Persistence
    "validate_split_indices",
    "check_split_files_exist",
    "save_split_indices",
    "save_fold_assignments",
    "save_split_metadata",
    "load_split_indices",
    "load_split",
]
