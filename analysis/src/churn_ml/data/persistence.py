"""Split validation and persistence utilities.

This module handles saving split indices and fold assignments to CSV files,
generating split metadata (JSON), and validating split integrity before
persistence and after reload.

Design:
    - save_split_indices(): Save TRAIN/TEST positional indices to CSV
    - save_fold_assignments(): Save the row -> fold mapping of a FoldSet
    - save_split_metadata(): Generate and save JSON metadata
    - load_split_indices(): Reload and validate saved indices
    - validate_split_indices(): No overlap, in bounds, non-empty
"""

import logging
import os
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

from churn_ml.data.schema import POSITIVE_LABEL
from churn_ml.data.splits import FoldSet, Split, stratification_gap, summarize_split
from churn_ml.utils.serialization import load_json, save_json

logger = logging.getLogger(__name__)


# ============================================================================
# Split Validation
# ============================================================================


def validate_split_indices(
    train_idx: np.ndarray,
    test_idx: np.ndarray,
    total_samples: int | None = None,
) -> tuple[bool, str]:
    """Validate split indices for integrity.

    Args:
        train_idx: Training set indices
        test_idx: Test set indices
        total_samples: Total number of rows in the dataset (for bounds and coverage)

    Returns:
        Tuple of (is_valid, error_message). error_message is empty string if valid.
    """
    if len(train_idx) == 0:
        return False, "TRAIN set is empty"
    if len(test_idx) == 0:
        return False, "TEST set is empty"

    for name, idx in (("train", train_idx), ("test", test_idx)):
        if not np.issubdtype(np.asarray(idx).dtype, np.integer):
            return False, f"{name.upper()} indices must be integers, got {np.asarray(idx).dtype}"
        if np.any(idx < 0):
            return False, f"{name.upper()} contains negative indices"

    overlap = set(train_idx.tolist()) & set(test_idx.tolist())
    if overlap:
        return False, f"TRAIN/TEST overlap: {len(overlap)} samples"

    if total_samples is not None:
        for name, idx in (("train", train_idx), ("test", test_idx)):
            if np.any(idx >= total_samples):
                bad_count = int(np.sum(idx >= total_samples))
                return False, f"{name.upper()} contains {bad_count} indices >= {total_samples}"
        covered = len(train_idx) + len(test_idx)
        if covered != total_samples:
            return False, f"Split covers {covered} of {total_samples} samples"

    return True, ""


def split_file_paths(outdir: str, seed: int) -> dict[str, str]:
    """Canonical file names for a split seed."""
    return {
        "train": os.path.join(outdir, f"train_idx_seed{seed}.csv"),
        "test": os.path.join(outdir, f"test_idx_seed{seed}.csv"),
        "folds": os.path.join(outdir, f"folds_seed{seed}.csv"),
        "meta": os.path.join(outdir, f"split_meta_seed{seed}.json"),
    }


def check_split_files_exist(outdir: str, seed: int) -> tuple[bool, list[str]]:
    """Check if split files already exist in output directory.

    Returns:
        Tuple of (any_exist, existing_paths)
    """
    existing = [p for p in split_file_paths(outdir, seed).values() if os.path.exists(p)]
    return bool(existing), existing


# ============================================================================
# Save / Load
# ============================================================================


def save_split_indices(split: Split, outdir: str, overwrite: bool = False) -> dict[str, str]:
    """Save TRAIN/TEST indices of a split to CSV.

    Raises:
        FileExistsError: If files exist and overwrite is False
        ValueError: If the split fails validation
    """
    ok, msg = validate_split_indices(split.train_idx, split.test_idx, len(split.data))
    if not ok:
        raise ValueError(f"Refusing to save invalid split: {msg}")

    os.makedirs(outdir, exist_ok=True)
    paths = split_file_paths(outdir, split.seed)
    for key in ("train", "test"):
        if os.path.exists(paths[key]) and not overwrite:
            raise FileExistsError(
                f"Split file already exists: {paths[key]}. Use overwrite=True to replace."
            )

    pd.DataFrame({"idx": split.train_idx}).to_csv(paths["train"], index=False)
    pd.DataFrame({"idx": split.test_idx}).to_csv(paths["test"], index=False)
    logger.info(f"Saved split indices to {outdir} (seed={split.seed})")
    return {"train": paths["train"], "test": paths["test"]}


def save_fold_assignments(
    fold_set: FoldSet, outdir: str, split_seed: int, overwrite: bool = False
) -> str:
    """Save the fold that validates each TRAIN row (positions within TRAIN)."""
    os.makedirs(outdir, exist_ok=True)
    path = split_file_paths(outdir, split_seed)["folds"]
    if os.path.exists(path) and not overwrite:
        raise FileExistsError(f"Fold file already exists: {path}. Use overwrite=True to replace.")
    fold_set.assignments().to_csv(path, index=False)
    return path


def save_split_metadata(
    split: Split,
    outdir: str,
    fold_set: FoldSet | None = None,
    positive_label: str = POSITIVE_LABEL,
    extra: dict[str, Any] | None = None,
) -> str:
    """Generate and save JSON metadata describing a split."""
    summary = summarize_split(split, positive_label=positive_label)
    meta: dict[str, Any] = {
        "seed": split.seed,
        "train_fraction": split.train_fraction,
        "stratify_field": split.stratify_field,
        "n_total": len(split.data),
        "n_train": len(split.train_idx),
        "n_test": len(split.test_idx),
        "stratification_gap": stratification_gap(split, positive_label),
        "subsets": summary.to_dict(orient="records"),
        "created_at": datetime.now().isoformat(timespec="seconds"),
    }
    if fold_set is not None:
        meta["cv"] = {"k": fold_set.k, "seed": fold_set.seed}
    if extra:
        meta.update(extra)

    path = split_file_paths(outdir, split.seed)["meta"]
    save_json(meta, path)
    return path


def load_split_indices(
    outdir: str, seed: int, total_samples: int | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """Load saved TRAIN/TEST indices and validate them.

    Raises:
        FileNotFoundError: If either index file is missing
        ValueError: If the loaded indices fail validation
    """
    paths = split_file_paths(outdir, seed)
    for key in ("train", "test"):
        if not os.path.exists(paths[key]):
            raise FileNotFoundError(f"Split file not found: {paths[key]}")

    train_idx = pd.read_csv(paths["train"])["idx"].to_numpy(dtype=int)
    test_idx = pd.read_csv(paths["test"])["idx"].to_numpy(dtype=int)

    ok, msg = validate_split_indices(train_idx, test_idx, total_samples)
    if not ok:
        raise ValueError(f"Invalid split files for seed {seed}: {msg}")
    return train_idx, test_idx


def load_split(
    dataset: pd.DataFrame, outdir: str, seed: int
) -> Split:
    """Rebuild a Split over ``dataset`` from saved indices and metadata."""
    train_idx, test_idx = load_split_indices(outdir, seed, total_samples=len(dataset))
    meta_path = split_file_paths(outdir, seed)["meta"]
    meta = load_json(meta_path) if os.path.exists(meta_path) else {}
    kwargs = {}
    if "stratify_field" in meta:
        kwargs["stratify_field"] = meta["stratify_field"]
    return Split(
        data=dataset,
        train_idx=np.sort(train_idx),
        test_idx=np.sort(test_idx),
        train_fraction=float(meta.get("train_fraction", len(train_idx) / len(dataset))),
        seed=int(seed),
        **kwargs,
    )
