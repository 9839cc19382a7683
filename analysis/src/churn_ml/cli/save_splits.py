"""
CLI implementation for the save-splits command.

Persists the TRAIN/TEST indices, fold assignments, and split metadata that
run-report would use for the same seeds, so splits can be inspected or
reused outside the report.
"""

import logging
from pathlib import Path
from typing import Any

from churn_ml.config.loader import load_report_config
from churn_ml.data.io import read_dataset
from churn_ml.data.persistence import (
    check_split_files_exist,
    save_fold_assignments,
    save_split_indices,
    save_split_metadata,
)
from churn_ml.data.splits import make_folds, split_dataset, stratification_gap, summarize_split
from churn_ml.utils.logging import auto_log_path, log_section, setup_logger

# CLI option name -> config key
CLI_TO_CONFIG = {
    "outdir": "splits.outdir",
    "seed": "splits.seed",
    "train_fraction": "splits.train_fraction",
    "folds": "cv.folds",
}


def run_save_splits(
    infile: str,
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    overwrite: bool = False,
    verbose: int = 0,
) -> dict[str, str]:
    """
    Generate and save one split plus its folds.

    Args:
        infile: Input dataset (CSV or Parquet)
        config_file: Path to YAML config file (optional)
        cli_args: CLI options mapped onto config keys
        overrides: List of config overrides (optional)
        overwrite: Replace existing split files
        verbose: Verbosity level (0=INFO, 1+=DEBUG)

    Returns:
        Dict of written file paths (train, test, folds, meta)

    Raises:
        FileExistsError: If split files exist and overwrite is False
    """
    all_overrides = list(overrides) if overrides else []
    if cli_args:
        for key, value in cli_args.items():
            if value is not None and key in CLI_TO_CONFIG:
                all_overrides.append(f"{CLI_TO_CONFIG[key]}={value}")

    config = load_report_config(config_file=config_file, overrides=all_overrides)
    outdir = Path(config.splits.outdir)
    seed = config.splits.seed

    log_level = max(logging.DEBUG, logging.INFO - verbose * 10)
    log_file = auto_log_path("save-splits", outdir, seed=seed)
    logger = setup_logger("churn_ml", level=log_level, log_file=log_file)

    log_section(logger, "churn-ML Split Generation")
    logger.info(f"Train fraction: {config.splits.train_fraction:.2%}")
    logger.info(f"Split seed: {seed}, CV seed: {config.cv_seed}, folds: {config.cv.folds}")

    exists, existing = check_split_files_exist(str(outdir), seed)
    if exists and not overwrite:
        raise FileExistsError(
            f"Split files already exist for seed {seed}: {existing}. Use --overwrite to replace."
        )

    data_cfg = config.data
    df = read_dataset(
        infile,
        target_col=data_cfg.target_col,
        positive_label=data_cfg.positive_label,
        negative_label=data_cfg.negative_label,
    )
    logger.info(f"Loaded {len(df):,} samples")

    split = split_dataset(
        df,
        train_fraction=config.splits.train_fraction,
        stratify_field=data_cfg.target_col,
        seed=seed,
    )
    fold_set = make_folds(
        split.train,
        k=config.cv.folds,
        stratify_field=data_cfg.target_col,
        seed=config.cv_seed,
    )

    logger.info("\n" + summarize_split(split, data_cfg.positive_label).to_string(index=False))
    logger.info(f"Stratification gap: {stratification_gap(split, data_cfg.positive_label):.4f}")

    paths = save_split_indices(split, str(outdir), overwrite=overwrite)
    paths["folds"] = save_fold_assignments(fold_set, str(outdir), seed, overwrite=overwrite)
    paths["meta"] = save_split_metadata(
        split,
        str(outdir),
        fold_set=fold_set,
        positive_label=data_cfg.positive_label,
        extra={"infile": str(Path(infile).resolve())},
    )

    log_section(logger, "Split generation complete")
    logger.info(f"Output directory: {outdir}")
    return paths
