"""
CLI implementation for the run-report command.

Sequence:
    load data -> class balance -> TRAIN/TEST split -> folds over TRAIN ->
    per model: tune (grid) or resample (fixed) -> finalize on TEST ->
    aggregate -> write tables, plots, and model bundles
"""

import logging
from pathlib import Path
from typing import Any

from churn_ml.config.loader import load_report_config, print_config_summary, save_config
from churn_ml.config.schema import ModelSpec, ReportConfig
from churn_ml.config.validation import validate_report_config
from churn_ml.data.io import coerce_column_types, read_dataset
from churn_ml.data.persistence import load_split
from churn_ml.data.schema import decode_outcome
from churn_ml.data.splits import (
    FoldSet,
    Split,
    class_balance,
    make_folds,
    split_dataset,
    stratification_gap,
    summarize_split,
)
from churn_ml.evaluation.final import finalize
from churn_ml.evaluation.reports import OutputDirectories, ReportAggregator, ResultsWriter
from churn_ml.evaluation.resampling import evaluate
from churn_ml.evaluation.tuning import tune
from churn_ml.features.preprocessing import PreprocessingPipeline
from churn_ml.models.registry import CandidateConfig
from churn_ml.plotting import plot_confusion_matrix, plot_roc_curves, plot_tuning_curve
from churn_ml.utils.logging import auto_log_path, log_section, setup_logger
from churn_ml.utils.random import derive_seed
from churn_ml.utils.serialization import library_versions

# CLI option name -> config key
CLI_TO_CONFIG = {
    "infile": "data.infile",
    "outdir": "output.outdir",
    "seed": "splits.seed",
    "folds": "cv.folds",
    "split_dir": "splits.outdir",
    "use_saved_splits": "splits.use_saved",
}


def _plot_name(model: str, suffix: str) -> str:
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in model)
    return f"{safe}__{suffix}.png"


def _select_candidate(
    spec: ModelSpec,
    config: ReportConfig,
    fold_set: FoldSet,
    preprocessing: PreprocessingPipeline,
    writer: ResultsWriter,
    meta_lines: list[str],
    best_params_rows: list[dict[str, Any]],
    logger: logging.Logger,
) -> CandidateConfig:
    """Tune or resample one model on the folds; return the candidate to finalize."""
    model_seed = derive_seed(config.splits.seed, f"model:{spec.name}")
    candidate = spec.to_candidate().with_seed(model_seed)
    positive_label = config.data.positive_label

    if not candidate.tuned_params():
        result = evaluate(
            candidate,
            fold_set,
            preprocessing,
            config.metrics,
            keep_predictions=config.output.save_fold_predictions,
            n_jobs=config.cv.n_jobs,
            error_score=config.cv.error_score,
            positive_label=positive_label,
            threshold=config.threshold,
        )
        writer.save_resampling_metrics(result.metrics_table(), spec.name)
        summary = result.collect_metrics()
        writer.save_resampling_summary(summary, spec.name)
        if result.predictions is not None:
            writer.save_fold_predictions(result.predictions, spec.name)
        logger.info(
            f"CV ({fold_set.k} folds):\n"
            + summary[["metric", "mean", "std_err", "n_nan"]].to_string(index=False)
        )
        return candidate

    selection_metric = config.tuning.selection_metric
    result = tune(
        candidate,
        spec.grid,
        fold_set,
        preprocessing,
        selection_metric=selection_metric,
        metric_names=config.metrics,
        keep_predictions=config.output.save_fold_predictions,
        n_jobs=config.tuning.n_jobs,
        error_score=config.cv.error_score,
        positive_label=positive_label,
        threshold=config.threshold,
    )
    writer.save_resampling_metrics(result.results_table(), spec.name)
    writer.save_resampling_summary(result.summary, spec.name)
    if result.predictions is not None:
        writer.save_fold_predictions(result.predictions, spec.name)
    logger.info(
        f"Top configurations by {selection_metric}:\n"
        + result.show_best(config.tuning.show_best).to_string(index=False)
    )

    best_rows = result.summary[
        (result.summary["config_id"] == result.best_config_id)
        & (result.summary["metric"] == selection_metric)
    ]
    best_params_rows.append(
        {
            "model": spec.name,
            **result.best_params,
            "selection_metric": selection_metric,
            "cv_mean": float(best_rows["mean"].iloc[0]),
        }
    )

    if config.output.save_plots:
        if len(spec.grid) == 1:
            param = next(iter(spec.grid))
            plot_tuning_curve(
                result.summary,
                param,
                selection_metric,
                writer.dirs.get_path("plots", _plot_name(spec.name, f"tuning_{param}")),
                title=f"{spec.name}: {selection_metric} vs {param}",
                meta_lines=meta_lines,
            )
        else:
            logger.debug(f"{spec.name}: multi-parameter grid, tuning curve skipped")

    return result.best_config


def run_report(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
    log_file: Path | None = None,
) -> OutputDirectories:
    """
    Run the full classification report.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: CLI options mapped onto config keys (see CLI_TO_CONFIG)
        overrides: List of config overrides in "key=value" format (optional)
        verbose: Verbosity level (0=INFO, 1+=DEBUG)
        log_file: Explicit log file (default: logs/report/seed{N}.log beside outdir)

    Returns:
        OutputDirectories the report was written to
    """
    all_overrides = list(overrides) if overrides else []
    if cli_args:
        for key, value in cli_args.items():
            if value is not None and key in CLI_TO_CONFIG:
                all_overrides.append(f"{CLI_TO_CONFIG[key]}={value}")

    config = load_report_config(config_file=config_file, overrides=all_overrides)
    if config.data.infile is None:
        raise ValueError(
            "run-report requires an input file. Provide 'data.infile' in config or --infile."
        )

    log_level = max(logging.DEBUG, logging.INFO - verbose * 10)
    if log_file is None:
        log_file = auto_log_path("run-report", config.output.outdir, seed=config.splits.seed)
    logger = setup_logger("churn_ml", level=log_level, log_file=log_file)

    log_section(logger, "churn-ML Classification Report")
    logger.info(f"Logging to file: {log_file}")
    validate_report_config(config)
    if verbose:
        print_config_summary(config, logger)

    # Step 1: Data
    log_section(logger, "Loading Data")
    data_cfg = config.data
    df = read_dataset(
        data_cfg.infile,
        target_col=data_cfg.target_col,
        positive_label=data_cfg.positive_label,
        negative_label=data_cfg.negative_label,
    )
    if data_cfg.numeric_cols is not None or data_cfg.categorical_cols is not None:
        df = coerce_column_types(df, data_cfg.numeric_cols or [], data_cfg.categorical_cols or [])

    outdirs = OutputDirectories.create(str(config.output.outdir), split_seed=config.splits.seed)
    writer = ResultsWriter(outdirs)
    writer.save_run_settings(
        {"config": config.model_dump(mode="json"), "versions": library_versions()}
    )
    save_config(config, Path(outdirs.root) / "report_config.yaml")

    balance = class_balance(df, data_cfg.target_col)
    writer.save_class_balance(balance)
    logger.info("Class balance:\n" + balance.to_string(index=False))

    # Step 2: Split and folds
    log_section(logger, "Splitting")
    if config.splits.use_saved:
        split: Split = load_split(df, str(config.splits.outdir), config.splits.seed)
        logger.info(f"Using saved split from {config.splits.outdir} (seed {config.splits.seed})")
    else:
        split = split_dataset(
            df,
            train_fraction=config.splits.train_fraction,
            stratify_field=data_cfg.target_col,
            seed=config.splits.seed,
        )
    writer.save_split_summary(summarize_split(split, data_cfg.positive_label))
    logger.info(f"Stratification gap: {stratification_gap(split, data_cfg.positive_label):.4f}")

    fold_set = make_folds(
        split.train,
        k=config.cv.folds,
        stratify_field=data_cfg.target_col,
        seed=config.cv_seed,
    )

    preprocessing = PreprocessingPipeline(
        numeric_cols=data_cfg.numeric_cols,
        categorical_cols=data_cfg.categorical_cols,
        power_transform=config.preprocessing.power_transform,
        standardize=config.preprocessing.standardize,
        unknown_policy=config.preprocessing.unknown_policy,
        target_col=data_cfg.target_col,
        id_col=data_cfg.id_col,
    )
    meta_lines = [
        f"split seed={config.splits.seed}, cv seed={config.cv_seed}, k={config.cv.folds}",
        f"TRAIN n={len(split.train_idx):,}, TEST n={len(split.test_idx):,}",
    ]

    # Step 3: Models
    aggregator = ReportAggregator()
    best_params_rows: list[dict[str, Any]] = []
    for spec in config.enabled_models:
        log_section(logger, f"Model: {spec.name} ({spec.family})")
        final_candidate = _select_candidate(
            spec, config, fold_set, preprocessing, writer, meta_lines, best_params_rows, logger
        )

        final = finalize(
            final_candidate,
            preprocessing,
            split,
            config.metrics,
            positive_label=data_cfg.positive_label,
            threshold=config.threshold,
        )
        aggregator.add(spec.name, final)

        if config.output.save_predictions:
            preds = final.predictions.assign(
                pred_label=decode_outcome(
                    final.predictions["y_pred"], data_cfg.positive_label, data_cfg.negative_label
                )
            )
            writer.save_test_predictions(preds, spec.name)
        if config.output.save_models:
            writer.save_model_artifact(
                final,
                spec.name,
                metadata={
                    "split_seed": config.splits.seed,
                    "cv_seed": config.cv_seed,
                    "target_col": data_cfg.target_col,
                    "positive_label": data_cfg.positive_label,
                },
            )

    # Step 4: Aggregate
    log_section(logger, "Report")
    metrics_table = aggregator.metrics_table()
    confusion = aggregator.confusion_matrices()
    roc = aggregator.roc_curves()
    writer.save_metrics_table(metrics_table)
    writer.save_confusion_matrices(confusion)
    writer.save_roc_curves(roc)
    if best_params_rows:
        writer.save_best_params(best_params_rows)

    if config.output.save_plots:
        plot_roc_curves(roc, outdirs.get_path("plots", "roc_curves.png"), meta_lines=meta_lines)
        labels = (data_cfg.negative_label, data_cfg.positive_label)
        for row in confusion.to_dict(orient="records"):
            plot_confusion_matrix(
                row,
                outdirs.get_path("plots", _plot_name(row["model"], "confusion")),
                title=f"{row['model']} (TEST)",
                class_labels=labels,
                meta_lines=meta_lines,
            )

    if not metrics_table.empty:
        logger.info("TEST metrics:\n" + metrics_table.to_string(index=False))
    logger.info(f"Outputs: {', '.join(writer.summarize_outputs())}")
    logger.info(f"Report complete: {outdirs.root}")
    return outdirs
