"""
Main CLI entry point for the churn-ML report.

Provides subcommands:
  - churn run-report: Split, tune, finalize, and report all configured models
  - churn save-splits: Persist TRAIN/TEST indices and fold assignments
  - churn config validate: Check a YAML config for issues
"""

import click

from churn_ml import __version__


@click.group()
@click.version_option(version=__version__, prog_name="churn")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    churn-ML: reproducible plan-cancellation classification report

    Splits a customer dataset, cross-validates and tunes several classifiers
    on the training subset, and scores each once on the held-out test subset.
    """
    from churn_ml.utils.random import seed_global_from_env

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # SEED_GLOBAL env var seeds global RNGs (single-threaded debugging)
    seed_applied = seed_global_from_env()
    if seed_applied is not None:
        ctx.obj["seed_global"] = seed_applied


@cli.command("run-report")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Input CSV/Parquet dataset (overrides data.infile)",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default=None,
    help="Output directory for results (overrides output.outdir)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Split seed (overrides splits.seed)",
)
@click.option(
    "--folds",
    type=int,
    default=None,
    help="Number of CV folds (overrides cv.folds)",
)
@click.option(
    "--split-dir",
    type=click.Path(),
    default=None,
    help="Directory of saved splits (overrides splits.outdir)",
)
@click.option(
    "--use-saved-splits",
    is_flag=True,
    default=False,
    help="Reuse the TRAIN/TEST split written by save-splits instead of re-splitting",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def run_report_cmd(ctx, config, **kwargs):
    """Run the full classification report (split, CV/tuning, TEST evaluation)."""
    from churn_ml.cli.run_report import run_report

    cli_args = {k: v for k, v in kwargs.items() if k != "override"}
    # Unset flag must not override splits.use_saved from the config file
    if not cli_args.get("use_saved_splits"):
        cli_args.pop("use_saved_splits", None)
    overrides = list(kwargs.get("override", []))

    run_report(
        config_file=config,
        cli_args=cli_args,
        overrides=overrides,
        verbose=ctx.obj.get("verbose", 0),
    )


@cli.command("save-splits")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    required=True,
    help="Input CSV/Parquet dataset",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default=None,
    help="Output directory for splits (default: splits/)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Split seed",
)
@click.option(
    "--train-fraction",
    type=float,
    default=None,
    help="Proportion of rows in TRAIN (0-1)",
)
@click.option(
    "--folds",
    type=int,
    default=None,
    help="Number of CV folds over TRAIN",
)
@click.option(
    "--overwrite",
    is_flag=True,
    help="Overwrite existing split files",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def save_splits(ctx, config, infile, overwrite, **kwargs):
    """Generate and save a stratified TRAIN/TEST split and its folds."""
    from churn_ml.cli.save_splits import run_save_splits

    cli_args = {k: v for k, v in kwargs.items() if k != "override"}
    overrides = list(kwargs.get("override", []))

    run_save_splits(
        infile=infile,
        config_file=config,
        cli_args=cli_args,
        overrides=overrides,
        overwrite=overwrite,
        verbose=ctx.obj.get("verbose", 0),
    )


@cli.group("config")
@click.pass_context
def config_group(ctx):
    """Configuration management tools."""
    pass


@config_group.command("validate")
@click.argument("config_file", type=click.Path(exists=True))
@click.option(
    "--strict",
    is_flag=True,
    help="Treat warnings as errors",
)
@click.pass_context
def config_validate(ctx, config_file, strict):
    """Validate configuration file and report issues."""
    from pathlib import Path

    from churn_ml.cli.config_tools import run_config_validate

    run_config_validate(
        config_file=Path(config_file),
        strict=strict,
        verbose=ctx.obj.get("verbose", 0),
    )


def main():
    """Entry point for console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
