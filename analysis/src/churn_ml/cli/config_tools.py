"""
CLI implementation for configuration tools.

Provides:
- config validate: Validate a report config file and report issues
"""

import sys
from pathlib import Path

import click

from churn_ml.config.loader import load_report_config
from churn_ml.config.validation import validate_config
from churn_ml.utils.logging import setup_logger, verbose_to_level


def validate_config_file(
    config_file: Path,
    strict: bool = False,
) -> tuple[bool, list[str], list[str]]:
    """
    Validate a configuration file.

    Args:
        config_file: Path to YAML config file
        strict: Treat warnings as errors

    Returns:
        Tuple of (is_valid, errors, warnings)
    """
    try:
        config = load_report_config(config_file=config_file)
    except (ValueError, FileNotFoundError) as e:
        return False, [str(e)], []

    errors, warnings_list = validate_config(config)
    is_valid = not errors and not (strict and warnings_list)
    return is_valid, errors, warnings_list


def run_config_validate(
    config_file: Path,
    strict: bool = False,
    verbose: int = 0,
):
    """
    Run config validation command.

    Args:
        config_file: Path to config file
        strict: Treat warnings as errors
        verbose: Verbosity level
    """
    logger = setup_logger("churn_ml.config.validate", level=verbose_to_level(verbose))
    logger.info(f"Validating config: {config_file}")

    is_valid, errors, warnings_list = validate_config_file(config_file, strict=strict)

    click.echo("\n" + "=" * 80)
    click.echo(f"Validation Report: {config_file.name}")
    click.echo("=" * 80)

    if errors:
        click.echo(f"\nERRORS ({len(errors)}):")
        for err in errors:
            click.echo(f"  - {err}")

    if warnings_list:
        click.echo(f"\nWARNINGS ({len(warnings_list)}):")
        for warn in warnings_list:
            click.echo(f"  - {warn}")

    if is_valid:
        click.echo("\n[OK] Config is valid")
    else:
        click.echo("\n[FAIL] Config is invalid")
        if strict:
            click.echo("  (strict mode: warnings treated as errors)")

    click.echo("=" * 80)

    sys.exit(0 if is_valid else 1)
