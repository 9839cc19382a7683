"""
Consistent logging setup for the churn-ML pipeline.

USAGE PATTERN:
    - CLI entrypoints call setup_logger() to attach handlers
    - Library modules use logging.getLogger(__name__) directly (no handlers)
    - Child loggers propagate to the "churn_ml" logger
"""

import logging
import sys
from pathlib import Path


def setup_logger(
    name: str = "churn_ml",
    level: int = logging.INFO,
    log_file: Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Setup a logger with console and optional file output.

    Args:
        name: Logger name (typically "churn_ml" for the CLI)
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        format_string: Custom format string (default: timestamp + level + message)

    Returns:
        Configured logger instance with handlers attached
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    # Library loggers propagate into this one; stop here to avoid double output
    logger.propagate = False

    if format_string is None:
        format_string = "[%(asctime)s] %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def verbose_to_level(verbose: int) -> int:
    """Map a -v count to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def auto_log_path(
    command: str,
    outdir: Path | str = "results",
    seed: int | None = None,
) -> Path:
    """Build an automatic log file path based on command context.

    Log directory structure (sibling of the results directory):
        logs/
          report/seed{N}.log
          splits/seed{N}.log

    Args:
        command: CLI command name (run-report, save-splits)
        outdir: Results output directory (used to resolve logs/ sibling)
        seed: Split seed (used for per-seed log files)

    Returns:
        Absolute Path for the log file. Parent directories are created by
        setup_logger(log_file=...).
    """
    outdir = Path(outdir).resolve()
    logs_root = outdir.parent / "logs" if outdir.name != "logs" else outdir
    seed_part = f"seed{seed}" if seed is not None else "seed_unknown"

    if command == "run-report":
        return logs_root / "report" / f"{seed_part}.log"

    if command == "save-splits":
        return logs_root / "splits" / f"{seed_part}.log"

    return logs_root / "misc" / f"{command}_{seed_part}.log"


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Log a section header."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)
