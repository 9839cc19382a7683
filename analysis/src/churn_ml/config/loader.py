"""
Configuration loading and merging logic.

Supports:
1. Loading from YAML files (with ``_base`` inheritance)
2. CLI argument overrides (dot-notation: e.g., cv.folds=10, models.2.enabled=false)
3. Path resolution relative to the config file
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from churn_ml.config.defaults import DEFAULT_REPORT_CONFIG
from churn_ml.config.schema import ReportConfig


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overlay* into *base* (overlay wins on leaf conflicts).

    Lists are replaced, not concatenated. Returns a new dict; neither input
    is mutated.
    """
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """Load configuration from YAML file.

    Supports a ``_base`` key: if present, the referenced YAML file is loaded
    first and the current file's values are deep-merged on top. The ``_base``
    path is resolved relative to the directory containing *file_path*.
    Bases can be chained (a base may itself declare ``_base``).
    """
    file_path = Path(file_path).resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path) as f:
        config_dict = yaml.safe_load(f) or {}

    base_ref = config_dict.pop("_base", None)
    if base_ref is not None:
        base_path = (file_path.parent / base_ref).resolve()
        base_dict = load_yaml(base_path)
        config_dict = _deep_merge(base_dict, config_dict)

    return config_dict


PATH_KEYS = ("infile", "outdir")


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: Path
) -> dict[str, Any]:
    """
    Resolve relative paths in a config dict against the config file directory.

    Only keys named in PATH_KEYS are touched, at the top level or one section
    deep (e.g. ``data.infile``, ``output.outdir``). Absolute paths are kept.
    """
    config_dir = Path(config_file).resolve().parent

    def resolve_value(value: Any) -> Any:
        if isinstance(value, str | Path) and str(value):
            path = Path(value)
            if not path.is_absolute():
                return str(config_dir / path)
        return value

    resolved = copy.deepcopy(config_dict)
    for key, val in resolved.items():
        if key in PATH_KEYS:
            resolved[key] = resolve_value(val)
        elif isinstance(val, dict):
            for nested_key, nested_val in val.items():
                if nested_key in PATH_KEYS:
                    val[nested_key] = resolve_value(nested_val)
    return resolved


# Keys whose override values are always lists
LIST_KEYS = {"metrics", "numeric_cols", "categorical_cols", "n_neighbors", "min_samples_leaf"}

# Keys whose override values are never parsed as numbers or booleans
STRING_KEYS = {"positive_label", "negative_label", "target_col", "id_col", "name", "family"}


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply CLI overrides to config dictionary.

    Supports dot-notation for nested keys and integer positions into lists:
        cv.folds=10 -> config_dict['cv']['folds'] = 10
        models.2.grid.n_neighbors=3,5 -> config_dict['models'][2]['grid']['n_neighbors'] = [3, 5]

    Args:
        config_dict: Base configuration dictionary
        overrides: List of "key=value" or "nested.key=value" strings

    Returns:
        Updated config dictionary

    Raises:
        ValueError: If an override is malformed or indexes past a list
    """
    for override in overrides:
        if "=" not in override:
            raise ValueError(f"Invalid override format: {override}. Expected 'key=value'")

        key_path, value_str = override.split("=", 1)
        keys = key_path.split(".")

        target: Any = config_dict
        for key in keys[:-1]:
            if isinstance(target, list):
                target = target[_list_position(target, key, override)]
                continue
            if target.get(key) is None:
                target[key] = {}
            target = target[key]

        final_key = keys[-1]
        value = _parse_value(
            value_str,
            force_list=final_key in LIST_KEYS,
            force_string=final_key in STRING_KEYS,
        )
        if isinstance(target, list):
            target[_list_position(target, final_key, override)] = value
        else:
            target[final_key] = value

    return config_dict


def _list_position(target: list, key: str, override: str) -> int:
    if not key.isdigit() or int(key) >= len(target):
        raise ValueError(f"Override '{override}': '{key}' is not a valid list position")
    return int(key)


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Parse string value to appropriate Python type.

    Args:
        value_str: String to parse
        force_list: If True, always return a list (for comma-separated or single values)
        force_string: If True, always return a string (skip int/float parsing)
    """
    if force_string:
        return value_str

    if value_str.lower() in ("true", "false"):
        parsed_bool = value_str.lower() == "true"
        return [parsed_bool] if force_list else parsed_bool

    if value_str.lower() in ("none", "null"):
        return [None] if force_list else None

    if "," in value_str or force_list:
        return [_parse_scalar(v.strip()) for v in value_str.split(",") if v.strip()]

    return _parse_scalar(value_str)


def _parse_scalar(value_str: str) -> Any:
    try:
        return int(value_str)
    except ValueError:
        pass
    try:
        return float(value_str)
    except ValueError:
        pass
    return value_str


def load_report_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> ReportConfig:
    """
    Load report configuration from defaults, a YAML file, and CLI overrides.

    Args:
        config_file: Path to YAML config file (optional)
        overrides: List of CLI overrides in "key=value" format (optional)

    Returns:
        Validated ReportConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ValueError: If the merged configuration is invalid
    """
    config_dict = copy.deepcopy(DEFAULT_REPORT_CONFIG)

    if config_file is not None:
        config_file_path = Path(config_file)
        file_config = load_yaml(config_file_path)
        file_config = resolve_paths_relative_to_config(file_config, config_file_path)
        config_dict = _deep_merge(config_dict, file_config)

    if overrides:
        config_dict = apply_overrides(config_dict, overrides)

    try:
        return ReportConfig(**config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid report configuration:\n{e}") from e


def _to_yaml_ready(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {k: _to_yaml_ready(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_yaml_ready(v) for v in value]
    return value


def save_config(config: ReportConfig, output_path: str | Path):
    """Save resolved configuration to YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = _to_yaml_ready(config.model_dump())
    with open(output_path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)


def print_config_summary(config: ReportConfig, logger: logging.Logger | None = None):
    """Print human-readable configuration summary."""
    lines = ["=" * 80, "Configuration Summary", "=" * 80]

    def format_value(key: str, value: Any, indent: int) -> list[str]:
        pad = "  " * indent
        if isinstance(value, dict):
            out = [f"{pad}{key}:"]
            for k, v in value.items():
                out.extend(format_value(k, v, indent + 1))
            return out
        return [f"{pad}{key}: {value}"]

    for key, value in _to_yaml_ready(config.model_dump()).items():
        lines.extend(format_value(key, value, 0))
    lines.append("=" * 80)

    summary = "\n".join(lines)
    if logger:
        logger.info(summary)
    else:
        print(summary)
