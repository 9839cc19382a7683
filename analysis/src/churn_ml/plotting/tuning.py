"""
Hyperparameter tuning diagnostics.

Plots the cross-validated mean of one metric against one tuned
hyperparameter, with +/- one standard error bars.
"""

from collections.abc import Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from churn_ml.plotting._common import apply_plot_metadata  # noqa: E402


def plot_tuning_curve(
    summary: pd.DataFrame,
    param: str,
    metric: str,
    out_path: Path | str,
    title: str | None = None,
    meta_lines: Sequence[str] | None = None,
) -> None:
    """
    Plot mean CV metric versus a tuned hyperparameter.

    Args:
        summary: TuningResult.summary (long format with metric/mean/std_err)
        param: Hyperparameter column to put on the x-axis
        metric: Metric to plot
        out_path: Output image path
        title: Plot title (default: "<metric> vs <param>")
        meta_lines: Optional metadata lines to display at bottom

    Raises:
        ValueError: If the parameter or metric is absent from the summary
    """
    if param not in summary.columns:
        raise ValueError(f"Parameter '{param}' not in tuning summary")
    rows = summary[summary["metric"] == metric]
    if rows.empty:
        raise ValueError(f"Metric '{metric}' not in tuning summary")

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    numeric_x = pd.api.types.is_numeric_dtype(rows[param])
    if numeric_x:
        rows = rows.sort_values(param, kind="mergesort")
        x = rows[param].to_numpy()
    else:
        x = rows[param].astype(str).to_numpy()

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.errorbar(
        x,
        rows["mean"].to_numpy(dtype=float),
        yerr=rows["std_err"].fillna(0.0).to_numpy(dtype=float),
        marker="o",
        color="steelblue",
        linewidth=2,
        capsize=3,
    )
    ax.set_xlabel(param)
    ax.set_ylabel(f"{metric} (CV mean +/- SE)")
    ax.set_title(title or f"{metric} vs {param}", fontsize=12)
    ax.grid(True, alpha=0.2)

    bottom_margin = apply_plot_metadata(fig, meta_lines)
    plt.subplots_adjust(left=0.15, right=0.9, top=0.85, bottom=bottom_margin)
    plt.savefig(out_path, dpi=150, pad_inches=0.1)
    plt.close(fig)
