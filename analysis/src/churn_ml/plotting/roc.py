"""
ROC curve plotting for the final model comparison.

Draws one curve per model from the points produced by
ReportAggregator.roc_curves(), with the chance diagonal for reference.
"""

from collections.abc import Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from sklearn.metrics import auc as area_under_curve  # noqa: E402

from churn_ml.plotting._common import apply_plot_metadata  # noqa: E402


def _auc_from_points(fpr: np.ndarray, tpr: np.ndarray) -> float:
    return float(area_under_curve(fpr, tpr))


def plot_roc_curves(
    roc_df: pd.DataFrame,
    out_path: Path | str,
    title: str = "ROC curves (TEST subset)",
    meta_lines: Sequence[str] | None = None,
) -> None:
    """
    Plot ROC curves for several models on one set of axes.

    Args:
        roc_df: Columns model, fpr, tpr (threshold optional)
        out_path: Output image path
        title: Plot title
        meta_lines: Optional metadata lines to display at bottom

    Returns:
        None. Saves plot to out_path (nothing is written when roc_df is empty).
    """
    if roc_df.empty:
        return

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(6.5, 6))
    ax.plot([0, 1], [0, 1], "k--", linewidth=1, alpha=0.6)

    for model, pts in roc_df.groupby("model", sort=False):
        fpr = pts["fpr"].to_numpy(dtype=float)
        tpr = pts["tpr"].to_numpy(dtype=float)
        auc = _auc_from_points(fpr, tpr)
        ax.plot(fpr, tpr, linewidth=2, label=f"{model} (AUC = {auc:.3f})")

    ax.set_xlabel("1 - Specificity (FPR)")
    ax.set_ylabel("Sensitivity (TPR)")
    ax.set_xlim([-0.02, 1.02])
    ax.set_ylim([-0.02, 1.02])
    ax.set_title(title, fontsize=12)
    ax.legend(loc="lower right", fontsize=9)
    ax.grid(True, alpha=0.2)

    bottom_margin = apply_plot_metadata(fig, meta_lines)
    plt.subplots_adjust(left=0.15, right=0.9, top=0.85, bottom=bottom_margin)
    plt.savefig(out_path, dpi=150, pad_inches=0.1)
    plt.close(fig)
