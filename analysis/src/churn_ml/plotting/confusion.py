"""Confusion-matrix heatmap for one model's TEST predictions."""

from collections.abc import Mapping, Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from churn_ml.plotting._common import apply_plot_metadata  # noqa: E402


def plot_confusion_matrix(
    counts: Mapping[str, int],
    out_path: Path | str,
    title: str = "Confusion matrix",
    class_labels: tuple[str, str] = ("no", "yes"),
    meta_lines: Sequence[str] | None = None,
) -> None:
    """
    Plot a 2x2 confusion matrix (rows = truth, columns = prediction).

    Args:
        counts: Dict with TP, TN, FP, FN (as from confusion_counts)
        out_path: Output image path
        title: Plot title
        class_labels: (negative, positive) display labels
        meta_lines: Optional metadata lines to display at bottom
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    matrix = np.array(
        [
            [counts["TN"], counts["FP"]],
            [counts["FN"], counts["TP"]],
        ]
    )

    fig, ax = plt.subplots(figsize=(5, 4.5))
    im = ax.imshow(matrix, cmap="Blues")
    fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    threshold = matrix.max() / 2.0 if matrix.max() > 0 else 0.5
    for i in range(2):
        for j in range(2):
            ax.text(
                j,
                i,
                f"{matrix[i, j]:,}",
                ha="center",
                va="center",
                color="white" if matrix[i, j] > threshold else "black",
                fontsize=12,
            )

    ax.set_xticks([0, 1], labels=list(class_labels))
    ax.set_yticks([0, 1], labels=list(class_labels))
    ax.set_xlabel("Predicted")
    ax.set_ylabel("Truth")
    ax.set_title(title, fontsize=12)

    bottom_margin = apply_plot_metadata(fig, meta_lines)
    plt.subplots_adjust(left=0.15, right=0.9, top=0.85, bottom=bottom_margin)
    plt.savefig(out_path, dpi=150, pad_inches=0.1)
    plt.close(fig)
