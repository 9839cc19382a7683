"""Shared figure helpers."""

from collections.abc import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.figure  # noqa: E402


def apply_plot_metadata(
    fig: matplotlib.figure.Figure, meta_lines: Sequence[str] | None = None
) -> float:
    """
    Apply metadata text to bottom of figure.

    Args:
        fig: matplotlib figure object
        meta_lines: sequence of metadata strings to display

    Returns:
        Required bottom margin as fraction of figure height (0.0 to 1.0)
    """
    lines = [str(line) for line in (meta_lines or []) if line]
    if not lines:
        return 0.12

    fig.text(0.5, 0.005, "\n".join(lines), ha="center", va="bottom", fontsize=8, wrap=True)

    # Base margin plus one text line per entry, capped
    required_bottom = 0.12 + (0.022 * len(lines))
    return min(required_bottom, 0.30)
