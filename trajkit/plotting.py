"""
Plotting helpers for pairwise RMSD results.

Example:
    >>> from trajkit import plotting
    >>> plotting.rmsd_matrix(result, show=False)
    >>> plotting.save("rmsd.png")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .analysis.pairwise import PairwiseResult

# Try to import matplotlib, but don't fail if not available
try:
    import matplotlib.pyplot as plt

    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False
    plt = None

logger = logging.getLogger(__name__)


def _check_matplotlib():
    """Check if matplotlib is available."""
    if not HAS_MATPLOTLIB:
        raise ImportError(
            "matplotlib is required for plotting. "
            "Install it with: pip install matplotlib"
        )


def rmsd_matrix(
    result: PairwiseResult | np.ndarray,
    show: bool = True,
    figsize: tuple[float, float] = (7, 6),
    cmap: str = "viridis",
    title: str = "Pairwise RMSD",
):
    """
    Heatmap of a pairwise RMSD matrix.

    Blocks along the diagonal are sets of similar conformations; off-diagonal
    cross-peaks show the simulation revisiting earlier states.

    Args:
        result: PairwiseResult or a bare matrix.
        show: Whether to display the plot immediately.
        figsize: Figure size (width, height) in inches.
        cmap: Matplotlib colormap name.
        title: Axes title.

    Returns:
        The matplotlib Figure.
    """
    _check_matplotlib()

    matrix = result if isinstance(result, np.ndarray) else result.matrix
    if matrix.size == 0:
        raise ValueError("RMSD matrix is empty")

    fig, ax = plt.subplots(figsize=figsize)
    image = ax.imshow(matrix, origin="lower", cmap=cmap, interpolation="nearest")
    fig.colorbar(image, ax=ax, label="RMSD")
    is_cross = not isinstance(result, np.ndarray) and not result.is_symmetric
    ax.set_xlabel("Frame (trajectory 2)" if is_cross else "Frame")
    ax.set_ylabel("Frame (trajectory 1)" if is_cross else "Frame")
    ax.set_title(title)

    plt.tight_layout()
    if show:
        plt.show()
    return fig


def save(filename: str | Path, dpi: int = 150) -> None:
    """
    Save the current figure to a file.

    Args:
        filename: Output filename (e.g., "plot.png", "plot.pdf").
        dpi: Resolution in dots per inch.
    """
    _check_matplotlib()
    plt.savefig(filename, dpi=dpi, bbox_inches="tight")
    logger.info("Saved plot to %s", filename)


def close() -> None:
    """Close all open figures."""
    _check_matplotlib()
    plt.close("all")
