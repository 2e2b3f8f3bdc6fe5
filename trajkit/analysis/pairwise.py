"""Pairwise RMSD matrices between trajectory frames."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

from ..exceptions import AtomCountMismatchError, NumericalError
from .coords import FrameSource, make_frame_source
from .superposition import LinearAlgebraBackend, calc_rmsd

if TYPE_CHECKING:
    from ..io.base import Trajectory
    from ..progress import ProgressCounter
    from ..system import AtomGroup

logger = logging.getLogger(__name__)


@dataclass
class PairwiseResult:
    """
    Pairwise RMSD matrix with the frames it was computed from.

    Attributes:
        matrix: RMSD matrix. Square and symmetric for a single trajectory;
            (len(frames), len(frames2)) when comparing two trajectories.
        frames: Trajectory frame index of each row.
        frames2: Trajectory frame index of each column, for two trajectories.
    """

    matrix: NDArray[np.floating]
    frames: list[int] = field(default_factory=list)
    frames2: list[int] | None = None

    @property
    def is_symmetric(self) -> bool:
        """True for a single-trajectory comparison."""
        return self.frames2 is None

    @property
    def n_pairs(self) -> int:
        """Number of distinct comparisons."""
        return len(self.pair_values())

    def pair_values(self) -> NDArray[np.floating]:
        """Each distinct comparison once (upper triangle when symmetric)."""
        if self.is_symmetric:
            return self.matrix[np.triu_indices(len(self.matrix), k=1)]
        return self.matrix.reshape(-1)

    def summary(self) -> dict[str, Any]:
        """Mean, standard deviation, minimum and maximum over the comparisons."""
        values = self.pair_values()
        if len(values) == 0:
            return {"n_pairs": 0, "mean": 0.0, "std": 0.0, "min": 0.0, "max": 0.0}
        return {
            "n_pairs": int(len(values)),
            "mean": float(values.mean()),
            "std": float(values.std()),
            "min": float(values.min()),
            "max": float(values.max()),
        }


def _pair_rmsd(
    u: NDArray[np.floating],
    v: NDArray[np.floating],
    label: str,
    backend: LinearAlgebraBackend | None,
) -> float:
    try:
        return calc_rmsd(u, v, backend=backend)
    except NumericalError as exc:
        error = NumericalError(f"{label}: {exc}")
        error.info = exc.info
        raise error from exc


def _run_rows(rows, work, source_thread_safe: bool, n_workers: int) -> None:
    if n_workers > 1:
        if not source_thread_safe:
            raise ValueError(
                "Parallel comparison needs cached coordinates; "
                "uncached trajectories cannot be read from several threads"
            )
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            for future in [pool.submit(work, row) for row in rows]:
                future.result()
    else:
        for row in rows:
            work(row)


def rmsds(
    source: FrameSource,
    progress: ProgressCounter | None = None,
    n_workers: int = 1,
    backend: LinearAlgebraBackend | None = None,
) -> NDArray[np.floating]:
    """
    Symmetric matrix of RMSDs between all pairs of frames.

    Each of the n(n-1)/2 pairs in the strict upper triangle is computed
    once and mirrored; the diagonal is zero.

    Args:
        source: Centered per-frame coordinates.
        progress: Updated once per pair; None disables reporting.
        n_workers: Threads to spread rows over (needs a thread-safe source).
        backend: Linear algebra backend for the RMSD kernel.

    Returns:
        (n, n) RMSD matrix.
    """
    n = len(source)
    r = np.zeros((n, n), dtype=np.float64)
    frames = source.frames

    def row_work(j: int) -> None:
        uj = source.frame(j)
        for i in range(j):
            value = _pair_rmsd(uj, source.frame(i), f"frames {frames[j]} and {frames[i]}", backend)
            r[j, i] = value
            r[i, j] = value
            if progress is not None:
                progress.update()

    logger.info("Computing %d pairwise RMSDs over %d frames", n * (n - 1) // 2, n)
    if progress is not None:
        progress.start()
    _run_rows(range(1, n), row_work, source.thread_safe, n_workers)
    if progress is not None:
        progress.finish()
    return r


def cross_rmsds(
    source1: FrameSource,
    source2: FrameSource,
    progress: ProgressCounter | None = None,
    n_workers: int = 1,
    backend: LinearAlgebraBackend | None = None,
) -> NDArray[np.floating]:
    """
    RMSDs between every frame of one source and every frame of another.

    Atoms are matched by position: atom k of ``source1`` against atom k of
    ``source2``.

    Returns:
        (len(source1), len(source2)) RMSD matrix.

    Raises:
        AtomCountMismatchError: If the sources differ in atom count.
    """
    if source1.n_atoms != source2.n_atoms:
        raise AtomCountMismatchError(
            source1.n_atoms, source2.n_atoms, context="selections of the two trajectories"
        )

    n1, n2 = len(source1), len(source2)
    r = np.zeros((n1, n2), dtype=np.float64)
    frames1, frames2 = source1.frames, source2.frames

    def row_work(i: int) -> None:
        ui = source1.frame(i)
        for j in range(n2):
            r[i, j] = _pair_rmsd(
                ui, source2.frame(j), f"frames {frames1[i]} and {frames2[j]}", backend
            )
            if progress is not None:
                progress.update()

    logger.info("Computing %d x %d cross RMSDs", n1, n2)
    if progress is not None:
        progress.start()
    _run_rows(
        range(n1), row_work, source1.thread_safe and source2.thread_safe, n_workers
    )
    if progress is not None:
        progress.finish()
    return r


class PairwiseRMSD:
    """
    Pairwise RMSD driver.

    Holds how comparisons are run (caching, threads, backend, progress) so
    the same settings can be applied to several trajectories.

    Args:
        cache: Hold all coordinates in memory (default) or re-read per pair.
        n_workers: Worker threads (cached mode only).
        backend: Linear algebra backend.
        progress: Progress counter; its total should match the pair count.
    """

    def __init__(
        self,
        cache: bool = True,
        n_workers: int = 1,
        backend: LinearAlgebraBackend | None = None,
        progress: ProgressCounter | None = None,
    ) -> None:
        if n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {n_workers}")
        if n_workers > 1 and not cache:
            raise ValueError("Parallel comparison needs cached coordinates")
        self.cache = cache
        self.n_workers = n_workers
        self.backend = backend
        self.progress = progress

    def run(
        self,
        traj: Trajectory,
        subset: AtomGroup,
        frames: Sequence[int] | None = None,
        traj2: Trajectory | None = None,
        subset2: AtomGroup | None = None,
        frames2: Sequence[int] | None = None,
    ) -> PairwiseResult:
        """
        Compare frames within ``traj``, or every frame of ``traj`` with
        every frame of ``traj2``.

        Raises:
            AtomCountMismatchError: If the two subsets differ in size.
        """
        if traj2 is None:
            source = make_frame_source(traj, subset, frames, cache=self.cache)
            matrix = rmsds(
                source, progress=self.progress, n_workers=self.n_workers, backend=self.backend
            )
            return PairwiseResult(matrix=matrix, frames=list(source.frames))

        if subset2 is None:
            raise ValueError("subset2 is required when comparing two trajectories")
        if len(subset) != len(subset2):
            raise AtomCountMismatchError(
                len(subset), len(subset2), context="selections of the two trajectories"
            )

        source1 = make_frame_source(traj, subset, frames, cache=self.cache)
        source2 = make_frame_source(traj2, subset2, frames2, cache=self.cache)
        matrix = cross_rmsds(
            source1,
            source2,
            progress=self.progress,
            n_workers=self.n_workers,
            backend=self.backend,
        )
        return PairwiseResult(
            matrix=matrix, frames=list(source1.frames), frames2=list(source2.frames)
        )


def pairwise_rmsd(
    traj: Trajectory,
    subset: AtomGroup,
    frames: Sequence[int] | None = None,
    traj2: Trajectory | None = None,
    subset2: AtomGroup | None = None,
    frames2: Sequence[int] | None = None,
    cache: bool = True,
    progress: ProgressCounter | None = None,
    n_workers: int = 1,
    backend: LinearAlgebraBackend | None = None,
) -> PairwiseResult:
    """
    Pairwise RMSD within one trajectory, or between two.

    Args:
        traj: First trajectory.
        subset: Atoms of ``traj`` to compare.
        frames: Frames of ``traj`` to use (default: all).
        traj2: Optional second trajectory.
        subset2: Atoms of ``traj2``; same count and order as ``subset``.
        frames2: Frames of ``traj2`` to use (default: all).
        cache: Hold all coordinates in memory (default) or re-read per pair.
        progress: Progress counter; its total should match the pair count.
        n_workers: Worker threads (cached mode only).
        backend: Linear algebra backend.

    Example:
        >>> model = create_system("model.pdb")
        >>> traj = create_trajectory("run.dcd", model)
        >>> result = pairwise_rmsd(traj, model.select("name == 'CA'"))
        >>> result.summary()["max"]
    """
    driver = PairwiseRMSD(cache=cache, n_workers=n_workers, backend=backend, progress=progress)
    return driver.run(traj, subset, frames, traj2=traj2, subset2=subset2, frames2=frames2)


def pair_count(n_frames: int, n_frames2: int | None = None) -> int:
    """Number of RMSD evaluations a comparison will perform."""
    if n_frames2 is None:
        return n_frames * (n_frames - 1) // 2
    return n_frames * n_frames2
