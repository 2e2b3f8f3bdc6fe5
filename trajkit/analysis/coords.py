"""Per-frame coordinate extraction and caching."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np
import psutil
from numpy.typing import NDArray

from ..exceptions import FrameIndexError
from ..io.base import Trajectory
from ..system import AtomGroup
from .superposition import center_at_origin, center_trajectory

logger = logging.getLogger(__name__)

# Warn when the cache estimate exceeds this fraction of physical memory. The
# whole process typically needs 20-30% more than the cache itself.
CACHE_MEMORY_FRACTION_WARNING = 0.66

_BYTES_PER_COORDINATE = np.dtype(np.float64).itemsize


def extract_frame(traj: Trajectory, subset: AtomGroup, index: int) -> NDArray[np.floating]:
    """
    Flat coordinate vector of ``subset`` at frame ``index``.

    Raises:
        FrameIndexError: If the trajectory has no frame ``index``.
    """
    if not traj.read_frame(index):
        raise FrameIndexError(index, traj.n_frames)
    traj.update_group_coords(subset)
    return subset.coords_flat()


def read_coords(
    traj: Trajectory,
    subset: AtomGroup,
    frames: Sequence[int] | None = None,
) -> NDArray[np.floating]:
    """
    Read the coordinates of ``subset`` for the requested frames.

    Args:
        traj: Trajectory to read.
        subset: Atoms to extract; its coordinates are overwritten.
        frames: Frame indices in the order wanted (default: all frames).

    Returns:
        Array of shape (len(frames), 3 * len(subset)); row k holds frame
        ``frames[k]`` as [x0, y0, z0, x1, ...] in subset order.
    """
    if frames is None:
        frames = range(traj.n_frames)
    frames = list(frames)

    m = np.empty((len(frames), 3 * len(subset)), dtype=np.float64)
    for row, index in enumerate(frames):
        m[row] = extract_frame(traj, subset, index)

    logger.debug("Read %d frames of %d atoms from %s", len(frames), len(subset), traj.filename)
    return m


def estimate_cache_bytes(n_frames: int, n_atoms: int) -> int:
    """Memory needed to cache ``n_frames`` frames of ``n_atoms`` atoms."""
    return n_frames * n_atoms * 3 * _BYTES_PER_COORDINATE


def physical_memory() -> int:
    """Total physical memory in bytes."""
    return int(psutil.virtual_memory().total)


def check_cache_size(
    n_frames: int,
    n_atoms: int,
    threshold: float = CACHE_MEMORY_FRACTION_WARNING,
) -> bool:
    """
    Log a warning if caching would use too much of physical memory.

    Returns:
        True if the estimate is within ``threshold`` of physical memory.
    """
    needed = estimate_cache_bytes(n_frames, n_atoms)
    available = physical_memory()
    fraction = needed / available if available else float("inf")
    logger.info(
        "Coordinate cache needs %.1f MiB (%.1f%% of physical memory)",
        needed / 2**20,
        100.0 * fraction,
    )
    if fraction > threshold:
        logger.warning(
            "The coordinate cache may use %.0f%% of physical memory and cause "
            "swapping; consider disabling the cache",
            100.0 * fraction,
        )
        return False
    return True


class FrameSource(ABC):
    """
    Random access to centered per-frame coordinate vectors.

    ``frame(k)`` is the k-th *selected* frame, not the k-th trajectory frame.
    """

    @property
    @abstractmethod
    def frames(self) -> list[int]:
        """Trajectory frame index behind each position."""
        ...

    @property
    @abstractmethod
    def n_atoms(self) -> int:
        """Number of atoms per frame."""
        ...

    @property
    @abstractmethod
    def thread_safe(self) -> bool:
        """Whether :meth:`frame` may be called from several threads."""
        ...

    @abstractmethod
    def frame(self, k: int) -> NDArray[np.floating]:
        """Centered flat coordinates of the k-th selected frame."""
        ...

    def __len__(self) -> int:
        return len(self.frames)


class CachedFrames(FrameSource):
    """
    All selected frames read once and held in memory, centered.

    Args:
        traj: Trajectory to read.
        subset: Atoms to extract.
        frames: Frame indices (default: all frames).
        warn_memory: Check the cache estimate against physical memory first.
    """

    def __init__(
        self,
        traj: Trajectory,
        subset: AtomGroup,
        frames: Sequence[int] | None = None,
        warn_memory: bool = True,
    ) -> None:
        self._frames = list(range(traj.n_frames) if frames is None else frames)
        if warn_memory:
            check_cache_size(len(self._frames), len(subset))
        self._n_atoms = len(subset)
        self.coords = center_trajectory(read_coords(traj, subset, self._frames))
        self.coords.setflags(write=False)

    @classmethod
    def from_array(cls, coords: NDArray[np.floating], frames: Sequence[int] | None = None) -> CachedFrames:
        """Wrap an existing (n_frames, 3 * n_atoms) matrix; it is copied and centered."""
        obj = cls.__new__(cls)
        coords = np.array(coords, dtype=np.float64)
        if coords.ndim != 2 or coords.shape[1] % 3:
            raise ValueError(f"Expected (n_frames, 3 * n_atoms) array, got {coords.shape}")
        obj._frames = list(range(len(coords)) if frames is None else frames)
        if len(obj._frames) != len(coords):
            raise ValueError("frames and coords disagree in length")
        obj._n_atoms = coords.shape[1] // 3
        obj.coords = center_trajectory(coords)
        obj.coords.setflags(write=False)
        return obj

    @property
    def frames(self) -> list[int]:
        """Trajectory frame index behind each position."""
        return self._frames

    @property
    def n_atoms(self) -> int:
        """Number of atoms per cached frame."""
        return self._n_atoms

    @property
    def thread_safe(self) -> bool:
        """Always True: the cache is read-only once built."""
        return True

    @property
    def nbytes(self) -> int:
        """Memory held by the coordinate array."""
        return self.coords.nbytes

    def frame(self, k: int) -> NDArray[np.floating]:
        return self.coords[k]


class TrajectoryFrames(FrameSource):
    """
    Uncached source: every request seeks the trajectory and re-reads.

    Uses no memory beyond one frame but repeats the seek and parse for each
    request, which a pairwise comparison makes O(n^2) times.
    """

    def __init__(
        self,
        traj: Trajectory,
        subset: AtomGroup,
        frames: Sequence[int] | None = None,
    ) -> None:
        self.traj = traj
        self.subset = subset
        self._frames = list(range(traj.n_frames) if frames is None else frames)
        for index in self._frames:
            if index < 0 or index >= traj.n_frames:
                raise FrameIndexError(index, traj.n_frames)

    @property
    def frames(self) -> list[int]:
        """Trajectory frame index behind each position."""
        return self._frames

    @property
    def n_atoms(self) -> int:
        """Number of atoms in the subset."""
        return len(self.subset)

    @property
    def thread_safe(self) -> bool:
        """Always False: frames are read from a shared trajectory."""
        return False

    def frame(self, k: int) -> NDArray[np.floating]:
        v = extract_frame(self.traj, self.subset, self._frames[k])
        return center_at_origin(v)


def make_frame_source(
    traj: Trajectory,
    subset: AtomGroup,
    frames: Sequence[int] | None = None,
    cache: bool = True,
) -> FrameSource:
    """Cached source by default; ``cache=False`` re-reads on demand."""
    if cache:
        return CachedFrames(traj, subset, frames)
    logger.info("Coordinate cache disabled; frames are re-read for every comparison")
    return TrajectoryFrames(traj, subset, frames)
