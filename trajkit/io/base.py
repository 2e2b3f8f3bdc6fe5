"""Base class for trajectory readers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import IO, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..exceptions import AtomIndexError, TrajectoryFormatError, TrajectoryReadError
from .stream import StreamWrapper

if TYPE_CHECKING:
    from ..system import AtomGroup, Box

logger = logging.getLogger(__name__)


class TrajectoryState(Enum):
    """Read-cursor state of a trajectory."""

    INITIALIZED = "initialized"
    ITERATING = "iterating"
    EXHAUSTED = "exhausted"


class Trajectory(ABC):
    """
    Abstract base class for format-specific trajectory readers.

    The public methods below form a fixed contract; formats only supply the
    protected hooks (``_read_header``, ``_parse_frame``, ``_seek_next_frame``,
    ``_seek_frame`` and ``_rewind``).

    Constructing any trajectory reads the header and then buffers frame 0.
    That first frame is "cached" but not consumed, so the first call to
    :meth:`read_frame` returns frame 0 without touching the stream. Only one
    frame is ever resident; every successful read overwrites it.

    A trajectory keeps mutable cursor state and is not safe to share between
    threads.

    Example:
        traj = create_trajectory("run.dcd")
        while traj.read_frame():
            traj.update_group_coords(subset)
            analyze(subset)
    """

    #: Open paths in binary mode.
    binary: bool = False

    def __init__(self, source: str | Path | IO) -> None:
        """
        Open the trajectory and buffer its first frame.

        Args:
            source: File path or an open file object.

        Raises:
            FileOpenError: If the file cannot be opened.
            TrajectoryFormatError: If the header or first frame is unreadable.
        """
        self._wrapper = StreamWrapper(source, binary=self.binary)
        self._n_atoms = 0
        self._n_frames = 0
        self._timestep = 0.0
        self._periodic = False
        self._box: Box | None = None
        self._frame: NDArray[np.floating] = np.empty((0, 3), dtype=np.float64)

        self._current = 0
        self._cached_first = False
        self._exhausted = False

        try:
            self._read_header()
            self._cache_first_frame()
        except TrajectoryReadError as exc:
            self.close()
            raise TrajectoryFormatError(str(exc), self.filename) from exc
        except Exception:
            self.close()
            raise

        logger.debug(
            "Opened %s: %d atoms, %d frames, timestep %g, periodic=%s",
            self.filename,
            self._n_atoms,
            self._n_frames,
            self._timestep,
            self._periodic,
        )

    # ------------------------------------------------------------------
    # Format hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _read_header(self) -> None:
        """
        Parse the file header.

        Must set ``_n_atoms``, ``_n_frames``, ``_timestep`` and ``_periodic``
        and leave the stream positioned at frame 0.
        """
        ...

    @abstractmethod
    def _parse_frame(self) -> bool:
        """
        Decode one frame from the current stream position into the buffer.

        Returns:
            False at end-of-stream, True otherwise.

        Raises:
            TrajectoryReadError: If the frame is truncated or corrupt.
        """
        ...

    @abstractmethod
    def _seek_next_frame(self) -> None:
        """Position the stream at the frame following the buffered one."""
        ...

    @abstractmethod
    def _seek_frame(self, index: int) -> None:
        """Position the stream at absolute frame ``index`` (already range checked)."""
        ...

    @abstractmethod
    def _rewind(self) -> None:
        """Position the stream at frame 0."""
        ...

    def _current_coords(self) -> NDArray[np.floating]:
        """Buffered frame as an (n_atoms, 3) array. Formats may override."""
        return self._frame

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    @property
    def filename(self) -> str:
        """Path of the underlying file."""
        return self._wrapper.filename

    @property
    def n_atoms(self) -> int:
        """Number of atoms per frame."""
        return self._n_atoms

    @property
    def n_frames(self) -> int:
        """Number of frames in the trajectory."""
        return self._n_frames

    @property
    def timestep(self) -> float:
        """Time between stored frames, in the file's native units."""
        return self._timestep

    @property
    def has_periodic_box(self) -> bool:
        """Whether the format carries periodic box information."""
        return self._periodic

    @property
    def current_index(self) -> int:
        """Index of the buffered frame."""
        return self._current

    @property
    def state(self) -> TrajectoryState:
        """Position in the reading life cycle."""
        if self._cached_first:
            return TrajectoryState.INITIALIZED
        if self._exhausted:
            return TrajectoryState.EXHAUSTED
        return TrajectoryState.ITERATING

    def periodic_box(self) -> Box | None:
        """Periodic box of the buffered frame (None if the format has none)."""
        return self._box

    def rewind(self) -> None:
        """Return to frame 0; the next :meth:`read_frame` yields frame 0."""
        self._rewind()
        self._cache_first_frame()

    def read_frame(self, index: int | None = None) -> bool:
        """
        Read the next frame, or seek to and read frame ``index``.

        Args:
            index: Absolute frame index. If None, advance to the next frame.

        Returns:
            True on success. False at end-of-stream (and on every call after
            it) or when ``index`` is out of range.

        Raises:
            TrajectoryReadError: If the frame data is corrupt.
        """
        if index is None:
            return self._read_next()
        return self._read_at(index)

    def coords(self) -> NDArray[np.floating]:
        """Coordinates of the buffered frame, shape (n_atoms, 3)."""
        return np.array(self._current_coords(), dtype=np.float64)

    def update_group_coords(self, group: AtomGroup) -> None:
        """
        Copy the buffered frame into ``group``.

        Atom ``id`` takes its coordinates from frame slot ``id - 1``. The
        group's box is set as well when the trajectory is periodic.

        Raises:
            AtomIndexError: If an atom id has no slot in the frame.
        """
        frame = self._current_coords()
        slots = group.ids - 1
        if len(slots) and (slots.min() < 0 or slots.max() >= len(frame)):
            raise AtomIndexError(
                f"Atom ids {int(group.ids.min())}..{int(group.ids.max())} do not fit "
                f"a frame of {len(frame)} atoms from {self.filename}"
            )
        group.positions = np.asarray(frame[slots], dtype=np.float64)
        if self._periodic:
            group.box = self._box

    def close(self) -> None:
        """Release the underlying stream."""
        self._wrapper.close()

    # ------------------------------------------------------------------
    # Cursor bookkeeping
    # ------------------------------------------------------------------

    def _cache_first_frame(self) -> None:
        if not self._parse_frame():
            raise TrajectoryFormatError("trajectory contains no frames", self.filename)
        self._current = 0
        self._cached_first = True
        self._exhausted = False

    def _read_next(self) -> bool:
        if self._cached_first:
            self._cached_first = False
            self._current = 0
            return True
        if self._exhausted:
            return False

        self._seek_next_frame()
        if not self._parse_frame():
            self._exhausted = True
            return False
        self._current += 1
        return True

    def _read_at(self, index: int) -> bool:
        if index < 0 or index >= self._n_frames:
            return False

        if index == 0 and self._cached_first:
            self._cached_first = False
            self._current = 0
            return True

        self._cached_first = False
        self._seek_frame(index)
        if not self._parse_frame():
            raise TrajectoryReadError(
                "unexpected end of trajectory", self.filename, frame=index
            )
        self._current = index
        self._exhausted = False
        return True

    # ------------------------------------------------------------------
    # Python protocols
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[int]:
        """Advance through the remaining frames, yielding each frame index."""
        while self._read_next():
            yield self._current

    def __len__(self) -> int:
        return self._n_frames

    def __enter__(self) -> Trajectory:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.filename!r}, n_atoms={self._n_atoms}, "
            f"n_frames={self._n_frames})"
        )
