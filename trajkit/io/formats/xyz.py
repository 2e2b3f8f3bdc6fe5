"""XYZ structures and trajectories."""

from __future__ import annotations

import re
from pathlib import Path
from typing import IO

import numpy as np

from ...exceptions import FileOpenError, TrajectoryFormatError, TrajectoryReadError
from ...system import AtomGroup, Box
from ..base import Trajectory

_LATTICE_RE = re.compile(r'Lattice="([^"]+)"')


def _parse_lattice(comment: str) -> Box | None:
    """Extract an extended-XYZ ``Lattice="..."`` box, if present."""
    match = _LATTICE_RE.search(comment)
    if match is None:
        return None
    values = np.array([float(x) for x in match.group(1).split()])
    if len(values) != 9:
        raise ValueError(f"Lattice needs 9 values, got {len(values)}")
    return Box(values.reshape(3, 3))


def read_xyz_system(filename: str | Path) -> AtomGroup:
    """
    Build an AtomGroup from the first frame of an XYZ file.

    XYZ carries no atom ids or residues, so atoms get sequential ids 1..N
    and the element symbol as their name.
    """
    try:
        handle = Path(filename).open()
    except OSError as exc:
        raise FileOpenError(filename, exc.strerror or str(exc)) from exc

    with handle:
        try:
            n_atoms = int(handle.readline().strip())
            comment = handle.readline()
            box = _parse_lattice(comment)
            names, positions = [], []
            for _ in range(n_atoms):
                parts = handle.readline().split()
                names.append(parts[0])
                positions.append([float(parts[1]), float(parts[2]), float(parts[3])])
        except (ValueError, IndexError) as exc:
            raise TrajectoryFormatError(f"malformed XYZ frame ({exc})", filename) from exc

    return AtomGroup(
        ids=np.arange(1, n_atoms + 1),
        names=names,
        positions=np.array(positions).reshape(-1, 3),
        box=box,
    )


class XYZTrajectory(Trajectory):
    """
    XYZ format trajectory reader.

    Supports standard and extended XYZ (``Lattice="..."`` in the comment
    line). The file is scanned once at open time to index frame offsets;
    every frame must hold the same number of atoms.
    """

    def __init__(self, source: str | Path | IO, timestep: float = 1.0) -> None:
        """
        Initialize XYZ reader.

        Args:
            source: XYZ file path or text file object.
            timestep: Time between frames (XYZ files do not record it).
        """
        self._frame_offsets: list[int] = []
        self._cursor = 0
        self._default_timestep = timestep
        super().__init__(source)

    def _read_header(self) -> None:
        """Build index of frame positions in file."""
        stream = self._wrapper.stream
        stream.seek(0)
        self._frame_offsets = []
        first_comment = ""

        while True:
            offset = stream.tell()
            line = stream.readline()
            if not line or not line.strip():
                break
            try:
                n_atoms = int(line.strip())
            except ValueError as exc:
                raise TrajectoryFormatError(
                    f"expected atom count at frame {len(self._frame_offsets)}, "
                    f"got {line.strip()!r}",
                    self.filename,
                ) from exc

            if not self._frame_offsets:
                self._n_atoms = n_atoms
                first_comment = stream.readline()
            else:
                stream.readline()
            self._frame_offsets.append(offset)
            for _ in range(n_atoms):
                stream.readline()

        if not self._frame_offsets:
            raise TrajectoryFormatError("no frames found", self.filename)

        self._n_frames = len(self._frame_offsets)
        self._timestep = self._default_timestep
        self._periodic = _LATTICE_RE.search(first_comment) is not None
        self._rewind()

    def _parse_frame(self) -> bool:
        if self._cursor >= len(self._frame_offsets):
            return False

        stream = self._wrapper.stream
        frame = self._cursor
        try:
            n_atoms = int(stream.readline().strip())
        except ValueError as exc:
            raise TrajectoryReadError("bad atom count line", self.filename, frame=frame) from exc
        if n_atoms != self._n_atoms:
            raise TrajectoryReadError(
                f"frame has {n_atoms} atoms, expected {self._n_atoms}",
                self.filename,
                frame=frame,
            )

        comment = stream.readline()
        positions = np.zeros((n_atoms, 3))
        try:
            box = _parse_lattice(comment)
            for i in range(n_atoms):
                parts = stream.readline().split()
                positions[i] = [float(parts[1]), float(parts[2]), float(parts[3])]
        except (ValueError, IndexError) as exc:
            raise TrajectoryReadError(f"malformed frame ({exc})", self.filename, frame=frame) from exc

        self._frame = positions
        self._box = box
        self._cursor += 1
        return True

    def _seek_next_frame(self) -> None:
        if self._cursor < len(self._frame_offsets):
            self._wrapper.stream.seek(self._frame_offsets[self._cursor])

    def _seek_frame(self, index: int) -> None:
        self._cursor = index
        self._wrapper.stream.seek(self._frame_offsets[index])

    def _rewind(self) -> None:
        self._seek_frame(0)
