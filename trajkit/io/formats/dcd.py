"""DCD (CHARMM/NAMD) binary trajectory reader."""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import IO

import numpy as np
from numpy.typing import NDArray

from ...exceptions import TrajectoryFormatError, TrajectoryReadError
from ...system import Box
from ..base import Trajectory

logger = logging.getLogger(__name__)

# Byte length of the first Fortran record: "CORD" + 20 control integers.
_HEADER_RECORD_SIZE = 84
_UNIT_CELL_RECORD_SIZE = 48


class DCDTrajectory(Trajectory):
    """
    DCD format trajectory reader.

    DCD is a sequence of Fortran unformatted records: a fixed header, a
    title block, the atom count, then per frame an optional unit-cell record
    followed by separate X, Y and Z single-precision arrays. Both byte orders
    are detected from the first record marker.

    All frames have the same byte size, so seeking to frame ``i`` is a
    single offset jump. The per-axis storage means :meth:`coords` has to
    interleave the three arrays for every call.
    """

    binary = True

    def __init__(self, source: str | Path | IO) -> None:
        """
        Initialize DCD reader.

        Args:
            source: DCD file path or binary file object.
        """
        self._endian = "<"
        self._first_frame_offset = 0
        self._frame_size = 0
        self._xyz: NDArray[np.float32] = np.empty((3, 0), dtype=np.float32)
        super().__init__(source)

    # ------------------------------------------------------------------
    # Fortran records
    # ------------------------------------------------------------------

    def _read_exact(self, n_bytes: int) -> bytes:
        data = self._wrapper.stream.read(n_bytes)
        if len(data) != n_bytes:
            raise TrajectoryReadError(
                f"truncated record (wanted {n_bytes} bytes, got {len(data)})",
                self.filename,
                frame=self._current,
            )
        return data

    def _read_marker(self) -> int:
        return struct.unpack(self._endian + "i", self._read_exact(4))[0]

    def _read_record(self, expected: int | None = None) -> bytes:
        size = self._read_marker()
        if expected is not None and size != expected:
            raise TrajectoryReadError(
                f"record marker {size} does not match expected size {expected}",
                self.filename,
                frame=self._current,
            )
        payload = self._read_exact(size)
        trailer = self._read_marker()
        if trailer != size:
            raise TrajectoryReadError(
                f"mismatched record markers ({size} != {trailer})",
                self.filename,
                frame=self._current,
            )
        return payload

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _read_header(self) -> None:
        stream = self._wrapper.stream
        marker = stream.read(4)
        if len(marker) != 4:
            raise TrajectoryFormatError("file is too short to be a DCD", self.filename)

        if struct.unpack("<i", marker)[0] == _HEADER_RECORD_SIZE:
            self._endian = "<"
        elif struct.unpack(">i", marker)[0] == _HEADER_RECORD_SIZE:
            self._endian = ">"
        else:
            raise TrajectoryFormatError("unrecognized DCD header marker", self.filename)

        try:
            stream.seek(0)
            header = self._read_record(_HEADER_RECORD_SIZE)
            if header[:4] != b"CORD":
                raise TrajectoryFormatError("missing CORD signature", self.filename)
            icntrl = struct.unpack(self._endian + "20i", header[4:])
            (delta,) = struct.unpack(self._endian + "f", header[40:44])

            self._read_record()  # title block
            (n_atoms,) = struct.unpack(self._endian + "i", self._read_record(4))
        except TrajectoryReadError as exc:
            raise TrajectoryFormatError(f"corrupt header ({exc})", self.filename) from exc

        n_fixed = icntrl[8]
        charmm_version = icntrl[19]
        if n_fixed != 0:
            raise TrajectoryFormatError("fixed-atom DCD files are not supported", self.filename)
        if charmm_version and icntrl[11]:
            raise TrajectoryFormatError("4-D DCD files are not supported", self.filename)
        if n_atoms <= 0:
            raise TrajectoryFormatError(f"invalid atom count {n_atoms}", self.filename)

        self._n_atoms = n_atoms
        self._timestep = float(delta)
        self._periodic = bool(charmm_version and icntrl[10])

        self._first_frame_offset = stream.tell()
        coord_record = 4 * n_atoms + 8
        self._frame_size = 3 * coord_record
        if self._periodic:
            self._frame_size += _UNIT_CELL_RECORD_SIZE + 8

        stream.seek(0, 2)
        payload = stream.tell() - self._first_frame_offset
        self._n_frames, remainder = divmod(payload, self._frame_size)
        if remainder:
            logger.warning(
                "%s: ignoring %d trailing bytes (partial frame)", self.filename, remainder
            )
        if icntrl[0] != self._n_frames:
            logger.warning(
                "%s: header claims %d frames but file holds %d",
                self.filename,
                icntrl[0],
                self._n_frames,
            )
        stream.seek(self._first_frame_offset)

    def _parse_frame(self) -> bool:
        stream = self._wrapper.stream
        end = self._first_frame_offset + self._n_frames * self._frame_size
        if stream.tell() >= end:
            return False

        if self._periodic:
            cell = struct.unpack(
                self._endian + "6d", self._read_record(_UNIT_CELL_RECORD_SIZE)
            )
            self._box = _unit_cell_to_box(cell)

        xyz = np.empty((3, self._n_atoms), dtype=np.float32)
        for axis in range(3):
            data = self._read_record(4 * self._n_atoms)
            xyz[axis] = np.frombuffer(data, dtype=self._endian + "f4")
        self._xyz = xyz
        return True

    def _seek_next_frame(self) -> None:
        # Frames are contiguous; the stream already sits on the next one.
        pass

    def _seek_frame(self, index: int) -> None:
        self._wrapper.stream.seek(self._first_frame_offset + index * self._frame_size)

    def _rewind(self) -> None:
        self._wrapper.stream.seek(self._first_frame_offset)

    def _current_coords(self) -> NDArray[np.floating]:
        return self._xyz.T.astype(np.float64)


def _unit_cell_to_box(cell: tuple[float, ...]) -> Box:
    """
    Convert a CHARMM unit-cell record to a Box.

    The record is ordered (A, gamma, B, beta, alpha, C). Newer writers store
    the angles as cosines, detected by all three lying in [-1, 1].
    """
    a, gamma, b, beta, alpha, c = cell
    angles = np.array([alpha, beta, gamma])
    if np.all(np.abs(angles) <= 1.0):
        angles = np.degrees(np.arccos(angles))
    return Box.from_lengths_angles(a, b, c, *angles)
