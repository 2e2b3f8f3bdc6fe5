"""PDB (Protein Data Bank) structures and multi-model trajectories."""

from __future__ import annotations

from pathlib import Path
from typing import IO

import numpy as np

from ...exceptions import FileOpenError, TrajectoryFormatError, TrajectoryReadError
from ...system import AtomGroup, Box
from ..base import Trajectory


def _is_atom_record(line: str) -> bool:
    return line.startswith(("ATOM", "HETATM"))


def _parse_cryst1(line: str) -> Box:
    """Parse a CRYST1 record into a Box."""
    a = float(line[6:15])
    b = float(line[15:24])
    c = float(line[24:33])
    alpha = float(line[33:40]) if line[33:40].strip() else 90.0
    beta = float(line[40:47]) if line[40:47].strip() else 90.0
    gamma = float(line[47:54]) if line[47:54].strip() else 90.0
    return Box.from_lengths_angles(a, b, c, alpha, beta, gamma)


def _parse_xyz(line: str) -> tuple[float, float, float]:
    return float(line[30:38]), float(line[38:46]), float(line[46:54])


def read_pdb_system(filename: str | Path) -> AtomGroup:
    """
    Build an AtomGroup from the first model of a PDB file.

    Atom ids come from the serial-number column. Serials that do not parse
    as integers (e.g. hybrid-36 overflows) fall back to the record's
    1-based position.

    Args:
        filename: PDB file path.

    Returns:
        AtomGroup with names, residues, segments, coordinates and box.
    """
    try:
        handle = Path(filename).open()
    except OSError as exc:
        raise FileOpenError(filename, exc.strerror or str(exc)) from exc

    ids, names, resids, resnames, segids, positions = [], [], [], [], [], []
    box = None
    with handle:
        for line in handle:
            if line.startswith("CRYST1"):
                try:
                    box = _parse_cryst1(line)
                except ValueError as exc:
                    raise TrajectoryFormatError(f"bad CRYST1 record ({exc})", filename) from exc
            elif _is_atom_record(line):
                try:
                    serial = int(line[6:11])
                except ValueError:
                    serial = len(ids) + 1
                try:
                    positions.append(_parse_xyz(line))
                    resid = int(line[22:26]) if line[22:26].strip() else 0
                except ValueError as exc:
                    raise TrajectoryFormatError(
                        f"bad atom record {len(ids) + 1} ({exc})", filename
                    ) from exc
                ids.append(serial)
                names.append(line[12:16].strip())
                resnames.append(line[17:20].strip())
                resids.append(resid)
                segids.append(line[72:76].strip() if len(line) > 72 else "")
            elif line.startswith(("ENDMDL", "END")) and ids:
                break

    if not ids:
        raise TrajectoryFormatError("no ATOM/HETATM records", filename)

    return AtomGroup(
        ids=np.array(ids),
        names=names,
        resids=np.array(resids),
        resnames=resnames,
        segids=segids,
        positions=np.array(positions),
        box=box,
    )


class PDBTrajectory(Trajectory):
    """
    Multi-model PDB trajectory reader.

    Each MODEL/ENDMDL block is one frame; a file without MODEL records is a
    single-frame trajectory. Frame offsets are indexed once at open time, so
    random access is a seek to the recorded offset. A CRYST1 record inside a
    model applies to that frame; one before the first model applies to all.
    """

    def __init__(self, source: str | Path | IO, timestep: float = 1.0) -> None:
        """
        Initialize PDB reader.

        Args:
            source: PDB file path or text file object.
            timestep: Time between models (PDB files do not record it).
        """
        self._frame_offsets: list[int] = []
        self._header_box: Box | None = None
        self._cursor = 0
        self._default_timestep = timestep
        super().__init__(source)

    def _read_header(self) -> None:
        stream = self._wrapper.stream
        stream.seek(0)
        self._frame_offsets = []
        in_model = False
        seen_cryst1 = False
        n_atoms_first = 0

        while True:
            offset = stream.tell()
            line = stream.readline()
            if not line:
                break
            if line.startswith("MODEL"):
                self._frame_offsets.append(offset)
                in_model = True
            elif line.startswith("ENDMDL"):
                in_model = False
            elif line.startswith("CRYST1"):
                seen_cryst1 = True
                if not in_model and not self._frame_offsets:
                    try:
                        self._header_box = _parse_cryst1(line)
                    except ValueError as exc:
                        raise TrajectoryFormatError(
                            f"bad CRYST1 record ({exc})", self.filename
                        ) from exc
            elif _is_atom_record(line) and len(self._frame_offsets) <= 1:
                n_atoms_first += 1

        if not self._frame_offsets:
            self._frame_offsets = [0]
        if n_atoms_first == 0:
            raise TrajectoryFormatError("no ATOM/HETATM records", self.filename)

        self._n_atoms = n_atoms_first
        self._n_frames = len(self._frame_offsets)
        self._timestep = self._default_timestep
        self._periodic = seen_cryst1
        self._rewind()

    def _parse_frame(self) -> bool:
        if self._cursor >= len(self._frame_offsets):
            return False

        stream = self._wrapper.stream
        frame = self._cursor
        positions = []
        box = self._header_box
        started = False

        while True:
            line = stream.readline()
            if not line:
                break
            if line.startswith("MODEL"):
                if started:
                    break
                started = True
            elif line.startswith(("ENDMDL", "END")):
                break
            elif line.startswith("CRYST1"):
                try:
                    box = _parse_cryst1(line)
                except ValueError as exc:
                    raise TrajectoryReadError(
                        f"bad CRYST1 record ({exc})", self.filename, frame=frame
                    ) from exc
            elif _is_atom_record(line):
                started = True
                try:
                    positions.append(_parse_xyz(line))
                except ValueError as exc:
                    raise TrajectoryReadError(
                        f"bad coordinates in atom record {len(positions) + 1}",
                        self.filename,
                        frame=frame,
                    ) from exc

        if len(positions) != self._n_atoms:
            raise TrajectoryReadError(
                f"model has {len(positions)} atoms, expected {self._n_atoms}",
                self.filename,
                frame=frame,
            )

        self._frame = np.array(positions, dtype=np.float64)
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
