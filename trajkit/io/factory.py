"""Open models and trajectories by file type."""

from __future__ import annotations

import logging
from pathlib import Path

from ..exceptions import AtomCountMismatchError, TrajectoryFormatError
from ..system import AtomGroup
from .base import Trajectory
from .formats.dcd import DCDTrajectory
from .formats.pdb import PDBTrajectory, read_pdb_system
from .formats.xyz import XYZTrajectory, read_xyz_system

logger = logging.getLogger(__name__)

TRAJECTORY_FORMATS: dict[str, type[Trajectory]] = {
    "dcd": DCDTrajectory,
    "pdb": PDBTrajectory,
    "xyz": XYZTrajectory,
}

SYSTEM_FORMATS = {
    "pdb": read_pdb_system,
    "xyz": read_xyz_system,
}


def _format_of(filename: str | Path, fmt: str | None, known) -> str:
    name = (fmt or Path(filename).suffix.lstrip(".")).lower()
    if name not in known:
        raise TrajectoryFormatError(
            f"unsupported format '{name}' (known: {', '.join(sorted(known))})",
            filename,
        )
    return name


def create_system(filename: str | Path, fmt: str | None = None) -> AtomGroup:
    """
    Read a model (topology plus reference coordinates).

    Args:
        filename: Structure file path.
        fmt: Format name; inferred from the suffix when omitted.
    """
    reader = SYSTEM_FORMATS[_format_of(filename, fmt, SYSTEM_FORMATS)]
    model = reader(filename)
    logger.info("Read model %s with %d atoms", filename, len(model))
    return model


def create_trajectory(
    filename: str | Path,
    model: AtomGroup | None = None,
    fmt: str | None = None,
) -> Trajectory:
    """
    Open a trajectory with the reader matching its format.

    The returned object always has frame 0 buffered and unconsumed.

    Args:
        filename: Trajectory file path.
        model: Model whose atoms the frames describe. When given, every
            model atom id must fit the trajectory's frames.
        fmt: Format name; inferred from the suffix when omitted.

    Raises:
        AtomCountMismatchError: If the model needs more atoms than a frame has.
    """
    cls = TRAJECTORY_FORMATS[_format_of(filename, fmt, TRAJECTORY_FORMATS)]
    traj = cls(filename)

    if model is not None and len(model) and int(model.ids.max()) > traj.n_atoms:
        traj.close()
        raise AtomCountMismatchError(
            traj.n_atoms,
            int(model.ids.max()),
            context=f"model atoms do not fit trajectory {filename}",
        )

    logger.info(
        "Opened trajectory %s: %d frames of %d atoms",
        filename,
        traj.n_frames,
        traj.n_atoms,
    )
    return traj
