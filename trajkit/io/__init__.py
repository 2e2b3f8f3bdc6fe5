"""Trajectory and model input."""

from .base import Trajectory, TrajectoryState
from .factory import create_system, create_trajectory
from .formats.dcd import DCDTrajectory
from .formats.pdb import PDBTrajectory
from .formats.xyz import XYZTrajectory
from .stream import StreamWrapper

__all__ = [
    # Base classes
    "Trajectory",
    "TrajectoryState",
    "StreamWrapper",
    # Factories
    "create_system",
    "create_trajectory",
    # Formats
    "DCDTrajectory",
    "PDBTrajectory",
    "XYZTrajectory",
]
