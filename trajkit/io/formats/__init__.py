"""Trajectory format implementations."""

from .dcd import DCDTrajectory
from .pdb import PDBTrajectory, read_pdb_system
from .xyz import XYZTrajectory, read_xyz_system

__all__ = [
    # DCD
    "DCDTrajectory",
    # PDB
    "PDBTrajectory",
    "read_pdb_system",
    # XYZ
    "XYZTrajectory",
    "read_xyz_system",
]
