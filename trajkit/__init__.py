"""
trajkit - molecular dynamics trajectory analysis.

Streaming readers for DCD, PDB and XYZ trajectories behind a common
:class:`~trajkit.io.Trajectory` contract, plus optimal-superposition RMSD
and pairwise comparison of trajectory frames.

Quick Start:
    >>> from trajkit import create_system, create_trajectory, pairwise_rmsd
    >>> model = create_system("model.pdb")
    >>> traj = create_trajectory("simulation.dcd", model)
    >>> result = pairwise_rmsd(traj, model.select("name == 'CA'"))
    >>> print(result.summary())
"""

__version__ = "0.1.0"

from .analysis import PairwiseResult, calc_rmsd, pairwise_rmsd, read_coords
from .io import Trajectory, create_system, create_trajectory
from .selection import select_atoms
from .system import AtomGroup, Box

__all__ = [
    "AtomGroup",
    "Box",
    "PairwiseResult",
    "Trajectory",
    "calc_rmsd",
    "create_system",
    "create_trajectory",
    "pairwise_rmsd",
    "read_coords",
    "select_atoms",
]
