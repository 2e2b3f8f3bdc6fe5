"""Structural comparison of trajectory frames."""

from .coords import (
    CachedFrames,
    FrameSource,
    TrajectoryFrames,
    check_cache_size,
    estimate_cache_bytes,
    make_frame_source,
    read_coords,
)
from .pairwise import (
    PairwiseResult,
    PairwiseRMSD,
    cross_rmsds,
    pair_count,
    pairwise_rmsd,
    rmsds,
)
from .superposition import (
    LinearAlgebraBackend,
    NumpyBackend,
    calc_rmsd,
    center_at_origin,
    center_trajectory,
    superpose,
)

__all__ = [
    # Coordinates
    "CachedFrames",
    "FrameSource",
    "TrajectoryFrames",
    "check_cache_size",
    "estimate_cache_bytes",
    "make_frame_source",
    "read_coords",
    # Superposition
    "LinearAlgebraBackend",
    "NumpyBackend",
    "calc_rmsd",
    "center_at_origin",
    "center_trajectory",
    "superpose",
    # Pairwise
    "PairwiseResult",
    "PairwiseRMSD",
    "cross_rmsds",
    "pair_count",
    "pairwise_rmsd",
    "rmsds",
]
