#!/usr/bin/env python
"""
Pairwise RMSD of a synthetic two-state trajectory.

This example demonstrates:
- Reading a multi-frame XYZ trajectory
- Selecting atoms
- Computing the pairwise RMSD matrix
- Plotting the matrix as a heatmap

The trajectory hops between two conformations, so the matrix shows a
block structure with cross-peaks wherever the second visit to a state
matches the first.

Usage:
    python examples/pairwise_rmsd.py
"""

import tempfile
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import numpy as np

from trajkit import create_system, create_trajectory, pairwise_rmsd, plotting


def write_two_state_xyz(path, n_atoms=30, n_frames=60, seed=0):
    """Random walk around state A, then B, then A again."""
    rng = np.random.default_rng(seed)
    state_a = rng.uniform(-8.0, 8.0, (n_atoms, 3))
    state_b = state_a + rng.normal(0.0, 2.0, (n_atoms, 3))
    with open(path, "w") as f:
        for k in range(n_frames):
            center = state_b if n_frames // 3 <= k < 2 * n_frames // 3 else state_a
            xyz = center + rng.normal(0.0, 0.3, (n_atoms, 3))
            f.write(f"{n_atoms}\nframe {k}\n")
            for x, y, z in xyz:
                f.write(f"C {x:.4f} {y:.4f} {z:.4f}\n")


def main():
    print("=" * 60)
    print("Pairwise RMSD")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "two_state.xyz"
        write_two_state_xyz(path)

        model = create_system(path)
        subset = model.select("index < 20")
        with create_trajectory(path, model) as traj:
            result = pairwise_rmsd(traj, subset)

    stats = result.summary()
    print(f"\n{len(result.frames)} frames, {stats['n_pairs']} pairs")
    print(f"  Mean RMSD: {stats['mean']:.3f}")
    print(f"  Min RMSD:  {stats['min']:.3f}")
    print(f"  Max RMSD:  {stats['max']:.3f}")

    plotting.rmsd_matrix(result, show=False, title="Two-state trajectory")
    plotting.save("pairwise_rmsd.png")
    plotting.close()
    print("\nPlot saved to pairwise_rmsd.png")


if __name__ == "__main__":
    main()
