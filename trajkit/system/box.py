"""Periodic simulation cell attached to trajectory frames."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True)
class Box:
    """
    Periodic box of a single trajectory frame.

    Stored as a 3x3 matrix whose rows are the cell vectors [a, b, c]. Formats
    that only record edge lengths produce a diagonal matrix.

    Attributes:
        vectors: 3x3 array where rows are box vectors [a, b, c].
    """

    vectors: NDArray[np.floating]

    def __post_init__(self) -> None:
        vectors = np.asarray(self.vectors, dtype=np.float64)
        if vectors.shape == (3,):
            vectors = np.diag(vectors)
        if vectors.shape != (3, 3):
            raise ValueError(f"Box vectors must be (3,) or (3, 3), got {vectors.shape}")
        object.__setattr__(self, "vectors", vectors)

    @classmethod
    def orthorhombic(cls, lx: float, ly: float, lz: float) -> Box:
        """Create an orthorhombic box with given side lengths."""
        return cls(np.array([lx, ly, lz]))

    @classmethod
    def cubic(cls, length: float) -> Box:
        """Create a cubic box with given side length."""
        return cls.orthorhombic(length, length, length)

    @classmethod
    def triclinic(cls, vectors: ArrayLike) -> Box:
        """Create a triclinic box from 3x3 matrix of box vectors."""
        return cls(np.asarray(vectors))

    @classmethod
    def from_lengths_angles(
        cls,
        a: float,
        b: float,
        c: float,
        alpha: float = 90.0,
        beta: float = 90.0,
        gamma: float = 90.0,
    ) -> Box:
        """
        Build a box from crystallographic cell parameters.

        This is how PDB CRYST1 records and DCD unit-cell blocks describe the
        cell. Vector a lies along x and b lies in the xy plane.

        Args:
            a, b, c: Edge lengths.
            alpha, beta, gamma: Cell angles in degrees.
        """
        if np.allclose([alpha, beta, gamma], 90.0):
            return cls.orthorhombic(a, b, c)

        cos_a, cos_b, cos_g = np.cos(np.radians([alpha, beta, gamma]))
        sin_g = np.sin(np.radians(gamma))
        cx = c * cos_b
        cy = c * (cos_a - cos_b * cos_g) / sin_g
        cz = np.sqrt(max(c * c - cx * cx - cy * cy, 0.0))
        return cls(
            np.array(
                [
                    [a, 0.0, 0.0],
                    [b * cos_g, b * sin_g, 0.0],
                    [cx, cy, cz],
                ]
            )
        )

    @property
    def lengths(self) -> NDArray[np.floating]:
        """Return box vector lengths [|a|, |b|, |c|]."""
        return np.linalg.norm(self.vectors, axis=1)

    @property
    def angles(self) -> NDArray[np.floating]:
        """Return cell angles [alpha, beta, gamma] in degrees."""
        a, b, c = self.vectors
        la, lb, lc = self.lengths

        def _angle(u, v, lu, lv):
            return np.degrees(np.arccos(np.clip(np.dot(u, v) / (lu * lv), -1.0, 1.0)))

        return np.array([_angle(b, c, lb, lc), _angle(a, c, la, lc), _angle(a, b, la, lb)])

    @property
    def volume(self) -> float:
        """Return box volume."""
        return float(np.abs(np.linalg.det(self.vectors)))

    @property
    def is_orthorhombic(self) -> bool:
        """Check if box is orthorhombic (diagonal matrix)."""
        off_diag = self.vectors.copy()
        np.fill_diagonal(off_diag, 0)
        return np.allclose(off_diag, 0)

    def wrap_positions(self, positions: NDArray[np.floating]) -> NDArray[np.floating]:
        """
        Wrap positions into the primary cell.

        Args:
            positions: Positions array of shape (N, 3).

        Returns:
            Wrapped positions array of shape (N, 3).
        """
        positions = np.asarray(positions)
        if self.is_orthorhombic:
            lengths = np.diag(self.vectors)
            return positions - lengths * np.floor(positions / lengths)
        inv_vectors = np.linalg.inv(self.vectors)
        fractional = positions @ inv_vectors
        fractional = fractional - np.floor(fractional)
        return fractional @ self.vectors
