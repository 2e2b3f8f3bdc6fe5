"""Ordered atom collections."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .box import Box


@dataclass
class AtomGroup:
    """
    Ordered group of atoms with per-atom coordinates.

    Index-based design (no objects per atom). Atom ``ids`` are the 1-based
    identifiers from the structure file; a trajectory writes the coordinates
    of atom ``id`` from frame slot ``id - 1``.

    Attributes:
        ids: 1-based atom identifiers, shape (N,).
        names: Atom names, length N.
        resids: Residue numbers, shape (N,).
        resnames: Residue names, length N.
        segids: Segment identifiers, length N.
        positions: Coordinates, shape (N, 3).
        box: Periodic box, if the source carries one.
    """

    ids: NDArray[np.integer]
    names: list[str] = field(default_factory=list)
    resids: NDArray[np.integer] = field(
        default_factory=lambda: np.array([], dtype=np.int64)
    )
    resnames: list[str] = field(default_factory=list)
    segids: list[str] = field(default_factory=list)
    positions: NDArray[np.floating] = field(
        default_factory=lambda: np.empty((0, 3), dtype=np.float64)
    )
    box: Box | None = None

    def __post_init__(self) -> None:
        self.ids = np.asarray(self.ids, dtype=np.int64).reshape(-1)
        n_atoms = len(self.ids)

        if not self.names:
            self.names = [""] * n_atoms
        if len(self.resids) == 0:
            self.resids = np.zeros(n_atoms, dtype=np.int64)
        self.resids = np.asarray(self.resids, dtype=np.int64)
        if not self.resnames:
            self.resnames = [""] * n_atoms
        if not self.segids:
            self.segids = [""] * n_atoms
        if len(self.positions) == 0:
            self.positions = np.zeros((n_atoms, 3), dtype=np.float64)
        self.positions = np.asarray(self.positions, dtype=np.float64)

        for attr in ("names", "resids", "resnames", "segids"):
            if len(getattr(self, attr)) != n_atoms:
                raise ValueError(
                    f"{attr} has length {len(getattr(self, attr))}, expected {n_atoms}"
                )
        if self.positions.shape != (n_atoms, 3):
            raise ValueError(
                f"positions shape {self.positions.shape} incompatible with "
                f"{n_atoms} atoms"
            )

    @classmethod
    def from_positions(cls, positions: ArrayLike, **kwargs) -> AtomGroup:
        """Create a group with sequential ids 1..N from bare coordinates."""
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        return cls(ids=np.arange(1, len(positions) + 1), positions=positions, **kwargs)

    def __len__(self) -> int:
        return len(self.ids)

    def __getitem__(self, index) -> AtomGroup:
        """Return the subgroup at ``index`` (int, slice, index array or mask)."""
        if isinstance(index, (int, np.integer)):
            index = [index]
        idx = np.arange(len(self))[index]
        return AtomGroup(
            ids=self.ids[idx].copy(),
            names=[self.names[i] for i in idx],
            resids=self.resids[idx].copy(),
            resnames=[self.resnames[i] for i in idx],
            segids=[self.segids[i] for i in idx],
            positions=self.positions[idx].copy(),
            box=self.box,
        )

    @property
    def n_atoms(self) -> int:
        """Number of atoms in the group."""
        return len(self.ids)

    @property
    def is_periodic(self) -> bool:
        """Whether the group carries a periodic box."""
        return self.box is not None

    def select(self, expression: str) -> AtomGroup:
        """Return the atoms matching a selection expression, in order."""
        from ..selection import select_atoms

        return select_atoms(self, expression)

    def coords_flat(self) -> NDArray[np.floating]:
        """Coordinates as a flat [x0, y0, z0, x1, ...] vector (a copy)."""
        return self.positions.reshape(-1).copy()

    def centroid(self) -> NDArray[np.floating]:
        """Unweighted geometric center."""
        if len(self) == 0:
            raise ValueError("Centroid of an empty group is undefined")
        return self.positions.mean(axis=0)

    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Return (min corner, max corner) of the group's coordinates."""
        if len(self) == 0:
            raise ValueError("Bounding box of an empty group is undefined")
        return self.positions.min(axis=0), self.positions.max(axis=0)

    def reimage(self) -> None:
        """Wrap coordinates into the periodic box in place."""
        if self.box is None:
            raise ValueError("Cannot reimage a group without a periodic box")
        self.positions = self.box.wrap_positions(self.positions)

    def copy(self) -> AtomGroup:
        return self[:]
