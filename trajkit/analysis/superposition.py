"""
Optimal superposition RMSD between coordinate sets.

Coordinate sets are flat vectors ``[x0, y0, z0, x1, y1, z1, ...]``. Viewed as
a 3 x n matrix U (one column per atom), the least-squares RMSD after optimal
rotation of two centered sets U and V is

    RMSD = sqrt(|E0 - 2 * (s0 + s1 + s2)| / n)

where E0 is the total sum of squared coordinates of both sets and s_i are the
singular values of the 3x3 cross-covariance matrix R = U V^T. Only the
singular values are needed; the rotation itself is never formed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from ..exceptions import AtomCountMismatchError, NumericalError

logger = logging.getLogger(__name__)


class LinearAlgebraBackend(ABC):
    """
    Dense 3x3 linear algebra needed by the RMSD kernel.

    Implementations must be stateless per call so that one backend can be
    shared between threads.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return backend name."""
        ...

    @abstractmethod
    def matmul(self, a: NDArray[np.floating], b: NDArray[np.floating]) -> NDArray[np.floating]:
        """Return ``a @ b`` (3 x n times n x 3)."""
        ...

    @abstractmethod
    def singular_values(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        """
        Singular values of a 3x3 matrix.

        Raises:
            NumericalError: If the decomposition does not converge.
        """
        ...


class NumpyBackend(LinearAlgebraBackend):
    """Backend on numpy's BLAS/LAPACK bindings."""

    @property
    def name(self) -> str:
        return "numpy"

    def matmul(self, a: NDArray[np.floating], b: NDArray[np.floating]) -> NDArray[np.floating]:
        return a @ b

    def singular_values(self, r: NDArray[np.floating]) -> NDArray[np.floating]:
        try:
            s = np.linalg.svd(r, compute_uv=False)
        except np.linalg.LinAlgError as exc:
            raise NumericalError(f"SVD of cross-covariance matrix failed: {exc}") from exc
        if not np.all(np.isfinite(s)):
            raise NumericalError("SVD of cross-covariance matrix returned non-finite values")
        return s


_default_backend: LinearAlgebraBackend = NumpyBackend()


def get_backend() -> LinearAlgebraBackend:
    """Return the backend used when none is passed explicitly."""
    return _default_backend


def set_backend(backend: LinearAlgebraBackend) -> None:
    """Replace the default backend."""
    global _default_backend
    _default_backend = backend
    logger.debug("Using %s linear algebra backend", backend.name)


def center_at_origin(v: NDArray[np.floating]) -> NDArray[np.floating]:
    """
    Translate a flat coordinate vector so its centroid is at the origin.

    Works in place and returns ``v``. Centering an already centered vector
    leaves it unchanged up to rounding.
    """
    xyz = v.reshape(-1, 3)
    xyz -= xyz.mean(axis=0)
    return v


def center_trajectory(m: NDArray[np.floating]) -> NDArray[np.floating]:
    """Center every row (frame) of an (n_frames, 3 * n_atoms) matrix in place."""
    for row in m:
        center_at_origin(row)
    return m


def calc_rmsd(
    u: NDArray[np.floating],
    v: NDArray[np.floating],
    backend: LinearAlgebraBackend | None = None,
) -> float:
    """
    Least-squares RMSD between two centered coordinate vectors.

    Args:
        u: Flat coordinates, length 3 * n, centered.
        v: Flat coordinates, length 3 * n, centered.
        backend: Linear algebra backend (defaults to :func:`get_backend`).

    Returns:
        RMSD after optimal superposition.

    Raises:
        AtomCountMismatchError: If the vectors differ in length.
        NumericalError: If the SVD fails.
    """
    if u.shape != v.shape:
        raise AtomCountMismatchError(len(u) // 3, len(v) // 3, context="calc_rmsd")
    if len(u) % 3:
        raise ValueError(f"Coordinate vector length {len(u)} is not a multiple of 3")
    n = len(u) // 3
    if n == 0:
        raise ValueError("Cannot compute RMSD of empty coordinate sets")

    backend = backend or _default_backend

    e0 = float(np.dot(u, u) + np.dot(v, v))

    # Columns of U and V are atoms; R = U V^T is 3x3.
    uu = u.reshape(n, 3).T
    vv = v.reshape(n, 3)
    r = backend.matmul(uu, vv)

    s = backend.singular_values(r)
    return float(np.sqrt(abs(e0 - 2.0 * float(np.sum(s))) / n))


def superpose(
    mobile: NDArray[np.floating],
    reference: NDArray[np.floating],
) -> tuple[NDArray[np.floating], float]:
    """
    Rotate and translate ``mobile`` onto ``reference``.

    Both arguments are (n_atoms, 3) arrays. Unlike :func:`calc_rmsd` this
    forms the rotation, restricted to proper rotations (no reflection).

    Returns:
        (fitted coordinates, RMSD of the fit)
    """
    mobile = np.asarray(mobile, dtype=np.float64)
    reference = np.asarray(reference, dtype=np.float64)
    if mobile.shape != reference.shape:
        raise AtomCountMismatchError(len(reference), len(mobile), context="superpose")

    mobile_center = mobile.mean(axis=0)
    reference_center = reference.mean(axis=0)
    p = mobile - mobile_center
    q = reference - reference_center

    try:
        w, _, vt = np.linalg.svd(p.T @ q)
    except np.linalg.LinAlgError as exc:
        raise NumericalError(f"SVD in superposition failed: {exc}") from exc
    d = np.sign(np.linalg.det(w @ vt))
    correction = np.diag([1.0, 1.0, d if d != 0 else 1.0])
    rotation = w @ correction @ vt

    fitted = p @ rotation + reference_center
    rmsd = float(np.sqrt(np.mean(np.sum((fitted - reference) ** 2, axis=1))))
    return fitted, rmsd
