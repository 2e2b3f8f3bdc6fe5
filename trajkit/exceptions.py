"""
Exception hierarchy for trajkit.

Every error raised by the toolkit derives from :class:`TrajkitError`. Each
concrete class also subclasses the closest builtin exception so that callers
catching ``OSError``, ``ValueError`` or ``IndexError`` keep working.

Ending a trajectory is not an error: ``Trajectory.read_frame`` returns
``False`` at end-of-stream. Everything below is fatal to the operation that
raised it and is never retried.
"""

from __future__ import annotations

from pathlib import Path


class TrajkitError(Exception):
    """Base class for all trajkit errors."""


class FileOpenError(TrajkitError, OSError):
    """A model or trajectory file could not be opened."""

    def __init__(self, filename: str | Path, reason: str = "") -> None:
        self.filename = str(filename)
        self.reason = reason
        message = f"Cannot open '{self.filename}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)

    def __str__(self) -> str:
        # OSError would otherwise format as "[Errno None] None: filename".
        return self.args[0]


class TrajectoryFormatError(TrajkitError, ValueError):
    """A file header (or the mandatory first frame) could not be parsed."""

    def __init__(self, message: str, filename: str | Path | None = None) -> None:
        self.filename = str(filename) if filename is not None else None
        if self.filename:
            message = f"{self.filename}: {message}"
        super().__init__(message)


class TrajectoryReadError(TrajkitError, OSError):
    """A frame in the middle of a trajectory is truncated or corrupt."""

    def __init__(
        self,
        message: str,
        filename: str | Path | None = None,
        frame: int | None = None,
    ) -> None:
        self.filename = str(filename) if filename is not None else None
        self.frame = frame
        prefix = []
        if self.filename:
            prefix.append(self.filename)
        if frame is not None:
            prefix.append(f"frame {frame}")
        if prefix:
            message = f"{', '.join(prefix)}: {message}"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class NumericalError(TrajkitError, ArithmeticError):
    """A numerical routine (e.g. the SVD) failed to converge."""

    def __init__(self, message: str, info: int = 0) -> None:
        self.info = info
        if info:
            message = f"{message} (info={info})"
        super().__init__(message)


class PreconditionError(TrajkitError, ValueError):
    """Inputs violate a requirement checked before any computation."""


class AtomCountMismatchError(PreconditionError):
    """Two coordinate sets (or a model and a trajectory) disagree on size."""

    def __init__(self, expected: int, found: int, context: str = "") -> None:
        self.expected = expected
        self.found = found
        message = f"Atom count mismatch: expected {expected}, found {found}"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class FrameIndexError(PreconditionError, IndexError):
    """A requested frame lies outside the trajectory."""

    def __init__(self, index: int, n_frames: int) -> None:
        self.index = index
        self.n_frames = n_frames
        super().__init__(
            f"Frame index {index} out of range for trajectory with {n_frames} frames"
        )


class AtomIndexError(PreconditionError, IndexError):
    """An atom id does not map onto a slot of the current frame."""


class SelectionError(TrajkitError, ValueError):
    """An atom selection expression is malformed or selects nothing."""
