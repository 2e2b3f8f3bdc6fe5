"""Matlab-style frame range parsing."""

from __future__ import annotations

from ..exceptions import FrameIndexError, PreconditionError


def parse_range(spec: str) -> list[int]:
    """
    Parse a single inclusive range.

    ``"5"`` -> [5], ``"2:5"`` -> [2, 3, 4, 5], ``"0:2:8"`` -> [0, 2, 4, 6, 8].
    A descending range needs a negative stride, e.g. ``"8:-2:0"``.

    Raises:
        PreconditionError: If the range is malformed or its stride is zero.
    """
    parts = [p.strip() for p in spec.split(":")]
    try:
        values = [int(p) for p in parts]
    except ValueError as exc:
        raise PreconditionError(f"Malformed range '{spec}'") from exc

    if len(values) == 1:
        return values
    if len(values) == 2:
        start, stop = values
        stride = 1
    elif len(values) == 3:
        start, stride, stop = values
    else:
        raise PreconditionError(f"Malformed range '{spec}'")

    if stride == 0:
        raise PreconditionError(f"Zero stride in range '{spec}'")
    if (stride > 0 and stop < start) or (stride < 0 and stop > start):
        raise PreconditionError(f"Range '{spec}' is empty")
    end = stop + 1 if stride > 0 else stop - 1
    return list(range(start, end, stride))


def parse_range_list(spec: str) -> list[int]:
    """Parse comma-separated ranges, e.g. ``"0:10,20:2:30,42"``."""
    indices: list[int] = []
    for chunk in spec.split(","):
        if chunk.strip():
            indices.extend(parse_range(chunk))
    if not indices:
        raise PreconditionError(f"Empty range list '{spec}'")
    return indices


def frame_list(
    n_frames: int,
    skip: int = 0,
    range_spec: str | None = None,
) -> list[int]:
    """
    Frames of a trajectory to use.

    Args:
        n_frames: Number of frames in the trajectory.
        skip: Frames to drop from the start (ignored when a range is given).
        range_spec: Optional Matlab-style range list.

    Returns:
        Ordered frame indices.

    Raises:
        FrameIndexError: If a requested frame does not exist.
        PreconditionError: If ``skip`` is negative.
    """
    if range_spec:
        frames = parse_range_list(range_spec)
        for index in frames:
            if index < 0 or index >= n_frames:
                raise FrameIndexError(index, n_frames)
        return frames

    if skip < 0:
        raise PreconditionError(f"skip must be non-negative, got {skip}")
    return list(range(skip, n_frames))
