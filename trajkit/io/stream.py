"""File handle ownership for trajectory readers."""

from __future__ import annotations

from pathlib import Path
from typing import IO

from ..exceptions import FileOpenError


class StreamWrapper:
    """
    Owns (or borrows) the stream a trajectory reads from.

    A path is opened here and closed by :meth:`close`. An already open file
    object is borrowed: it is used as-is and never closed by the wrapper.

    Example:
        with StreamWrapper("run.dcd", binary=True) as wrapper:
            header = wrapper.stream.read(92)
    """

    def __init__(self, source: str | Path | IO, binary: bool = False) -> None:
        """
        Initialize stream wrapper.

        Args:
            source: File path or open file object.
            binary: Open paths in binary mode.

        Raises:
            FileOpenError: If the path cannot be opened.
        """
        if isinstance(source, (str, Path)):
            self.filename = str(source)
            try:
                self._stream = Path(source).open("rb" if binary else "r")
            except OSError as exc:
                raise FileOpenError(source, exc.strerror or str(exc)) from exc
            self._owned = True
        else:
            self.filename = str(getattr(source, "name", "<stream>"))
            self._stream = source
            self._owned = False

    @property
    def stream(self) -> IO:
        if self._stream is None:
            raise ValueError(f"Stream for {self.filename} is closed")
        return self._stream

    @property
    def closed(self) -> bool:
        return self._stream is None

    def close(self) -> None:
        """Close the stream if this wrapper owns it."""
        if self._stream is not None and self._owned:
            self._stream.close()
        self._stream = None

    def __enter__(self) -> StreamWrapper:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
