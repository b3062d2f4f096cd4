"""Buffered byte collaborators for the cypher engine.

`ByteSource` turns a binary file object into a forward-only sequence of bytes and `ByteSink`
collects single bytes into blocks before writing them out.
"""

from types import TracebackType
from typing import IO, Callable

from cvr._digits import build_array

__all__ = ["ByteSink", "ByteSource"]

_DEFAULT_BUFFER_SIZE = 1024


def _check_buffer_size(buffer_size: int) -> None:
    if not isinstance(buffer_size, int):
        raise TypeError("buffer_size must be an integer.")
    if buffer_size <= 0:
        raise ValueError("buffer_size must be a positive integer.")


class ByteSource:
    """A finite, forward-only sequence of bytes read from a binary file object."""

    def __init__(
        self,
        file: IO[bytes],
        buffer_size: int = _DEFAULT_BUFFER_SIZE,
        progress_callback: Callable[[int, int], None] | None = None,
        total_size: int = 0,
    ) -> None:
        """Initialise the source. Nothing is read until the first call to `has_next`.

        Args:
            file (IO[bytes]): The file object to read from.
            buffer_size (int): Bytes to read at a time. Defaults to 1024.
            progress_callback (Callable, optional): Called after each read with `bytes_read` and
                `total_size`. Ignored when `total_size` is not positive. Defaults to None.
            total_size (int): The expected number of bytes, if known. Defaults to 0.

        Raises:
            TypeError: If `buffer_size` is not an integer.
            ValueError: If `buffer_size` is not a positive integer.
        """
        _check_buffer_size(buffer_size)

        self._file = file
        self._buffer_size = buffer_size
        self._progress_callback = progress_callback if total_size > 0 else None
        self._total_size = total_size
        self._block: bytes = b""
        self._cursor = 0
        self._bytes_read = 0
        self._eof = False

    @property
    def bytes_read(self) -> int:
        """The number of bytes read from the file so far."""
        return self._bytes_read

    def has_next(self) -> bool:
        """Whether another byte is available, reading the next block if needed.

        Returns:
            bool: False once the file is exhausted.
        """
        if self._cursor < len(self._block):
            return True
        if self._eof:
            return False

        self._block = self._file.read(self._buffer_size) or b""
        self._cursor = 0
        if not self._block:
            self._eof = True
            return False

        self._bytes_read += len(self._block)
        if self._progress_callback is not None:
            self._progress_callback(self._bytes_read, self._total_size)
        return True

    def next(self) -> int:
        """Consume and return the next byte.

        Returns:
            int: The byte value.

        Raises:
            EOFError: If the source is exhausted.
        """
        if not self.has_next():
            raise EOFError("No more bytes available.")
        value = self._block[self._cursor]
        self._cursor += 1
        return value


class ByteSink:
    """Collects bytes and writes them to a binary file object in blocks.

    Used as a context manager, every buffered byte is written when the scope ends, whether
    normally or through an exception.
    """

    def __init__(self, file: IO[bytes], buffer_size: int = _DEFAULT_BUFFER_SIZE) -> None:
        """Initialise the sink.

        Args:
            file (IO[bytes]): The file object to write to.
            buffer_size (int): Bytes to buffer before writing. Defaults to 1024.

        Raises:
            TypeError: If `buffer_size` is not an integer.
            ValueError: If `buffer_size` is not a positive integer.
        """
        _check_buffer_size(buffer_size)

        self._file = file
        self._buffer = build_array(buffer_size)
        self._cursor = 0
        self._bytes_written = 0

    def __enter__(self) -> "ByteSink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.flush()

    @property
    def bytes_written(self) -> int:
        """The number of bytes accepted so far, flushed or not."""
        return self._bytes_written + self._cursor

    def write(self, value: int) -> None:
        """Buffer one byte, writing the buffer out first if it is full.

        Args:
            value (int): The byte value.
        """
        if self._cursor == len(self._buffer):
            self.flush()
        self._buffer[self._cursor] = value
        self._cursor += 1

    def flush(self) -> None:
        """Write the buffered bytes to the file and flush it.

        The buffer is emptied before writing, so a failed write is never retried.
        """
        if self._cursor:
            block = bytes(self._buffer[: self._cursor])
            self._bytes_written += self._cursor
            self._cursor = 0
            self._file.write(block)
        self._file.flush()
