"""Implements the Cypher class, the base class for byte-stream cyphers."""

import os
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Callable

from cvr._engine import CipherEngine
from cvr._stream import ByteSink, ByteSource
from cvr._types import Mode

__all__: list[str] = []


class _Cypher(ABC):
    """Abstract base class for cyphers; provides utils that are common to all subclasses."""

    @abstractmethod
    def _new_engine(self) -> CipherEngine:
        """Build the engine that transforms one stream from its first byte.

        Returns:
            CipherEngine: A freshly seeded engine.
        """
        pass

    @abstractmethod
    def encode(self, message: bytes | bytearray | memoryview) -> memoryview:
        """Encrypt a message.

        Args:
            message (bytes or bytearray or memoryview): Message to encode.

        Returns:
            memoryview: Encrypted message.
        """
        pass

    @abstractmethod
    def decode(self, cyphertext: bytes | bytearray | memoryview) -> memoryview:
        """Decrypt an encoded message.

        Args:
            cyphertext (bytes or bytearray or memoryview): Encrypted message.

        Returns:
            memoryview: Decrypted message.
        """
        pass

    def process_file(
        self,
        mode: Mode,
        input_file: str | Path | IO[bytes],
        output_file: str | Path | IO[bytes],
        buffer_size: int = 1024 * 1024,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> int:
        """Processes a file or stream in blocks using the Cypher for encryption or decryption.

        Files given as paths are opened and closed here; file objects are left open. The output is
        flushed even when the transform fails.

        Args:
            mode (Literal["encode", "decode"]): Operation mode ("encode" for encryption, "decode" for decryption).
            input_file (str or Path or IO[bytes]): Path or file-like object for input.
            output_file (str or Path or IO[bytes]): Path or file-like object for output.
            buffer_size (int): Bytes to read and write at a time. Defaults to `1024 * 1024` (1MB).
            progress_callback (Callable, optional): Callback for progress reporting.
                Receives two arguments: `bytes_processed` and `total_size`. Defaults to None.

        Returns:
            int: The number of bytes processed.

        Raises:
            ValueError: If `mode` is not "encode" or "decode".
            TypeError: If `buffer_size` is not an integer.
            ValueError: If `buffer_size` is not a positive integer.
        """
        # Input validation
        if mode not in ("encode", "decode"):
            raise ValueError("Invalid mode. Use 'encode' or 'decode'.")
        if not isinstance(buffer_size, int):
            raise TypeError("buffer_size must be an integer.")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be a positive integer.")

        # Open the input and output if necessary
        def _open_if_path(obj: str | Path | IO[bytes], mode: str) -> IO[bytes]:
            if isinstance(obj, str):
                return open(obj, mode)
            elif isinstance(obj, Path):
                return obj.open(mode)
            else:
                return obj

        # Seed the engine first so a bad password never creates an output file
        engine = self._new_engine()

        infile = _open_if_path(input_file, "rb")
        try:
            outfile = _open_if_path(output_file, "wb")
        except BaseException:
            if isinstance(input_file, (str, Path)):
                infile.close()
            raise

        # Progress tracking setup
        total_size = 0
        try:
            if hasattr(infile, "fileno"):
                fileno = infile.fileno()
                if not os.isatty(fileno):
                    file_stat = os.fstat(fileno)
                    if stat.S_ISREG(file_stat.st_mode):
                        total_size = file_stat.st_size
        except (OSError, ValueError):
            pass  # Not a real file or can't determine size

        if total_size <= 0:
            progress_callback = None
        elif progress_callback is not None:
            progress_callback(0, total_size)

        try:
            source = ByteSource(infile, buffer_size, progress_callback, total_size)
            with ByteSink(outfile, buffer_size) as sink:
                return engine.run(mode, source, sink)
        finally:
            # Close the input and output files if they were opened
            if isinstance(input_file, (str, Path)):
                infile.close()
            if isinstance(output_file, (str, Path)):
                outfile.close()
