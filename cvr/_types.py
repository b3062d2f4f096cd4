"""Type definitions and central imports for the CVR project."""

from typing import Any, Literal, Union

__all__ = ["Digits", "Mode"]

np: Any
try:
    import numpy

    np = numpy
    _HAS_NUMPY = True
except ImportError:
    np = None
    _HAS_NUMPY = False

Digits = Union[bytes, bytearray, memoryview]
"""A big-endian sequence of base-256 digits."""

Mode = Literal["encode", "decode"]
"""Direction of a stream transform."""
