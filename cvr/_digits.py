"""Base-256 fixed-width big-number primitives.

Numbers are big-endian digit sequences: one byte is one digit. Buffers have a fixed
width chosen at creation and track how many of their trailing digits make up the value.
These are special-purpose, truncating operations rather than a general bignum library.
"""

import sys

from cvr._errors import AllocationFailure
from cvr._types import Digits

__all__ = ["FixedWidthNumber", "add_truncated", "add_variable", "build_array"]


def build_array(size: int = 0) -> bytearray:
    """Builds a zeroed digit buffer of the specified size.

    Args:
        size (int): The number of digits to allocate. Defaults to 0.

    Returns:
        bytearray: The created buffer.

    Raises:
        AllocationFailure: If the buffer cannot be allocated.
    """
    if size > sys.maxsize:
        raise AllocationFailure(size)
    try:
        return bytearray(size)
    except (MemoryError, OverflowError) as e:
        raise AllocationFailure(size) from e


class FixedWidthNumber:
    """A non-negative integer held in an owned buffer of exactly `width` digits.

    The value is right-aligned in the buffer. `length` counts the trailing digits that
    belong to the value; the remaining leading digits are zero padding. The buffer never
    changes its width after creation.
    """

    __slots__ = ("_digits", "_length")

    def __init__(self, width: int) -> None:
        """Initialise a zero-valued number.

        Args:
            width (int): The number of digits of the buffer.

        Raises:
            TypeError: If `width` is not an integer.
            ValueError: If `width` is not a positive integer.
            AllocationFailure: If the buffer cannot be allocated.
        """
        if not isinstance(width, int):
            raise TypeError("width must be an integer.")
        if width <= 0:
            raise ValueError("width must be a positive integer.")

        self._digits = build_array(width)
        self._length = 0

    def __len__(self) -> int:
        return len(self._digits)

    def __int__(self) -> int:
        return int.from_bytes(self._digits, "big")

    def __str__(self) -> str:
        return f"FixedWidthNumber(width={self.width}, length={self._length}, value={int(self)})"

    @property
    def width(self) -> int:
        """The number of digits of the buffer."""
        return len(self._digits)

    @property
    def length(self) -> int:
        """The number of trailing digits holding the value."""
        return self._length

    @length.setter
    def length(self, value: int) -> None:
        if not 0 <= value <= len(self._digits):
            raise ValueError("length must be between 0 and the width of the number.")
        self._length = value

    @property
    def padding(self) -> int:
        """The number of leading digits that are padding."""
        return len(self._digits) - self._length

    @property
    def digits(self) -> memoryview:
        """A writable view of the whole buffer."""
        return memoryview(self._digits)

    @property
    def significant(self) -> memoryview:
        """A view of the trailing `length` digits."""
        return memoryview(self._digits)[len(self._digits) - self._length :]

    def assign(self, digits: Digits) -> None:
        """Replace the value with `digits`, right-aligned and zero-padded.

        The tracked length becomes the number of digits given, leading zeros included. Digits that
        do not fit the width are truncated from the most significant end.

        Args:
            digits (bytes or bytearray or memoryview): The new value, most significant digit first.
        """
        width = len(self._digits)
        n = min(len(digits), width)
        self._digits[: width - n] = bytes(width - n)
        self._digits[width - n :] = digits[len(digits) - n :]
        self._length = n

    def copy_from(self, other: "FixedWidthNumber") -> None:
        """Copy the digits and tracked length of a number of the same width.

        Args:
            other (FixedWidthNumber): The number to copy.

        Raises:
            ValueError: If the widths differ.
        """
        if other.width != self.width:
            raise ValueError("numbers must have the same width.")
        self._digits[:] = other._digits
        self._length = other._length


def add_truncated(output: FixedWidthNumber, digits: Digits) -> int:
    """Compute ``output = (output + digits) mod 256**output.width`` in place.

    `digits` is right-aligned against the least significant end of `output`; digits beyond
    the width of `output` are ignored. The tracked length of `output` becomes the count of its
    significant (non leading zero) digits.

    Args:
        output (FixedWidthNumber): The number that receives the sum.
        digits (bytes or bytearray or memoryview): The number to add, most significant digit first.

    Returns:
        int: The carry out of the most significant digit.
    """
    width = output.width
    addend = digits[len(digits) - width :] if len(digits) > width else digits
    total = int(output) + int.from_bytes(addend, "big")
    value = total & ((1 << (8 * width)) - 1)
    output.digits[:] = value.to_bytes(width, "big")
    output.length = (value.bit_length() + 7) // 8
    return total >> (8 * width)


def add_variable(buffer: bytearray, end: int, length: int, digits: Digits) -> int:
    """Add `digits` to the `length`-digit number that ends right before `buffer[end]`.

    Only the overlapping digit ranges are combined; the carry is then propagated through
    the remaining digits of the longer operand. The result occupies
    ``buffer[end - max(length, len(digits)):end]``. The final carry is returned, not written.

    Args:
        buffer (bytearray): The buffer holding the first operand.
        end (int): Index one past the least significant digit of the first operand.
        length (int): The number of digits of the first operand.
        digits (bytes or bytearray or memoryview): The second operand, most significant digit first.

    Returns:
        int: The carry out of the most significant digit of the result.

    Raises:
        ValueError: If the result would not fit in the buffer before `end`.
    """
    digits_len = len(digits)
    longest = max(length, digits_len)
    if end > len(buffer) or end - longest < 0:
        raise ValueError("the sum does not fit in the buffer.")

    common = min(length, digits_len)
    carry = 0
    for i in range(1, common + 1):
        total = buffer[end - i] + digits[digits_len - i] + carry
        buffer[end - i] = total & 0xFF
        carry = total >> 8

    if length > digits_len:
        # The first operand is longer: only the carry moves into its upper digits
        for i in range(common + 1, length + 1):
            if not carry:
                break
            total = buffer[end - i] + carry
            buffer[end - i] = total & 0xFF
            carry = total >> 8
    else:
        for i in range(common + 1, digits_len + 1):
            total = digits[digits_len - i] + carry
            buffer[end - i] = total & 0xFF
            carry = total >> 8

    return carry
