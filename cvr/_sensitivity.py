"""Implements the Sensitivity transform, the modular-squaring diffusion step of CVR.

For a number x of L digits the Sensitivity is ``y = (x² mod 256**L) + floor(x² / 256**L)``.
It is the only non-linear step of the cypher and is used to seed the password chain.
"""

import sys

from cvr._digits import FixedWidthNumber, add_variable, build_array
from cvr._errors import AllocationFailure, SensitivityOverflow
from cvr._types import _HAS_NUMPY, Digits, np

__all__ = ["Sensitivity"]


class Sensitivity:
    """Holds a number of up to `width` digits and repeatedly replaces it with its Sensitivity.

    Three working buffers are owned by the instance: `output` (width + 1 digits) holds the
    current value right-aligned, `accumulator` (2 * width + 1 digits) receives the square and
    `scratch` (width + 2 digits) holds one partial product at a time.
    """

    def __init__(self, number: Digits, supplement: int, vectorise: bool = False) -> None:
        """Initialise the transform with a starting value.

        Args:
            number (bytes or bytearray or memoryview): The starting value, most significant digit first.
                Its length is tracked as-is, leading zeros included.
            supplement (int): Number of extra digits of head-room; the working width is
                ``len(number) + supplement``.
            vectorise (bool): Square with a NumPy convolution instead of digit loops. Defaults to False.

        Raises:
            TypeError: If `supplement` is not an integer.
            ValueError: If `supplement` is negative or the working width is zero.
            ValueError: If `vectorise` is True and NumPy is not installed.
            AllocationFailure: If the working buffers cannot be allocated.
        """
        if not isinstance(supplement, int):
            raise TypeError("supplement must be an integer.")
        if supplement < 0:
            raise ValueError("supplement must be a non-negative integer.")
        if vectorise and not _HAS_NUMPY:
            raise ValueError("NumPy is required for vectorised computation.")

        width = len(number) + supplement
        if width == 0:
            raise ValueError("the working width must be positive.")
        if 2 * width + 1 > sys.maxsize:
            raise AllocationFailure(2 * width + 1)

        self._width = width
        self._vectorise = vectorise
        self._output = build_array(width + 1)
        self._accumulator = build_array(2 * width + 1)
        self._scratch = build_array(width + 2)

        self._output[width + 1 - len(number) :] = number
        self._length = len(number)

    def __str__(self) -> str:
        return (
            f"Sensitivity(width={self._width}, length={self._length}, vectorise={self._vectorise})"
        )

    def __int__(self) -> int:
        return int.from_bytes(self.value, "big")

    @property
    def width(self) -> int:
        """The working width M."""
        return self._width

    @property
    def length(self) -> int:
        """The tracked length of the current value."""
        return self._length

    @property
    def value(self) -> memoryview:
        """The current value as its tracked trailing digits."""
        return memoryview(self._output)[self._width + 1 - self._length :]

    def add(self, term: FixedWidthNumber) -> None:
        """Add the tracked digits of `term` to the current value.

        Args:
            term (FixedWidthNumber): The number to add.

        Raises:
            SensitivityOverflow: If the term or the sum needs more digits than the working width.
        """
        width = self._width
        added = term.significant
        added_len = len(added)
        if added_len > width:
            raise SensitivityOverflow(added_len, width)

        considered = max(self._length, added_len)
        carry = add_variable(self._output, width + 1, self._length, added)
        self._length = considered
        if carry:
            if considered >= width:
                raise SensitivityOverflow(considered + 1, width)
            self._output[width - considered] = carry
            self._length += 1

    def compute(self) -> None:
        """Replace the current value x of L digits by ``(x² mod 256**L) + floor(x² / 256**L)``.

        The tracked length grows by one digit when the final addition carries.

        Raises:
            SensitivityOverflow: If the current value is longer than the working width.
        """
        if self._length > self._width:
            raise SensitivityOverflow(self._length, self._width)

        if self._vectorise:
            self._square_vectorised()
        else:
            self._square()
        self._fold()

    def _square(self) -> None:
        # Schoolbook multiplication, one digit of x at a time from the least significant
        width = self._width
        length = self._length
        output = self._output
        accumulator = self._accumulator
        scratch = self._scratch
        top = 2 * width  # least significant digit of the accumulator

        accumulator[:] = bytes(len(accumulator))
        for i in range(length):
            # scratch <- x * digit_i
            a = output[width - i]
            carry = 0
            for j in range(length):
                product = a * output[width - j] + carry
                scratch[width + 1 - j] = product & 0xFF
                carry = product >> 8
            scratch[width + 1 - length] = carry
            scratch[width - length] = 0

            # accumulator += scratch * 256**i
            carry = 0
            for j in range(length + 2):
                total = accumulator[top - i - j] + scratch[width + 1 - j] + carry
                accumulator[top - i - j] = total & 0xFF
                carry = total >> 8

    def _square_vectorised(self) -> None:
        # x² as the convolution of the digit vector with itself, then a single carry pass
        length = self._length
        accumulator = self._accumulator
        accumulator[:] = bytes(len(accumulator))
        if length == 0:
            return

        x = np.frombuffer(self.value, dtype=np.uint8).astype(np.int64)
        coefficients = np.convolve(x, x).tolist()

        square = bytearray(2 * length)
        carry = 0
        position = 2 * length - 1
        for coefficient in reversed(coefficients):
            carry += coefficient
            square[position] = carry & 0xFF
            carry >>= 8
            position -= 1
        square[0] = carry

        accumulator[len(accumulator) - 2 * length :] = square

    def _fold(self) -> None:
        # output <- high L digits + low L digits of the accumulator
        width = self._width
        length = self._length
        output = self._output
        accumulator = self._accumulator
        top = 2 * width

        carry = 0
        for i in range(length):
            total = accumulator[top - length - i] + accumulator[top - i] + carry
            output[width - i] = total & 0xFF
            carry = total >> 8
        if carry:
            output[width - length] = carry
            self._length += 1

    def extract_to(self, destination: FixedWidthNumber) -> None:
        """Copy the current value into `destination`, right-aligned and zero-padded.

        The tracked length of `destination` records where the padding ends. If the value is
        longer than `destination`, only its trailing digits are kept.

        Args:
            destination (FixedWidthNumber): The number that receives the value.
        """
        destination.assign(self.value)
