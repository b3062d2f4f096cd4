import random
import sys
import unittest

from cvr._digits import FixedWidthNumber, add_truncated, add_variable, build_array
from cvr._errors import AllocationFailure


class TestFixedWidthNumber(unittest.TestCase):
    """Unit tests for the FixedWidthNumber class."""

    def test_initialisation(self):
        """Test that a new number is zero, with no tracked digits."""
        number = FixedWidthNumber(5)
        self.assertEqual(number.width, 5)
        self.assertEqual(len(number), 5)
        self.assertEqual(number.length, 0)
        self.assertEqual(number.padding, 5)
        self.assertEqual(int(number), 0)
        self.assertEqual(bytes(number.digits), bytes(5))
        self.assertEqual(bytes(number.significant), b"")

    def test_initialisation_invalid_args(self):
        """Test initialisation with invalid widths."""
        with self.assertRaisesRegex(TypeError, "width must be an integer."):
            FixedWidthNumber("5")  # type: ignore
        with self.assertRaisesRegex(ValueError, "width must be a positive integer."):
            FixedWidthNumber(0)
        with self.assertRaisesRegex(ValueError, "width must be a positive integer."):
            FixedWidthNumber(-3)

    def test_allocation_failure(self):
        """Test that an unaddressable width reports the attempted size."""
        with self.assertRaises(AllocationFailure) as ctx:
            FixedWidthNumber(sys.maxsize + 1)
        self.assertEqual(ctx.exception.requested, sys.maxsize + 1)
        self.assertIsInstance(ctx.exception, MemoryError)

    def test_assign_right_aligns(self):
        """Test that assigned digits land at the least significant end."""
        number = FixedWidthNumber(6)
        number.assign(b"\x01\x02")
        self.assertEqual(bytes(number.digits), b"\x00\x00\x00\x00\x01\x02")
        self.assertEqual(number.length, 2)
        self.assertEqual(number.padding, 4)
        self.assertEqual(bytes(number.significant), b"\x01\x02")
        self.assertEqual(int(number), 0x0102)

    def test_assign_tracks_leading_zeros(self):
        """Test that leading zero digits given to assign are counted in the length."""
        number = FixedWidthNumber(4)
        number.assign(b"\x00\x07")
        self.assertEqual(number.length, 2)
        self.assertEqual(int(number), 7)

    def test_assign_overwrites_previous_value(self):
        """Test that a shorter assignment clears the previous leading digits."""
        number = FixedWidthNumber(4)
        number.assign(b"\xff\xff\xff\xff")
        number.assign(b"\x01")
        self.assertEqual(bytes(number.digits), b"\x00\x00\x00\x01")

    def test_assign_truncates(self):
        """Test that digits beyond the width are dropped from the most significant end."""
        number = FixedWidthNumber(2)
        number.assign(b"\x01\x02\x03")
        self.assertEqual(bytes(number.digits), b"\x02\x03")
        self.assertEqual(number.length, 2)

    def test_copy_from(self):
        """Test copying digits and length between numbers of the same width."""
        source = FixedWidthNumber(3)
        source.assign(b"\x09\x08")
        target = FixedWidthNumber(3)
        target.copy_from(source)
        self.assertEqual(bytes(target.digits), b"\x00\x09\x08")
        self.assertEqual(target.length, 2)

        # The copy owns its buffer
        source.assign(b"\x01")
        self.assertEqual(int(target), 0x0908)

        with self.assertRaisesRegex(ValueError, "numbers must have the same width."):
            FixedWidthNumber(4).copy_from(source)

    def test_length_setter(self):
        """Test that the tracked length stays within the width."""
        number = FixedWidthNumber(3)
        number.length = 3
        self.assertEqual(number.padding, 0)
        with self.assertRaises(ValueError):
            number.length = 4
        with self.assertRaises(ValueError):
            number.length = -1


class TestAddTruncated(unittest.TestCase):
    """Unit tests for the truncating fixed-width addition."""

    def test_matches_integer_arithmetic(self):
        """Test sums and carries against Python integers for random operands."""
        rng = random.Random(1234)
        for _ in range(500):
            width = rng.randint(1, 20)
            a = rng.randbytes(rng.randint(0, width))
            b = rng.randbytes(rng.randint(0, width + 5))

            number = FixedWidthNumber(width)
            number.assign(a)
            carry = add_truncated(number, b)

            modulus = 256**width
            total = int.from_bytes(a, "big") + int.from_bytes(b, "big") % modulus
            self.assertEqual(int(number), total % modulus)
            self.assertEqual(carry, total // modulus)
            self.assertEqual(number.width, width)

    def test_carry_out(self):
        """Test that overflowing the width wraps around and reports the carry."""
        number = FixedWidthNumber(2)
        number.assign(b"\xff\xff")
        carry = add_truncated(number, b"\x01")
        self.assertEqual(carry, 1)
        self.assertEqual(bytes(number.digits), b"\x00\x00")
        self.assertEqual(number.length, 0)

    def test_right_alignment(self):
        """Test that the shorter operand is aligned with the least significant digit."""
        number = FixedWidthNumber(4)
        number.assign(b"\x01")
        carry = add_truncated(number, b"\x02\x00")
        self.assertEqual(carry, 0)
        self.assertEqual(bytes(number.digits), b"\x00\x00\x02\x01")

    def test_length_is_significant_length(self):
        """Test that the tracked length drops leading zeros of the sum."""
        number = FixedWidthNumber(5)
        number.assign(b"\x00\x00\x00\x10")
        self.assertEqual(number.length, 4)
        add_truncated(number, b"\x01")
        self.assertEqual(number.length, 1)
        add_truncated(number, b"\x01\x00\x00")
        self.assertEqual(number.length, 3)


class TestAddVariable(unittest.TestCase):
    """Unit tests for the overlapping-range addition."""

    def test_matches_integer_arithmetic(self):
        """Test the written digits and the carry against Python integers."""
        rng = random.Random(4321)
        for _ in range(500):
            length = rng.randint(0, 12)
            digits = rng.randbytes(rng.randint(0, 12))
            longest = max(length, len(digits))
            end = longest + rng.randint(0, 3)
            buffer = bytearray(rng.randbytes(end + rng.randint(0, 3)))
            original = bytes(buffer)

            a = int.from_bytes(buffer[end - length : end], "big")
            b = int.from_bytes(digits, "big")
            carry = add_variable(buffer, end, length, digits)

            modulus = 256**longest
            self.assertEqual(int.from_bytes(buffer[end - longest : end], "big"), (a + b) % modulus)
            self.assertEqual(carry, (a + b) // modulus)
            # Digits outside the result are untouched
            self.assertEqual(bytes(buffer[: end - longest]), original[: end - longest])
            self.assertEqual(bytes(buffer[end:]), original[end:])

    def test_carry_not_written(self):
        """Test that the final carry is returned rather than stored."""
        buffer = bytearray(b"\x07\xff")
        carry = add_variable(buffer, 2, 1, b"\x01")
        self.assertEqual(carry, 1)
        self.assertEqual(buffer, bytearray(b"\x07\x00"))

    def test_longer_addend_extends_result(self):
        """Test that the addend's extra digits are written before the first operand."""
        buffer = bytearray(b"\x00\x00\x00\x05")
        carry = add_variable(buffer, 4, 1, b"\x02\x03\xfe")
        self.assertEqual(carry, 0)
        self.assertEqual(buffer, bytearray(b"\x00\x02\x04\x03"))

    def test_does_not_fit(self):
        """Test that a result running past the start of the buffer is rejected."""
        with self.assertRaisesRegex(ValueError, "the sum does not fit in the buffer."):
            add_variable(bytearray(3), 2, 1, b"\x01\x02\x03")
        with self.assertRaisesRegex(ValueError, "the sum does not fit in the buffer."):
            add_variable(bytearray(3), 4, 1, b"\x01")


class TestBuildArray(unittest.TestCase):
    """Unit tests for the build_array helper."""

    def test_bytearray(self):
        """Test that a zeroed bytearray digit buffer is built."""
        array = build_array(4)
        self.assertIsInstance(array, bytearray)
        self.assertEqual(array, bytearray(4))

    def test_allocation_failure(self):
        """Test that oversized arrays raise AllocationFailure."""
        with self.assertRaises(AllocationFailure):
            build_array(sys.maxsize + 1)


if __name__ == "__main__":
    unittest.main()
