"""Implements the password chain, the key-stream generator of CVR.

The chain is defined as follows, with k = 256 and m the length of the password:

- x[0] is the password.
- x[1] is the Sensitivity of x[0].
- x[i] is the Sensitivity of (x[i-2] + x[i-1]) for i in 2..9.
- x[n] = (x[n-10] + x[n-7]) mod k**(m + PADDING) for n > 9.

The recurrence for n > 9 is a Lagged Fibonacci generator; the Sensitivity seeding injects
non-linearity into its initial state. Encryption uses the terms from x[10] onwards, reading
the significant part of their m least significant digits and skipping terms where that part
is zero.
"""

from typing import Iterator

from cvr._digits import FixedWidthNumber, add_truncated
from cvr._errors import InvalidKey
from cvr._sensitivity import Sensitivity

__all__ = ["PADDING", "PasswordChain", "PasswordView"]

PADDING = 10
"""Head-room digits added to the password length for every chain term."""

_SEED_TERMS = 10
_LONG_LAG = 10
_SHORT_LAG = 7


def _to_key(password: str | bytes | bytearray | memoryview) -> bytes:
    """Normalise a password to bytes.

    Args:
        password (str or bytes or bytearray or memoryview): The password. Strings are UTF-8 encoded.

    Returns:
        bytes: The password bytes.

    Raises:
        TypeError: If `password` is not a string or a bytes-like object.
        InvalidKey: If `password` is empty.
    """
    if isinstance(password, str):
        key = password.encode()
    elif isinstance(password, (bytes, bytearray, memoryview)):
        key = bytes(password)
    else:
        raise TypeError("password must be a string or a bytes-like object.")
    if not key:
        raise InvalidKey()
    return key


class PasswordView:
    """A read cursor over the significant digits of one chain term.

    Characters are consumed sequentially with `next_character`; `character` reads any position
    without consuming it.
    """

    __slots__ = ("_key", "_offset", "_cursor")

    def __init__(self, key: bytes, offset: int = 0) -> None:
        """Initialise a view with a fresh cursor.

        Args:
            key (bytes): The significant digits of the term.
            offset (int): Where the digits start in the term buffer. Defaults to 0.
        """
        self._key = key
        self._offset = offset
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._key)

    def __str__(self) -> str:
        return f"PasswordView(offset={self._offset}, length={len(self._key)}, cursor={self._cursor})"

    @property
    def length(self) -> int:
        """The number of significant digits."""
        return len(self._key)

    @property
    def offset(self) -> int:
        """The start of the significant digits within the term buffer."""
        return self._offset

    @property
    def key(self) -> bytes:
        """The significant digits."""
        return self._key

    @property
    def exhausted(self) -> bool:
        """Whether every digit has been consumed."""
        return self._cursor == len(self._key)

    def next_character(self) -> int:
        """Consume and return the next digit.

        Returns:
            int: The digit under the cursor.

        Raises:
            IndexError: If the view is exhausted.
        """
        if self._cursor == len(self._key):
            raise IndexError("Password view exhausted. Fetch the next term from the chain.")
        value = self._key[self._cursor]
        self._cursor += 1
        return value

    def character(self, position: int) -> int:
        """Return the digit at `position` without consuming anything.

        Args:
            position (int): Index into the significant digits.

        Returns:
            int: The digit.
        """
        return self._key[position]


class _TermRing:
    """The last terms of the chain, addressed by absolute term index."""

    SIZE = 11

    def __init__(self, width: int) -> None:
        self._slots = [FixedWidthNumber(width) for _ in range(self.SIZE)]

    def __getitem__(self, n: int) -> FixedWidthNumber:
        return self._slots[n % self.SIZE]

    def overwrite(self, n: int, source: FixedWidthNumber) -> FixedWidthNumber:
        """Store a copy of `source` as term `n` and return the slot."""
        target = self[n]
        target.copy_from(source)
        return target


class PasswordChain:
    """Generates the unbounded sequence of password terms for one password.

    Only the last eleven terms are retained. The sequence can only be restarted by building a
    new chain.
    """

    def __init__(self, password: str | bytes | bytearray | memoryview, vectorise: bool = False) -> None:
        """Seed the chain with ten terms computed from the password.

        Args:
            password (str or bytes or bytearray or memoryview): The password. Strings are UTF-8 encoded.
            vectorise (bool): Use the NumPy squaring of the Sensitivity transform. Defaults to False.

        Raises:
            TypeError: If `password` is not a string or a bytes-like object.
            InvalidKey: If `password` is empty.
            SensitivityOverflow: If the seeding outgrows the padding head-room.
        """
        key = _to_key(password)
        self._m = len(key)
        self._terms = _TermRing(self._m + PADDING)

        sensitivity = Sensitivity(key, PADDING - 1, vectorise=vectorise)
        sensitivity.compute()
        self._terms[0].assign(key)
        sensitivity.extract_to(self._terms[1])
        for i in range(2, _SEED_TERMS):
            # The Sensitivity already holds x[i-1]
            sensitivity.add(self._terms[i - 2])
            sensitivity.compute()
            sensitivity.extract_to(self._terms[i])

        self._n = _SEED_TERMS - 1
        self._current = PasswordView(b"", offset=self._m + PADDING)

    def __iter__(self) -> Iterator[PasswordView]:
        return self

    def __next__(self) -> PasswordView:
        return self.next()

    def __str__(self) -> str:
        return f"PasswordChain(m={self._m}, term_index={self._n})"

    @property
    def m(self) -> int:
        """The byte length of the password."""
        return self._m

    @property
    def term_index(self) -> int:
        """The index n of the most recently computed term."""
        return self._n

    @property
    def current(self) -> PasswordView:
        """The view returned by the last call to `next`; an exhausted empty view before that."""
        return self._current

    def term(self, n: int) -> FixedWidthNumber:
        """Return term `n`, one of the last eleven computed terms.

        Args:
            n (int): Absolute term index.

        Returns:
            FixedWidthNumber: The term.

        Raises:
            IndexError: If term `n` is not retained.
        """
        if not self._n - _TermRing.SIZE < n <= self._n:
            raise IndexError(f"Term {n} is not retained; the chain is at term {self._n}.")
        return self._terms[n]

    def next(self) -> PasswordView:
        """Compute the next non-zero term and return a fresh view over its significant digits.

        Returns:
            PasswordView: A view of at least one and at most m digits.
        """
        terms = self._terms
        while True:
            self._n += 1
            n = self._n
            term = terms.overwrite(n, terms[n - _LONG_LAG])
            add_truncated(term, terms[n - _SHORT_LAG].digits)

            # Only the m low-order digits are usable, never the head-room
            key = term.digits[PADDING:].tobytes().lstrip(b"\x00")
            if key:
                break

        self._current = PasswordView(key, offset=term.width - len(key))
        return self._current
