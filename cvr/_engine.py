"""Implements the CVR byte transform.

Each plaintext byte t is combined with two digits of the current password term: u, read
sequentially, and v, read at a running index j that is fed back by the previous plaintext byte.
Encryption emits ``(t + (u + v) // 2) mod 256``; the discarded multiples of 256 accumulate in a
carry pool which replaces u whenever u is zero. Decryption mirrors every step, so both directions
keep j, the pool and the chain cursor in lockstep.
"""

from cvr._chain import PasswordChain, PasswordView
from cvr._stream import ByteSink, ByteSource
from cvr._types import Digits, Mode

__all__ = ["CipherEngine", "decrypt", "encrypt"]


class CipherEngine:
    """Stateful transform of one byte stream, in one direction, for one password.

    The state (password chain, running index, carry pool and previous plaintext byte) carries
    over from byte to byte and from block to block. Use a new engine for every stream and never
    mix encryption and decryption on the same engine.
    """

    def __init__(self, password: str | bytes | bytearray | memoryview, vectorise: bool = False) -> None:
        """Initialise the engine and seed its password chain.

        Args:
            password (str or bytes or bytearray or memoryview): The password. Strings are UTF-8 encoded.
            vectorise (bool): Use the NumPy squaring while seeding the chain. Defaults to False.

        Raises:
            TypeError: If `password` is not a string or a bytes-like object.
            InvalidKey: If `password` is empty.
        """
        self._chain = PasswordChain(password, vectorise=vectorise)
        self._view: PasswordView = self._chain.current
        self._j = 0
        self._carry_pool = 0
        self._previous = 0

    def __str__(self) -> str:
        return f"CipherEngine(chain={self._chain}, j={self._j}, carry_pool={self._carry_pool})"

    @property
    def chain(self) -> PasswordChain:
        """The password chain feeding the engine."""
        return self._chain

    @property
    def carry_pool(self) -> int:
        """The accumulated quotients not yet drained into zero key digits."""
        return self._carry_pool

    def _key_pair(self) -> tuple[int, int]:
        """Advance the key stream by one position.

        Returns:
            tuple[int, int]: The sequential digit u (never a raw zero) and the indexed digit v.
        """
        view = self._view
        if view.exhausted:
            view = self._view = self._chain.next()
        self._j = (self._j + self._previous) % view.length
        u = view.next_character()
        v = view.character(self._j)
        if u == 0:
            # Drain one base-256 digit of the pool
            u = self._carry_pool & 0xFF
            self._carry_pool >>= 8
        return u, v

    def encrypt_byte(self, t: int) -> int:
        """Encrypt one plaintext byte.

        Args:
            t (int): The plaintext byte.

        Returns:
            int: The cyphertext byte.
        """
        u, v = self._key_pair()
        full = t + ((u + v) >> 1)
        self._carry_pool += full >> 8
        self._previous = t
        return full & 0xFF

    def decrypt_byte(self, c: int) -> int:
        """Decrypt one cyphertext byte.

        Args:
            c (int): The cyphertext byte.

        Returns:
            int: The plaintext byte.
        """
        u, v = self._key_pair()
        raw = c - ((u + v) >> 1)
        q = (255 - raw) >> 8
        t = (q << 8) + raw
        self._carry_pool += q
        self._previous = t
        return t

    def encrypt(self, data: Digits) -> bytearray:
        """Encrypt a block, continuing the stream.

        Args:
            data (bytes or bytearray or memoryview): The plaintext block.

        Returns:
            bytearray: The cyphertext block.
        """
        step = self.encrypt_byte
        return bytearray([step(t) for t in data])

    def decrypt(self, data: Digits) -> bytearray:
        """Decrypt a block, continuing the stream.

        Args:
            data (bytes or bytearray or memoryview): The cyphertext block.

        Returns:
            bytearray: The plaintext block.
        """
        step = self.decrypt_byte
        return bytearray([step(c) for c in data])

    def run(self, mode: Mode, source: ByteSource, sink: ByteSink) -> int:
        """Transform every remaining byte of `source` into `sink`.

        Args:
            mode (Literal["encode", "decode"]): "encode" to encrypt, "decode" to decrypt.
            source (ByteSource): Where the input bytes come from.
            sink (ByteSink): Where the output bytes go.

        Returns:
            int: The number of bytes transformed.

        Raises:
            ValueError: If `mode` is not "encode" or "decode".
        """
        if mode == "encode":
            step = self.encrypt_byte
        elif mode == "decode":
            step = self.decrypt_byte
        else:
            raise ValueError("Invalid mode. Use 'encode' or 'decode'.")

        count = 0
        while source.has_next():
            sink.write(step(source.next()))
            count += 1
        return count


def encrypt(password: str | bytes | bytearray | memoryview, source: ByteSource, sink: ByteSink) -> int:
    """Encrypt a whole byte source into a byte sink.

    Args:
        password (str or bytes or bytearray or memoryview): The password.
        source (ByteSource): The plaintext.
        sink (ByteSink): Receives the cyphertext.

    Returns:
        int: The number of bytes transformed.
    """
    return CipherEngine(password).run("encode", source, sink)


def decrypt(password: str | bytes | bytearray | memoryview, source: ByteSource, sink: ByteSink) -> int:
    """Decrypt a whole byte source into a byte sink.

    Args:
        password (str or bytes or bytearray or memoryview): The password.
        source (ByteSource): The cyphertext.
        sink (ByteSink): Receives the plaintext.

    Returns:
        int: The number of bytes transformed.
    """
    return CipherEngine(password).run("decode", source, sink)
