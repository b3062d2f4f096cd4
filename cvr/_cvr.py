"""Implements the CVR ("Chiffre de Vigenère Renforcé") stream cypher.

Defines the main encryption class on top of the byte transform.
"""

from cvr._chain import _to_key
from cvr._cypher import _Cypher
from cvr._engine import CipherEngine
from cvr._types import _HAS_NUMPY

__all__ = ["CVR"]


class CVR(_Cypher):
    """CVR is a symmetric, byte-for-byte stream cypher derived from the Vigenère cypher.

    The key stream is a Lagged Fibonacci sequence of base-256 numbers whose first terms are
    diffused with a modular-squaring "Sensitivity" transform of the password. Every output byte
    depends on the previous plaintext byte and on a running carry pool, so the transform is
    strictly sequential. The cyphertext has exactly the length of the plaintext; there is no
    integrity tag. Designed for educational and experimental use.
    """

    def __init__(self, password: str | bytes | bytearray | memoryview, vectorise: bool = False) -> None:
        """Initialise the CVR cypher.

        Args:
            password (str or bytes or bytearray or memoryview): The password. Strings are UTF-8 encoded.
            vectorise (bool): Use NumPy to square numbers while seeding the key stream. Defaults to False.

        Raises:
            TypeError: If `password` is not a string or a bytes-like object.
            InvalidKey: If `password` is empty.
            TypeError: If `vectorise` is not a boolean.
            ValueError: If `vectorise` is True and NumPy is not installed.
        """
        if not isinstance(vectorise, bool):
            raise TypeError("vectorise must be a boolean.")
        if vectorise and not _HAS_NUMPY:
            raise ValueError("NumPy is required for vectorised computation.")

        self._password = _to_key(password)
        self._vectorise = vectorise

    def __str__(self) -> str:
        """Return a string representation of the CVR instance without the password.

        Returns:
            str: A string representation of the CVR instance.
        """
        return f"CVR(password_length={len(self._password)}, vectorise={self._vectorise})"

    def _new_engine(self) -> CipherEngine:
        """Build the engine that transforms one stream from its first byte.

        Returns:
            CipherEngine: A freshly seeded engine.
        """
        return CipherEngine(self._password, vectorise=self._vectorise)

    def encode(self, message: bytes | bytearray | memoryview) -> memoryview:
        """Encrypt a message.

        Every call restarts the key stream, so equal messages give equal cyphertexts.

        Args:
            message (bytes or bytearray or memoryview): Message to encode.

        Returns:
            memoryview: Encrypted message, as long as `message`.
        """
        return memoryview(self._new_engine().encrypt(message))

    def decode(self, cyphertext: bytes | bytearray | memoryview) -> memoryview:
        """Decrypt an encoded message.

        Args:
            cyphertext (bytes or bytearray or memoryview): Encrypted message.

        Returns:
            memoryview: Decrypted message, as long as `cyphertext`.
        """
        return memoryview(self._new_engine().decrypt(cyphertext))
