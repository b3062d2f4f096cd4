"""CVR: Chiffre de Vigenère Renforcé, a Vigenère-derived Stream Cypher."""

from importlib.metadata import PackageNotFoundError, version

from cvr._chain import PADDING, PasswordChain, PasswordView
from cvr._cvr import CVR
from cvr._digits import FixedWidthNumber, add_truncated, add_variable
from cvr._engine import CipherEngine, decrypt, encrypt
from cvr._errors import AllocationFailure, CVRError, InvalidKey, SensitivityOverflow
from cvr._sensitivity import Sensitivity
from cvr._stream import ByteSink, ByteSource

__version__: str
"""The version of the library."""
try:
    __version__ = version("cvr")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "__version__",
    "PADDING",
    "AllocationFailure",
    "ByteSink",
    "ByteSource",
    "CVR",
    "CVRError",
    "CipherEngine",
    "FixedWidthNumber",
    "InvalidKey",
    "PasswordChain",
    "PasswordView",
    "Sensitivity",
    "SensitivityOverflow",
    "add_truncated",
    "add_variable",
    "decrypt",
    "encrypt",
]
