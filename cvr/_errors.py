"""Exceptions raised by the CVR library."""

__all__ = ["AllocationFailure", "CVRError", "InvalidKey", "SensitivityOverflow"]


class CVRError(Exception):
    """Base class for all errors raised by the library."""


class InvalidKey(CVRError, ValueError):
    """Raised when a password chain is requested for an empty password."""

    def __init__(self, message: str = "password must not be empty.") -> None:
        super().__init__(message)


class AllocationFailure(CVRError, MemoryError):
    """Raised when a working buffer cannot be sized as required.

    Attributes:
        requested (int): The number of digits that could not be allocated.
    """

    def __init__(self, requested: int) -> None:
        self.requested = requested
        super().__init__(f"Unable to allocate a working buffer of {requested} digits.")


class SensitivityOverflow(CVRError, OverflowError):
    """Raised when a Sensitivity value would outgrow its working width.

    This signals an inconsistency between the padding constant and the password length,
    not a recoverable condition.

    Attributes:
        length (int): The length (in digits) the value needed.
        width (int): The working width of the Sensitivity instance.
    """

    def __init__(self, length: int, width: int) -> None:
        self.length = length
        self.width = width
        super().__init__(
            f"A Sensitivity value of {length} digits does not fit its working width of {width} digits."
        )
