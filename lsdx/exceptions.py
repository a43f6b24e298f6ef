"""
LSDX Exceptions

Project-wide base exception classes. Staking-specific error kinds live in
lsdx.staking.types next to the records they guard.
"""


class LsdxError(Exception):
    """Base exception for LSDX."""
    pass


class ConfigurationError(LsdxError):
    """Configuration error."""
    pass


class StorageError(LsdxError):
    """Persistent state could not be read, decoded or written."""
    pass


class NotFoundError(StorageError):
    """A required storage entry is missing."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"{what} not found")


class InvalidAddressError(LsdxError):
    """Invalid address format."""
    pass


class HostError(LsdxError):
    """The host rejected an instruction or query."""
    pass


class StakingError(LsdxError):
    """Base exception for staking operations."""
    pass


class UnderflowError(StakingError):
    """Raised when arithmetic would drive a tracked quantity negative."""

    def __init__(self, field: str, minuend: int, subtrahend: int):
        self.field = field
        self.minuend = minuend
        self.subtrahend = subtrahend
        super().__init__(f"Cannot subtract {subtrahend} from {minuend} ({field})")


class Uint128OverflowError(StakingError):
    """Raised when a tracked quantity would exceed the 128-bit range."""

    def __init__(self, field: str, value: int):
        self.field = field
        self.value = value
        super().__init__(f"{field} overflow: {value} exceeds uint128")


class DivideByZeroError(StakingError):
    """Raised when a ratio has a zero denominator."""

    def __init__(self, what: str):
        super().__init__(f"Cannot compute {what}: division by zero")
