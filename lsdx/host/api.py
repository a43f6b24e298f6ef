"""
Address canonicalization.

Storage is keyed by canonical (byte) addresses; messages and queries use
human-readable ones.
"""

import re
from abc import ABC, abstractmethod

from ..exceptions import InvalidAddressError

VALID_HUMAN_ADDRESS = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_\-]{2,89}$')


class Api(ABC):
    """Host address codec."""

    @abstractmethod
    def canonicalize(self, human: str) -> bytes:
        ...

    @abstractmethod
    def humanize(self, canonical: bytes) -> str:
        ...


class AddressApi(Api):
    """
    Case-insensitive address codec.

    Human addresses are 3-90 characters of [A-Za-z0-9_-]; the canonical form
    is the lowercase ASCII encoding.
    """

    def canonicalize(self, human: str) -> bytes:
        if not isinstance(human, str):
            raise InvalidAddressError(f"Address must be a string, got {type(human).__name__}")
        candidate = human.strip()
        if not VALID_HUMAN_ADDRESS.match(candidate):
            raise InvalidAddressError(f"Invalid address: {human!r}")
        return candidate.lower().encode("ascii")

    def humanize(self, canonical: bytes) -> str:
        try:
            human = canonical.decode("ascii")
        except UnicodeDecodeError:
            raise InvalidAddressError(f"Invalid canonical address: {canonical!r}")
        if not VALID_HUMAN_ADDRESS.match(human):
            raise InvalidAddressError(f"Invalid canonical address: {canonical!r}")
        return human
