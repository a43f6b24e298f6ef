"""
Host query interface consumed by the staking contract.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .types import Coin, FullDelegation, Validator


class Querier(ABC):
    """Read-only view of the host's bank and staking modules."""

    @abstractmethod
    def bonded_denom(self) -> str:
        """Denomination accepted by the staking module."""

    @abstractmethod
    def validators(self) -> List[Validator]:
        """Current validator set, in host order."""

    @abstractmethod
    def all_delegations(self, delegator: str) -> List[FullDelegation]:
        """Every delegation held by *delegator*."""

    @abstractmethod
    def delegation(self, delegator: str, validator: str) -> Optional[FullDelegation]:
        """Delegation of *delegator* to *validator*, if any."""

    @abstractmethod
    def balance(self, address: str, denom: str) -> Coin:
        """Liquid bank balance of *address* in *denom*."""
