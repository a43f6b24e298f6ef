"""
Delegator registry and per-delegator position records.
"""

from typing import Iterator, List

from ..host.api import Api
from ..storage.base import Storage
from .state import delegations, delegators
from .types import DelegateInfo


class DelegatorBook:
    """
    Append-only registry of every address that has bonded, plus one
    DelegateInfo record per address.

    Registry order is first-bond order and is the iteration order of reward
    distribution and the expiry sweep.
    """

    def __init__(self, storage: Storage, api: Api):
        self._registry = delegators(storage)
        self._records = delegations(storage)
        self._api = api

    def addresses(self) -> List[str]:
        return list(self._registry.may_load() or [])

    def register(self, address: str) -> bool:
        """Append *address* unless already present. Returns True when appended."""
        canonical = self._api.canonicalize(address)
        registry = self.addresses()
        if any(self._api.canonicalize(a) == canonical for a in registry):
            return False
        registry.append(address)
        self._registry.save(registry)
        return True

    def get(self, address: str) -> DelegateInfo:
        """Record for *address*; a zeroed NoPosition record when absent."""
        record = self._records.may_load(self._api.canonicalize(address))
        return record if record is not None else DelegateInfo(delegator=address)

    def save(self, info: DelegateInfo) -> None:
        self._records.save(self._api.canonicalize(info.delegator), info)

    def records(self) -> Iterator[DelegateInfo]:
        for address in self.addresses():
            yield self.get(address)

    def assigned_to(self, validator: str) -> List[DelegateInfo]:
        """Active positions whose principal sits with *validator*."""
        return [
            info for info in self.records()
            if info.is_active and info.validator == validator and info.amount > 0
        ]

    def accrued_total(self) -> int:
        """Rewards split onto records but not yet folded or paid out."""
        return sum(info.accrued_reward for info in self.records())
