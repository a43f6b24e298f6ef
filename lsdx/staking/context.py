"""
Handler execution context.

Host queries are read once, at first use within an operation. Instructions
emitted later in the same operation have not executed yet, so the context
tracks their effect on delegated totals and liquid balance; every
subsequent check sees "queried state + what this operation already
committed to".
"""

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

from ..host.api import Api
from ..host.instructions import BankSend, Delegate, Redelegate, Undelegate
from ..host.querier import Querier
from ..host.types import Coin, Env, FullDelegation, MessageInfo, Validator
from ..storage.base import Storage, StorageTransaction
from .types import MixedDenominationError


@dataclass
class Deps:
    """Collaborators handed to every entry point."""
    storage: Storage
    api: Api
    querier: Querier


def get_bonded(delegations: Sequence[FullDelegation]) -> int:
    """Total amount delegated; every delegation must share one denomination."""
    if not delegations:
        return 0
    denom = delegations[0].amount.denom
    total = 0
    for d in delegations:
        if d.amount.denom != denom:
            raise MixedDenominationError(denom, d.amount.denom)
        total += d.amount.amount
    return total


class HandlerContext:
    """Per-operation view of contract storage and host state."""

    def __init__(self, deps: Deps, env: Env, info: Optional[MessageInfo] = None):
        self.deps = deps
        self.env = env
        self.info = info
        self._transactions: List[StorageTransaction] = []

        self._validators: Optional[List[Validator]] = None
        self._delegations: Optional[List[FullDelegation]] = None
        self._balances: Dict[str, int] = {}

        self._delegated: Dict[str, int] = defaultdict(int)
        self._spent: Dict[str, int] = defaultdict(int)

    # ── Collaborators ─────────────────────────────────────────────────

    @property
    def storage(self) -> Storage:
        if self._transactions:
            return self._transactions[-1]
        return self.deps.storage

    @property
    def api(self) -> Api:
        return self.deps.api

    @property
    def querier(self) -> Querier:
        return self.deps.querier

    @property
    def contract_address(self) -> str:
        return self.env.contract_address

    @property
    def height(self) -> int:
        return self.env.block.height

    @property
    def sender(self) -> str:
        if self.info is None:
            raise RuntimeError("Operation has no sender")
        return self.info.sender

    # ── Host state (queried once) ─────────────────────────────────────

    def validators(self) -> List[Validator]:
        if self._validators is None:
            self._validators = list(self.querier.validators())
        return self._validators

    def host_delegations(self) -> List[FullDelegation]:
        """Delegations of the contract as reported by the host."""
        if self._delegations is None:
            self._delegations = list(self.querier.all_delegations(self.contract_address))
        return self._delegations

    def delegated_by_validator(self) -> Dict[str, int]:
        """Host delegations adjusted for instructions emitted so far."""
        totals: Dict[str, int] = defaultdict(int)
        for d in self.host_delegations():
            totals[d.validator] += d.amount.amount
        for validator, delta in self._delegated.items():
            totals[validator] += delta
        return {v: amount for v, amount in totals.items() if amount > 0}

    def delegated_to(self, validator: str) -> int:
        return self.delegated_by_validator().get(validator, 0)

    def bonded_total(self) -> int:
        return get_bonded(self.host_delegations()) + sum(self._delegated.values())

    def free_balance(self, denom: str) -> int:
        """Liquid contract balance minus what this operation already sent or delegated."""
        if denom not in self._balances:
            self._balances[denom] = self.querier.balance(self.contract_address, denom).amount
        return self._balances[denom] - self._spent[denom]

    # ── Instruction builders ──────────────────────────────────────────

    def delegate(self, validator: str, amount: Coin) -> Delegate:
        self._delegated[validator] += amount.amount
        self._spent[amount.denom] += amount.amount
        return Delegate(validator=validator, amount=amount)

    def undelegate(self, validator: str, amount: Coin) -> Undelegate:
        # Undelegated funds only become liquid after the host's unbonding delay
        self._delegated[validator] -= amount.amount
        return Undelegate(validator=validator, amount=amount)

    def redelegate(self, src: str, dst: str, amount: Coin) -> Redelegate:
        self._delegated[src] -= amount.amount
        self._delegated[dst] += amount.amount
        return Redelegate(src_validator=src, dst_validator=dst, amount=amount)

    def bank_send(self, recipient: str, amount: Coin) -> BankSend:
        self._spent[amount.denom] += amount.amount
        return BankSend(to_address=recipient, amount=(amount,))

    # ── Atomicity ─────────────────────────────────────────────────────

    @contextmanager
    def savepoint(self) -> Iterator[StorageTransaction]:
        """
        Run a block atomically.

        Storage writes and instruction bookkeeping made inside the block are
        kept only if it exits normally.
        """
        txn = StorageTransaction(self.storage)
        delegated = dict(self._delegated)
        spent = dict(self._spent)
        self._transactions.append(txn)
        try:
            yield txn
        except BaseException:
            self._transactions.pop()
            txn.discard()
            self._delegated = defaultdict(int, delegated)
            self._spent = defaultdict(int, spent)
            raise
        self._transactions.pop()
        txn.commit()
