"""
Test doubles for driving the contract without a running host.

MockQuerier holds a static validator set, delegation list and balances
that a test rewrites between operations to play the host's part.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from ..constants import DEFAULT_CHAIN_ID, DEFAULT_CONTRACT_ADDRESS, DEFAULT_GENESIS_HEIGHT, DEFAULT_BLOCK_TIME
from ..host.api import AddressApi
from ..host.querier import Querier
from ..host.types import BlockInfo, Coin, Env, FullDelegation, MessageInfo, Validator
from ..staking.context import Deps
from ..storage.base import MemoryStorage

MOCK_CONTRACT_ADDR = DEFAULT_CONTRACT_ADDRESS


class MockQuerier(Querier):

    def __init__(self, bonded_denom: str = "ustake"):
        self._bonded_denom = bonded_denom
        self._validators: List[Validator] = []
        self._delegations: List[FullDelegation] = []
        self._balances: Dict[Tuple[str, str], int] = {}

    def update_staking(
        self,
        denom: str,
        validators: Sequence[Validator],
        delegations: Sequence[FullDelegation] = (),
    ) -> None:
        self._bonded_denom = denom
        self._validators = list(validators)
        self._delegations = list(delegations)

    def update_balance(self, address: str, funds: Sequence[Coin]) -> None:
        """Replace every balance of *address* with *funds*."""
        self._balances = {k: v for k, v in self._balances.items() if k[0] != address}
        for c in funds:
            self._balances[(address, c.denom)] = c.amount

    def bonded_denom(self) -> str:
        return self._bonded_denom

    def validators(self) -> List[Validator]:
        return list(self._validators)

    def all_delegations(self, delegator: str) -> List[FullDelegation]:
        return [d for d in self._delegations if d.delegator == delegator]

    def delegation(self, delegator: str, validator: str) -> Optional[FullDelegation]:
        for d in self._delegations:
            if d.delegator == delegator and d.validator == validator:
                return d
        return None

    def balance(self, address: str, denom: str) -> Coin:
        return Coin(denom, self._balances.get((address, denom), 0))


@dataclass
class MockDeps(Deps):
    querier: MockQuerier


def mock_dependencies(contract_balance: Sequence[Coin] = ()) -> MockDeps:
    querier = MockQuerier()
    querier.update_balance(MOCK_CONTRACT_ADDR, contract_balance)
    return MockDeps(storage=MemoryStorage(), api=AddressApi(), querier=querier)


def mock_env(height: int = DEFAULT_GENESIS_HEIGHT, contract_address: str = MOCK_CONTRACT_ADDR) -> Env:
    return Env(
        block=BlockInfo(height=height, time=height * DEFAULT_BLOCK_TIME, chain_id=DEFAULT_CHAIN_ID),
        contract_address=contract_address,
    )


def mock_info(sender: str, funds: Sequence[Coin] = ()) -> MessageInfo:
    return MessageInfo(sender=sender, funds=tuple(funds))


def sample_validator(
    address: str,
    commission: int = 3,
    max_commission: int = 10,
    max_change_rate: int = 1,
) -> Validator:
    """Validator with rates given in whole percent."""
    return Validator(
        address=address,
        commission=Decimal(commission) / 100,
        max_commission=Decimal(max_commission) / 100,
        max_change_rate=Decimal(max_change_rate) / 100,
    )


def sample_delegation(
    validator: str,
    amount: Coin,
    delegator: str = MOCK_CONTRACT_ADDR,
) -> FullDelegation:
    return FullDelegation(
        delegator=delegator,
        validator=validator,
        amount=amount,
        can_redelegate=amount,
    )
