"""
Local Chain

In-process host for the staking contract: a bank module, a staking module
with reward accrual and an unbonding delay, and a runtime that executes a
handler's instruction batch in order.

One operation runs at a time. An operation is atomic from the outside: if
the handler or any instruction it emitted fails, bank and staking state are
restored and the contract's storage writes are discarded.
"""

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import StakingConfig
from ..constants import (
    DEFAULT_BLOCK_TIME,
    DEFAULT_CHAIN_ID,
    DEFAULT_CONTRACT_ADDRESS,
    DEFAULT_GENESIS_HEIGHT,
)
from ..exceptions import HostError, NotFoundError
from ..host.api import AddressApi, Api
from ..host.instructions import (
    BankSend,
    Delegate,
    Instruction,
    Redelegate,
    Response,
    SelfInvoke,
    Undelegate,
    WithdrawRewards,
)
from ..host.querier import Querier
from ..host.types import BlockInfo, Coin, Env, FullDelegation, MessageInfo, Validator
from ..logger import get_logger
from ..storage.base import MemoryStorage, StorageTransaction
from ..storage.sqlite import SqliteStateStore
from ..staking.context import Deps
from ..staking.contract import StakingContract
from ..staking.messages import ExpirySweep, InstantiateMsg
from ..staking.state import contract_config
from ..staking.types import ClaimModel

logger = get_logger(__name__)


@dataclass
class Unbonding:
    """Undelegated funds waiting for the unbonding delay."""
    delegator: str
    amount: Coin
    release_height: int


@dataclass
class ChainState:
    """Bank and staking module state; copied whole for rollback."""
    height: int
    time: int
    balances: Dict[Tuple[str, str], int] = field(default_factory=dict)
    delegations: Dict[Tuple[str, str], int] = field(default_factory=dict)
    rewards: Dict[Tuple[str, str], int] = field(default_factory=dict)
    unbondings: List[Unbonding] = field(default_factory=list)


@dataclass
class Deployment:
    contract: StakingContract
    storage: MemoryStorage


class LocalQuerier(Querier):
    """Querier answering from a LocalChain's bank and staking state."""

    def __init__(self, chain: 'LocalChain'):
        self.chain = chain

    def bonded_denom(self) -> str:
        return self.chain.bond_denom

    def validators(self) -> List[Validator]:
        return list(self.chain.validators.values())

    def _delegation(self, delegator: str, validator: str, amount: int) -> FullDelegation:
        denom = self.chain.bond_denom
        pending = self.chain.state.rewards.get((delegator, validator), 0)
        return FullDelegation(
            delegator=delegator,
            validator=validator,
            amount=Coin(denom, amount),
            can_redelegate=Coin(denom, amount),
            accumulated_rewards=(Coin(denom, pending),) if pending else (),
        )

    def all_delegations(self, delegator: str) -> List[FullDelegation]:
        return [
            self._delegation(d, v, amount)
            for (d, v), amount in sorted(self.chain.state.delegations.items())
            if d == delegator and amount > 0
        ]

    def delegation(self, delegator: str, validator: str) -> Optional[FullDelegation]:
        amount = self.chain.state.delegations.get((delegator, validator), 0)
        if amount == 0:
            return None
        return self._delegation(delegator, validator, amount)

    def balance(self, address: str, denom: str) -> Coin:
        return Coin(denom, self.chain.state.balances.get((address, denom), 0))


class LocalChain:
    """
    Single-writer local host.

    Args:
        config: Bonding denomination and unbonding delay
        validators: Initial validator set
        api: Address codec (AddressApi by default)
        store: Optional SQLite store receiving each committed write-set
    """

    def __init__(
        self,
        config: Optional[StakingConfig] = None,
        validators: Sequence[Validator] = (),
        api: Optional[Api] = None,
        store: Optional[SqliteStateStore] = None,
        chain_id: str = DEFAULT_CHAIN_ID,
        height: int = DEFAULT_GENESIS_HEIGHT,
    ):
        self.config = config or StakingConfig()
        self.chain_id = chain_id
        self.api = api or AddressApi()
        self.store = store
        self.validators: Dict[str, Validator] = {v.address: v for v in validators}
        self.state = ChainState(height=height, time=height * DEFAULT_BLOCK_TIME)
        self.querier = LocalQuerier(self)
        self.deployments: Dict[str, Deployment] = {}
        self._lock = asyncio.Lock()

    @property
    def bond_denom(self) -> str:
        return self.config.bond_denom

    @property
    def height(self) -> int:
        return self.state.height

    def env(self, contract_address: str) -> Env:
        return Env(
            block=BlockInfo(height=self.state.height, time=self.state.time, chain_id=self.chain_id),
            contract_address=contract_address,
        )

    # ── Bank and staking state ────────────────────────────────────────

    def set_validators(self, validators: Sequence[Validator]) -> None:
        self.validators = {v.address: v for v in validators}

    def fund(self, address: str, amount: int, denom: Optional[str] = None) -> None:
        """Mint *amount* straight into the bank balance of *address*."""
        key = (address, denom or self.bond_denom)
        self.state.balances[key] = self.state.balances.get(key, 0) + amount

    def set_balance(self, address: str, amount: int, denom: Optional[str] = None) -> None:
        self.state.balances[(address, denom or self.bond_denom)] = amount

    def balance_of(self, address: str, denom: Optional[str] = None) -> int:
        return self.state.balances.get((address, denom or self.bond_denom), 0)

    def delegation_of(self, delegator: str, validator: str) -> int:
        return self.state.delegations.get((delegator, validator), 0)

    def total_delegated(self, delegator: str) -> int:
        return sum(amount for (d, _), amount in self.state.delegations.items() if d == delegator)

    def set_delegation(self, delegator: str, validator: str, amount: int) -> None:
        """Overwrite a delegation without moving funds."""
        self.state.delegations[(delegator, validator)] = amount

    def pending_rewards(self, delegator: str, validator: str) -> int:
        return self.state.rewards.get((delegator, validator), 0)

    def pending_unbondings(self, delegator: str) -> List[Unbonding]:
        return [u for u in self.state.unbondings if u.delegator == delegator]

    def accrue_rewards(self, validator: str, amount: int) -> Dict[str, int]:
        """
        Credit *amount* of staking rewards on *validator*, pro rata to its
        delegators. Rounding dust is dropped.
        """
        holders = {
            d: stake for (d, v), stake in self.state.delegations.items()
            if v == validator and stake > 0
        }
        total = sum(holders.values())
        if total == 0:
            raise HostError(f"Validator {validator} has no delegations to reward")
        credited = {}
        for delegator, stake in sorted(holders.items()):
            share = amount * stake // total
            key = (delegator, validator)
            self.state.rewards[key] = self.state.rewards.get(key, 0) + share
            credited[delegator] = share
        logger.debug(f"Accrued {amount}{self.bond_denom} of rewards on {validator}")
        return credited

    def _debit(self, address: str, amount: Coin) -> None:
        balance = self.state.balances.get((address, amount.denom), 0)
        if balance < amount.amount:
            raise HostError(f"{address} has {balance}{amount.denom}, cannot spend {amount}")
        self.state.balances[(address, amount.denom)] = balance - amount.amount

    def _credit(self, address: str, amount: Coin) -> None:
        key = (address, amount.denom)
        self.state.balances[key] = self.state.balances.get(key, 0) + amount.amount

    def _move(self, sender: str, recipient: str, amount: Coin) -> None:
        self._debit(sender, amount)
        self._credit(recipient, amount)

    def _require_validator(self, validator: str) -> None:
        if validator not in self.validators:
            raise HostError(f"Unknown validator {validator}")

    def _require_bond_denom(self, amount: Coin) -> None:
        if amount.denom != self.bond_denom:
            raise HostError(f"Cannot stake {amount.denom}, staking denom is {self.bond_denom}")

    def _release_matured(self) -> None:
        pending = []
        for unbonding in self.state.unbondings:
            if unbonding.release_height <= self.state.height:
                self._credit(unbonding.delegator, unbonding.amount)
                logger.debug(f"Released {unbonding.amount} to {unbonding.delegator}")
            else:
                pending.append(unbonding)
        self.state.unbondings = pending

    # ── Instruction execution ─────────────────────────────────────────

    def _dispatch(self, address: str, deps: Deps, message: Instruction) -> None:
        if isinstance(message, BankSend):
            for amount in message.amount:
                self._move(address, message.to_address, amount)
        elif isinstance(message, Delegate):
            self._require_validator(message.validator)
            self._require_bond_denom(message.amount)
            self._debit(address, message.amount)
            key = (address, message.validator)
            self.state.delegations[key] = self.state.delegations.get(key, 0) + message.amount.amount
        elif isinstance(message, Undelegate):
            self._undelegate(address, message.validator, message.amount.amount)
            self.state.unbondings.append(Unbonding(
                delegator=address,
                amount=message.amount,
                release_height=self.state.height + self.config.unbonding_blocks,
            ))
            self._release_matured()
        elif isinstance(message, Redelegate):
            self._require_validator(message.dst_validator)
            self._undelegate(address, message.src_validator, message.amount.amount)
            key = (address, message.dst_validator)
            self.state.delegations[key] = self.state.delegations.get(key, 0) + message.amount.amount
        elif isinstance(message, WithdrawRewards):
            reward = self.state.rewards.pop((address, message.validator), 0)
            if reward:
                self._credit(message.recipient, Coin(self.bond_denom, reward))
        elif isinstance(message, SelfInvoke):
            if message.contract != address:
                raise HostError(f"{address} cannot invoke another contract ({message.contract})")
            deployment = self._deployment(message.contract)
            info = MessageInfo(sender=address)
            response = deployment.contract.execute(deps, self.env(message.contract), info, message.msg)
            for sub in response.messages:
                self._dispatch(message.contract, deps, sub)
        else:
            raise HostError(f"Unsupported instruction: {type(message).__name__}")
        logger.debug(f"Executed {type(message).__name__} for {address}")

    def _undelegate(self, delegator: str, validator: str, amount: int) -> None:
        key = (delegator, validator)
        delegated = self.state.delegations.get(key, 0)
        if delegated < amount:
            raise HostError(f"{delegator} has {delegated} delegated to {validator}, cannot undelegate {amount}")
        if delegated == amount:
            self.state.delegations.pop(key)
        else:
            self.state.delegations[key] = delegated - amount

    def _deployment(self, address: str) -> Deployment:
        if address not in self.deployments:
            raise NotFoundError(f"contract {address}")
        return self.deployments[address]

    async def _run(
        self,
        address: str,
        handler: Callable[[Deps, Env], Any],
        sender: Optional[str] = None,
        funds: Sequence[Coin] = (),
    ) -> Any:
        """Run *handler* and its instruction batch as one atomic operation."""
        deployment = self._deployment(address)
        snapshot = copy.deepcopy(self.state)
        txn = StorageTransaction(deployment.storage)
        deps = Deps(storage=txn, api=self.api, querier=self.querier)
        try:
            for amount in funds:
                self._move(sender, address, amount)
            result = handler(deps, self.env(address))
            for message in getattr(result, "messages", ()):
                self._dispatch(address, deps, message)
        except Exception:
            txn.discard()
            self.state = snapshot
            raise

        changes = txn.commit()
        if self.store is not None:
            await self.store.apply(address, changes)
        return result

    # ── Contract entry points ─────────────────────────────────────────

    async def instantiate(
        self,
        sender: str,
        msg: InstantiateMsg,
        address: str = DEFAULT_CONTRACT_ADDRESS,
        contract: Optional[StakingContract] = None,
        funds: Sequence[Coin] = (),
    ) -> Response:
        async with self._lock:
            if address in self.deployments:
                raise HostError(f"Contract {address} already exists")
            storage = MemoryStorage()
            if self.store is not None:
                storage = await self.store.load(address)
            self.deployments[address] = Deployment(contract or StakingContract(self.config), storage)
            info = MessageInfo(sender=sender, funds=tuple(funds))
            try:
                return await self._run(
                    address,
                    lambda deps, env: self.deployments[address].contract.instantiate(deps, env, info, msg),
                    sender,
                    funds,
                )
            except Exception:
                del self.deployments[address]
                raise

    async def attach(self, address: str, contract: Optional[StakingContract] = None) -> None:
        """Register an already instantiated contract whose state lives in the store."""
        if self.store is None:
            raise HostError("No state store attached")
        async with self._lock:
            storage = await self.store.load(address)
            if len(storage) == 0:
                raise NotFoundError(f"state of contract {address}")
            self.deployments[address] = Deployment(contract or StakingContract(self.config), storage)
            logger.info(f"Attached contract {address} ({len(storage)} keys)")

    async def execute(
        self,
        address: str,
        sender: str,
        msg: Any,
        funds: Sequence[Coin] = (),
    ) -> Response:
        async with self._lock:
            info = MessageInfo(sender=sender, funds=tuple(funds))
            contract = self._deployment(address).contract
            return await self._run(
                address,
                lambda deps, env: contract.execute(deps, env, info, msg),
                sender,
                funds,
            )

    async def sudo(self, address: str, msg: Any) -> Response:
        async with self._lock:
            return await self._sudo(address, msg)

    async def _sudo(self, address: str, msg: Any) -> Response:
        contract = self._deployment(address).contract
        return await self._run(address, lambda deps, env: contract.sudo(deps, env, msg))

    async def query(self, address: str, msg: Any) -> Any:
        deployment = self._deployment(address)
        deps = Deps(storage=deployment.storage, api=self.api, querier=self.querier)
        return deployment.contract.query(deps, self.env(address), msg)

    async def advance_blocks(self, blocks: int = 1) -> List[Response]:
        """
        Move the chain forward, release matured unbondings and run the
        expiry sweep of every per-delegator contract.
        """
        if blocks <= 0:
            raise ValueError("blocks must be positive")
        async with self._lock:
            self.state.height += blocks
            self.state.time += blocks * DEFAULT_BLOCK_TIME
            self._release_matured()

            sweeps = []
            for address, deployment in self.deployments.items():
                settings = contract_config(deployment.storage).may_load()
                if settings is None or settings.claim_model != ClaimModel.PER_DELEGATOR:
                    continue
                sweeps.append(await self._sudo(address, ExpirySweep()))
            return sweeps
