"""
Staking Types and Exceptions

Persistent records of the staking contract and the error kinds raised by
its handlers.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import StakingError, UnderflowError
from ..numeric import check_amount, format_decimal, to_decimal


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class ValidatorNotRegisteredError(StakingError):
    """Raised at instantiation when the target validator is unknown to the host."""
    def __init__(self, validator: str):
        self.validator = validator
        super().__init__(f"{validator} is not in the current validator set")


class WrongDenominationError(StakingError):
    """Raised when a bond carries no funds in the bonding denomination."""
    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(f"No {expected} tokens sent")


class BelowMinimumWithdrawalError(StakingError):
    def __init__(self, amount: int, minimum: int):
        self.amount = amount
        self.minimum = minimum
        super().__init__(f"Unbond amount {amount} is below the minimum withdrawal {minimum}")


class InsufficientBalanceError(StakingError):
    """Raised when a debit exceeds the current balance."""
    def __init__(self, address: str, balance: int, amount: int):
        self.address = address
        self.balance = balance
        self.amount = amount
        super().__init__(f"{address} balance {balance} < requested amount {amount}")


class InconsistentBondedAmountError(StakingError):
    """Recorded bonded total disagrees with the host's delegation total."""
    def __init__(self, stored: int, queried: int):
        self.stored = stored
        self.queried = queried
        super().__init__(f"Stored bonded {stored}, but query bonded: {queried}")


class UnauthorizedError(StakingError):
    def __init__(self, sender: str, action: str):
        self.sender = sender
        self.action = action
        super().__init__(f"{sender} is not authorized to call {action}")


class InsufficientFundsError(StakingError):
    """
    Not enough liquid funds to act on.

    Raised by the reinvestment step when the free balance does not cover
    outstanding claims plus the minimum amount worth delegating.
    """
    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient funds: {available} available, {required} required")


class EmptyValidatorSetError(StakingError):
    def __init__(self):
        super().__init__("Validator set is empty")


class MixedDenominationError(StakingError):
    """Delegations of the contract are not all in one denomination."""
    def __init__(self, first: str, other: str):
        self.first = first
        self.other = other
        super().__init__(f"different denoms in bonds: '{first}' vs '{other}'")


class NoClaimError(StakingError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"No claim for {address}")


class ClaimNotReadyError(StakingError):
    def __init__(self, address: str, ready_height: int):
        self.address = address
        self.ready_height = ready_height
        super().__init__(f"Unbond of {address} settles after height {ready_height}")


class InvalidPositionStateError(StakingError):
    """A delegator record cannot make the requested transition."""
    def __init__(self, address: str, status: 'DelegatorStatus', action: str):
        self.address = address
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} for {address} in state {status.value}")


class InvalidParameterError(StakingError):
    pass


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT RECORDS
# ══════════════════════════════════════════════════════════════════════

class ValidatorPolicyKind(Enum):
    """How the delegation target is chosen."""
    FIXED = "fixed"                          # configured validator only
    LOWEST_COMMISSION = "lowest_commission"  # re-selected on every bond


class ClaimModel(Enum):
    """How rewards reach unbonders."""
    GLOBAL = "global"                # rewards compound into the exchange rate
    PER_DELEGATOR = "per_delegator"  # rewards split onto delegator records


@dataclass(frozen=True)
class TokenInfo:
    name: str
    symbol: str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "symbol": self.symbol, "decimals": self.decimals}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenInfo':
        return cls(name=data["name"], symbol=data["symbol"], decimals=int(data["decimals"]))


@dataclass(frozen=True)
class InvestmentInfo:
    """
    Immutable investment parameters, fixed at instantiation.

    Attributes:
        owner: Receives the exit tax
        bond_denom: Only denomination accepted by Bond
        exit_tax: Fraction of every unbond redirected to the owner
        validator: Configured delegation target
        min_withdrawal: Smallest unbond, and smallest amount worth re-delegating
    """
    owner: str
    bond_denom: str
    exit_tax: Decimal
    validator: str
    min_withdrawal: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "bond_denom": self.bond_denom,
            "exit_tax": format_decimal(self.exit_tax),
            "validator": self.validator,
            "min_withdrawal": str(self.min_withdrawal),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvestmentInfo':
        return cls(
            owner=data["owner"],
            bond_denom=data["bond_denom"],
            exit_tax=to_decimal(data["exit_tax"], "exit_tax"),
            validator=data["validator"],
            min_withdrawal=int(data["min_withdrawal"]),
        )


@dataclass(frozen=True)
class ContractConfig:
    """Policy selection, fixed at instantiation."""
    validator_policy: ValidatorPolicyKind
    claim_model: ClaimModel
    expiry_blocks: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "validator_policy": self.validator_policy.value,
            "claim_model": self.claim_model.value,
            "expiry_blocks": self.expiry_blocks,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContractConfig':
        return cls(
            validator_policy=ValidatorPolicyKind(data["validator_policy"]),
            claim_model=ClaimModel(data["claim_model"]),
            expiry_blocks=int(data["expiry_blocks"]),
        )


@dataclass(frozen=True)
class Supply:
    """
    Contract-wide totals.

    Attributes:
        issued: Derivative tokens in circulation (sum of all balances)
        bonded: Base tokens delegated; must equal the host's delegation total
        claims: Base tokens owed to unbonders
    """
    issued: int = 0
    bonded: int = 0
    claims: int = 0

    def __post_init__(self):
        check_amount(self.issued, "issued")
        check_amount(self.bonded, "bonded")
        check_amount(self.claims, "claims")

    def to_dict(self) -> Dict[str, Any]:
        return {"issued": str(self.issued), "bonded": str(self.bonded), "claims": str(self.claims)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Supply':
        return cls(
            issued=int(data["issued"]),
            bonded=int(data["bonded"]),
            claims=int(data["claims"]),
        )


# ══════════════════════════════════════════════════════════════════════
#  PER-DELEGATOR RECORDS
# ══════════════════════════════════════════════════════════════════════

class DelegatorStatus(Enum):
    """Lifecycle of a delegator position."""
    NO_POSITION = "no_position"
    BONDED = "bonded"
    UNBOND_REQUESTED = "unbond_requested"
    SETTLED = "settled"


@dataclass(frozen=True)
class DelegateInfo:
    """
    A delegator's tracked position under the per-delegator claim model.

    Attributes:
        delegator: Delegator address
        validator: Validator the principal is assigned to
        amount: Principal in base tokens
        last_delegate_height: Height of the last (re)delegation or unbond request
        accrued_reward: Reward split onto this record, not yet folded into principal
        status: Lifecycle state
    """
    delegator: str
    validator: str = ""
    amount: int = 0
    last_delegate_height: int = 0
    accrued_reward: int = 0
    status: DelegatorStatus = DelegatorStatus.NO_POSITION

    def __post_init__(self):
        check_amount(self.amount, "principal")
        check_amount(self.accrued_reward, "accrued_reward")

    @property
    def unbond_requested(self) -> bool:
        return self.status == DelegatorStatus.UNBOND_REQUESTED

    @property
    def is_active(self) -> bool:
        return self.status in (DelegatorStatus.BONDED, DelegatorStatus.UNBOND_REQUESTED)

    def is_expired(self, height: int, expiry_blocks: int) -> bool:
        return height - self.last_delegate_height > expiry_blocks

    def bonded(self, validator: str, added: int, height: int) -> 'DelegateInfo':
        """New principal delegated (NoPosition/Settled/Bonded -> Bonded)."""
        if self.status == DelegatorStatus.UNBOND_REQUESTED:
            raise InvalidPositionStateError(self.delegator, self.status, "bond")
        return replace(
            self,
            validator=validator,
            amount=self.amount + added,
            last_delegate_height=height,
            status=DelegatorStatus.BONDED,
        )

    def with_reward(self, reward: int) -> 'DelegateInfo':
        return replace(self, accrued_reward=self.accrued_reward + reward)

    def folded(self, validator: str, height: int) -> 'DelegateInfo':
        """Accrued reward compounded into principal (Bonded -> Bonded)."""
        if self.status != DelegatorStatus.BONDED:
            raise InvalidPositionStateError(self.delegator, self.status, "reinvest")
        return replace(
            self,
            validator=validator,
            amount=self.amount + self.accrued_reward,
            accrued_reward=0,
            last_delegate_height=height,
        )

    def principal_sent(self, moved: int) -> 'DelegateInfo':
        """Principal handed over with a derivative token transfer."""
        return replace(self, amount=self.amount - moved)

    def principal_received(self, validator: str, moved: int, height: int) -> 'DelegateInfo':
        """
        Principal taken over with a derivative token transfer.

        A pending unbond request keeps its state and expiry height; any
        other record becomes Bonded, starting its expiry window at *height*
        unless it was already Bonded.
        """
        if self.unbond_requested:
            return replace(self, validator=validator, amount=self.amount + moved)
        if self.status == DelegatorStatus.BONDED:
            height = self.last_delegate_height
        return replace(
            self,
            validator=validator,
            amount=self.amount + moved,
            last_delegate_height=height,
            status=DelegatorStatus.BONDED,
        )

    def unbond_requested_at(self, unbonded: int, height: int) -> 'DelegateInfo':
        """Explicit unbond request (any state -> UnbondRequested)."""
        return replace(
            self,
            amount=max(0, self.amount - unbonded),
            last_delegate_height=height,
            status=DelegatorStatus.UNBOND_REQUESTED,
        )

    def settled(self, keep_principal: bool) -> 'DelegateInfo':
        """
        Unbond completion (UnbondRequested -> Settled).

        With *keep_principal* the delegator still holds derivative tokens, so
        the remaining principal stays attributed and the record is Bonded again.
        """
        if self.status != DelegatorStatus.UNBOND_REQUESTED:
            raise InvalidPositionStateError(self.delegator, self.status, "settle")
        if keep_principal and self.amount > 0:
            return replace(self, accrued_reward=0, status=DelegatorStatus.BONDED)
        return replace(self, amount=0, accrued_reward=0, status=DelegatorStatus.SETTLED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delegator": self.delegator,
            "validator": self.validator,
            "amount": str(self.amount),
            "last_delegate_height": self.last_delegate_height,
            "accrued_reward": str(self.accrued_reward),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DelegateInfo':
        return cls(
            delegator=data["delegator"],
            validator=data.get("validator", ""),
            amount=int(data.get("amount", 0)),
            last_delegate_height=int(data.get("last_delegate_height", 0)),
            accrued_reward=int(data.get("accrued_reward", 0)),
            status=DelegatorStatus(data.get("status", DelegatorStatus.NO_POSITION.value)),
        )
