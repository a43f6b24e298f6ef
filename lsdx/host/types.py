"""
Host Types

Value types exchanged with the host chain: coins, validators, delegations,
block and message context.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple

from ..numeric import check_amount, format_decimal, to_decimal


@dataclass(frozen=True)
class Coin:
    """An amount of a single denomination."""
    denom: str
    amount: int

    def __post_init__(self):
        check_amount(self.amount, f"{self.denom} amount")

    def to_dict(self) -> Dict[str, Any]:
        return {"denom": self.denom, "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Coin':
        return cls(denom=data["denom"], amount=int(data["amount"]))

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def coin(amount: int, denom: str) -> Coin:
    return Coin(denom=denom, amount=amount)


def coins(amount: int, denom: str) -> Tuple[Coin, ...]:
    return (Coin(denom=denom, amount=amount),)


def find_coin(funds: Sequence[Coin], denom: str) -> Optional[Coin]:
    """First coin of *denom* in *funds*, if any."""
    for c in funds:
        if c.denom == denom:
            return c
    return None


@dataclass(frozen=True)
class Validator:
    """
    A validator as reported by the host's staking module.

    Attributes:
        address: Validator operator address
        commission: Current commission rate
        max_commission: Upper bound the operator committed to
        max_change_rate: Maximum daily commission change
    """
    address: str
    commission: Decimal
    max_commission: Decimal
    max_change_rate: Decimal

    def __post_init__(self):
        object.__setattr__(self, "commission", to_decimal(self.commission, "commission"))
        object.__setattr__(self, "max_commission", to_decimal(self.max_commission, "max_commission"))
        object.__setattr__(self, "max_change_rate", to_decimal(self.max_change_rate, "max_change_rate"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "commission": format_decimal(self.commission),
            "max_commission": format_decimal(self.max_commission),
            "max_change_rate": format_decimal(self.max_change_rate),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Validator':
        return cls(
            address=data["address"],
            commission=Decimal(data["commission"]),
            max_commission=Decimal(data["max_commission"]),
            max_change_rate=Decimal(data["max_change_rate"]),
        )


@dataclass(frozen=True)
class FullDelegation:
    """A delegator's position with one validator."""
    delegator: str
    validator: str
    amount: Coin
    can_redelegate: Coin
    accumulated_rewards: Tuple[Coin, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delegator": self.delegator,
            "validator": self.validator,
            "amount": self.amount.to_dict(),
            "can_redelegate": self.can_redelegate.to_dict(),
            "accumulated_rewards": [c.to_dict() for c in self.accumulated_rewards],
        }


@dataclass(frozen=True)
class BlockInfo:
    height: int
    time: int
    chain_id: str


@dataclass(frozen=True)
class Env:
    """Execution environment of a single operation."""
    block: BlockInfo
    contract_address: str


@dataclass(frozen=True)
class MessageInfo:
    """Sender and attached funds of an inbound operation."""
    sender: str
    funds: Tuple[Coin, ...] = field(default_factory=tuple)
