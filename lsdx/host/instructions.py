"""
Outbound instructions and handler responses.

A handler never moves funds itself. It returns an ordered list of
instructions; the host executes them in that order after the handler's
state changes are committed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .types import Coin


@dataclass(frozen=True)
class BankSend:
    """Transfer liquid funds from the contract to *to_address*."""
    to_address: str
    amount: Tuple[Coin, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bank_send": {
                "to_address": self.to_address,
                "amount": [c.to_dict() for c in self.amount],
            }
        }


@dataclass(frozen=True)
class Delegate:
    validator: str
    amount: Coin

    def to_dict(self) -> Dict[str, Any]:
        return {"delegate": {"validator": self.validator, "amount": self.amount.to_dict()}}


@dataclass(frozen=True)
class Undelegate:
    validator: str
    amount: Coin

    def to_dict(self) -> Dict[str, Any]:
        return {"undelegate": {"validator": self.validator, "amount": self.amount.to_dict()}}


@dataclass(frozen=True)
class Redelegate:
    src_validator: str
    dst_validator: str
    amount: Coin

    def to_dict(self) -> Dict[str, Any]:
        return {
            "redelegate": {
                "src_validator": self.src_validator,
                "dst_validator": self.dst_validator,
                "amount": self.amount.to_dict(),
            }
        }


@dataclass(frozen=True)
class WithdrawRewards:
    """Withdraw pending staking rewards from *validator* to *recipient*."""
    validator: str
    recipient: str

    def to_dict(self) -> Dict[str, Any]:
        return {"withdraw_rewards": {"validator": self.validator, "recipient": self.recipient}}


@dataclass(frozen=True)
class SelfInvoke:
    """Execute *msg* on *contract* with the contract itself as sender."""
    contract: str
    msg: Any

    def to_dict(self) -> Dict[str, Any]:
        body = self.msg.to_dict() if hasattr(self.msg, "to_dict") else self.msg
        return {"self_invoke": {"contract": self.contract, "msg": body}}


Instruction = Union[BankSend, Delegate, Undelegate, Redelegate, WithdrawRewards, SelfInvoke]


@dataclass
class Response:
    """
    Result of a handler.

    Attributes:
        messages: Outbound instructions, executed by the host in order
        attributes: Flat (key, value) log of what the handler did
        data: Optional structured payload for the caller
    """
    messages: List[Instruction] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    data: Optional[Any] = None

    def add_message(self, message: Instruction) -> 'Response':
        self.messages.append(message)
        return self

    def add_attribute(self, key: str, value: Any) -> 'Response':
        self.attributes.append((key, str(value)))
        return self

    def merge(self, other: 'Response') -> 'Response':
        self.messages.extend(other.messages)
        self.attributes.extend(other.attributes)
        return self

    def attribute(self, key: str) -> Optional[str]:
        """First value logged under *key*."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "attributes": [{"key": k, "value": v} for k, v in self.attributes],
        }
