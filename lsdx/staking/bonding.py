"""
Bonding Engine

Bond, unbond and transfer of the derivative token at the floating
exchange rate between issued supply and bonded base tokens.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from ..host.instructions import Instruction, Response
from ..host.types import Coin, coin, find_coin
from ..logger import get_logger
from ..numeric import checked_add, checked_sub, mul_floor, multiply_ratio
from .context import HandlerContext
from .ledger import TokenLedger
from .selection import DelegationPolicy
from .supply import SupplyAccount
from .types import (
    BelowMinimumWithdrawalError,
    InvestmentInfo,
    Supply,
    WrongDenominationError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class BondEvent:
    """Emitted when base tokens are bonded and derivative tokens minted."""
    recipient: str
    bonded: int
    minted: int
    validator: str
    messages: Tuple[Instruction, ...] = field(default=(), compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": "bond",
            "from": self.recipient,
            "bonded": str(self.bonded),
            "minted": str(self.minted),
            "validator": self.validator,
        }


@dataclass(frozen=True)
class UnbondEvent:
    """Emitted when derivative tokens are burned for a claim."""
    sender: str
    amount: int
    tax: int
    claim: int
    messages: Tuple[Instruction, ...] = field(default=(), compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": "unbond",
            "from": self.sender,
            "amount": str(self.amount),
            "tax": str(self.tax),
            "claim": str(self.claim),
        }


@dataclass(frozen=True)
class TransferEvent:
    sender: str
    recipient: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": "transfer",
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
        }


class BondingEngine:
    """
    Applies Bond/Unbond/Transfer against the contract's supply and ledger.

    Every path that changes the bonded total first checks the recorded
    total against the host's delegations.
    """

    def __init__(self, ctx: HandlerContext, invest: InvestmentInfo, policy: DelegationPolicy):
        self.ctx = ctx
        self.invest = invest
        self.policy = policy

    @property
    def supply(self) -> SupplyAccount:
        return SupplyAccount(self.ctx.storage)

    @property
    def ledger(self) -> TokenLedger:
        return TokenLedger(self.ctx.storage, self.ctx.api)

    def bond(
        self, sender: str, funds: Sequence[Coin], validator: Optional[str] = None
    ) -> BondEvent:
        """Bond the attached bonding-denomination funds on behalf of *sender*."""
        payment = find_coin(funds, self.invest.bond_denom)
        if payment is None or payment.amount == 0:
            raise WrongDenominationError(self.invest.bond_denom)
        event = self.issue(sender, payment.amount, validator)
        logger.info(f"Bond: {sender} bonded {payment} for {event.minted} derivative tokens")
        return event

    def issue(self, recipient: str, amount: int, validator: Optional[str] = None) -> BondEvent:
        """
        Delegate *amount* base tokens already held by the contract and mint
        derivative tokens for them at the current rate.
        """
        target = validator or self.policy.bond_target(self.ctx)
        bonded = self.ctx.bonded_total()
        supply = self.supply.assert_bonded(bonded)

        if supply.issued == 0 or bonded == 0:
            minted = amount
        else:
            minted = multiply_ratio(amount, supply.issued, bonded)
        logger.debug(f"Mint rate {supply.issued}/{bonded}: {amount} -> {minted}")

        self.supply.update(lambda s: Supply(
            issued=checked_add(s.issued, minted, "issued"),
            bonded=checked_add(s.bonded, amount, "bonded"),
            claims=s.claims,
        ))
        self.ledger.credit(recipient, minted)

        message = self.ctx.delegate(target, coin(amount, self.invest.bond_denom))
        return BondEvent(
            recipient=recipient,
            bonded=amount,
            minted=minted,
            validator=target,
            messages=(message,),
        )

    def unbond(self, sender: str, amount: int, preferred: Optional[str] = None) -> UnbondEvent:
        """
        Burn *amount* derivative tokens of *sender* for a claim on base tokens.

        The exit tax is paid to the owner in derivative tokens; the rest is
        converted at the pre-operation rate and undelegated.
        """
        if amount < self.invest.min_withdrawal:
            raise BelowMinimumWithdrawalError(amount, self.invest.min_withdrawal)

        tax = mul_floor(amount, self.invest.exit_tax)
        remainder = amount - tax

        ledger = self.ledger
        ledger.debit(sender, amount)
        if tax > 0:
            ledger.credit(self.invest.owner, tax)

        bonded = self.ctx.bonded_total()
        supply = self.supply.assert_bonded(bonded)
        unbond_amount = multiply_ratio(remainder, bonded, supply.issued)

        self.supply.update(lambda s: Supply(
            issued=checked_sub(s.issued, remainder, "issued"),
            bonded=checked_sub(s.bonded, unbond_amount, "bonded"),
            claims=checked_add(s.claims, unbond_amount, "claims"),
        ))
        ledger.credit_claim(sender, unbond_amount)

        plan = self.policy.undelegation_plan(self.ctx, unbond_amount, preferred)
        messages = tuple(
            self.ctx.undelegate(validator, coin(part, self.invest.bond_denom))
            for validator, part in plan
        )
        logger.info(
            f"Unbond: {sender} burned {amount} (tax {tax}), claim {unbond_amount}{self.invest.bond_denom}"
        )
        return UnbondEvent(
            sender=sender,
            amount=amount,
            tax=tax,
            claim=unbond_amount,
            messages=messages,
        )

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        self.ledger.transfer(sender, recipient, amount)
        logger.debug(f"Transfer: {sender} -> {recipient}: {amount}")
        return TransferEvent(sender=sender, recipient=recipient, amount=amount)


def to_response(*events) -> Response:
    """Collect the attributes and instructions of *events*, in order."""
    response = Response()
    for event in events:
        for key, value in event.to_dict().items():
            response.add_attribute(key, value)
        for message in getattr(event, "messages", ()):
            response.add_message(message)
    return response
