"""
Claim models.

Two settlement designs are supported, selected per contract at
instantiation:

* GlobalClaims: unbonders hold a claim on the pooled liquid balance and
  collect it with Claim{} once the host has released the funds. Rewards
  compound into the exchange rate through BondAllTokens.
* PerDelegatorClaims: every bonder has a DelegateInfo record; rewards are
  split onto records and either folded into principal or paid out with the
  unbond settlement.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..host.instructions import Response
from ..host.types import Coin, coin
from ..logger import get_logger
from ..numeric import checked_sub, multiply_ratio
from .bonding import to_response
from .context import HandlerContext
from .reinvest import ReinvestmentCoordinator
from .selection import DelegationPolicy
from .types import (
    ClaimModel,
    ClaimNotReadyError,
    ContractConfig,
    DelegatorStatus,
    InsufficientFundsError,
    InvalidPositionStateError,
    InvestmentInfo,
    NoClaimError,
    Supply,
)

logger = get_logger(__name__)


class ClaimHandler(ABC):
    """Bond/unbond/claim/reinvest under one claim model."""

    model: ClaimModel

    def __init__(
        self,
        ctx: HandlerContext,
        invest: InvestmentInfo,
        config: ContractConfig,
        policy: DelegationPolicy,
    ):
        self.ctx = ctx
        self.invest = invest
        self.config = config
        self.coordinator = ReinvestmentCoordinator(ctx, invest, config, policy)
        self.engine = self.coordinator.engine

    @abstractmethod
    def bond(self, sender: str, funds: Sequence[Coin]) -> Response:
        ...

    @abstractmethod
    def unbond(self, sender: str, amount: int) -> Response:
        ...

    @abstractmethod
    def claim(self, sender: str) -> Response:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> Response:
        return to_response(self.engine.transfer(sender, recipient, amount))

    def reinvest(self) -> Response:
        return self.coordinator.reinvest()


class GlobalClaims(ClaimHandler):

    model = ClaimModel.GLOBAL

    def bond(self, sender: str, funds: Sequence[Coin]) -> Response:
        return to_response(self.engine.bond(sender, funds))

    def unbond(self, sender: str, amount: int) -> Response:
        return to_response(self.engine.unbond(sender, amount))

    def claim(self, sender: str) -> Response:
        """
        Pay out as much of the sender's claim as the liquid balance covers.

        The remainder of a partially paid claim stays claimable.
        """
        free = self.ctx.free_balance(self.invest.bond_denom)
        if free < self.invest.min_withdrawal:
            raise InsufficientFundsError(free, self.invest.min_withdrawal)

        ledger = self.coordinator.ledger
        if ledger.claim_of(sender) == 0:
            raise NoClaimError(sender)
        paid = ledger.settle_claim(sender, free)
        self.coordinator.supply.update(lambda s: Supply(
            issued=s.issued,
            bonded=s.bonded,
            claims=checked_sub(s.claims, paid, "claims"),
        ))

        message = self.ctx.bank_send(sender, coin(paid, self.invest.bond_denom))
        logger.info(f"Claim: paid {paid}{self.invest.bond_denom} to {sender}")
        return (
            Response(messages=[message])
            .add_attribute("action", "claim")
            .add_attribute("from", sender)
            .add_attribute("amount", paid)
        )


class PerDelegatorClaims(ClaimHandler):

    model = ClaimModel.PER_DELEGATOR

    def bond(self, sender: str, funds: Sequence[Coin]) -> Response:
        """
        Bond and attribute the principal to the sender's record.

        An existing principal held on another validator follows the new
        deposit to the currently selected one, and a reward accrued on a
        Bonded position is folded into principal first.
        """
        book = self.coordinator.book
        info = book.get(sender)
        if info.unbond_requested:
            raise InvalidPositionStateError(sender, info.status, "bond")

        target = self.coordinator.policy.bond_target(self.ctx)
        event = self.engine.bond(sender, funds, validator=target)
        response = to_response(event)
        for message in self.coordinator.reassign(info, target):
            response.add_message(message)

        if info.status == DelegatorStatus.BONDED and info.accrued_reward > 0:
            fold = self.engine.issue(sender, info.accrued_reward, validator=target)
            for message in fold.messages:
                response.add_message(message)
            response.add_attribute("folded", fold.bonded)
            logger.info(f"Bond: {sender} folded {fold.bonded} accrued reward into principal")
            info = info.folded(target, self.ctx.height)

        book.register(sender)
        book.save(info.bonded(target, event.bonded, self.ctx.height))
        return response

    def transfer(self, sender: str, recipient: str, amount: int) -> Response:
        """
        Transfer derivative tokens together with the matching share of the
        sender's principal, so rewards follow the stake.

        The moved principal joins the recipient's existing validator when it
        has one, otherwise it stays where the sender's principal sits.
        """
        api = self.ctx.api
        book = self.coordinator.book
        info = book.get(sender)
        balance = self.coordinator.ledger.balance_of(sender)
        response = to_response(self.engine.transfer(sender, recipient, amount))
        if api.canonicalize(sender) == api.canonicalize(recipient) or info.amount == 0:
            return response

        moved = multiply_ratio(amount, info.amount, balance)
        if moved == 0:
            return response

        receiver = book.get(recipient)
        destination = info.validator
        if receiver.amount > 0 and receiver.validator and receiver.validator != info.validator:
            destination = receiver.validator
            movable = min(moved, self.ctx.delegated_to(info.validator))
            if movable > 0:
                response.add_message(self.ctx.redelegate(
                    info.validator, destination, coin(movable, self.invest.bond_denom)
                ))

        book.register(recipient)
        book.save(info.principal_sent(moved))
        book.save(receiver.principal_received(destination, moved, self.ctx.height))
        response.add_attribute("principal", moved)
        logger.info(f"Transfer: {moved} principal from {sender} to {recipient} on {destination}")
        return response

    def unbond(self, sender: str, amount: int) -> Response:
        """Unbond and mark the sender's record UnbondRequested."""
        book = self.coordinator.book
        info = book.get(sender)
        event = self.engine.unbond(sender, amount, preferred=info.validator or None)

        book.register(sender)
        book.save(info.unbond_requested_at(event.claim, self.ctx.height))
        logger.info(f"Unbond requested: {sender}, settles after height {self.ready_height(self.ctx.height)}")
        return to_response(event)

    def ready_height(self, requested_at: int) -> int:
        return requested_at + self.config.expiry_blocks + 1

    def claim(self, sender: str) -> Response:
        """
        Settle a matured unbond request, or fold the accrued reward of a
        Bonded position.
        """
        info = self.coordinator.book.get(sender)
        if info.status == DelegatorStatus.UNBOND_REQUESTED:
            if not info.is_expired(self.ctx.height, self.config.expiry_blocks):
                raise ClaimNotReadyError(sender, self.ready_height(info.last_delegate_height))
            return self.coordinator.complete_unbond(sender)
        if info.status == DelegatorStatus.BONDED:
            return self.coordinator.compound(sender)
        raise NoClaimError(sender)


def claim_handler(
    ctx: HandlerContext,
    invest: InvestmentInfo,
    config: ContractConfig,
    policy: DelegationPolicy,
) -> ClaimHandler:
    if config.claim_model == ClaimModel.PER_DELEGATOR:
        return PerDelegatorClaims(ctx, invest, config, policy)
    return GlobalClaims(ctx, invest, config, policy)
