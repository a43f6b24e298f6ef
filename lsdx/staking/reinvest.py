"""
Reinvestment Coordinator

Reward harvesting is a two-phase saga: the reward a validator owes is only
known once the host has processed a withdrawal, so a handler emits the
withdrawal followed by a self-addressed callback that acts on the new
balance. The callback re-checks that the contract itself is the caller.

Under the per-delegator claim model the callback splits the reward onto
delegator records instead of bonding it; folding, settlement and the
scheduled expiry sweep also live here.
"""

from typing import List, Optional

from ..exceptions import StakingError
from ..host.instructions import Instruction, Response, SelfInvoke, WithdrawRewards
from ..host.types import coin
from ..logger import get_logger
from ..numeric import checked_add, checked_sub, multiply_ratio
from .bonding import BondingEngine
from .context import HandlerContext
from .delegators import DelegatorBook
from .ledger import TokenLedger
from .messages import BondAllTokens, DistributeRewards
from .selection import DelegationPolicy
from .supply import SupplyAccount
from .types import (
    ClaimModel,
    ContractConfig,
    DelegateInfo,
    DelegatorStatus,
    InsufficientFundsError,
    InvalidPositionStateError,
    InvestmentInfo,
    Supply,
    UnauthorizedError,
)

logger = get_logger(__name__)


class ReinvestmentCoordinator:

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
        self.policy = policy
        self.engine = BondingEngine(ctx, invest, policy)

    @property
    def supply(self) -> SupplyAccount:
        return SupplyAccount(self.ctx.storage)

    @property
    def ledger(self) -> TokenLedger:
        return TokenLedger(self.ctx.storage, self.ctx.api)

    @property
    def book(self) -> DelegatorBook:
        return DelegatorBook(self.ctx.storage, self.ctx.api)

    def _require_self(self, caller: str, action: str) -> None:
        if caller != self.ctx.contract_address:
            logger.warning(f"Rejected {action} from {caller}")
            raise UnauthorizedError(caller, action)

    def _reward_sources(self) -> List[str]:
        delegated = sorted(self.ctx.delegated_by_validator())
        return delegated or [self.invest.validator]

    def _reserved(self) -> int:
        """Liquid funds owed to unbonders or already split onto delegators."""
        return self.supply.load().claims + self.book.accrued_total()

    # ── Phase one ─────────────────────────────────────────────────────

    def reinvest(self) -> Response:
        """
        Withdraw pending rewards and queue the follow-up callback.

        Open to any sender. The withdrawal and its callback are emitted in
        one batch so the host runs them back to back.
        """
        contract = self.ctx.contract_address
        response = Response().add_attribute("action", "reinvest")
        for validator in self._reward_sources():
            response.add_message(WithdrawRewards(validator=validator, recipient=contract))
            if self.config.claim_model == ClaimModel.PER_DELEGATOR:
                response.add_message(SelfInvoke(contract=contract, msg=DistributeRewards(validator)))
        if self.config.claim_model == ClaimModel.GLOBAL:
            response.add_message(SelfInvoke(contract=contract, msg=BondAllTokens()))
        logger.info(f"Reinvest: withdrawing rewards from {len(self._reward_sources())} validator(s)")
        return response

    # ── Phase two ─────────────────────────────────────────────────────

    def reinvestable(self) -> int:
        """
        Free balance left after reserved funds.

        Raises InsufficientFundsError when nothing, or less than the minimum
        withdrawal, remains.
        """
        free = self.ctx.free_balance(self.invest.bond_denom)
        reserved = self._reserved()
        if free < reserved:
            raise InsufficientFundsError(free, reserved)
        available = free - reserved
        if available < self.invest.min_withdrawal:
            raise InsufficientFundsError(available, self.invest.min_withdrawal)
        return available

    def reward_pool(self) -> int:
        """
        Unreserved free balance available to the split in progress.

        This is the reward just withdrawn plus any rounding dust an earlier
        split left unassigned, so dust from one validator's split is shared
        out with the next validator's reward.
        """
        free = self.ctx.free_balance(self.invest.bond_denom)
        reserved = self._reserved()
        if free <= reserved:
            raise InsufficientFundsError(free, reserved + 1)
        return free - reserved

    def bond_all_tokens(self, caller: str) -> Response:
        """Delegate whatever the withdrawal brought in. Self-only."""
        self._require_self(caller, "bond_all_tokens")

        try:
            amount = self.reinvestable()
        except InsufficientFundsError as e:
            # the withdrawal already ran; falling short must not revert it
            logger.debug(f"Bond all tokens: nothing to do ({e})")
            return Response().add_attribute("action", "reinvest").add_attribute("bonded", 0)

        self.supply.assert_bonded(self.ctx.bonded_total())
        self.supply.update(lambda s: Supply(
            issued=s.issued,
            bonded=checked_add(s.bonded, amount, "bonded"),
            claims=s.claims,
        ))
        validator = self.policy.bond_target(self.ctx)
        message = self.ctx.delegate(validator, coin(amount, self.invest.bond_denom))
        logger.info(f"Reinvest: bonded {amount}{self.invest.bond_denom} to {validator}")
        return (
            Response(messages=[message])
            .add_attribute("action", "reinvest")
            .add_attribute("bonded", amount)
            .add_attribute("validator", validator)
        )

    def distribute_rewards(self, caller: str, validator: str) -> Response:
        """
        Split the reward just withdrawn from *validator* across the
        delegators assigned to it, pro rata to principal over the
        validator's delegated total. Self-only.
        """
        self._require_self(caller, "distribute_rewards")
        response = Response().add_attribute("action", "distribute_rewards")
        response.add_attribute("validator", validator)

        try:
            pool = self.reward_pool()
        except InsufficientFundsError as e:
            logger.debug(f"Distribute rewards: nothing to split ({e})")
            return response.add_attribute("distributed", 0)

        delegated = self.ctx.delegated_to(validator)
        holders = self.book.assigned_to(validator)
        if delegated == 0 or not holders:
            logger.debug(f"Distribute rewards: no delegators on {validator}")
            return response.add_attribute("distributed", 0)

        book = self.book
        distributed = 0
        for info in holders:
            share = multiply_ratio(pool, info.amount, delegated)
            if share == 0:
                continue
            book.save(info.with_reward(share))
            distributed += share
            logger.debug(f"Reward share {info.delegator}: {share}")

        logger.info(f"Distributed {distributed}{self.invest.bond_denom} of {pool} from {validator}")
        return response.add_attribute("distributed", distributed)

    # ── Per-delegator positions ───────────────────────────────────────

    def reassign(self, info: DelegateInfo, target: str) -> List[Instruction]:
        """Move the principal of *info* to *target* if it sits elsewhere."""
        if not info.validator or info.validator == target or info.amount == 0:
            return []
        movable = min(info.amount, self.ctx.delegated_to(info.validator))
        if movable == 0:
            return []
        return [self.ctx.redelegate(info.validator, target, coin(movable, self.invest.bond_denom))]

    def compound(self, address: str, target: Optional[str] = None) -> Response:
        """
        Fold the accrued reward of a Bonded position into principal.

        The reward is bonded like a deposit (derivative tokens are minted for
        it at the current rate) and the position moves to *target*, the
        currently selected validator by default.
        """
        book = self.book
        info = book.get(address)
        if info.status != DelegatorStatus.BONDED:
            raise InvalidPositionStateError(address, info.status, "reinvest")

        target = target or self.policy.bond_target(self.ctx)
        response = Response().add_attribute("action", "compound")
        response.add_attribute("delegator", address)
        response.add_attribute("prev_validator", info.validator)
        response.add_attribute("new_validator", target)

        reward = info.accrued_reward
        if reward > 0:
            event = self.engine.issue(address, reward, validator=target)
            for message in event.messages:
                response.add_message(message)
            response.add_attribute("minted", event.minted)
        for message in self.reassign(info, target):
            response.add_message(message)

        book.save(info.folded(target, self.ctx.height))
        response.add_attribute("amount", info.amount + reward)
        logger.info(f"Compound: {address} folded {reward} into principal on {target}")
        return response

    def complete_unbond(self, address: str) -> Response:
        """
        Pay out a requested unbond: the claim plus the accrued reward.

        Raises InsufficientFundsError while the host has not released enough
        liquid funds yet.
        """
        book = self.book
        ledger = self.ledger
        info = book.get(address)
        if not info.unbond_requested:
            raise InvalidPositionStateError(address, info.status, "settle")

        claim = ledger.claim_of(address)
        payout = claim + info.accrued_reward
        free = self.ctx.free_balance(self.invest.bond_denom)
        if free < payout:
            raise InsufficientFundsError(free, payout)

        if claim > 0:
            ledger.settle_claim(address, claim)
            self.supply.update(lambda s: Supply(
                issued=s.issued,
                bonded=s.bonded,
                claims=checked_sub(s.claims, claim, "claims"),
            ))

        response = Response().add_attribute("action", "settle").add_attribute("to", address)
        if payout > 0:
            response.add_message(self.ctx.bank_send(address, coin(payout, self.invest.bond_denom)))
        response.add_attribute("amount", payout)

        settled = info.settled(keep_principal=ledger.balance_of(address) > 0)
        book.save(settled)
        logger.info(f"Settle: paid {payout}{self.invest.bond_denom} to {address} ({settled.status.value})")
        return response

    # ── Scheduled maintenance ─────────────────────────────────────────

    def expiry_sweep(self) -> Response:
        """
        Settle or compound every position idle for more than expiry_blocks.

        Each delegator runs in its own savepoint; a failure is logged and
        reported, and the sweep moves on.
        """
        response = Response().add_attribute("action", "expiry_sweep")
        if self.config.claim_model != ClaimModel.PER_DELEGATOR:
            return response.add_attribute("processed", 0)

        height = self.ctx.height
        processed = 0
        failed = 0
        for address in self.book.addresses():
            info = self.book.get(address)
            if not info.is_active or not info.is_expired(height, self.config.expiry_blocks):
                continue
            try:
                with self.ctx.savepoint():
                    if info.unbond_requested:
                        result = self.complete_unbond(address)
                    else:
                        result = self.compound(address)
            except StakingError as e:
                failed += 1
                logger.warning(f"Expiry sweep: {address} skipped: {e}")
                response.add_attribute("failed", f"{address}: {e}")
                continue
            processed += 1
            response.merge(result)

        logger.info(f"Expiry sweep at height {height}: {processed} processed, {failed} failed")
        return response.add_attribute("processed", processed)
