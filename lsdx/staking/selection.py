"""
Validator selection and delegation policies.

ValidatorSelector is a pure choice over the host's validator set. A
DelegationPolicy decides where new stake goes and which delegations an
unbond draws from; the policy in force is fixed at instantiation.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from ..exceptions import UnderflowError
from ..logger import get_logger
from ..host.types import Validator
from .context import HandlerContext
from .types import EmptyValidatorSetError, InvestmentInfo, ValidatorPolicyKind

logger = get_logger(__name__)

# (validator address, base-token amount)
UndelegationPlan = List[Tuple[str, int]]


class ValidatorSelector:
    """Deterministic lowest-commission choice."""

    @staticmethod
    def rank(validator: Validator) -> tuple:
        return (validator.commission, validator.max_change_rate, validator.address)

    @classmethod
    def select(cls, validators: Sequence[Validator]) -> Validator:
        """
        Pick the validator with the lowest commission.

        Ties go to the smallest max_change_rate, then to the lowest address,
        so the same set always yields the same validator whatever its order.
        """
        if not validators:
            raise EmptyValidatorSetError()
        return min(validators, key=cls.rank)


class DelegationPolicy(ABC):
    """Where bonded funds go, and where unbonded funds come from."""

    kind: ValidatorPolicyKind

    def __init__(self, invest: InvestmentInfo):
        self.invest = invest

    @abstractmethod
    def bond_target(self, ctx: HandlerContext) -> str:
        """Validator receiving the next delegation."""

    @abstractmethod
    def undelegation_plan(
        self, ctx: HandlerContext, amount: int, preferred: Optional[str] = None
    ) -> UndelegationPlan:
        """Split an unbond of *amount* base tokens across validators."""


class FixedValidatorPolicy(DelegationPolicy):
    """Everything is delegated to the validator configured at instantiation."""

    kind = ValidatorPolicyKind.FIXED

    def bond_target(self, ctx: HandlerContext) -> str:
        return self.invest.validator

    def undelegation_plan(
        self, ctx: HandlerContext, amount: int, preferred: Optional[str] = None
    ) -> UndelegationPlan:
        if amount == 0:
            return []
        return [(self.invest.validator, amount)]


class LowestCommissionPolicy(DelegationPolicy):
    """
    Every bond re-selects the cheapest validator.

    Stake therefore spreads over several validators over time; unbonds draw
    from the *preferred* validator first, then from the largest delegations
    (ties by address).
    """

    kind = ValidatorPolicyKind.LOWEST_COMMISSION

    def bond_target(self, ctx: HandlerContext) -> str:
        validator = ValidatorSelector.select(ctx.validators())
        logger.debug(f"Selected validator {validator.address} (commission {validator.commission})")
        return validator.address

    def undelegation_plan(
        self, ctx: HandlerContext, amount: int, preferred: Optional[str] = None
    ) -> UndelegationPlan:
        delegated = ctx.delegated_by_validator()
        order = sorted(delegated.items(), key=lambda item: (-item[1], item[0]))
        if preferred in delegated:
            order.sort(key=lambda item: item[0] != preferred)

        plan: UndelegationPlan = []
        remaining = amount
        for validator, available in order:
            if remaining == 0:
                break
            take = min(available, remaining)
            plan.append((validator, take))
            remaining -= take
        if remaining:
            raise UnderflowError("delegated", amount - remaining, amount)
        return plan


def policy_for(kind: ValidatorPolicyKind, invest: InvestmentInfo) -> DelegationPolicy:
    if kind == ValidatorPolicyKind.LOWEST_COMMISSION:
        return LowestCommissionPolicy(invest)
    return FixedValidatorPolicy(invest)
