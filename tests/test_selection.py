"""
Validator Selection Test Suite

Coverage:
  - Lowest-commission choice and deterministic tie-breaks
  - Fixed and lowest-commission undelegation plans
"""

import os
import random
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.chain.testing import mock_dependencies, mock_env, sample_delegation, sample_validator
from lsdx.exceptions import UnderflowError
from lsdx.host.types import coin
from lsdx.staking import (
    EmptyValidatorSetError,
    FixedValidatorPolicy,
    HandlerContext,
    InvestmentInfo,
    LowestCommissionPolicy,
    ValidatorPolicyKind,
    ValidatorSelector,
    policy_for,
)


def make_invest(validator: str = "john") -> InvestmentInfo:
    return InvestmentInfo(
        owner="creator",
        bond_denom="ustake",
        exit_tax=Decimal("0.02"),
        validator=validator,
        min_withdrawal=50,
    )


def context_with(validators, delegated=None) -> HandlerContext:
    deps = mock_dependencies()
    delegations = [
        sample_delegation(v, coin(amount, "ustake")) for v, amount in (delegated or {}).items()
    ]
    deps.querier.update_staking("ustake", validators, delegations)
    return HandlerContext(deps, mock_env())


# ══════════════════════════════════════════════════════════════════════
#  SELECTOR
# ══════════════════════════════════════════════════════════════════════


class TestValidatorSelector:
    """Pure lowest-commission selection."""

    def test_select_best_validator(self):
        validators = [
            sample_validator("john", commission=1, max_commission=5, max_change_rate=5),
            sample_validator("mary", commission=2, max_commission=1, max_change_rate=1),
            sample_validator("my-validator", commission=1, max_commission=3, max_change_rate=3),
        ]
        assert ValidatorSelector.select(validators).address == "my-validator"

    def test_selection_independent_of_order(self):
        validators = [
            sample_validator("john", commission=1, max_change_rate=5),
            sample_validator("mary", commission=2, max_change_rate=1),
            sample_validator("my-validator", commission=1, max_change_rate=3),
            sample_validator("zed", commission=4, max_change_rate=0),
        ]
        rng = random.Random(7)
        for _ in range(10):
            rng.shuffle(validators)
            assert ValidatorSelector.select(validators).address == "my-validator"

    def test_full_tie_goes_to_lowest_address(self):
        validators = [sample_validator("charlie"), sample_validator("bravo"), sample_validator("delta")]
        assert ValidatorSelector.select(validators).address == "bravo"

    def test_empty_set_raises(self):
        with pytest.raises(EmptyValidatorSetError, match="empty"):
            ValidatorSelector.select([])


# ══════════════════════════════════════════════════════════════════════
#  POLICIES
# ══════════════════════════════════════════════════════════════════════


class TestPolicies:
    """Bond targets and undelegation plans."""

    def test_policy_for_kind(self):
        invest = make_invest()
        assert isinstance(policy_for(ValidatorPolicyKind.FIXED, invest), FixedValidatorPolicy)
        assert isinstance(
            policy_for(ValidatorPolicyKind.LOWEST_COMMISSION, invest), LowestCommissionPolicy
        )

    def test_fixed_policy(self):
        ctx = context_with([sample_validator("john", commission=9), sample_validator("mary", commission=1)])
        policy = FixedValidatorPolicy(make_invest("john"))
        assert policy.bond_target(ctx) == "john"
        assert policy.undelegation_plan(ctx, 300) == [("john", 300)]
        assert policy.undelegation_plan(ctx, 0) == []

    def test_lowest_commission_target(self):
        ctx = context_with([sample_validator("john", commission=9), sample_validator("mary", commission=1)])
        assert LowestCommissionPolicy(make_invest("john")).bond_target(ctx) == "mary"

    def test_plan_draws_from_largest_first(self):
        ctx = context_with(
            [sample_validator("a"), sample_validator("b"), sample_validator("c")],
            {"a": 500, "b": 300, "c": 300},
        )
        plan = LowestCommissionPolicy(make_invest("a")).undelegation_plan(ctx, 900)
        assert plan == [("a", 500), ("b", 300), ("c", 100)]

    def test_plan_prefers_given_validator(self):
        ctx = context_with(
            [sample_validator("a"), sample_validator("b"), sample_validator("c")],
            {"a": 500, "b": 300, "c": 300},
        )
        plan = LowestCommissionPolicy(make_invest("a")).undelegation_plan(ctx, 900, preferred="c")
        assert plan == [("c", 300), ("a", 500), ("b", 100)]

    def test_plan_beyond_delegated_underflows(self):
        ctx = context_with([sample_validator("a")], {"a": 100})
        with pytest.raises(UnderflowError):
            LowestCommissionPolicy(make_invest("a")).undelegation_plan(ctx, 101)

    def test_plan_sees_emitted_instructions(self):
        ctx = context_with([sample_validator("a"), sample_validator("b")], {"a": 100})
        ctx.delegate("b", coin(400, "ustake"))
        plan = LowestCommissionPolicy(make_invest("a")).undelegation_plan(ctx, 450)
        assert plan == [("b", 400), ("a", 50)]
