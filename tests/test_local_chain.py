"""
Local Chain Integration Test Suite

Coverage:
  - Global claim model end to end: bond, reward harvest, unbond, claim
  - Two-phase reinvest ordering through the host
  - Operation atomicity: rollback of bank, staking and contract state
  - SQLite-backed persistence and re-attach
"""

import os
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.chain import LocalChain, sample_validator
from lsdx.config import StakingConfig
from lsdx.constants import DEFAULT_CONTRACT_ADDRESS
from lsdx.exceptions import HostError, NotFoundError
from lsdx.host.instructions import BankSend, SelfInvoke, WithdrawRewards
from lsdx.host.types import coin, coins
from lsdx.staking import (
    BalanceQuery,
    Bond,
    BondAllTokens,
    Claim,
    ClaimsQuery,
    InstantiateMsg,
    InsufficientFundsError,
    InvestmentQuery,
    Reinvest,
    StakingContract,
    Unbond,
    ValidatorNotRegisteredError,
    WrongDenominationError,
)
from lsdx.storage import SqliteStateStore

# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

CONTRACT = DEFAULT_CONTRACT_ADDRESS
VALIDATOR = "default-validator"
CREATOR = "creator"
BOB = "bob"
ALICE = "alice"


def init_msg(validator: str = VALIDATOR) -> InstantiateMsg:
    return InstantiateMsg(
        name="Staked Token",
        symbol="STK",
        decimals=6,
        validator=validator,
        exit_tax=Decimal("0.02"),
        min_withdrawal=50,
    )


def make_chain(**overrides) -> LocalChain:
    settings = dict(validator_policy="fixed", claim_model="global", unbonding_blocks=5)
    settings.update(overrides)
    chain = LocalChain(StakingConfig(**settings), validators=[sample_validator(VALIDATOR)])
    chain.fund(BOB, 5000)
    chain.fund(ALICE, 5000)
    return chain


async def balance(chain, address) -> int:
    return (await chain.query(CONTRACT, BalanceQuery(address))).balance


async def investment(chain):
    return await chain.query(CONTRACT, InvestmentQuery())


class LeakyContract(StakingContract):
    """Appends an instruction the host cannot execute."""

    def execute(self, deps, env, info, msg):
        response = super().execute(deps, env, info, msg)
        return response.add_message(BankSend(to_address="mallory", amount=coins(10**9, "ustake")))


# ══════════════════════════════════════════════════════════════════════
#  GLOBAL CLAIM MODEL
# ══════════════════════════════════════════════════════════════════════


class TestGlobalLifecycle:
    """Exchange-rate staking through the local host."""

    @pytest.mark.asyncio
    async def test_bond_reinvest_unbond_claim(self):
        chain = make_chain()
        await chain.instantiate(CREATOR, init_msg())

        await chain.execute(CONTRACT, BOB, Bond(), funds=coins(1000, "ustake"))
        assert chain.balance_of(BOB) == 4000
        assert chain.delegation_of(CONTRACT, VALIDATOR) == 1000
        assert await balance(chain, BOB) == 1000

        # harvest: withdraw first, then the self-callback bonds the proceeds
        chain.accrue_rewards(VALIDATOR, 500)
        res = await chain.execute(CONTRACT, ALICE, Reinvest())
        assert res.messages == [
            WithdrawRewards(validator=VALIDATOR, recipient=CONTRACT),
            SelfInvoke(contract=CONTRACT, msg=BondAllTokens()),
        ]
        assert chain.pending_rewards(CONTRACT, VALIDATOR) == 0
        assert chain.balance_of(CONTRACT) == 0
        assert chain.delegation_of(CONTRACT, VALIDATOR) == 1500

        invest = await investment(chain)
        assert invest.token_supply == 1000
        assert invest.staked_tokens == coin(1500, "ustake")
        assert invest.nominal_value == Decimal("1.5")

        await chain.execute(CONTRACT, ALICE, Bond(), funds=coins(3000, "ustake"))
        assert await balance(chain, ALICE) == 2000

        # tax 12 to the owner, claim 588 * 4500 / 3000 = 882
        await chain.execute(CONTRACT, BOB, Unbond(amount=600))
        assert await balance(chain, BOB) == 400
        assert await balance(chain, CREATOR) == 12
        assert (await chain.query(CONTRACT, ClaimsQuery(BOB))).claims == 882
        assert chain.delegation_of(CONTRACT, VALIDATOR) == 3618
        assert [u.release_height for u in chain.pending_unbondings(CONTRACT)] == [chain.height + 5]
        assert chain.total_delegated(CONTRACT) == 3618
        assert (await investment(chain)).nominal_value == Decimal("1.5")

        with pytest.raises(InsufficientFundsError):
            await chain.execute(CONTRACT, BOB, Claim())

        await chain.advance_blocks(5)
        assert chain.balance_of(CONTRACT) == 882
        assert chain.pending_unbondings(CONTRACT) == []

        res = await chain.execute(CONTRACT, BOB, Claim())
        assert res.attribute("amount") == "882"
        assert chain.balance_of(BOB) == 4882
        assert (await chain.query(CONTRACT, ClaimsQuery(BOB))).claims == 0
        assert (await investment(chain)).claims == 0

    @pytest.mark.asyncio
    async def test_partial_claim_leaves_remainder(self):
        chain = make_chain(unbonding_blocks=0)
        await chain.instantiate(CREATOR, init_msg())
        await chain.execute(CONTRACT, BOB, Bond(), funds=coins(1000, "ustake"))
        await chain.execute(CONTRACT, BOB, Unbond(amount=500))
        claim = (await chain.query(CONTRACT, ClaimsQuery(BOB))).claims
        assert claim == 490

        # the host lost part of the released funds
        chain.set_balance(CONTRACT, 300)
        await chain.execute(CONTRACT, BOB, Claim())
        assert (await chain.query(CONTRACT, ClaimsQuery(BOB))).claims == 190
        assert (await investment(chain)).claims == 190

    @pytest.mark.asyncio
    async def test_reinvest_without_rewards_is_harmless(self):
        chain = make_chain()
        await chain.instantiate(CREATOR, init_msg())
        await chain.execute(CONTRACT, BOB, Bond(), funds=coins(1000, "ustake"))

        await chain.execute(CONTRACT, BOB, Reinvest())
        invest = await investment(chain)
        assert invest.staked_tokens == coin(1000, "ustake")
        assert invest.nominal_value == Decimal(1)

    @pytest.mark.asyncio
    async def test_advance_blocks_requires_positive(self):
        chain = make_chain()
        with pytest.raises(ValueError):
            await chain.advance_blocks(0)
        assert await chain.advance_blocks(3) == []

    def test_accrue_without_delegations(self):
        chain = make_chain()
        with pytest.raises(HostError, match="no delegations"):
            chain.accrue_rewards(VALIDATOR, 100)


# ══════════════════════════════════════════════════════════════════════
#  ATOMICITY
# ══════════════════════════════════════════════════════════════════════


class TestAtomicity:
    """A failed operation leaves no trace."""

    @pytest.mark.asyncio
    async def test_failed_instruction_rolls_back_everything(self):
        chain = make_chain()
        await chain.instantiate(CREATOR, init_msg(), contract=LeakyContract())

        with pytest.raises(HostError):
            await chain.execute(CONTRACT, BOB, Bond(), funds=coins(1000, "ustake"))

        assert chain.balance_of(BOB) == 5000
        assert chain.balance_of(CONTRACT) == 0
        assert chain.delegation_of(CONTRACT, VALIDATOR) == 0
        assert await balance(chain, BOB) == 0
        assert (await investment(chain)).token_supply == 0

    @pytest.mark.asyncio
    async def test_failed_handler_returns_funds(self):
        chain = make_chain()
        chain.fund(BOB, 100, "photon")
        await chain.instantiate(CREATOR, init_msg())

        with pytest.raises(WrongDenominationError):
            await chain.execute(CONTRACT, BOB, Bond(), funds=coins(100, "photon"))
        assert chain.balance_of(BOB, "photon") == 100
        assert chain.balance_of(CONTRACT, "photon") == 0

    @pytest.mark.asyncio
    async def test_failed_instantiate_removes_deployment(self):
        chain = make_chain()
        with pytest.raises(ValidatorNotRegisteredError):
            await chain.instantiate(CREATOR, init_msg("unknown-validator"))
        with pytest.raises(NotFoundError):
            await chain.query(CONTRACT, InvestmentQuery())

    @pytest.mark.asyncio
    async def test_duplicate_instantiate(self):
        chain = make_chain()
        await chain.instantiate(CREATOR, init_msg())
        with pytest.raises(HostError, match="already exists"):
            await chain.instantiate(CREATOR, init_msg())


# ══════════════════════════════════════════════════════════════════════
#  PERSISTENCE
# ══════════════════════════════════════════════════════════════════════


class TestPersistence:
    """Committed write-sets reach the SQLite store."""

    @pytest.mark.asyncio
    async def test_state_reattached_from_store(self, tmp_path):
        db_path = str(tmp_path / "state.db")
        store = await SqliteStateStore.create(db_path)
        try:
            config = StakingConfig(validator_policy="fixed", claim_model="global")
            chain = LocalChain(config, validators=[sample_validator(VALIDATOR)], store=store)
            chain.fund(BOB, 5000)
            await chain.instantiate(CREATOR, init_msg())
            await chain.execute(CONTRACT, BOB, Bond(), funds=coins(1000, "ustake"))

            # a rejected operation must not reach the store
            with pytest.raises(InsufficientFundsError):
                await chain.execute(CONTRACT, BOB, Claim())

            restarted = LocalChain(config, validators=[sample_validator(VALIDATOR)], store=store)
            await restarted.attach(CONTRACT)
            assert (await restarted.query(CONTRACT, BalanceQuery(BOB))).balance == 1000
            assert await store.contracts() == [CONTRACT]
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_attach_unknown_contract(self, tmp_path):
        store = await SqliteStateStore.create(str(tmp_path / "state.db"))
        try:
            chain = LocalChain(store=store)
            with pytest.raises(NotFoundError):
                await chain.attach("nothing-here")
        finally:
            await store.close()
