"""
Staking Contract

Entry points of the liquid-staking contract. Each inbound operation is
dispatched to exactly one handler; every execute and sudo handler runs in a
storage savepoint, so a failing handler leaves no state behind.
"""

from decimal import Decimal
from typing import Any, Optional

from ..config import StakingConfig
from ..host.instructions import Response
from ..host.types import Env, MessageInfo, coin
from ..logger import get_logger
from ..numeric import decimal_from_ratio
from ..constants import FALLBACK_RATIO, MAX_TOKEN_DECIMALS
from .claims import ClaimHandler, claim_handler
from .context import Deps, HandlerContext
from .delegators import DelegatorBook
from .ledger import TokenLedger
from .messages import (
    BalanceQuery,
    BalanceResponse,
    Bond,
    BondAllTokens,
    Claim,
    ClaimsQuery,
    ClaimsResponse,
    DelegationQuery,
    DelegatorsQuery,
    DelegatorsResponse,
    DistributeRewards,
    ExpirySweep,
    InstantiateMsg,
    InvestmentQuery,
    InvestmentResponse,
    Reinvest,
    TokenInfoQuery,
    TokenInfoResponse,
    Transfer,
    Unbond,
    ValidatorsQuery,
    ValidatorsResponse,
)
from .selection import policy_for
from .state import contract_config, invest_info, token_info, total_supply
from .types import (
    ClaimModel,
    ContractConfig,
    InvalidParameterError,
    InvestmentInfo,
    Supply,
    TokenInfo,
    ValidatorNotRegisteredError,
    ValidatorPolicyKind,
)

logger = get_logger(__name__)


class StakingContract:
    """
    Liquid-staking contract.

    Args:
        config: Defaults for the policy fields an InstantiateMsg leaves unset
    """

    def __init__(self, config: Optional[StakingConfig] = None):
        self.config = config or StakingConfig()

    # ── Instantiate ───────────────────────────────────────────────────

    def instantiate(self, deps: Deps, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
        """
        Store token metadata, investment parameters and policy selection.

        The sender becomes the owner. The target validator must be in the
        host's current validator set.
        """
        ctx = HandlerContext(deps, env, info)
        with ctx.savepoint():
            if not msg.name or not msg.symbol:
                raise InvalidParameterError("Token name and symbol must not be empty")
            if not 0 <= msg.decimals <= MAX_TOKEN_DECIMALS:
                raise InvalidParameterError(
                    f"Decimals must be between 0 and {MAX_TOKEN_DECIMALS}, got {msg.decimals}"
                )
            if not Decimal(0) <= msg.exit_tax <= Decimal(1):
                raise InvalidParameterError(f"Exit tax must be between 0 and 1, got {msg.exit_tax}")
            if msg.min_withdrawal < 0:
                raise InvalidParameterError("Minimum withdrawal cannot be negative")

            if not any(v.address == msg.validator for v in ctx.validators()):
                raise ValidatorNotRegisteredError(msg.validator)

            try:
                settings = ContractConfig(
                    validator_policy=ValidatorPolicyKind(msg.validator_policy or self.config.validator_policy),
                    claim_model=ClaimModel(msg.claim_model or self.config.claim_model),
                    expiry_blocks=(
                        self.config.expiry_blocks if msg.expiry_blocks is None else msg.expiry_blocks
                    ),
                )
            except ValueError as e:
                raise InvalidParameterError(str(e)) from e
            if settings.expiry_blocks <= 0:
                raise InvalidParameterError("expiry_blocks must be positive")

            # validates the owner address
            ctx.api.canonicalize(info.sender)

            token_info(ctx.storage).save(
                TokenInfo(name=msg.name, symbol=msg.symbol, decimals=msg.decimals)
            )
            invest_info(ctx.storage).save(InvestmentInfo(
                owner=info.sender,
                bond_denom=ctx.querier.bonded_denom(),
                exit_tax=msg.exit_tax,
                validator=msg.validator,
                min_withdrawal=msg.min_withdrawal,
            ))
            contract_config(ctx.storage).save(settings)
            total_supply(ctx.storage).save(Supply())

        logger.info(
            f"Instantiated {msg.symbol} staking to {msg.validator} "
            f"(policy {settings.validator_policy.value}, claims {settings.claim_model.value})"
        )
        return Response().add_attribute("action", "instantiate").add_attribute("owner", info.sender)

    # ── Execute ───────────────────────────────────────────────────────

    def _handler(self, ctx: HandlerContext) -> ClaimHandler:
        invest = invest_info(ctx.storage).load()
        settings = contract_config(ctx.storage).load()
        return claim_handler(ctx, invest, settings, policy_for(settings.validator_policy, invest))

    def execute(self, deps: Deps, env: Env, info: MessageInfo, msg: Any) -> Response:
        ctx = HandlerContext(deps, env, info)
        with ctx.savepoint():
            handler = self._handler(ctx)
            if isinstance(msg, Transfer):
                return handler.transfer(info.sender, msg.recipient, msg.amount)
            if isinstance(msg, Bond):
                return handler.bond(info.sender, info.funds)
            if isinstance(msg, Unbond):
                return handler.unbond(info.sender, msg.amount)
            if isinstance(msg, Claim):
                return handler.claim(info.sender)
            if isinstance(msg, Reinvest):
                return handler.reinvest()
            if isinstance(msg, BondAllTokens):
                return handler.coordinator.bond_all_tokens(info.sender)
            if isinstance(msg, DistributeRewards):
                return handler.coordinator.distribute_rewards(info.sender, msg.validator)
            raise InvalidParameterError(f"Unknown execute message: {type(msg).__name__}")

    # ── Sudo ──────────────────────────────────────────────────────────

    def sudo(self, deps: Deps, env: Env, msg: Any) -> Response:
        """Privileged entry points callable only by the host itself."""
        ctx = HandlerContext(deps, env)
        with ctx.savepoint():
            handler = self._handler(ctx)
            if isinstance(msg, ExpirySweep):
                return handler.coordinator.expiry_sweep()
            raise InvalidParameterError(f"Unknown sudo message: {type(msg).__name__}")

    # ── Query ─────────────────────────────────────────────────────────

    def query(self, deps: Deps, env: Env, msg: Any) -> Any:
        ctx = HandlerContext(deps, env)
        storage = ctx.storage

        if isinstance(msg, BalanceQuery):
            return BalanceResponse(balance=TokenLedger(storage, ctx.api).balance_of(msg.address))
        if isinstance(msg, ClaimsQuery):
            return ClaimsResponse(claims=TokenLedger(storage, ctx.api).claim_of(msg.address))
        if isinstance(msg, TokenInfoQuery):
            token = token_info(storage).load()
            return TokenInfoResponse(name=token.name, symbol=token.symbol, decimals=token.decimals)
        if isinstance(msg, InvestmentQuery):
            return self.query_investment(ctx)
        if isinstance(msg, ValidatorsQuery):
            return ValidatorsResponse(validators=tuple(ctx.validators()))
        if isinstance(msg, DelegationQuery):
            return DelegatorBook(storage, ctx.api).get(msg.address)
        if isinstance(msg, DelegatorsQuery):
            return DelegatorsResponse(delegators=DelegatorBook(storage, ctx.api).addresses())
        raise InvalidParameterError(f"Unknown query message: {type(msg).__name__}")

    def query_investment(self, ctx: HandlerContext) -> InvestmentResponse:
        invest = invest_info(ctx.storage).load()
        settings = contract_config(ctx.storage).load()
        supply = total_supply(ctx.storage).load()

        if supply.issued == 0:
            nominal_value = FALLBACK_RATIO
        else:
            nominal_value = decimal_from_ratio(supply.bonded, supply.issued)

        return InvestmentResponse(
            owner=invest.owner,
            validator=invest.validator,
            exit_tax=invest.exit_tax,
            min_withdrawal=invest.min_withdrawal,
            token_supply=supply.issued,
            staked_tokens=coin(supply.bonded, invest.bond_denom),
            nominal_value=nominal_value,
            claims=supply.claims,
            validator_policy=settings.validator_policy.value,
            claim_model=settings.claim_model.value,
        )

