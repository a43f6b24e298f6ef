"""
Staking contract messages.

Instantiate, execute, query and sudo payloads, and the query responses.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from ..host.types import Coin, Validator
from ..numeric import format_decimal, to_decimal


@dataclass(frozen=True)
class InstantiateMsg:
    """
    Token metadata and investment parameters.

    Policy fields left as None fall back to the contract's StakingConfig.
    """
    name: str
    symbol: str
    decimals: int
    validator: str
    exit_tax: Decimal
    min_withdrawal: int
    validator_policy: Optional[str] = None
    claim_model: Optional[str] = None
    expiry_blocks: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "exit_tax", to_decimal(self.exit_tax, "exit_tax"))


# ── Execute ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Transfer:
    recipient: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"transfer": {"recipient": self.recipient, "amount": str(self.amount)}}


@dataclass(frozen=True)
class Bond:
    """Bond the attached funds."""

    def to_dict(self) -> Dict[str, Any]:
        return {"bond": {}}


@dataclass(frozen=True)
class Unbond:
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"unbond": {"amount": str(self.amount)}}


@dataclass(frozen=True)
class Claim:
    def to_dict(self) -> Dict[str, Any]:
        return {"claim": {}}


@dataclass(frozen=True)
class Reinvest:
    def to_dict(self) -> Dict[str, Any]:
        return {"reinvest": {}}


@dataclass(frozen=True)
class BondAllTokens:
    """Self-only callback following a reward withdrawal."""

    def to_dict(self) -> Dict[str, Any]:
        return {"_bond_all_tokens": {}}


@dataclass(frozen=True)
class DistributeRewards:
    """Self-only callback splitting one validator's withdrawn reward."""
    validator: str

    def to_dict(self) -> Dict[str, Any]:
        return {"_distribute_rewards": {"validator": self.validator}}


ExecuteMsg = Union[Transfer, Bond, Unbond, Claim, Reinvest, BondAllTokens, DistributeRewards]


# ── Sudo ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ExpirySweep:
    """Host-scheduled maintenance pass over all delegators."""

    def to_dict(self) -> Dict[str, Any]:
        return {"expiry_sweep": {}}


SudoMsg = Union[ExpirySweep]


# ── Query ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BalanceQuery:
    address: str


@dataclass(frozen=True)
class ClaimsQuery:
    address: str


@dataclass(frozen=True)
class TokenInfoQuery:
    pass


@dataclass(frozen=True)
class InvestmentQuery:
    pass


@dataclass(frozen=True)
class ValidatorsQuery:
    pass


@dataclass(frozen=True)
class DelegationQuery:
    address: str


@dataclass(frozen=True)
class DelegatorsQuery:
    pass


QueryMsg = Union[
    BalanceQuery,
    ClaimsQuery,
    TokenInfoQuery,
    InvestmentQuery,
    ValidatorsQuery,
    DelegationQuery,
    DelegatorsQuery,
]


# ── Query responses ───────────────────────────────────────────────────

@dataclass(frozen=True)
class BalanceResponse:
    balance: int

    def to_dict(self) -> Dict[str, Any]:
        return {"balance": str(self.balance)}


@dataclass(frozen=True)
class ClaimsResponse:
    claims: int

    def to_dict(self) -> Dict[str, Any]:
        return {"claims": str(self.claims)}


@dataclass(frozen=True)
class TokenInfoResponse:
    name: str
    symbol: str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "symbol": self.symbol, "decimals": self.decimals}


@dataclass(frozen=True)
class InvestmentResponse:
    """
    Investment parameters and current totals.

    nominal_value is bonded / issued, 1 while nothing is issued.
    """
    owner: str
    validator: str
    exit_tax: Decimal
    min_withdrawal: int
    token_supply: int
    staked_tokens: Coin
    nominal_value: Decimal
    claims: int = 0
    validator_policy: str = "fixed"
    claim_model: str = "global"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "validator": self.validator,
            "exit_tax": format_decimal(self.exit_tax),
            "min_withdrawal": str(self.min_withdrawal),
            "token_supply": str(self.token_supply),
            "staked_tokens": self.staked_tokens.to_dict(),
            "nominal_value": format_decimal(self.nominal_value),
            "claims": str(self.claims),
            "validator_policy": self.validator_policy,
            "claim_model": self.claim_model,
        }


@dataclass(frozen=True)
class ValidatorsResponse:
    validators: Tuple[Validator, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {"validators": [v.to_dict() for v in self.validators]}


@dataclass(frozen=True)
class DelegatorsResponse:
    delegators: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"delegators": list(self.delegators)}
