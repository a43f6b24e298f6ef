"""
LSDX Staking Module

Liquid-staking contract: derivative token issuance against bonded base
tokens, unbonding with exit tax, reward reinvestment and claim settlement.
"""

from .types import (
    # Exceptions
    ValidatorNotRegisteredError,
    WrongDenominationError,
    BelowMinimumWithdrawalError,
    InsufficientBalanceError,
    InconsistentBondedAmountError,
    UnauthorizedError,
    InsufficientFundsError,
    EmptyValidatorSetError,
    MixedDenominationError,
    NoClaimError,
    ClaimNotReadyError,
    InvalidPositionStateError,
    InvalidParameterError,
    # Records
    ValidatorPolicyKind,
    ClaimModel,
    DelegatorStatus,
    TokenInfo,
    InvestmentInfo,
    ContractConfig,
    Supply,
    DelegateInfo,
)
from .context import Deps, HandlerContext, get_bonded
from .supply import SupplyAccount
from .ledger import TokenLedger
from .selection import (
    ValidatorSelector,
    DelegationPolicy,
    FixedValidatorPolicy,
    LowestCommissionPolicy,
    policy_for,
)
from .bonding import BondingEngine, BondEvent, UnbondEvent, TransferEvent
from .delegators import DelegatorBook
from .reinvest import ReinvestmentCoordinator
from .claims import ClaimHandler, GlobalClaims, PerDelegatorClaims, claim_handler
from .messages import (
    InstantiateMsg,
    Transfer,
    Bond,
    Unbond,
    Claim,
    Reinvest,
    BondAllTokens,
    DistributeRewards,
    ExpirySweep,
    BalanceQuery,
    ClaimsQuery,
    TokenInfoQuery,
    InvestmentQuery,
    ValidatorsQuery,
    DelegationQuery,
    DelegatorsQuery,
    BalanceResponse,
    ClaimsResponse,
    TokenInfoResponse,
    InvestmentResponse,
    ValidatorsResponse,
    DelegatorsResponse,
)
from .contract import StakingContract

__all__ = [
    # Exceptions
    "ValidatorNotRegisteredError",
    "WrongDenominationError",
    "BelowMinimumWithdrawalError",
    "InsufficientBalanceError",
    "InconsistentBondedAmountError",
    "UnauthorizedError",
    "InsufficientFundsError",
    "EmptyValidatorSetError",
    "MixedDenominationError",
    "NoClaimError",
    "ClaimNotReadyError",
    "InvalidPositionStateError",
    "InvalidParameterError",
    # Records
    "ValidatorPolicyKind",
    "ClaimModel",
    "DelegatorStatus",
    "TokenInfo",
    "InvestmentInfo",
    "ContractConfig",
    "Supply",
    "DelegateInfo",
    # Components
    "Deps",
    "HandlerContext",
    "get_bonded",
    "SupplyAccount",
    "TokenLedger",
    "ValidatorSelector",
    "DelegationPolicy",
    "FixedValidatorPolicy",
    "LowestCommissionPolicy",
    "policy_for",
    "BondingEngine",
    "BondEvent",
    "UnbondEvent",
    "TransferEvent",
    "DelegatorBook",
    "ReinvestmentCoordinator",
    "ClaimHandler",
    "GlobalClaims",
    "PerDelegatorClaims",
    "claim_handler",
    # Messages
    "InstantiateMsg",
    "Transfer",
    "Bond",
    "Unbond",
    "Claim",
    "Reinvest",
    "BondAllTokens",
    "DistributeRewards",
    "ExpirySweep",
    "BalanceQuery",
    "ClaimsQuery",
    "TokenInfoQuery",
    "InvestmentQuery",
    "ValidatorsQuery",
    "DelegationQuery",
    "DelegatorsQuery",
    "BalanceResponse",
    "ClaimsResponse",
    "TokenInfoResponse",
    "InvestmentResponse",
    "ValidatorsResponse",
    "DelegatorsResponse",
    # Contract
    "StakingContract",
]
