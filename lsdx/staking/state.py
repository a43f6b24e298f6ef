"""
Storage layout of the staking contract.

Each logical table lives in its own namespace.
"""

from ..storage.base import Storage
from ..storage.typed import Bucket, JsonCodec, Singleton, STRING_LIST_CODEC, INT_CODEC
from .types import ContractConfig, DelegateInfo, InvestmentInfo, Supply, TokenInfo

TOKEN_INFO_KEY = b"token_info"
INVESTMENT_KEY = b"investment"
CONFIG_KEY = b"config"
SUPPLY_KEY = b"total_supply"
BALANCE_PREFIX = b"balance"
CLAIM_PREFIX = b"claim"
DELEGATION_PREFIX = b"delegation"
DELEGATORS_KEY = b"delegators"


def token_info(storage: Storage) -> Singleton[TokenInfo]:
    return Singleton(storage, TOKEN_INFO_KEY, JsonCodec(TokenInfo))


def invest_info(storage: Storage) -> Singleton[InvestmentInfo]:
    return Singleton(storage, INVESTMENT_KEY, JsonCodec(InvestmentInfo))


def contract_config(storage: Storage) -> Singleton[ContractConfig]:
    return Singleton(storage, CONFIG_KEY, JsonCodec(ContractConfig))


def total_supply(storage: Storage) -> Singleton[Supply]:
    return Singleton(storage, SUPPLY_KEY, JsonCodec(Supply))


def balances(storage: Storage) -> Bucket[int]:
    return Bucket(storage, BALANCE_PREFIX, INT_CODEC)


def claims(storage: Storage) -> Bucket[int]:
    return Bucket(storage, CLAIM_PREFIX, INT_CODEC)


def delegations(storage: Storage) -> Bucket[DelegateInfo]:
    return Bucket(storage, DELEGATION_PREFIX, JsonCodec(DelegateInfo))


def delegators(storage: Storage) -> Singleton[list]:
    return Singleton(storage, DELEGATORS_KEY, STRING_LIST_CODEC)
