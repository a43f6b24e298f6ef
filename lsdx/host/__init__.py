"""
LSDX Host Interfaces

Types, address codec, query interface and outbound instructions shared by
the staking contract and any host that runs it.
"""

from .types import (
    BlockInfo,
    Coin,
    Env,
    FullDelegation,
    MessageInfo,
    Validator,
    coin,
    coins,
    find_coin,
)
from .api import Api, AddressApi
from .querier import Querier
from .instructions import (
    BankSend,
    Delegate,
    Instruction,
    Redelegate,
    Response,
    SelfInvoke,
    Undelegate,
    WithdrawRewards,
)

__all__ = [
    "BlockInfo",
    "Coin",
    "Env",
    "FullDelegation",
    "MessageInfo",
    "Validator",
    "coin",
    "coins",
    "find_coin",
    "Api",
    "AddressApi",
    "Querier",
    "BankSend",
    "Delegate",
    "Instruction",
    "Redelegate",
    "Response",
    "SelfInvoke",
    "Undelegate",
    "WithdrawRewards",
]
