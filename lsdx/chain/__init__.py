"""
LSDX Local Host

In-process host runtime and test doubles for the staking contract.
"""

from .local import LocalChain, LocalQuerier, ChainState, Unbonding
from .testing import (
    MOCK_CONTRACT_ADDR,
    MockQuerier,
    mock_dependencies,
    mock_env,
    mock_info,
    sample_delegation,
    sample_validator,
)

__all__ = [
    "LocalChain",
    "LocalQuerier",
    "ChainState",
    "Unbonding",
    "MOCK_CONTRACT_ADDR",
    "MockQuerier",
    "mock_dependencies",
    "mock_env",
    "mock_info",
    "sample_delegation",
    "sample_validator",
]
