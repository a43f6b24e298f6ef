"""
LSDX Liquid Staking Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole contract. For direct module access, import from submodules:

    from lsdx.staking import StakingContract, InstantiateMsg
    from lsdx.chain import LocalChain
    from lsdx.config import StakingConfig
"""

__version__ = "0.3.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'StakingContract':
        from .staking.contract import StakingContract
        return StakingContract
    elif name == 'LocalChain':
        from .chain.local import LocalChain
        return LocalChain
    elif name == 'StakingConfig':
        from .config import StakingConfig
        return StakingConfig
    elif name == 'LsdxError':
        from .exceptions import LsdxError
        return LsdxError
    raise AttributeError(f"module 'lsdx' has no attribute {name!r}")

__all__ = ['StakingContract', 'LocalChain', 'StakingConfig', 'LsdxError']
