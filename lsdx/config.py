"""
LSDX Staking Configuration

Policy and host parameters shared by the contract and the local host.
Loaded from the [staking] section of config.toml with LSDX_* environment
variable overrides.
"""

import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from .constants import (
    LSDX_BOND_DENOM,
    LSDX_CLAIM_MODEL,
    LSDX_EXPIRY_BLOCKS,
    LSDX_VALIDATOR_POLICY,
)
from .exceptions import ConfigurationError

VALIDATOR_POLICIES = ("fixed", "lowest_commission")
CLAIM_MODELS = ("global", "per_delegator")


@dataclass
class StakingConfig:
    """
    Staking engine configuration.

    Attributes:
        validator_policy: "fixed" delegates to the configured validator,
            "lowest_commission" re-selects the cheapest validator on every bond
        claim_model: "global" pools rewards into the exchange rate,
            "per_delegator" splits rewards per delegator record
        expiry_blocks: Blocks after the last (re)delegation before the sweep
            compounds a position or completes a pending unbond
        bond_denom: Staking denomination used by the local host
        unbonding_blocks: Local host delay before undelegated funds are liquid
        state_db_path: SQLite file for persisted contract state (empty = memory only)
    """

    validator_policy: str = str(LSDX_VALIDATOR_POLICY)
    claim_model: str = str(LSDX_CLAIM_MODEL)
    expiry_blocks: int = int(LSDX_EXPIRY_BLOCKS)
    bond_denom: str = str(LSDX_BOND_DENOM)
    unbonding_blocks: int = 0
    state_db_path: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StakingConfig':
        """Create from dictionary."""
        defaults = cls()
        return cls(
            validator_policy=data.get('validator_policy', defaults.validator_policy),
            claim_model=data.get('claim_model', defaults.claim_model),
            expiry_blocks=int(data.get('expiry_blocks', defaults.expiry_blocks)),
            bond_denom=data.get('bond_denom', defaults.bond_denom),
            unbonding_blocks=int(data.get('unbonding_blocks', defaults.unbonding_blocks)),
            state_db_path=data.get('state_db_path', defaults.state_db_path),
        )

    @classmethod
    def from_file(cls, config_path: str) -> 'StakingConfig':
        """
        Load configuration from TOML file.

        Args:
            config_path: Path to config.toml

        Returns:
            StakingConfig instance (defaults if the file does not exist)
        """
        path = Path(config_path)

        if not path.exists():
            config = cls()
            config.apply_env()
            return config

        try:
            with open(path, 'rb') as f:
                config_data = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        config = cls.from_dict(config_data.get('staking', {}))
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("LSDX_VALIDATOR_POLICY"):
            self.validator_policy = v
        if v := os.environ.get("LSDX_CLAIM_MODEL"):
            self.claim_model = v
        if v := os.environ.get("LSDX_EXPIRY_BLOCKS"):
            self.expiry_blocks = int(v)
        if v := os.environ.get("LSDX_BOND_DENOM"):
            self.bond_denom = v
        if v := os.environ.get("LSDX_UNBONDING_BLOCKS"):
            self.unbonding_blocks = int(v)
        if v := os.environ.get("LSDX_STATE_DB_PATH"):
            self.state_db_path = v

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.validator_policy not in VALIDATOR_POLICIES:
            raise ConfigurationError(
                f"Unknown validator_policy {self.validator_policy!r} "
                f"(expected one of {', '.join(VALIDATOR_POLICIES)})"
            )
        if self.claim_model not in CLAIM_MODELS:
            raise ConfigurationError(
                f"Unknown claim_model {self.claim_model!r} "
                f"(expected one of {', '.join(CLAIM_MODELS)})"
            )
        if self.expiry_blocks <= 0:
            raise ConfigurationError("expiry_blocks must be positive")
        if self.unbonding_blocks < 0:
            raise ConfigurationError("unbonding_blocks cannot be negative")
        if not self.bond_denom:
            raise ConfigurationError("bond_denom cannot be empty")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[str] = None) -> StakingConfig:
    """Load and validate configuration; environment overrides apply either way."""
    if config_path:
        config = StakingConfig.from_file(config_path)
    else:
        config = StakingConfig()
        config.apply_env()
    config.validate()
    return config
