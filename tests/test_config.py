"""
Configuration Test Suite

Coverage:
  - StakingConfig defaults and dict loading
  - TOML file loading and malformed files
  - LSDX_* environment overrides
  - Validation errors
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.config import StakingConfig, load_config
from lsdx.exceptions import ConfigurationError

ENV_KEYS = (
    "LSDX_VALIDATOR_POLICY",
    "LSDX_CLAIM_MODEL",
    "LSDX_EXPIRY_BLOCKS",
    "LSDX_BOND_DENOM",
    "LSDX_UNBONDING_BLOCKS",
    "LSDX_STATE_DB_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def write_config(tmp_path, body: str) -> str:
    path = tmp_path / "config.toml"
    path.write_text(body)
    return str(path)


# ══════════════════════════════════════════════════════════════════════
#  LOADING
# ══════════════════════════════════════════════════════════════════════


class TestLoading:
    """File and dict loading."""

    def test_defaults_are_valid(self):
        config = StakingConfig()
        assert config.validate() is True
        assert config.unbonding_blocks == 0
        assert config.state_db_path == ""

    def test_from_dict_partial(self):
        config = StakingConfig.from_dict({"claim_model": "per_delegator", "expiry_blocks": "50"})
        assert config.claim_model == "per_delegator"
        assert config.expiry_blocks == 50
        assert config.validator_policy == StakingConfig().validator_policy

    def test_from_file(self, tmp_path):
        path = write_config(tmp_path, """
[staking]
validator_policy = "lowest_commission"
claim_model = "per_delegator"
expiry_blocks = 100
bond_denom = "uatom"
unbonding_blocks = 7
""")
        config = StakingConfig.from_file(path)
        assert config.validator_policy == "lowest_commission"
        assert config.claim_model == "per_delegator"
        assert config.expiry_blocks == 100
        assert config.bond_denom == "uatom"
        assert config.unbonding_blocks == 7

    def test_missing_file_gives_defaults(self, tmp_path):
        config = StakingConfig.from_file(str(tmp_path / "absent.toml"))
        assert config == StakingConfig()

    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path, "[staking\nexpiry_blocks = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            StakingConfig.from_file(path)

    def test_to_dict(self):
        data = StakingConfig(expiry_blocks=9).to_dict()
        assert data["expiry_blocks"] == 9
        assert set(data) == {
            "validator_policy", "claim_model", "expiry_blocks",
            "bond_denom", "unbonding_blocks", "state_db_path",
        }


# ══════════════════════════════════════════════════════════════════════
#  ENVIRONMENT
# ══════════════════════════════════════════════════════════════════════


class TestEnvironment:
    """LSDX_* overrides."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, '[staking]\nclaim_model = "global"\nexpiry_blocks = 100\n')
        monkeypatch.setenv("LSDX_CLAIM_MODEL", "per_delegator")
        monkeypatch.setenv("LSDX_EXPIRY_BLOCKS", "42")

        config = StakingConfig.from_file(path)
        assert config.claim_model == "per_delegator"
        assert config.expiry_blocks == 42

    def test_env_applies_without_file(self, monkeypatch):
        monkeypatch.setenv("LSDX_VALIDATOR_POLICY", "lowest_commission")
        monkeypatch.setenv("LSDX_STATE_DB_PATH", "/tmp/state.db")
        config = load_config()
        assert config.validator_policy == "lowest_commission"
        assert config.state_db_path == "/tmp/state.db"

    def test_env_applies_to_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LSDX_CLAIM_MODEL", "per_delegator")
        config = load_config(str(tmp_path / "nope.toml"))
        assert config.claim_model == "per_delegator"

    def test_invalid_env_value_rejected(self, monkeypatch):
        monkeypatch.setenv("LSDX_CLAIM_MODEL", "shared")
        with pytest.raises(ConfigurationError, match="Unknown claim_model 'shared'"):
            load_config()


# ══════════════════════════════════════════════════════════════════════
#  VALIDATION
# ══════════════════════════════════════════════════════════════════════


class TestValidation:
    """validate() error paths."""

    def test_unknown_policy(self):
        with pytest.raises(ConfigurationError, match="validator_policy"):
            StakingConfig(validator_policy="random").validate()

    def test_non_positive_expiry(self):
        with pytest.raises(ConfigurationError, match="expiry_blocks must be positive"):
            StakingConfig(expiry_blocks=0).validate()

    def test_negative_unbonding(self):
        with pytest.raises(ConfigurationError, match="unbonding_blocks"):
            StakingConfig(unbonding_blocks=-1).validate()

    def test_empty_denom(self):
        with pytest.raises(ConfigurationError, match="bond_denom"):
            StakingConfig(bond_denom="").validate()

    def test_load_config_validates_file(self, tmp_path):
        path = write_config(tmp_path, "[staking]\nexpiry_blocks = -5\n")
        with pytest.raises(ConfigurationError):
            load_config(path)
