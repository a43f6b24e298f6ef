"""
CLI Test Suite

Coverage:
  - check-config on valid and invalid files
  - inspect on a persisted state database
"""

import asyncio
import os
import sys
from decimal import Decimal

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lsdx.chain import LocalChain, sample_validator
from lsdx.cli import cli
from lsdx.config import StakingConfig
from lsdx.constants import DEFAULT_CONTRACT_ADDRESS
from lsdx.host.types import coins
from lsdx.staking import Bond, InstantiateMsg, Unbond
from lsdx.storage import SqliteStateStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("LSDX_VALIDATOR_POLICY", "LSDX_CLAIM_MODEL", "LSDX_EXPIRY_BLOCKS"):
        monkeypatch.delenv(key, raising=False)


async def build_state(db_path: str) -> None:
    store = await SqliteStateStore.create(db_path)
    try:
        config = StakingConfig(validator_policy="fixed", claim_model="per_delegator")
        chain = LocalChain(config, validators=[sample_validator("val1")], store=store)
        chain.fund("bob", 2000)
        await chain.instantiate("creator", InstantiateMsg(
            name="Staked Token", symbol="STK", decimals=6, validator="val1",
            exit_tax=Decimal("0.1"), min_withdrawal=10,
        ))
        await chain.execute(DEFAULT_CONTRACT_ADDRESS, "bob", Bond(), funds=coins(1000, "ustake"))
        await chain.execute(DEFAULT_CONTRACT_ADDRESS, "bob", Unbond(amount=100))
    finally:
        await store.close()


class TestCheckConfig:
    """lsdx check-config"""

    def test_valid_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[staking]\nclaim_model = "per_delegator"\nexpiry_blocks = 77\n')

        result = CliRunner().invoke(cli, ["check-config", "-c", str(path)])
        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output
        assert "claim_model: per_delegator" in result.output
        assert "expiry_blocks: 77" in result.output

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[staking]\nvalidator_policy = "random"\n')

        result = CliRunner().invoke(cli, ["check-config", "--config", str(path)])
        assert result.exit_code != 0
        assert "Invalid configuration" in result.output


class TestInspect:
    """lsdx inspect"""

    def test_inspect_state(self, tmp_path):
        db_path = str(tmp_path / "state.db")
        asyncio.run(build_state(db_path))

        result = CliRunner().invoke(cli, ["inspect", db_path])
        assert result.exit_code == 0, result.output
        assert "Staked Token (STK)" in result.output
        assert "Exit tax:       0.1" in result.output
        assert "Issued:  910" in result.output
        assert "bob: 900 (claim 90)" in result.output
        assert "creator: 10" in result.output
        assert "unbond_requested" in result.output

    def test_unknown_contract(self, tmp_path):
        db_path = str(tmp_path / "state.db")
        asyncio.run(build_state(db_path))

        result = CliRunner().invoke(cli, ["inspect", db_path, "--contract", "other"])
        assert result.exit_code != 0
        assert "No state stored for contract other" in result.output
