#!/usr/bin/env python3
"""
LSDX Command Line Interface

Usage:
    lsdx check-config [--config FILE]
    lsdx inspect <state_db> [--contract ADDRESS]
"""

import asyncio
from typing import Any, Dict, Optional

import click

from .config import load_config
from .constants import DEFAULT_CONTRACT_ADDRESS, FALLBACK_RATIO
from .exceptions import ConfigurationError, LsdxError
from .host.api import AddressApi
from .numeric import decimal_from_ratio, format_decimal
from .staking.delegators import DelegatorBook
from .staking.ledger import TokenLedger
from .staking.state import contract_config, invest_info, token_info, total_supply
from .storage.sqlite import SqliteStateStore


def _section(title: str) -> None:
    click.echo()
    click.echo(click.style(title, fg="cyan", bold=True))


async def _read_state(db_path: str, contract: str) -> Optional[Dict[str, Any]]:
    store = await SqliteStateStore.create(db_path)
    try:
        storage = await store.load(contract)
    finally:
        await store.close()
    if len(storage) == 0:
        return None

    api = AddressApi()
    ledger = TokenLedger(storage, api)
    book = DelegatorBook(storage, api)
    supply = total_supply(storage).load()
    return {
        "token": token_info(storage).load(),
        "invest": invest_info(storage).load(),
        "config": contract_config(storage).load(),
        "supply": supply,
        "holders": ledger.holders(),
        "claims": ledger.claimants(),
        "delegations": list(book.records()),
    }


@click.group()
@click.version_option(version="0.3.0", prog_name="lsdx")
def cli():
    """LSDX liquid staking tools."""
    pass


@cli.command("check-config")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config.toml")
def check_config_cmd(config_path: Optional[str]):
    """Load, validate and print the staking configuration."""
    try:
        config = load_config(config_path)
    except (ConfigurationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    click.echo(click.style("✓ Configuration is valid", fg="green"))
    for key, value in config.to_dict().items():
        click.echo(f"  {key}: {value}")


@cli.command("inspect")
@click.argument("state_db", type=click.Path(exists=True, dir_okay=False))
@click.option("--contract", default=DEFAULT_CONTRACT_ADDRESS, show_default=True,
              help="Contract address")
def inspect_cmd(state_db: str, contract: str):
    """Show the persisted state of a staking contract.

    Examples:

        lsdx inspect data/state.db --contract cosmos2contract
    """
    try:
        state = asyncio.run(_read_state(state_db, contract))
    except LsdxError as e:
        raise click.ClickException(f"Failed to read state: {e}")
    if state is None:
        raise click.ClickException(f"No state stored for contract {contract}")

    token, invest, config, supply = state["token"], state["invest"], state["config"], state["supply"]
    if supply.issued == 0:
        nominal = FALLBACK_RATIO
    else:
        nominal = decimal_from_ratio(supply.bonded, supply.issued)

    _section(f"{token.name} ({token.symbol})")
    click.echo(f"  Owner:          {invest.owner}")
    click.echo(f"  Validator:      {invest.validator}")
    click.echo(f"  Exit tax:       {format_decimal(invest.exit_tax)}")
    click.echo(f"  Min withdrawal: {invest.min_withdrawal}")
    click.echo(f"  Policy:         {config.validator_policy.value} / {config.claim_model.value}")

    _section("Supply")
    click.echo(f"  Issued:  {supply.issued}")
    click.echo(f"  Bonded:  {supply.bonded}{invest.bond_denom}")
    click.echo(f"  Claims:  {supply.claims}{invest.bond_denom}")
    click.echo(f"  Nominal: {format_decimal(nominal)}")

    _section("Balances")
    if not state["holders"] and not state["claims"]:
        click.echo("  (none)")
    holders = set(state["holders"]) | set(state["claims"])
    for address in sorted(holders):
        balance = state["holders"].get(address, 0)
        claim = state["claims"].get(address, 0)
        click.echo(f"  {address}: {balance}" + (f" (claim {claim})" if claim else ""))

    if state["delegations"]:
        _section("Delegators")
        for info in state["delegations"]:
            click.echo(
                f"  {info.delegator}: {info.amount} on {info.validator or '-'}, "
                f"reward {info.accrued_reward}, {info.status.value} since {info.last_delegate_height}"
            )


def main():
    cli()


if __name__ == "__main__":
    main()
