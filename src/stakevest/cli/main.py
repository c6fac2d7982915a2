"""
Main CLI entry point for stakevest.

    stakevest [--json-output] [--environment ENV] [--config-dir DIR] COMMAND

Commands:
- config show|get     inspect the merged configuration
- deploy              deploy tokens, staking pool and vesting vault from config
- vesting preview     print a schedule's entitlement curve
- staking simulate    replay a staking scenario on a manual clock
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from rich import box
from rich.panel import Panel
from rich.table import Table

from stakevest import __version__
from stakevest.cli.common import _cli_fail, console, create_config_manager, emit_json
from stakevest.config_manager import DEFAULT_CONFIG_DIR, Environment
from stakevest.core.exceptions import ConfigurationError, ContractError
from stakevest.core.logging_config import VALID_LEVELS, setup_logging
from stakevest.deploy import deploy_system

logger = logging.getLogger(__name__)


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.version_option(__version__, prog_name="stakevest")
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    '--environment',
    type=click.Choice([env.value for env in Environment]),
    envvar='STAKEVEST_ENVIRONMENT',
    default='development',
    show_default=True,
    help='Configuration environment.',
)
@click.option(
    '--config-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_DIR,
    show_default=True,
    help='Directory containing environment config files.',
)
@click.option(
    '--log-level',
    type=click.Choice(VALID_LEVELS, case_sensitive=False),
    help='Override logging.level from the configuration.',
)
@click.option('--log-file', type=click.Path(dir_okay=False), help='Override logging.log_file from the configuration.')
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    environment: str,
    config_dir: Path,
    log_level: Optional[str],
    log_file: Optional[str],
):
    """
    stakevest - staking rewards and token vesting toolkit
    """
    ctx.ensure_object(dict)
    ctx.obj['json_output'] = json_output
    ctx.obj['environment'] = environment
    ctx.obj['config_dir'] = str(config_dir)
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file

    # Commands that load configuration reapply logging from its logging section
    if log_level or log_file:
        setup_logging(
            name="stakevest",
            log_file=log_file,
            level=log_level or "INFO",
            environment=environment,
        )


# ============================================================================
# Config Commands
# ============================================================================

def _emit_config_payload(ctx: click.Context, payload: Dict[str, Any], output_format: str = "auto") -> None:
    """Render config payload respecting CLI formatting preferences."""
    want_json = ctx.obj.get("json_output") or output_format == "json"
    if want_json:
        emit_json(payload)
        return

    if output_format == "yaml":
        click.echo(yaml.safe_dump(payload, sort_keys=False))
        return

    if isinstance(payload.get("config"), dict):
        table = Table(title=payload.get("section", "Configuration"), box=box.SIMPLE)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in payload["config"].items():
            table.add_row(str(key), json.dumps(value, indent=2) if isinstance(value, (dict, list)) else str(value))
        console.print(table)
    else:
        console.print(Panel.fit(str(payload)))


@cli.group("config")
def config_group():
    """Inspect the merged configuration."""
    pass


@config_group.command("show")
@click.option("--section", help="Return only a specific configuration section.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["auto", "json", "yaml"]),
    default="auto",
    show_default=True,
)
@click.pass_context
def config_show(ctx: click.Context, section: Optional[str], output_format: str):
    """Display current configuration for the selected environment."""
    try:
        manager = create_config_manager(ctx)
    except ConfigurationError as exc:
        _cli_fail(exc)
    if section:
        section_data = manager.get_section(section)
        if section_data is None:
            raise click.ClickException(f"Configuration section '{section}' not found.")
        payload = {"section": section, "config": section_data, "environment": manager.environment.value}
    else:
        payload = {"environment": manager.environment.value, "config": manager.to_dict()}
    _emit_config_payload(ctx, payload, output_format)


@config_group.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str):
    """Fetch a single configuration value (dot notation, e.g. staking.reward_rate)."""
    try:
        manager = create_config_manager(ctx)
    except ConfigurationError as exc:
        _cli_fail(exc)
    value = manager.get(key)
    if value is None:
        raise click.ClickException(f"Configuration key '{key}' not found.")
    _emit_config_payload(ctx, {"key": key, "value": value, "environment": manager.environment.value}, "json")


# ============================================================================
# Deploy Command
# ============================================================================

@cli.command("deploy")
@click.option("--owner", help="Override deployment.owner")
@click.option("--reward-rate", type=click.IntRange(min=0), help="Override staking.reward_rate")
@click.option("--reward-budget", type=click.IntRange(min=0), help="Override staking.reward_budget")
@click.pass_context
def deploy(ctx: click.Context, owner: Optional[str], reward_rate: Optional[int], reward_budget: Optional[int]):
    """
    Deploy tokens, the staking pool and the vesting vault in memory and
    print the seeded state.

    Example:
        stakevest --environment testnet deploy --reward-rate 1000
    """
    try:
        manager = create_config_manager(ctx, overrides={
            "deployment.owner": owner,
            "staking.reward_rate": reward_rate,
            "staking.reward_budget": reward_budget,
        })
        system = deploy_system(manager)
    except (ConfigurationError, ContractError) as exc:
        _cli_fail(exc)

    if ctx.obj.get("json_output"):
        emit_json(system.to_dict())
        return

    table = Table(show_header=False, box=box.ROUNDED)
    table.add_row("[bold cyan]Environment", manager.environment.value)
    table.add_row("[bold cyan]Owner", system.owner)
    table.add_row("[bold cyan]Staking token", f"{system.staking_token.symbol} {system.staking_token.address}")
    table.add_row("[bold cyan]Reward token", f"{system.rewards_token.symbol} {system.rewards_token.address}")
    table.add_row("[bold cyan]Vesting token", f"{system.vesting_token.symbol} {system.vesting_token.address}")
    table.add_row("[bold cyan]StakingRewards", system.staking.address)
    table.add_row("[bold cyan]Reward rate", f"{system.staking.reward_rate}/s")
    table.add_row(
        "[bold cyan]Reward budget",
        str(system.rewards_token.balance_of(system.staking.address)),
    )
    table.add_row("[bold cyan]Staking paused", "[red]Yes[/]" if system.staking.paused else "[green]No[/]")
    table.add_row("[bold cyan]TokenVesting", system.vesting.address)
    table.add_row("[bold cyan]Vesting max supply", str(system.vesting.max_supply))
    table.add_row("[bold cyan]Scheduled tokens", str(system.vesting.scheduled_tokens))
    console.print(Panel(table, title="[bold green]Deployment", border_style="green"))

    schedules = system.vesting.ledger.schedules
    if schedules:
        sched_table = Table(title="Vesting schedules", box=box.SIMPLE)
        sched_table.add_column("Beneficiary", style="cyan")
        sched_table.add_column("Cliff", justify="right")
        sched_table.add_column("End", justify="right")
        sched_table.add_column("Total", justify="right")
        for beneficiary, schedule in schedules.items():
            sched_table.add_row(
                beneficiary,
                str(schedule.cliff_time),
                str(schedule.end_time),
                str(schedule.total_amount),
            )
        console.print(sched_table)


# ============================================================================
# Command groups
# ============================================================================

from stakevest.cli.staking_commands import staking  # noqa: E402
from stakevest.cli.vesting_commands import vesting  # noqa: E402

cli.add_command(staking)
cli.add_command(vesting)


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)
    except (ContractError, ConfigurationError, ValueError, KeyError) as exc:
        _cli_fail(exc)


if __name__ == '__main__':
    main()
