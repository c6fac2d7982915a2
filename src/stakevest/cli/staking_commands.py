"""
Staking CLI Commands

- simulate: replay a scripted scenario against a freshly deployed system
  running on a manual clock, then report every account's stake and rewards

Scenario file (YAML):

    start_time: 1700000000        # optional, unix seconds
    reward_rate: 1157407407407407 # reward base units per second
    reward_budget: 1000000000000000000000
    accounts:                     # staking tokens minted to each account
      alice: 10000
      bob: 5000
    actions:                      # "at" is seconds after start_time
      - {at: 0, account: alice, action: stake, amount: 10000}
      - {at: 86400, account: bob, action: stake, amount: 5000}
      - {at: 172800, action: set_rate, rate: 0}
      - {at: 432000, account: alice, action: claim}
      - {at: 432000, account: bob, action: exit}
    end_at: 432000                # optional final clock position
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml
from rich import box
from rich.table import Table

from stakevest.cli.common import _cli_fail, console, create_config_manager, emit_json
from stakevest.core.clock import ManualClock
from stakevest.core.constants import UINT256_MAX
from stakevest.core.exceptions import ConfigurationError, ContractError
from stakevest.deploy import DeployedSystem, deploy_system

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = 1_700_000_000
ACTIONS = ("stake", "withdraw", "claim", "exit", "set_rate")
REQUIRED_ARGS = {"stake": ("amount",), "withdraw": ("amount",), "set_rate": ("rate",)}


def load_scenario(path: Path) -> Dict[str, Any]:
    """Read and validate a scenario file."""
    with open(path, "r") as f:
        try:
            scenario = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise click.ClickException(f"Invalid scenario YAML: {exc}") from exc

    if not isinstance(scenario, dict):
        raise click.ClickException("Scenario must be a mapping")
    accounts = scenario.get("accounts") or {}
    if not isinstance(accounts, dict):
        raise click.ClickException("Scenario 'accounts' must map names to staking token amounts")
    actions = scenario.get("actions") or []
    if not isinstance(actions, list):
        raise click.ClickException("Scenario 'actions' must be a list")
    last_at = 0
    for index, action in enumerate(actions):
        if not isinstance(action, dict):
            raise click.ClickException(f"actions[{index}]: expected a mapping, got {action!r}")
        name = action.get("action")
        if name not in ACTIONS:
            raise click.ClickException(f"actions[{index}]: unknown action '{name}' (expected one of {ACTIONS})")
        at = action.get("at", last_at)
        if not isinstance(at, int) or at < last_at:
            raise click.ClickException(f"actions[{index}]: 'at' must be an integer >= {last_at}")
        if name != "set_rate" and "account" not in action:
            raise click.ClickException(f"actions[{index}]: '{name}' needs an account")
        for key in REQUIRED_ARGS.get(name, ()):
            value = action.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise click.ClickException(f"actions[{index}]: '{name}' needs a non-negative integer '{key}'")
        last_at = at
    end_at = scenario.get("end_at", last_at)
    if not isinstance(end_at, int) or end_at < last_at:
        raise click.ClickException(f"'end_at' must be an integer >= {last_at}")
    return scenario


def _run_action(system: DeployedSystem, action: Dict[str, Any]) -> Any:
    name = action["action"]
    staking = system.staking
    if name == "stake":
        return staking.stake(action["account"], action["amount"])
    if name == "withdraw":
        return staking.withdraw(action["account"], action["amount"])
    if name == "claim":
        return staking.get_reward(action["account"])
    if name == "exit":
        return staking.exit(action["account"])
    return staking.set_reward_rate(system.owner, action["rate"])


def run_scenario(ctx: click.Context, scenario: Dict[str, Any]) -> Dict[str, Any]:
    """Deploy, fund accounts, replay actions and collect the final report."""
    clock = ManualClock(scenario.get("start_time", DEFAULT_START_TIME))
    start = clock.now()
    manager = create_config_manager(ctx, overrides={
        "staking.reward_rate": scenario.get("reward_rate", 0),
        "staking.reward_budget": scenario.get("reward_budget", 0),
        "staking.paused": False,
    })
    system = deploy_system(manager, time_provider=clock.now)

    accounts = {name.lower(): amount for name, amount in (scenario.get("accounts") or {}).items()}
    for account, amount in accounts.items():
        system.staking_token.mint(system.owner, account, amount)
        system.staking_token.approve(account, system.staking.address, UINT256_MAX)

    log: List[Dict[str, Any]] = []
    for action in scenario.get("actions") or []:
        clock.set(start + action.get("at", clock.now() - start))
        if "account" in action:
            action = dict(action, account=str(action["account"]).lower())
        entry = {"at": clock.now() - start, **{k: v for k, v in action.items() if k != "at"}}
        try:
            result = _run_action(system, action)
        except ContractError as exc:
            # contract state was rolled back; report and keep replaying
            entry.update(status="reverted", reason=str(exc))
            logger.info(
                "Scenario action reverted",
                extra={"event": "cli.simulate_reverted", "action": action["action"], "reason": str(exc)},
            )
        else:
            entry.update(status="ok")
            if result is not None:
                entry["result"] = result
        log.append(entry)

    if "end_at" in scenario:
        clock.set(start + scenario["end_at"])

    report_accounts = {}
    for account in sorted(set(accounts) | set(system.staking.accumulator.balances)):
        report_accounts[account] = {
            "staked": system.staking.balance_of(account),
            "earned": system.staking.earned(account),
            "claimed": system.rewards_token.balance_of(account),
            "wallet": system.staking_token.balance_of(account),
        }

    return {
        "start_time": start,
        "end_time": clock.now(),
        "reward_rate": system.staking.reward_rate,
        "total_staked": system.staking.total_staked,
        "reward_per_unit": system.staking.reward_per_unit(),
        "reward_pool_balance": system.rewards_token.balance_of(system.staking.address),
        "actions": log,
        "accounts": report_accounts,
    }


@click.group()
def staking():
    """Staking pool tools."""
    pass


@staking.command("simulate")
@click.argument("scenario_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def staking_simulate(ctx: click.Context, scenario_file: Path):
    """
    Replay SCENARIO_FILE against a fresh deployment on a manual clock.

    Example:
        stakevest staking simulate scenarios/five_days.yaml
    """
    scenario = load_scenario(scenario_file)
    try:
        report = run_scenario(ctx, scenario)
    except (ConfigurationError, ContractError, ValueError) as exc:
        _cli_fail(exc)

    if ctx.obj.get("json_output"):
        emit_json(report)
        return

    actions = Table(title="Actions", box=box.SIMPLE)
    actions.add_column("At (s)", justify="right", style="cyan")
    actions.add_column("Action")
    actions.add_column("Account")
    actions.add_column("Status")
    for entry in report["actions"]:
        status = "[green]ok[/]" if entry["status"] == "ok" else f"[red]reverted[/] {entry['reason']}"
        actions.add_row(str(entry["at"]), entry["action"], entry.get("account", "-"), status)
    console.print(actions)

    table = Table(title="Accounts", box=box.ROUNDED)
    table.add_column("Account", style="cyan")
    table.add_column("Staked", justify="right")
    table.add_column("Earned (pending)", justify="right", style="yellow")
    table.add_column("Claimed", justify="right", style="green")
    for account, row in report["accounts"].items():
        table.add_row(account, str(row["staked"]), str(row["earned"]), str(row["claimed"]))
    console.print(table)
    console.print(
        f"Total staked: [bold]{report['total_staked']}[/]  "
        f"Reward rate: [bold]{report['reward_rate']}[/]/s  "
        f"Pool balance: [bold]{report['reward_pool_balance']}[/]"
    )
