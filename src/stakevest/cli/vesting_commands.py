"""
Vesting CLI Commands

Offline tooling for vesting schedules:
- preview: print the entitlement curve of a cliff-then-linear schedule
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import click
from rich import box
from rich.panel import Panel
from rich.table import Table

from stakevest.cli.common import console, emit_json
from stakevest.core.constants import SECONDS_PER_DAY
from stakevest.core.defi.vesting import VestingSchedule, vested_amount

logger = logging.getLogger(__name__)


def _sample_times(schedule: VestingSchedule, samples: int) -> List[int]:
    """Evenly spaced times from start to end, plus the cliff itself."""
    span = schedule.end_time - schedule.start_time
    times = {schedule.start_time, schedule.cliff_time, schedule.end_time}
    if samples > 1 and span > 0:
        for i in range(samples):
            times.add(schedule.start_time + span * i // (samples - 1))
    return sorted(times)


def build_preview(schedule: VestingSchedule, samples: int) -> Dict[str, Any]:
    # entitlement curve ignores past withdrawals; they only lower what is withdrawable
    fresh = VestingSchedule(**dict(schedule.to_dict(), total_withdrawn=0))
    points = []
    for t in _sample_times(schedule, samples):
        vested = vested_amount(fresh, t)
        points.append({
            "time": t,
            "days_from_start": (t - schedule.start_time) / SECONDS_PER_DAY,
            "vested": vested,
            "withdrawable": max(vested - schedule.total_withdrawn, 0),
            "percent": (vested * 100 / schedule.total_amount) if schedule.total_amount else 0.0,
        })
    return {"schedule": schedule.to_dict(), "points": points}


@click.group()
def vesting():
    """Vesting schedule tools."""
    pass


@vesting.command("preview")
@click.option("--total-amount", required=True, type=click.IntRange(min=0), help="Total allocation (base units)")
@click.option("--unlock-amount", default=0, type=click.IntRange(min=0), show_default=True,
              help="Amount released at the cliff (base units)")
@click.option("--start-time", default=0, type=click.IntRange(min=0), show_default=True,
              help="Schedule start (unix seconds)")
@click.option("--cliff-days", default=0, type=click.IntRange(min=0), show_default=True,
              help="Cliff, in days after start")
@click.option("--end-days", required=True, type=click.IntRange(min=0), help="End, in days after start")
@click.option("--withdrawn", default=0, type=click.IntRange(min=0), show_default=True,
              help="Amount already withdrawn")
@click.option("--samples", default=12, type=click.IntRange(2, 500), show_default=True,
              help="Number of evenly spaced sample points")
@click.pass_context
def vesting_preview(
    ctx: click.Context,
    total_amount: int,
    unlock_amount: int,
    start_time: int,
    cliff_days: int,
    end_days: int,
    withdrawn: int,
    samples: int,
):
    """
    Show how much of a schedule is vested over time.

    Example:
        stakevest vesting preview --total-amount 1000000000000000000 \\
            --unlock-amount 200000000000000000 --cliff-days 30 --end-days 365
    """
    if cliff_days > end_days:
        raise click.BadParameter("cliff must not be after end", param_hint="--cliff-days")
    if unlock_amount > total_amount:
        raise click.BadParameter("unlock amount exceeds total amount", param_hint="--unlock-amount")
    if withdrawn > total_amount:
        raise click.BadParameter("withdrawn exceeds total amount", param_hint="--withdrawn")

    schedule = VestingSchedule(
        start_time=start_time,
        cliff_time=start_time + cliff_days * SECONDS_PER_DAY,
        end_time=start_time + end_days * SECONDS_PER_DAY,
        unlock_amount=unlock_amount,
        total_amount=total_amount,
        total_withdrawn=withdrawn,
    )
    preview = build_preview(schedule, samples)
    logger.debug("Vesting preview built", extra={"event": "cli.vesting_preview", "points": len(preview["points"])})

    if ctx.obj.get("json_output"):
        emit_json(preview)
        return

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("[bold cyan]Total", str(total_amount))
    summary.add_row("[bold cyan]Unlock at cliff", str(unlock_amount))
    summary.add_row("[bold cyan]Cliff", f"day {cliff_days}")
    summary.add_row("[bold cyan]End", f"day {end_days}")
    console.print(Panel(summary, title="[bold green]Vesting Schedule", border_style="green"))

    table = Table(title="Entitlement", box=box.SIMPLE)
    table.add_column("Day", style="cyan", justify="right")
    table.add_column("Vested", style="green", justify="right")
    table.add_column("Withdrawable", style="yellow", justify="right")
    table.add_column("%", justify="right")
    for point in preview["points"]:
        table.add_row(
            f"{point['days_from_start']:.1f}",
            str(point["vested"]),
            str(point["withdrawable"]),
            f"{point['percent']:.2f}",
        )
    console.print(table)
