"""
Staking and vesting instrumentation.

Prometheus metrics tracking staked amounts, paid rewards and vested
withdrawals, with helpers that are safe to call from contract entry points
after the state change has been committed.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

staking_volume_counter = Counter(
    "stakevest_staked_total",
    "Total staking-token units moved by stake/withdraw",
    ["contract", "direction"],
)

rewards_paid_counter = Counter(
    "stakevest_rewards_paid_total", "Total reward-token units paid to stakers", ["contract"]
)

vesting_withdrawn_counter = Counter(
    "stakevest_vesting_withdrawn_total",
    "Total vested token units withdrawn by beneficiaries",
    ["contract"],
)

total_staked_gauge = Gauge(
    "stakevest_total_staked", "Current total staked in a staking contract", ["contract"]
)

scheduled_tokens_gauge = Gauge(
    "stakevest_scheduled_tokens",
    "Tokens committed across all vesting schedules",
    ["contract"],
)


def record_stake_movement(contract: str, direction: str, amount: int, total_staked: int) -> None:
    """Count a stake ("in") or withdrawal ("out") and refresh the total gauge."""
    if amount > 0:
        staking_volume_counter.labels(contract=contract, direction=direction).inc(amount)
    total_staked_gauge.labels(contract=contract).set(total_staked)


def record_reward_paid(contract: str, amount: int) -> None:
    if amount <= 0:
        return
    rewards_paid_counter.labels(contract=contract).inc(amount)


def record_vesting_withdrawal(contract: str, amount: int) -> None:
    if amount <= 0:
        return
    vesting_withdrawn_counter.labels(contract=contract).inc(amount)


def update_scheduled_tokens(contract: str, scheduled_tokens: int) -> None:
    scheduled_tokens_gauge.labels(contract=contract).set(scheduled_tokens)
