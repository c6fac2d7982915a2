"""
Staking Rewards - continuous-time reward distribution.

A fixed reward_rate (reward-token units per second) is shared among all
stakers in proportion to their stake and the time it was held. Instead of
touching every account whenever time passes, a single accumulator tracks
the reward earned by one staked unit since deployment:

    reward_per_unit = stored + (now - last_update) * rate * PRECISION // total_staked

and each account remembers the accumulator value it was last settled at.
An account's entitlement is its stake times the accumulator growth since that
snapshot, plus rewards already credited to it.

Every mutating entry point first runs checkpoint(account):
1. advance the accumulator to now
2. move last_update_time to now
3. credit the account's earnings against the advanced accumulator
4. record the advanced accumulator as the account's new baseline

Skipping or reordering these steps either shorts the account or pays it
twice on its next checkpoint.

While total_staked is zero the accumulator does not move, so reward emitted
over empty periods is not assigned to anyone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..clock import TimeProvider
from ..constants import PRECISION
from ..contracts.access import ManagedContract, TokenLike, is_zero_address, normalize_address
from ..events import EventLog
from ..exceptions import PreconditionError
from .. import metrics, safe_math

logger = logging.getLogger(__name__)


@dataclass
class RewardAccumulator:
    """Accumulator and per-account bookkeeping for one reward stream."""

    reward_rate: int = 0
    reward_per_unit_stored: int = 0
    last_update_time: int = 0
    total_staked: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    user_reward_per_unit_paid: dict[str, int] = field(default_factory=dict)
    rewards: dict[str, int] = field(default_factory=dict)

    def reward_per_unit(self, now: int) -> int:
        """Accumulator value at ``now`` without mutating state."""
        if self.total_staked == 0:
            return self.reward_per_unit_stored
        elapsed = safe_math.sub(now, self.last_update_time)
        growth = safe_math.mul_div(
            safe_math.mul(elapsed, self.reward_rate), PRECISION, self.total_staked
        )
        return safe_math.add(self.reward_per_unit_stored, growth)

    def earned(self, account: str, now: int) -> int:
        """Rewards credited plus rewards accrued since the account's last checkpoint."""
        return self._earned_at(account, self.reward_per_unit(now))

    def _earned_at(self, account: str, reward_per_unit: int) -> int:
        delta = safe_math.sub(reward_per_unit, self.user_reward_per_unit_paid.get(account, 0))
        accrued = safe_math.mul_div(self.balances.get(account, 0), delta, PRECISION)
        return safe_math.add(accrued, self.rewards.get(account, 0))

    def checkpoint(self, account: str, now: int) -> None:
        self.reward_per_unit_stored = self.reward_per_unit(now)
        self.last_update_time = now
        self.rewards[account] = self._earned_at(account, self.reward_per_unit_stored)
        self.user_reward_per_unit_paid[account] = self.reward_per_unit_stored

    def increase_stake(self, account: str, amount: int) -> None:
        self.total_staked = safe_math.add(self.total_staked, amount)
        self.balances[account] = safe_math.add(self.balances.get(account, 0), amount)

    def decrease_stake(self, account: str, amount: int) -> None:
        # Underflow on either side traps before anything is written
        new_total = safe_math.sub(self.total_staked, amount)
        new_balance = safe_math.sub(self.balances.get(account, 0), amount)
        self.total_staked = new_total
        self.balances[account] = new_balance

    def take_reward(self, account: str) -> int:
        reward = self.rewards.get(account, 0)
        self.rewards[account] = 0
        return reward


class StakingRewards(ManagedContract):
    """
    Single-asset staking pool paying a second token at a fixed rate.

    Features:
    - stake / withdraw / get_reward / exit for any account
    - owner-only reward rate changes and pause switch (pause blocks stake)
    - atomic calls: a failed token movement reverts the whole call
    - reentrancy-safe token pushes and pulls

    The contract must hold enough reward tokens to cover claims; a claim the
    balance cannot cover fails and leaves the account's rewards intact.
    """

    _state_fields = ("accumulator",)

    def __init__(
        self,
        owner: str,
        staking_token: TokenLike,
        rewards_token: TokenLike,
        reward_rate: int = 0,
        address: str = "",
        event_log: EventLog | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        super().__init__(owner, address=address, event_log=event_log, time_provider=time_provider)
        safe_math.require_uint(reward_rate, "reward_rate")
        self.staking_token = staking_token
        self.rewards_token = rewards_token
        self.accumulator = RewardAccumulator(
            reward_rate=reward_rate,
            last_update_time=self._now(),
        )
        logger.info(
            "StakingRewards deployed",
            extra={
                "event": "staking.deployed",
                "address": self.address,
                "owner": self.owner[:10],
                "reward_rate": reward_rate,
            }
        )

    # ==================== View Functions ====================

    @property
    def total_staked(self) -> int:
        return self.accumulator.total_staked

    @property
    def reward_rate(self) -> int:
        return self.accumulator.reward_rate

    @property
    def last_update_time(self) -> int:
        return self.accumulator.last_update_time

    def balance_of(self, account: str) -> int:
        return self.accumulator.balances.get(normalize_address(account), 0)

    def reward_per_unit(self) -> int:
        return self.accumulator.reward_per_unit(self._now())

    def earned(self, account: str) -> int:
        return self.accumulator.earned(normalize_address(account), self._now())

    def rewards_owed(self, account: str) -> int:
        """Rewards credited at the account's last checkpoint and not yet paid."""
        return self.accumulator.rewards.get(normalize_address(account), 0)

    def user_reward_per_unit_paid(self, account: str) -> int:
        return self.accumulator.user_reward_per_unit_paid.get(normalize_address(account), 0)

    # ==================== Staker Functions ====================

    def stake(self, caller: str, amount: int) -> None:
        """
        Stake ``amount`` staking tokens; the caller must have approved this contract.

        Raises:
            PausedError: If staking is suspended
            PreconditionError: If amount is zero
            TransferFailedError: If the token pull fails (allowance/balance)
        """
        safe_math.require_uint(amount, "amount")
        with self._transaction(self.staking_token, self.rewards_token):
            self._require_not_paused()
            if amount == 0:
                raise PreconditionError("Cannot stake 0")
            account = self._account(caller)
            now = self._now()

            self.accumulator.checkpoint(account, now)
            self.accumulator.increase_stake(account, amount)
            self._safe_transfer_from(self.staking_token, account, amount)

            self._emit(
                "Staked",
                user=account,
                amount=amount,
                balance=self.accumulator.balances[account],
                total_staked=self.accumulator.total_staked,
            )

        metrics.record_stake_movement(self.address, "in", amount, self.total_staked)
        logger.info(
            "Stake deposited",
            extra={
                "event": "staking.staked",
                "user": account[:10],
                "amount": amount,
                "total_staked": self.total_staked,
            }
        )

    def withdraw(self, caller: str, amount: int) -> None:
        """
        Withdraw ``amount`` of the caller's stake.

        Raises:
            PreconditionError: If amount is zero
            ArithmeticViolation: If amount exceeds the caller's stake
        """
        safe_math.require_uint(amount, "amount")
        with self._transaction(self.staking_token, self.rewards_token):
            account = self._account(caller)
            self._withdraw(account, amount)

        metrics.record_stake_movement(self.address, "out", amount, self.total_staked)
        logger.info(
            "Stake withdrawn",
            extra={
                "event": "staking.withdrawn",
                "user": account[:10],
                "amount": amount,
                "total_staked": self.total_staked,
            }
        )

    def get_reward(self, caller: str) -> int:
        """
        Pay out every reward credited to the caller.

        Returns:
            Amount of reward tokens transferred (0 when nothing is owed)
        """
        with self._transaction(self.staking_token, self.rewards_token):
            account = self._account(caller)
            reward = self._get_reward(account)

        if reward > 0:
            metrics.record_reward_paid(self.address, reward)
            logger.info(
                "Reward paid",
                extra={"event": "staking.reward_paid", "user": account[:10], "reward": reward},
            )
        return reward

    def exit(self, caller: str) -> int:
        """Withdraw the caller's whole stake and claim rewards in one atomic call."""
        with self._transaction(self.staking_token, self.rewards_token):
            account = self._account(caller)
            amount = self.accumulator.balances.get(account, 0)
            if amount > 0:
                self._withdraw(account, amount)
            reward = self._get_reward(account)

        metrics.record_stake_movement(self.address, "out", amount, self.total_staked)
        metrics.record_reward_paid(self.address, reward)
        logger.info(
            "Staker exited",
            extra={"event": "staking.exit", "user": account[:10], "amount": amount, "reward": reward},
        )
        return reward

    # ==================== Admin Functions ====================

    def set_reward_rate(self, caller: str, rate: int) -> None:
        """
        Replace the reward rate (owner only).

        The accumulator is NOT checkpointed first: time elapsed since the last
        checkpoint is credited at the new rate once someone next checkpoints.
        """
        self._require_owner(caller)
        safe_math.require_uint(rate, "rate")
        with self._transaction():
            old_rate = self.accumulator.reward_rate
            self.accumulator.reward_rate = rate
            self._emit("RewardRateUpdated", old_rate=old_rate, new_rate=rate)

        logger.info(
            "Reward rate updated",
            extra={"event": "staking.reward_rate_updated", "old_rate": old_rate, "new_rate": rate},
        )

    # ==================== Internal ====================

    def _account(self, caller: str) -> str:
        if is_zero_address(caller):
            raise PreconditionError("Caller is the zero address")
        return normalize_address(caller)

    def _withdraw(self, account: str, amount: int) -> None:
        if amount == 0:
            raise PreconditionError("Cannot withdraw 0")
        self.accumulator.checkpoint(account, self._now())
        self.accumulator.decrease_stake(account, amount)
        self._safe_transfer(self.staking_token, account, amount)
        self._emit(
            "Withdrawn",
            user=account,
            amount=amount,
            balance=self.accumulator.balances[account],
            total_staked=self.accumulator.total_staked,
        )

    def _get_reward(self, account: str) -> int:
        self.accumulator.checkpoint(account, self._now())
        reward = self.accumulator.take_reward(account)
        if reward > 0:
            self._safe_transfer(self.rewards_token, account, reward)
            self._emit("RewardPaid", user=account, reward=reward)
        return reward

    def to_dict(self) -> dict[str, Any]:
        acc = self.accumulator
        return {
            "address": self.address,
            "owner": self.owner,
            "paused": self.paused,
            "staking_token": self.staking_token.address,
            "rewards_token": self.rewards_token.address,
            "reward_rate": acc.reward_rate,
            "reward_per_unit_stored": acc.reward_per_unit_stored,
            "last_update_time": acc.last_update_time,
            "total_staked": acc.total_staked,
            "balances": dict(acc.balances),
            "rewards": dict(acc.rewards),
        }
