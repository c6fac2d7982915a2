"""
Token Vesting - cliff-then-linear release schedules.

The vesting contract holds a fixed pool of tokens (its balance when it is
deployed, recorded as max_supply) and commits portions of it to
beneficiaries. Each beneficiary owns at most one schedule:

    entitlement(t) = 0                                     t < cliff
                   = unlock + (total - unlock) * (t - cliff) // (end - cliff)
                                                           cliff <= t < end
                   = total                                 t >= end

At the cliff the entitlement jumps to the initial unlock amount, then grows
linearly to the full allocation at end_time. A withdrawal pays the
entitlement minus everything already withdrawn, so repeated calls never
double-pay and a call with nothing new to release returns 0.

Schedules can be moved to another address. The record moves whole,
including total_withdrawn, so the new owner cannot re-claim what the old
one already took.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from ..clock import TimeProvider
from ..contracts.access import ManagedContract, TokenLike, is_zero_address, normalize_address
from ..events import EventLog
from ..exceptions import PreconditionError
from .. import metrics, safe_math

logger = logging.getLogger(__name__)


@dataclass
class VestingSchedule:
    """One beneficiary's allocation. Only total_withdrawn changes after creation."""

    start_time: int
    cliff_time: int
    end_time: int
    unlock_amount: int
    total_amount: int
    total_withdrawn: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def withdrawable_amount(schedule: VestingSchedule, now: int) -> int:
    """
    Amount the schedule's owner may withdraw at ``now``.

    Args:
        schedule: The vesting schedule
        now: Unix timestamp

    Returns:
        Vested-but-unwithdrawn amount (0 before the cliff)
    """
    if now < schedule.cliff_time:
        return 0
    if now >= schedule.end_time:
        return safe_math.sub(schedule.total_amount, schedule.total_withdrawn)

    elapsed = now - schedule.cliff_time
    duration = schedule.end_time - schedule.cliff_time
    linear = safe_math.mul_div(
        safe_math.sub(schedule.total_amount, schedule.unlock_amount), elapsed, duration
    )
    vested = min(safe_math.add(schedule.unlock_amount, linear), schedule.total_amount)
    return safe_math.sub(vested, schedule.total_withdrawn)


def vested_amount(schedule: VestingSchedule, now: int) -> int:
    """Cumulative entitlement at ``now``, including amounts already withdrawn."""
    if now < schedule.cliff_time:
        return 0
    return schedule.total_withdrawn + withdrawable_amount(schedule, now)


class VestingLedger:
    """Schedule registry and the committed-token counter, keyed by beneficiary."""

    def __init__(self, max_supply: int) -> None:
        self.max_supply = safe_math.require_uint(max_supply, "max_supply")
        self.scheduled_tokens = 0
        self.schedules: dict[str, VestingSchedule] = {}

    def has_schedule(self, beneficiary: str) -> bool:
        return beneficiary in self.schedules

    def get(self, beneficiary: str) -> VestingSchedule:
        schedule = self.schedules.get(beneficiary)
        if schedule is None:
            raise PreconditionError(
                "No vesting schedule for address", details={"address": beneficiary}
            )
        return schedule

    def register(self, beneficiary: str, schedule: VestingSchedule, now: int) -> None:
        if schedule.start_time <= now:
            raise PreconditionError("Start time must be in the future")
        if schedule.cliff_time < schedule.start_time:
            raise PreconditionError("Cliff time must be at or after start time")
        if schedule.end_time < schedule.cliff_time:
            raise PreconditionError("End time must be at or after cliff time")
        if is_zero_address(beneficiary):
            raise PreconditionError("Beneficiary is the zero address")
        if self.has_schedule(beneficiary):
            raise PreconditionError(
                "Beneficiary already has a vesting schedule", details={"address": beneficiary}
            )
        if schedule.unlock_amount > schedule.total_amount:
            raise PreconditionError("Unlock amount exceeds total amount")
        new_scheduled = safe_math.add(self.scheduled_tokens, schedule.total_amount)
        if new_scheduled > self.max_supply:
            raise PreconditionError(
                "Vesting allocation exceeds available supply",
                details={"requested": schedule.total_amount, "available": self.max_supply - self.scheduled_tokens},
            )

        self.schedules[beneficiary] = schedule
        self.scheduled_tokens = new_scheduled

    def release(self, beneficiary: str, now: int) -> tuple[int, int]:
        """Mark the currently withdrawable amount as withdrawn; returns (amount, previous total)."""
        schedule = self.get(beneficiary)
        if now < schedule.start_time:
            raise PreconditionError("Start time not reached")
        if now < schedule.cliff_time:
            raise PreconditionError("Still in cliff period")

        amount = withdrawable_amount(schedule, now)
        previous = schedule.total_withdrawn
        schedule.total_withdrawn = safe_math.add(previous, amount)
        return amount, previous

    def relocate(self, old_address: str, new_address: str) -> VestingSchedule:
        if not self.has_schedule(old_address):
            raise PreconditionError("Caller has no vesting schedule")
        if is_zero_address(new_address):
            raise PreconditionError("New address is the zero address")
        if self.has_schedule(new_address):
            raise PreconditionError(
                "New address already has a vesting schedule", details={"address": new_address}
            )
        schedule = self.schedules.pop(old_address)
        self.schedules[new_address] = schedule
        return schedule


class TokenVesting(ManagedContract):
    """
    Vesting vault for a single token.

    Deploy it after the vault address has been funded (or pass an explicit
    address that already holds tokens): the token balance observed at
    construction becomes max_supply, the ceiling on all commitments.
    """

    _state_fields = ("ledger",)

    def __init__(
        self,
        owner: str,
        token: TokenLike,
        address: str = "",
        event_log: EventLog | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        super().__init__(owner, address=address, event_log=event_log, time_provider=time_provider)
        self.token = token
        self.ledger = VestingLedger(max_supply=token.balance_of(self.address))
        logger.info(
            "TokenVesting deployed",
            extra={
                "event": "vesting.deployed",
                "address": self.address,
                "owner": self.owner[:10],
                "max_supply": self.ledger.max_supply,
            }
        )

    # ==================== View Functions ====================

    @property
    def max_supply(self) -> int:
        return self.ledger.max_supply

    @property
    def scheduled_tokens(self) -> int:
        return self.ledger.scheduled_tokens

    def has_vesting_schedule(self, address: str) -> bool:
        return self.ledger.has_schedule(normalize_address(address))

    def get_vesting_schedule(self, address: str) -> VestingSchedule:
        """Return a copy of the schedule held by ``address``."""
        schedule = self.ledger.get(normalize_address(address))
        return VestingSchedule(**schedule.to_dict())

    def withdrawable(self, address: str) -> int:
        return withdrawable_amount(self.ledger.get(normalize_address(address)), self._now())

    # ==================== Admin Functions ====================

    def register_vesting_schedule(
        self,
        caller: str,
        beneficiary: str,
        start_time: int,
        cliff_time: int,
        end_time: int,
        unlock_amount: int,
        total_amount: int,
    ) -> VestingSchedule:
        """
        Commit ``total_amount`` tokens to ``beneficiary`` (owner only).

        Raises:
            UnauthorizedError: If caller is not the owner
            PreconditionError: Naming the first violated condition
        """
        self._require_owner(caller)
        for name, value in (
            ("start_time", start_time),
            ("cliff_time", cliff_time),
            ("end_time", end_time),
            ("unlock_amount", unlock_amount),
            ("total_amount", total_amount),
        ):
            safe_math.require_uint(value, name)

        beneficiary_norm = normalize_address(beneficiary)
        schedule = VestingSchedule(
            start_time=start_time,
            cliff_time=cliff_time,
            end_time=end_time,
            unlock_amount=unlock_amount,
            total_amount=total_amount,
        )
        with self._transaction(self.token):
            self.ledger.register(beneficiary_norm, schedule, self._now())
            self._emit(
                "VestingScheduleRegistered",
                beneficiary=beneficiary_norm,
                start_time=start_time,
                cliff_time=cliff_time,
                end_time=end_time,
                unlock_amount=unlock_amount,
                total_amount=total_amount,
                scheduled_tokens=self.ledger.scheduled_tokens,
            )

        metrics.update_scheduled_tokens(self.address, self.scheduled_tokens)
        logger.info(
            "Vesting schedule registered",
            extra={
                "event": "vesting.registered",
                "beneficiary": beneficiary_norm[:10],
                "total_amount": total_amount,
                "unlock_amount": unlock_amount,
                "cliff_time": cliff_time,
                "end_time": end_time,
            }
        )
        return VestingSchedule(**schedule.to_dict())

    # ==================== Beneficiary Functions ====================

    def withdraw(self, caller: str) -> int:
        """
        Transfer everything currently withdrawable to the caller.

        Returns:
            Amount transferred; 0 if nothing new has vested since the last call

        Raises:
            PreconditionError: No schedule, start not reached, or still in cliff
        """
        account = normalize_address(caller)
        with self._transaction(self.token):
            self._require_not_paused()
            amount, previous = self.ledger.release(account, self._now())
            if amount > 0:
                self._safe_transfer(self.token, account, amount)
                self._emit(
                    "Withdraw",
                    beneficiary=account,
                    amount=amount,
                    total_withdrawn_before=previous,
                    total_withdrawn_after=previous + amount,
                )

        if amount > 0:
            metrics.record_vesting_withdrawal(self.address, amount)
            logger.info(
                "Vested tokens withdrawn",
                extra={
                    "event": "vesting.withdrawn",
                    "beneficiary": account[:10],
                    "amount": amount,
                    "total_withdrawn": previous + amount,
                }
            )
        else:
            logger.debug(
                "Nothing to withdraw",
                extra={"event": "vesting.nothing_to_withdraw", "beneficiary": account[:10]},
            )
        return amount

    def change_address(self, caller: str, new_address: str) -> None:
        """Move the caller's schedule, with its withdrawal history, to ``new_address``."""
        old_norm = normalize_address(caller)
        new_norm = normalize_address(new_address)
        with self._transaction(self.token):
            self._require_not_paused()
            schedule = self.ledger.relocate(old_norm, new_norm)
            self._emit(
                "VestingScheduleAddressChanged",
                old_address=old_norm,
                new_address=new_norm,
                total_withdrawn=schedule.total_withdrawn,
            )

        logger.info(
            "Vesting schedule relocated",
            extra={
                "event": "vesting.address_changed",
                "old_address": old_norm[:10],
                "new_address": new_norm[:10],
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "token": self.token.address,
            "max_supply": self.ledger.max_supply,
            "scheduled_tokens": self.ledger.scheduled_tokens,
            "schedules": {addr: s.to_dict() for addr, s in self.ledger.schedules.items()},
        }
