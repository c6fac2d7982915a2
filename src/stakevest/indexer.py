"""
Event indexer - rebuilds token, staking and vesting state from contract events.

The indexer never reads contract storage. It consumes an EventLog in order
and maintains its own projection:
- token balances, supply and allowances (Transfer / Approval)
- staked balances and totals per staking pool (Staked / Withdrawn)
- rewards paid and reward rate history (RewardPaid / RewardRateUpdated)
- vesting schedules per vault (VestingScheduleRegistered / Withdraw /
  VestingScheduleAddressChanged)
- pause flags and ownership (Paused / Unpaused / OwnershipTransferred)

sync() is incremental: it resumes from the last indexed log position, so it
can be called repeatedly against a growing log.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Iterable, Optional

from .core.constants import ZERO_ADDRESS
from .core.events import ContractEvent, EventLog

logger = logging.getLogger(__name__)


class EventIndexer:
    """
    Projects contract events into queryable state.

    Args:
        contracts: Optional set of contract addresses to index; events from
            any other contract are skipped. None indexes everything.
    """

    def __init__(self, contracts: Optional[Iterable[str]] = None):
        self.contracts = {c.lower() for c in contracts} if contracts is not None else None
        self.last_indexed: int = -1
        self.events_processed = 0
        self.events_skipped = 0

        self.token_balances: dict[str, dict[str, int]] = defaultdict(dict)
        self.token_supply: dict[str, int] = defaultdict(int)
        self.allowances: dict[str, dict[tuple[str, str], int]] = defaultdict(dict)

        self.staked: dict[str, dict[str, int]] = defaultdict(dict)
        self.total_staked: dict[str, int] = defaultdict(int)
        self.rewards_paid: dict[str, dict[str, int]] = defaultdict(dict)
        self.reward_rate_history: dict[str, list[tuple[int, int, int]]] = defaultdict(list)

        self.schedules: dict[str, dict[str, dict[str, int]]] = defaultdict(dict)
        self.scheduled_tokens: dict[str, int] = defaultdict(int)

        self.paused: dict[str, bool] = {}
        self.owners: dict[str, str] = {}

        self._handlers: dict[str, Callable[[ContractEvent], None]] = {
            "Transfer": self._on_transfer,
            "Approval": self._on_approval,
            "Staked": self._on_stake_change,
            "Withdrawn": self._on_stake_change,
            "RewardPaid": self._on_reward_paid,
            "RewardRateUpdated": self._on_reward_rate_updated,
            "VestingScheduleRegistered": self._on_schedule_registered,
            "Withdraw": self._on_vesting_withdraw,
            "VestingScheduleAddressChanged": self._on_schedule_moved,
            "Paused": self._on_paused,
            "Unpaused": self._on_unpaused,
            "OwnershipTransferred": self._on_ownership_transferred,
        }

    # ==================== Ingestion ====================

    def sync(self, event_log: EventLog) -> int:
        """
        Index every event appended since the previous sync.

        Returns:
            Number of events handled in this call
        """
        start = self.last_indexed + 1
        if start > len(event_log):
            raise ValueError(
                f"Event log is shorter ({len(event_log)}) than the indexed position ({start}); "
                "it was rolled back or replaced"
            )
        handled = 0
        for position in range(start, len(event_log)):
            if self.process(event_log[position]):
                handled += 1
            self.last_indexed = position

        if handled:
            logger.debug(
                "Indexer synced",
                extra={"event": "indexer.synced", "handled": handled, "last_indexed": self.last_indexed},
            )
        return handled

    def process(self, event: ContractEvent) -> bool:
        """Apply a single event. Returns False when it is filtered out or unknown."""
        if self.contracts is not None and event.contract not in self.contracts:
            self.events_skipped += 1
            return False
        handler = self._handlers.get(event.name)
        if handler is None:
            self.events_skipped += 1
            logger.debug(
                "Unhandled event",
                extra={"event": "indexer.unhandled", "name": event.name, "contract": event.contract[:10]},
            )
            return False
        handler(event)
        self.events_processed += 1
        return True

    # ==================== Token handlers ====================

    def _on_transfer(self, event: ContractEvent) -> None:
        token = event.contract
        sender = event.args["from_address"]
        recipient = event.args["to_address"]
        value = event.args["value"]
        balances = self.token_balances[token]

        if sender == ZERO_ADDRESS:
            self.token_supply[token] += value
        else:
            balances[sender] = balances.get(sender, 0) - value
        if recipient == ZERO_ADDRESS:
            self.token_supply[token] -= value
        else:
            balances[recipient] = balances.get(recipient, 0) + value

    def _on_approval(self, event: ContractEvent) -> None:
        self.allowances[event.contract][(event.args["owner"], event.args["spender"])] = event.args["value"]

    # ==================== Staking handlers ====================

    def _on_stake_change(self, event: ContractEvent) -> None:
        # both events carry post-call balance and total
        pool = event.contract
        self.staked[pool][event.args["user"]] = event.args["balance"]
        self.total_staked[pool] = event.args["total_staked"]

    def _on_reward_paid(self, event: ContractEvent) -> None:
        paid = self.rewards_paid[event.contract]
        user = event.args["user"]
        paid[user] = paid.get(user, 0) + event.args["reward"]

    def _on_reward_rate_updated(self, event: ContractEvent) -> None:
        self.reward_rate_history[event.contract].append(
            (event.timestamp, event.args["old_rate"], event.args["new_rate"])
        )

    # ==================== Vesting handlers ====================

    def _on_schedule_registered(self, event: ContractEvent) -> None:
        args = event.args
        self.schedules[event.contract][args["beneficiary"]] = {
            "start_time": args["start_time"],
            "cliff_time": args["cliff_time"],
            "end_time": args["end_time"],
            "unlock_amount": args["unlock_amount"],
            "total_amount": args["total_amount"],
            "total_withdrawn": 0,
        }
        self.scheduled_tokens[event.contract] = args["scheduled_tokens"]

    def _on_vesting_withdraw(self, event: ContractEvent) -> None:
        schedule = self.schedules[event.contract].get(event.args["beneficiary"])
        if schedule is None:
            raise ValueError(
                f"Withdraw event at log index {event.log_index} for unknown schedule "
                f"{event.args['beneficiary']}"
            )
        schedule["total_withdrawn"] = event.args["total_withdrawn_after"]

    def _on_schedule_moved(self, event: ContractEvent) -> None:
        vault = self.schedules[event.contract]
        old_address = event.args["old_address"]
        if old_address not in vault:
            raise ValueError(
                f"Address change at log index {event.log_index} for unknown schedule {old_address}"
            )
        vault[event.args["new_address"]] = vault.pop(old_address)

    # ==================== Access handlers ====================

    def _on_paused(self, event: ContractEvent) -> None:
        self.paused[event.contract] = True

    def _on_unpaused(self, event: ContractEvent) -> None:
        self.paused[event.contract] = False

    def _on_ownership_transferred(self, event: ContractEvent) -> None:
        self.owners[event.contract] = event.args["new_owner"]

    # ==================== Queries ====================

    def balance_of(self, token: str, account: str) -> int:
        return self.token_balances.get(token.lower(), {}).get(account.lower(), 0)

    def staked_balance(self, pool: str, account: str) -> int:
        return self.staked.get(pool.lower(), {}).get(account.lower(), 0)

    def current_reward_rate(self, pool: str) -> int:
        history = self.reward_rate_history.get(pool.lower())
        return history[-1][2] if history else 0

    def schedule_of(self, vault: str, beneficiary: str) -> Optional[dict[str, int]]:
        schedule = self.schedules.get(vault.lower(), {}).get(beneficiary.lower())
        return dict(schedule) if schedule is not None else None

    def get_stats(self) -> dict[str, Any]:
        return {
            "last_indexed": self.last_indexed,
            "events_processed": self.events_processed,
            "events_skipped": self.events_skipped,
            "tokens": len(self.token_balances),
            "staking_pools": len(self.total_staked),
            "vesting_vaults": len(self.schedules),
        }
