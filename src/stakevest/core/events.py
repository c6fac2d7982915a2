"""
Contract event records.

Contracts append ContractEvent entries to an EventLog. Several contracts can
share one log so that the global order of state transitions is preserved,
which is what the indexer replays. A log can be truncated back to an earlier
length when the call that emitted the tail is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractEvent:
    """Represents one emitted event."""

    name: str  # e.g. "Staked", "Transfer", "VestingScheduleRegistered"
    contract: str  # emitting contract address
    args: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    log_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "contract": self.contract,
            "args": dict(self.args),
            "timestamp": self.timestamp,
            "log_index": self.log_index,
        }


class EventLog:
    """Append-only (except for rollback) ordered list of contract events."""

    def __init__(self) -> None:
        self._events: list[ContractEvent] = []

    def emit(self, name: str, contract: str, timestamp: int, **args: Any) -> ContractEvent:
        event = ContractEvent(
            name=name,
            contract=contract,
            args=args,
            timestamp=timestamp,
            log_index=len(self._events),
        )
        self._events.append(event)
        logger.debug(
            "Event emitted",
            extra={
                "event": "events.emitted",
                "name": name,
                "contract": contract[:10],
                "log_index": event.log_index,
            }
        )
        return event

    def truncate(self, length: int) -> None:
        """Drop every event at or after position ``length``."""
        if length < len(self._events):
            del self._events[length:]

    def filter(self, name: str | None = None, contract: str | None = None) -> list[ContractEvent]:
        return [
            event
            for event in self._events
            if (name is None or event.name == name)
            and (contract is None or event.contract == contract)
        ]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[ContractEvent]:
        return iter(list(self._events))

    def __getitem__(self, index: int) -> ContractEvent:
        return self._events[index]
