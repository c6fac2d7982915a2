"""
Ownership, suspension and transaction gates for stateful contracts.

ManagedContract is the shell every engine contract builds on:
- single controller identity (owner) with a privileged-call guard that
  names the rejected caller
- global pause switch consulted by entry points that opt in
- reentrancy lock held for the whole of a mutating call
- transactional execution: contract state, collaborator token state and the
  event log are snapshotted on entry and restored if the call fails

Subclasses list the attributes that make up their state in ``_state_fields``.

NOTE: snapshots are full deep copies of the contract's state fields and of
each collaborator token's balances and allowances, so every mutating call
costs O(accounts). Fine for simulations; not for ledgers with millions of
holders.
"""

from __future__ import annotations

import copy
import hashlib
import itertools
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from ..clock import TimeProvider, current_time, system_time
from ..constants import ZERO_ADDRESS
from ..events import EventLog
from ..exceptions import (
    ContractError,
    PausedError,
    PreconditionError,
    ReentrancyError,
    TransferFailedError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

_deploy_nonce = itertools.count(1)


class Snapshottable(Protocol):
    def get_state(self) -> dict[str, Any]: ...

    def restore_state(self, state: dict[str, Any]) -> None: ...


class TokenLike(Snapshottable, Protocol):
    address: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool: ...


def normalize_address(address: str) -> str:
    return address.lower()


def derive_address(label: str) -> str:
    """Produce a fresh contract address; lets a deployer fund an address before construction."""
    addr_input = f"{label}:{next(_deploy_nonce)}".encode()
    return f"0x{hashlib.sha3_256(addr_input).digest()[-20:].hex()}"


def is_zero_address(address: str) -> bool:
    return not address or normalize_address(address) == ZERO_ADDRESS


class ManagedContract:
    """
    Base class for owner-gated, pausable, non-reentrant contracts.

    Usage:
        class Vault(ManagedContract):
            _state_fields = ("deposits",)

            def deposit(self, caller, amount):
                with self._transaction(self.token):
                    ...
    """

    _state_fields: tuple[str, ...] = ()

    def __init__(
        self,
        owner: str,
        address: str = "",
        event_log: EventLog | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        if is_zero_address(owner):
            raise PreconditionError("Owner cannot be the zero address")
        self.owner = normalize_address(owner)
        self.address = normalize_address(address) if address else self._derive_address()
        self.event_log = event_log if event_log is not None else EventLog()
        self._time_provider = time_provider or system_time
        self.paused = False

        # Reentrancy guard
        self._locked = False

    def _derive_address(self) -> str:
        return derive_address(f"{type(self).__name__}:{self.owner}")

    # ==================== Time ====================

    def _now(self) -> int:
        return current_time(self._time_provider)

    # ==================== Ownership ====================

    def _require_owner(self, caller: str) -> None:
        if normalize_address(caller) != self.owner:
            logger.warning(
                "Access denied: caller is not owner",
                extra={
                    "event": "access.unauthorized",
                    "contract": self.address[:10],
                    "caller": caller[:10],
                }
            )
            raise UnauthorizedError(caller)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the controller role to a new address (owner only)."""
        self._require_owner(caller)
        if is_zero_address(new_owner):
            raise PreconditionError("New owner is the zero address")
        previous = self.owner
        self.owner = normalize_address(new_owner)
        self._emit("OwnershipTransferred", previous_owner=previous, new_owner=self.owner)

    # ==================== Suspension ====================

    def _require_not_paused(self) -> None:
        if self.paused:
            raise PausedError("Pausable: paused", details={"contract": self.address})

    def pause(self, caller: str) -> None:
        """Engage the suspension gate (owner only)."""
        self._require_owner(caller)
        if self.paused:
            raise PreconditionError("Pausable: already paused")
        self.paused = True
        self._emit("Paused", account=normalize_address(caller))
        logger.warning(
            "Contract paused",
            extra={"event": "access.paused", "contract": self.address[:10], "caller": caller[:10]},
        )

    def unpause(self, caller: str) -> None:
        """Release the suspension gate (owner only)."""
        self._require_owner(caller)
        if not self.paused:
            raise PreconditionError("Pausable: not paused")
        self.paused = False
        self._emit("Unpaused", account=normalize_address(caller))
        logger.info(
            "Contract unpaused",
            extra={"event": "access.unpaused", "contract": self.address[:10], "caller": caller[:10]},
        )

    # ==================== Transactions ====================

    def get_state(self) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._state_fields}

    def restore_state(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, copy.deepcopy(value))

    def _require_not_locked(self) -> None:
        if self._locked:
            raise ReentrancyError(
                "ReentrancyGuard: reentrant call",
                details={"contract": self.address},
            )

    @contextmanager
    def _transaction(self, *collaborators: Snapshottable) -> Iterator[None]:
        """
        Run a mutating call atomically and without reentrancy.

        Any exception restores this contract, every collaborator passed in,
        and truncates the event log to its length on entry.
        """
        self._require_not_locked()
        self._locked = True
        snapshot = self.get_state()
        collaborator_snapshots = [(c, c.get_state()) for c in collaborators]
        log_length = len(self.event_log)
        try:
            yield
        except Exception as exc:
            self.restore_state(snapshot)
            for collaborator, state in collaborator_snapshots:
                collaborator.restore_state(state)
            self.event_log.truncate(log_length)
            logger.info(
                "Call reverted",
                extra={
                    "event": "access.reverted",
                    "contract": self.address[:10],
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                }
            )
            raise
        finally:
            self._locked = False

    # ==================== Token movement ====================

    def _safe_transfer(self, token: TokenLike, to: str, amount: int) -> None:
        """Push tokens held by this contract; any failure aborts the call."""
        try:
            ok = token.transfer(self.address, to, amount)
        except ReentrancyError:
            raise
        except ContractError as exc:
            raise TransferFailedError(f"Token transfer failed: {exc}", details={"token": token.address}) from exc
        if not ok:
            raise TransferFailedError("Token transfer returned failure", details={"token": token.address})

    def _safe_transfer_from(self, token: TokenLike, from_addr: str, amount: int) -> None:
        """Pull approved tokens from ``from_addr`` into this contract."""
        try:
            ok = token.transfer_from(self.address, from_addr, self.address, amount)
        except ReentrancyError:
            raise
        except ContractError as exc:
            raise TransferFailedError(f"Token transfer failed: {exc}", details={"token": token.address}) from exc
        if not ok:
            raise TransferFailedError("Token transfer returned failure", details={"token": token.address})

    # ==================== Events ====================

    def _emit(self, name: str, **args: Any) -> None:
        self.event_log.emit(name, self.address, self._now(), **args)
