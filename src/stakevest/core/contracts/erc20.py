"""
ERC20 Token Ledger.

Fungible-token collaborator used by the staking and vesting contracts:
- Basic token operations (transfer, approve, transfer_from)
- Owner-only minting with optional supply cap
- Allowance increase/decrease helpers
- Transfer and Approval events on a shared EventLog

Security features:
- uint256 bounds on every amount
- Zero address checks
- Balances are checked before any state is touched, so a failed transfer
  leaves the ledger unchanged
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from ..clock import TimeProvider, current_time, system_time
from ..constants import UINT256_MAX, ZERO_ADDRESS
from ..events import EventLog
from ..exceptions import PausedError, PreconditionError, TransferFailedError, UnauthorizedError
from .. import safe_math
from .access import derive_address

logger = logging.getLogger(__name__)


@dataclass
class ERC20Token:
    """
    ERC20 token held entirely in memory.

    Implements the ERC20 surface the engines consume plus minting:
    - balance_of / allowance views
    - transfer / approve / transfer_from
    - mint (owner only)

    All balances and allowances are plain dicts keyed by lowercase address.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    # Pause state
    paused: bool = False

    # Shared event log and clock
    event_log: EventLog = field(default_factory=EventLog, repr=False, compare=False)
    time_provider: TimeProvider = field(default=system_time, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Derive an address and normalize the owner."""
        if not self.address:
            self.address = derive_address(f"{self.name}{self.symbol}")
        self.address = self._normalize(self.address)
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to check

        Returns:
            Token balance
        """
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        """
        Get the allowance granted by owner to spender.

        Args:
            owner: Token owner address
            spender: Spender address

        Returns:
            Approved amount
        """
        return self.allowances.get(self._normalize(owner), {}).get(self._normalize(spender), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens (the caller)
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TransferFailedError: If the sender's balance is insufficient
        """
        self._require_not_paused()
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)

        self._validate_address(recipient_norm, "recipient")
        safe_math.require_uint(amount, "amount")

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise TransferFailedError(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})",
                details={"token": self.symbol, "from": sender_norm, "amount": amount},
            )

        self._move(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """
        Approve spender to spend tokens on behalf of owner.

        Args:
            owner: Token owner (the caller)
            spender: Address being approved
            amount: Amount to approve

        Returns:
            True if successful
        """
        self._require_not_paused()
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)

        self._validate_address(spender_norm, "spender")
        safe_math.require_uint(amount, "amount")

        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self._emit("Approval", owner=owner_norm, spender=spender_norm, value=amount)

        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Transfer tokens using an allowance.

        Args:
            spender: Address executing transfer (the caller)
            from_addr: Token owner
            to_addr: Recipient
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TransferFailedError: If allowance or balance is insufficient
        """
        self._require_not_paused()
        spender_norm = self._normalize(spender)
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)

        self._validate_address(to_norm, "recipient")
        safe_math.require_uint(amount, "amount")

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise TransferFailedError(
                f"ERC20: insufficient allowance ({current_allowance} < {amount})",
                details={"token": self.symbol, "owner": from_norm, "spender": spender_norm},
            )

        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise TransferFailedError(
                f"ERC20: transfer amount exceeds balance ({amount} > {from_balance})",
                details={"token": self.symbol, "from": from_norm, "amount": amount},
            )

        # Unlimited approvals are never decremented
        if current_allowance != UINT256_MAX:
            self.allowances[from_norm][spender_norm] = current_allowance - amount

        self._move(from_norm, to_norm, amount)

        return True

    def increase_allowance(self, owner: str, spender: str, added_value: int) -> bool:
        """Increase spender's allowance, saturating at UINT256_MAX."""
        new_allowance = min(self.allowance(owner, spender) + added_value, UINT256_MAX)
        return self.approve(owner, spender, new_allowance)

    def decrease_allowance(self, owner: str, spender: str, subtracted_value: int) -> bool:
        """
        Decrease spender's allowance.

        Raises:
            PreconditionError: If decrease exceeds current allowance
        """
        current = self.allowance(owner, spender)
        if subtracted_value > current:
            raise PreconditionError("ERC20: decreased allowance below zero")
        return self.approve(owner, spender, current - subtracted_value)

    # ==================== Minting & Burning ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            UnauthorizedError: If minter is not the owner
            PreconditionError: If the supply cap would be exceeded
        """
        self._require_not_paused()
        self._require_owner(minter)

        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        safe_math.require_uint(amount, "amount")

        new_supply = safe_math.add(self.total_supply, amount)
        if self.max_supply > 0 and new_supply > self.max_supply:
            raise PreconditionError(
                f"ERC20: mint would exceed max supply ({new_supply} > {self.max_supply})"
            )

        self.total_supply = new_supply
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", from_address=ZERO_ADDRESS, to_address=to_norm, value=amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Admin Functions ====================

    def pause(self, caller: str) -> bool:
        """Pause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = True
        return True

    def unpause(self, caller: str) -> bool:
        """Unpause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = False
        return True

    # ==================== Snapshots ====================

    def get_state(self) -> dict[str, Any]:
        """Capture mutable ledger state so a failed outer call can restore it."""
        return {
            "total_supply": self.total_supply,
            "balances": copy.deepcopy(self.balances),
            "allowances": copy.deepcopy(self.allowances),
            "paused": self.paused,
            "event_count": len(self.event_log),
        }

    def restore_state(self, state: dict[str, Any]) -> None:
        self.total_supply = state["total_supply"]
        self.balances = copy.deepcopy(state["balances"])
        self.allowances = copy.deepcopy(state["allowances"])
        self.paused = state["paused"]
        self.event_log.truncate(state["event_count"])

    # ==================== Helpers ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        self.balances[from_norm] = self.balances.get(from_norm, 0) - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", from_address=from_norm, to_address=to_norm, value=amount)

    def _normalize(self, address: str) -> str:
        """Normalize address to lowercase."""
        return address.lower()

    def _validate_address(self, address: str, field: str) -> None:
        """Validate address is not zero."""
        if address == ZERO_ADDRESS or not address:
            raise PreconditionError(f"ERC20: {field} is zero address")

    def _require_owner(self, caller: str) -> None:
        if self._normalize(caller) != self.owner:
            raise UnauthorizedError(caller)

    def _require_not_paused(self) -> None:
        if self.paused:
            raise PausedError("ERC20: token is paused")

    def _emit(self, name: str, **args: Any) -> None:
        self.event_log.emit(name, self.address, current_time(self.time_provider), **args)

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        """Serialize token state to dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "allowances": {k: dict(v) for k, v in self.allowances.items()},
            "max_supply": self.max_supply,
            "paused": self.paused,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "ERC20Token":
        """Deserialize token state; kwargs supply event_log/time_provider."""
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=data.get("total_supply", 0),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            max_supply=data.get("max_supply", 0),
            paused=data.get("paused", False),
            **kwargs,
        )
        token.balances = dict(data.get("balances", {}))
        token.allowances = {k: dict(v) for k, v in data.get("allowances", {}).items()}
        return token
