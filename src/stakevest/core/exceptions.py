"""
Contract exception hierarchy for stakevest.

Every failure raised by a contract entry point derives from ContractError so
callers can catch the whole family, while the subclasses keep precondition
violations, arithmetic traps and collaborator failures distinguishable.
A raised ContractError always means the call was rolled back.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ContractError(Exception):
    """Base exception for all contract-level failures.

    Attributes:
        message: Human-readable reason, stable enough to assert on
        details: Additional context about the failure
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Precondition Errors ====================


class PreconditionError(ContractError):
    """Raised when a call's arguments or the current state forbid the operation.

    Examples: zero amount, bad time ordering, duplicate or missing schedule,
    vesting capacity exceeded.
    """
    pass


class UnauthorizedError(PreconditionError):
    """Raised when a privileged operation is called by someone other than the owner."""

    def __init__(self, caller: str, **kwargs: Any) -> None:
        super().__init__(f"Unauthorized: caller {caller} is not the owner", **kwargs)
        self.caller = caller


class PausedError(PreconditionError):
    """Raised when the suspension gate is engaged."""
    pass


# ==================== Arithmetic Errors ====================


class ArithmeticViolation(ContractError):
    """Raised when unsigned 256-bit arithmetic would underflow or overflow."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.operation = operation


# ==================== Collaborator Errors ====================


class TransferFailedError(ContractError):
    """Raised when a token transfer returns failure or raises."""
    pass


class ReentrancyError(ContractError):
    """Raised when a mutating entry point is re-entered during a token movement."""
    pass


# ==================== Configuration Errors ====================


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass
