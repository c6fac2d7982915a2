"""
stakevest Contract Building Blocks.

This module provides:
- ERC20: Fungible token ledger consumed by the engines
- ManagedContract: Ownership, pause, reentrancy and transactional rollback
"""

from .access import ManagedContract, derive_address, is_zero_address, normalize_address
from .erc20 import ERC20Token

__all__ = [
    # Token Standards
    "ERC20Token",
    # Gates
    "ManagedContract",
    "derive_address",
    "is_zero_address",
    "normalize_address",
]
