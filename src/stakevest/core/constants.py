"""
stakevest Constants

Fixed-point scaling, integer bounds and time units used by the staking
and vesting engines.

NOTE: PRECISION is part of the accumulator's stored representation.
Changing it invalidates every persisted reward_per_unit value.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS (in seconds)
# =============================================================================

SECONDS_PER_DAY: Final[int] = 86400  # 60 * 60 * 24

# =============================================================================
# FIXED-POINT ARITHMETIC
# =============================================================================

# Scale factor for reward_per_unit so fractional rewards survive integer division
PRECISION: Final[int] = 10**18

# Unsigned 256-bit bounds enforced on every stored amount
UINT256_MAX: Final[int] = 2**256 - 1

# =============================================================================
# ADDRESSES
# =============================================================================

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40
