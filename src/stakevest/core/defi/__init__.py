"""
stakevest DeFi Engines.

This module provides:
- Staking Rewards: fixed-rate reward stream shared pro rata among stakers
- Vesting: cliff-then-linear token release with beneficiary relocation
"""

from .staking_rewards import RewardAccumulator, StakingRewards
from .vesting import (
    TokenVesting,
    VestingLedger,
    VestingSchedule,
    vested_amount,
    withdrawable_amount,
)

__all__ = [
    # Staking
    "StakingRewards",
    "RewardAccumulator",
    # Vesting
    "TokenVesting",
    "VestingLedger",
    "VestingSchedule",
    "withdrawable_amount",
    "vested_amount",
]
