"""
stakevest - Staking Rewards and Token Vesting Engines

In-memory accounting contracts for a token economy.

Main Components:
- Staking Rewards: continuous-time reward-per-unit accumulator shared by all stakers
- Token Vesting: cliff-then-linear release schedules with beneficiary relocation
- Contracts: ERC20 token ledger and ownership/pause/reentrancy gates
- Indexer: rebuilds contract state from emitted events
"""

__version__ = "0.1.0"
__author__ = "stakevest Development Team"

__all__ = []
