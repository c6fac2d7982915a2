"""
stakevest Core Module

Core building blocks shared by the staking and vesting engines:
- Constants and fixed-point precision
- Exception hierarchy
- Checked uint256 arithmetic
- Event records, time providers, logging and metrics
"""

__all__ = []
