"""
Checked unsigned 256-bit arithmetic.

Python integers never overflow, so the uint256 semantics the accounting
relies on are enforced explicitly here: every helper raises
ArithmeticViolation instead of wrapping or going negative.
"""

from __future__ import annotations

from .constants import UINT256_MAX
from .exceptions import ArithmeticViolation


def require_uint(value: int, field: str = "value") -> int:
    """Validate that value is an int in [0, UINT256_MAX]."""
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticViolation(
            f"{field} must be an integer, got {type(value).__name__}",
            operation="validate",
        )
    if value < 0:
        raise ArithmeticViolation(f"{field} cannot be negative ({value})", operation="validate")
    if value > UINT256_MAX:
        raise ArithmeticViolation(f"{field} exceeds uint256", operation="validate")
    return value


def add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticViolation(f"addition overflow ({a} + {b})", operation="add")
    return result


def sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticViolation(f"subtraction underflow ({a} - {b})", operation="sub")
    return a - b


def mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT256_MAX:
        raise ArithmeticViolation("multiplication overflow", operation="mul")
    return result


def div(a: int, b: int) -> int:
    """Floor division; division by zero traps like the other helpers."""
    if b == 0:
        raise ArithmeticViolation("division by zero", operation="div")
    return a // b


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute a * b // denominator with overflow checks on the product."""
    return div(mul(a, b), denominator)
