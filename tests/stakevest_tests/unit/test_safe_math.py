"""
Tests for checked uint256 arithmetic.
"""
import pytest

from stakevest.core import safe_math
from stakevest.core.constants import UINT256_MAX
from stakevest.core.exceptions import ArithmeticViolation, ContractError


class TestRequireUint:
    def test_accepts_bounds(self):
        assert safe_math.require_uint(0) == 0
        assert safe_math.require_uint(UINT256_MAX) == UINT256_MAX

    @pytest.mark.parametrize("value", [-1, UINT256_MAX + 1])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(ArithmeticViolation):
            safe_math.require_uint(value, "amount")

    @pytest.mark.parametrize("value", [1.0, "1", True, None])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ArithmeticViolation) as exc_info:
            safe_math.require_uint(value, "amount")
        assert "amount must be an integer" in str(exc_info.value)
        assert exc_info.value.operation == "validate"


class TestCheckedOperations:
    def test_sub_underflow_traps(self):
        with pytest.raises(ArithmeticViolation) as exc_info:
            safe_math.sub(5, 6)
        assert exc_info.value.operation == "sub"

    def test_add_overflow_traps(self):
        with pytest.raises(ArithmeticViolation):
            safe_math.add(UINT256_MAX, 1)

    def test_mul_overflow_traps(self):
        with pytest.raises(ArithmeticViolation):
            safe_math.mul(2**200, 2**100)

    def test_div_by_zero_traps(self):
        with pytest.raises(ArithmeticViolation):
            safe_math.div(1, 0)

    def test_mul_div_floors(self):
        assert safe_math.mul_div(10, 10, 3) == 33
        assert safe_math.mul_div(8 * 10**17, 1, 2) == 4 * 10**17

    def test_violation_is_contract_error(self):
        assert issubclass(ArithmeticViolation, ContractError)
