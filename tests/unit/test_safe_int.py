"""Tests for SafeInt checked arithmetic."""

import pytest

from aggregator.safe_int import (
    UINT256_MAX,
    DivisionByZero,
    S,
    SafeInt,
    SafeIntError,
    Uint256Overflow,
    Underflow,
)


class TestConstruction:
    def test_from_int_and_safeint(self):
        assert SafeInt(42).value == 42
        assert SafeInt(SafeInt(42)).value == 42
        assert S(7) == SafeInt(7)

    @pytest.mark.parametrize("value", ["42", 3.14, True])
    def test_rejects_non_int(self, value):
        with pytest.raises(TypeError):
            SafeInt(value)  # type: ignore[arg-type]


class TestArithmetic:
    """Checked operators."""

    def test_mixed_operands(self):
        assert (S(3) * 4 + 1).value == 13
        assert (2 * S(5)).value == 10
        assert (1 + S(1)).value == 2

    def test_subtraction_underflow(self):
        assert (S(5) - 5).value == 0
        with pytest.raises(Underflow):
            S(4) - S(5)

    def test_division_by_zero(self):
        with pytest.raises(DivisionByZero):
            S(1) // 0
        with pytest.raises(DivisionByZero):
            S(1) % S(0)
        with pytest.raises(DivisionByZero):
            S(1).ceildiv(0)

    def test_ceildiv(self):
        assert S(10).ceildiv(3).value == 4
        assert S(9).ceildiv(3).value == 3
        assert S(0).ceildiv(3).value == 0

    def test_errors_are_arithmetic_errors(self):
        assert issubclass(SafeIntError, ArithmeticError)
        with pytest.raises(ArithmeticError):
            S(0) - 1

    def test_bad_operand_type(self):
        with pytest.raises(TypeError):
            S(1) + "1"  # type: ignore[operator]


class TestComparison:
    def test_ordering_against_ints(self):
        assert S(1) < 2
        assert S(2) <= S(2)
        assert S(3) > S(2)
        assert S(3) >= 3
        assert S(3) != S(4)

    def test_hash_matches_int(self):
        assert hash(S(99)) == hash(99)


class TestUint256:
    def test_fits(self):
        assert S(UINT256_MAX).to_uint256() == UINT256_MAX

    def test_overflow(self):
        with pytest.raises(Uint256Overflow):
            (S(UINT256_MAX) + 1).to_uint256()
