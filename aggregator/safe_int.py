"""Safe integer wrapper for arithmetic on token amounts.

SafeInt makes the failure modes of integer amount math explicit:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Values beyond uint256 raise Uint256Overflow on to_uint256()

Usage pattern:
    from aggregator.safe_int import S

    numerator = S(amount_in) * S(fee_multiplier) * S(reserve_out)
    denominator = S(reserve_in) * S(10000) + S(amount_in) * S(fee_multiplier)
    return (numerator // denominator).value
"""

from __future__ import annotations

UINT256_MAX = 2**256 - 1


class SafeIntError(ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class Uint256Overflow(SafeIntError):
    """Value exceeds uint256 maximum."""

    pass


def _extract_value(other: SafeInt | int) -> int:
    if isinstance(other, SafeInt):
        return other.value
    if isinstance(other, int):
        return other
    raise TypeError(f"SafeInt operand must be int or SafeInt, got {type(other).__name__}")


class SafeInt:
    """Non-negative integer with checked arithmetic.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract, raising Underflow on a negative result."""
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"{self._value} - {other_val} underflows")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Floor division, raising DivisionByZero on a zero divisor."""
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"{self._value} // 0")
        return SafeInt(self._value // other_val)

    def __mod__(self, other: SafeInt | int) -> SafeInt:
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"{self._value} % 0")
        return SafeInt(self._value % other_val)

    def ceildiv(self, other: SafeInt | int) -> SafeInt:
        """Ceiling division."""
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"ceil({self._value} / 0)")
        return SafeInt(-(-self._value // other_val))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _extract_value(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    def to_uint256(self) -> int:
        """Return the value, raising if it does not fit in uint256."""
        if self._value < 0:
            raise Underflow(f"{self._value} is negative")
        if self._value > UINT256_MAX:
            raise Uint256Overflow(f"{self._value} exceeds uint256")
        return self._value


def S(value: int | SafeInt) -> SafeInt:
    """Shorthand constructor."""
    return SafeInt(value)


__all__ = [
    "SafeInt",
    "S",
    "SafeIntError",
    "DivisionByZero",
    "Underflow",
    "Uint256Overflow",
    "UINT256_MAX",
]
