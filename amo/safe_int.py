"""Checked integer for the Newton-Raphson iterations in stable_math.

Every quantity inside the D and y iterations (balances, D, D_P, Ann and the
c/b coefficients) is a non-negative uint256 on-chain, where a negative
intermediate or a zero divisor reverts. SafeInt reproduces those reverts as
exceptions so that an iteration that leaves the valid domain cannot quietly
return a wrong invariant.

Usage:
    from amo.safe_int import S

    d_p = (S(d_p) * d) // x   # DivisionByZero if a balance is 0
    y_next = S(2) * y + b - d  # Underflow if the denominator goes negative
"""

from __future__ import annotations


class SafeIntError(ArithmeticError):
    """A checked operation would revert on-chain."""

    pass


class DivisionByZero(SafeIntError):
    """Floor division by zero (e.g. D_P over an empty balance)."""

    pass


class Underflow(SafeIntError):
    """uint256 subtraction going below zero."""

    pass


def _raw(x: SafeInt | int) -> int:
    return x._value if isinstance(x, SafeInt) else x


class SafeInt:
    """uint256-style integer: subtraction and division are checked.

    Mixed expressions with plain ints are allowed on either side of + and *,
    and on the right of -, // and comparisons. That is all the invariant
    math needs.
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        elif isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _raw(other))

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _raw(other))

    __rmul__ = __mul__

    def __pow__(self, exponent: int) -> SafeInt:
        return SafeInt(self._value**exponent)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        if rhs > self._value:
            raise Underflow(f"Underflow: {self._value} - {rhs} < 0")
        return SafeInt(self._value - rhs)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        rhs = _raw(other)
        if rhs == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // rhs)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _raw(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _raw(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _raw(other)

    def within_one(self, other: SafeInt | int) -> bool:
        """Newton stopping rule: |self - other| <= 1."""
        return abs(self._value - _raw(other)) <= 1

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def __int__(self) -> int:
        return self._value

    __index__ = __int__

    def __bool__(self) -> bool:
        return self._value != 0


S = SafeInt
