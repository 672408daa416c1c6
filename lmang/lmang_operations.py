"""
Arithmetic, ordering and equality over lmang values.

All numeric operations dereference both operands first and work on signed
32 bit integers, wrapping on overflow.
"""

from typing import Any, Callable

from lmang.lmang_datatypes import deref, is_number, values_equal, variant_name
from lmang.lmang_errors import CastError, InvalidOp

I32_MIN = -(1 << 31)


def wrap_i32(n: int) -> int:
    return ((n - I32_MIN) & 0xFFFFFFFF) + I32_MIN


def _as_number(val: Any) -> int:
    val = deref(val)
    if not is_number(val):
        raise CastError(variant_name(val), "Number")
    return val


def add(lhs: Any, rhs: Any) -> int:
    return wrap_i32(_as_number(lhs) + _as_number(rhs))


def sub(lhs: Any, rhs: Any) -> int:
    return wrap_i32(_as_number(lhs) - _as_number(rhs))


def mul(lhs: Any, rhs: Any) -> int:
    return wrap_i32(_as_number(lhs) * _as_number(rhs))


def div(lhs: Any, rhs: Any) -> int:
    a, b = _as_number(lhs), _as_number(rhs)
    if b == 0:
        raise InvalidOp("Number", "/", "Number")
    # Truncate toward zero, not floor.
    q = abs(a) // abs(b)
    return wrap_i32(q if (a < 0) == (b < 0) else -q)


def _ordering(op: str, compare: Callable[[int, int], bool]):
    def apply(lhs: Any, rhs: Any) -> bool:
        a, b = deref(lhs), deref(rhs)
        if not (is_number(a) and is_number(b)):
            raise InvalidOp(variant_name(a), op, variant_name(b))
        return compare(a, b)
    apply.__name__ = f"try_{op}"
    return apply


try_gt = _ordering(">", lambda a, b: a > b)
try_ge = _ordering(">=", lambda a, b: a >= b)
try_lt = _ordering("<", lambda a, b: a < b)
try_le = _ordering("<=", lambda a, b: a <= b)


def equals(lhs: Any, rhs: Any) -> bool:
    return values_equal(lhs, rhs)


def fuzzy_equals(lhs: Any, rhs: Any) -> bool:
    """Compare the values underneath any references on either side."""
    return values_equal(deref(lhs), deref(rhs))
